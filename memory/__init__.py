from memory.sessions import Session, SessionRegistry, StreamingChannel

__all__ = ["Session", "SessionRegistry", "StreamingChannel"]
