from typing import Optional


class AssistantError(Exception):
    """Base class for errors raised inside the assistant server."""


class ValidationError(AssistantError):
    """Tool arguments did not match the tool's input schema."""


class CredentialError(AssistantError):
    """Token or API-key exchange failed, including timeouts."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class UpstreamError(AssistantError):
    """An external API returned a non-success status or an unparsable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ToolNotFoundError(AssistantError):
    pass


class ToolRegistrationError(AssistantError):
    """Startup misconfiguration of the tool registry."""


class SessionNotFoundError(AssistantError):
    pass


class SessionExistsError(AssistantError):
    pass
