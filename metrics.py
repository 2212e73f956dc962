from prometheus_client import Counter, Gauge, Histogram

MESSAGE_COUNTER = Counter(
    "assistant_messages_total",
    "Inbound /messages requests",
    ["status"],
)
TURN_LATENCY = Histogram(
    "assistant_turn_seconds",
    "Latency of one conversation turn in seconds",
)
TOOL_CALLS = Counter(
    "assistant_tool_calls_total",
    "Tool dispatches",
    ["tool", "outcome"],
)
TOOL_LATENCY = Histogram(
    "assistant_tool_seconds",
    "Latency of tool handlers in seconds",
    ["tool"],
)
OPEN_STREAMS = Gauge(
    "assistant_open_streams",
    "Currently open session streams",
)
