"""Default tuning values shared across flightscope."""

MAX_RETRIES = 3

# Hand-tuned wait before retry attempts 1, 2 and 3.
BACKOFF_SCHEDULE_MS = (5000, 15000, 30000)

INTER_ITEM_DELAY_MS = 2000

HISTORY_LIMIT = 50

AGENT_EVENT_TOPIC = "agent:status"

DEFAULT_MODEL = "gemini"
