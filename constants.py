import os
from dataclasses import dataclass

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3001))
RELOAD = os.getenv("RELOAD", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

# Connections that arrive without a roomId (or with an empty one) land here
DEFAULT_ROOM_ID = os.getenv("DEFAULT_ROOM_ID", "default")
ROOM_QUERY_PARAM = "roomId"

OUTBOX_MAX_SIZE = int(os.getenv("OUTBOX_MAX_SIZE", 256))
SEND_TIMEOUT_SECONDS = float(os.getenv("SEND_TIMEOUT_SECONDS", 5.0))

HEALTH_MESSAGE = "Web Socket Server is running"


@dataclass(frozen=True)
class RelaySettings:
    default_room_id: str = DEFAULT_ROOM_ID
    room_query_param: str = ROOM_QUERY_PARAM
    outbox_max_size: int = OUTBOX_MAX_SIZE
    send_timeout_seconds: float = SEND_TIMEOUT_SECONDS
