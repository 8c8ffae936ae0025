import os


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


HOST = os.getenv("HOST", "0.0.0.0")
PORT = _int_env("PORT", 3001)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

# Transport-level websocket ping period, handed to uvicorn
HEARTBEAT_INTERVAL_SEC = _int_env("HEARTBEAT_INTERVAL_SEC", 30)
# Longest a single outbound frame may wait on a slow peer
SEND_TIMEOUT_SEC = _int_env("SEND_TIMEOUT_SEC", 5)

STATIC_DIR = os.getenv("STATIC_DIR", os.path.join(os.path.dirname(os.path.abspath(__file__)), "static"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Game
BOARD_SIZE = 5
MAX_LABEL_LENGTH = 32
DEFAULT_ROOM = "lobby"
GUEST_PREFIX = "Guest-"

ROLE_ODD = "odd"
ROLE_EVEN = "even"
ROLE_SPECTATOR = "spectator"
PLAYER_ROLES = (ROLE_ODD, ROLE_EVEN)

# Wire message types
MSG_STATE = "state"
MSG_NOTICE = "message"
MSG_INCREMENT = "increment"
MSG_RESTART = "restart"
