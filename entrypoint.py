import uvicorn
from constants import HEARTBEAT_INTERVAL_SEC, HOST, LOG_FILE, LOG_LEVEL, PORT
from logging_config import get_logger, setup_logging

# Setup logging before uvicorn loads the app module
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)

logger = get_logger(__name__)


def main():
    logger.info(f"Starting Odd/Even Tic-Tac-Toe server on {HOST}:{PORT}")
    logger.info(f"WebSocket path: ws://{HOST}:{PORT}/ws")
    uvicorn.run(
        "app:app",
        host=HOST,
        port=PORT,
        ws_ping_interval=HEARTBEAT_INTERVAL_SEC,
        ws_ping_timeout=HEARTBEAT_INTERVAL_SEC,
        log_config=None,
    )


if __name__ == "__main__":
    main()
