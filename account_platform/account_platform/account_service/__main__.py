import uvicorn

from .config import get_settings
from .main import create_app
from .utils.event_logger import configure_logging


def main() -> None:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_DIR)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
