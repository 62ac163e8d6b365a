import logging, sys
from app.settings import settings

NOISY_LOGGERS = ("httpx", "httpcore", "qdrant_client", "pdfminer")


def configure_logging():
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.EVALUATION_LOG_FILE:
        handlers.append(logging.FileHandler(
            settings.EVALUATION_LOG_FILE, mode="a", encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
