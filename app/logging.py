import logging, sys
from app.settings import settings

SCREENING_LOGGER = "screening"


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    for noisy_logger in ("httpx", "httpcore", "pdfminer"):
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    # the pipeline can additionally be traced to its own file
    if settings.SCREENING_LOG_FILE:
        logger = logging.getLogger(SCREENING_LOGGER)
        if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
            fh = logging.FileHandler(settings.SCREENING_LOG_FILE, mode="a", encoding="utf-8")
            fh.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
            logger.addHandler(fh)
