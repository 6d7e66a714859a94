import logging


def get_logger(name: str) -> logging.Logger:
    """
    Logger factory used by the orchestration layer.

    Attaches a single stream handler the first time a name is requested so
    repeated calls never duplicate output.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger
