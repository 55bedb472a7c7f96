import logging

_FORMAT = "%(levelname)s:%(name)s:%(message)s"


def get_logger(name: str, level: int | str | None = None) -> logging.Logger:
    """Return a module-level logger configured with basicConfig.

    ``level`` comes from the engine configuration of the component asking for
    the logger; ``None`` leaves the logger's level untouched.
    """
    logging.basicConfig(level=logging.INFO, format=_FORMAT)
    logger = logging.getLogger(name)
    if level is not None:
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
            if not isinstance(level, int):
                level = logging.INFO
        logger.setLevel(level)
    return logger
