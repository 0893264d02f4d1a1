import sys

from loguru import logger

DEFAULT_COMPONENT = "engine"

LOG_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[component]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logger(level: str = "INFO") -> None:
    """Route centroid-engine logs to a single colored stderr sink."""
    logger.remove()
    logger.configure(extra={"component": DEFAULT_COMPONENT})
    logger.add(
        sys.stderr,
        level=level.upper(),
        colorize=True,
        format=LOG_FORMAT,
        backtrace=True,
        diagnose=True,
    )


def component_logger(component: str):
    """Return a logger whose records carry ``component`` in their extras."""
    return logger.bind(component=component)


def log_info(message: str, **kwargs) -> None:
    logger.bind(**kwargs).info(message)


def log_warning(message: str, **kwargs) -> None:
    logger.bind(**kwargs).warning(message)


def log_error(message: str, **kwargs) -> None:
    logger.bind(**kwargs).error(message)
