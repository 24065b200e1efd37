import logging

import structlog


def setup_logging(level: int = logging.DEBUG) -> None:
    """
    Route callbatch's structlog events through the stdlib ``callbatch`` logger.

    Parameters
    ----------
    level : int, optional
        Level applied to the ``callbatch`` logger.
    """
    logging.getLogger("callbatch").setLevel(level)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
