import logging
import sys

from pythonjsonlogger.json import JsonFormatter


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure structured JSON logging on stdout.

    Replaces the handlers of the root logger and the uvicorn loggers with a
    single stream handler so HTTP access logs and consumer logs share one
    format.

    Args:
        level: Log level name for the root and uvicorn loggers.

    Returns:
        The configured root logger.
    """
    formatter = JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s"
    )
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []
    root_logger.addHandler(stream_handler)

    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
        u_logger = logging.getLogger(logger_name)
        u_logger.setLevel(level)
        u_logger.handlers = []
        u_logger.addHandler(stream_handler)
        u_logger.propagate = False

    # pika is chatty at INFO about every connection state change
    logging.getLogger("pika").setLevel(logging.WARNING)

    return root_logger
