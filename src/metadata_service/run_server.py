import logging
import os
import signal
import sys

from src.metadata_service.config import load_config
from src.metadata_service.microservice import start_microservice
from src.shared.exceptions import ConfigMissingError
from src.shared.logging_config import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))

    try:
        config = load_config()
    except ConfigMissingError as e:
        logger.error("Microservice failed to start", extra={"error": str(e)})
        sys.exit(1)

    try:
        microservice = start_microservice(config)
    except Exception:
        logger.exception("Microservice failed to start")
        sys.exit(1)

    signal.signal(signal.SIGTERM, lambda signum, frame: microservice.stop())

    try:
        microservice.wait()
    except KeyboardInterrupt:
        microservice.stop()
        microservice.wait()
    except Exception:
        logger.exception("Microservice terminated")
        sys.exit(1)


if __name__ == "__main__":
    main()
