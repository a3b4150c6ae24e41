import os

from pydantic import BaseModel

from src.metadata_service.rabbitmq_consumer import RabbitMQConsumerConfig
from src.shared.exceptions import ConfigMissingError


class MetadataServiceConfig(BaseModel):
    http_host: str = "0.0.0.0"
    http_port: int
    mongo_uri: str
    mongo_db_name: str
    consumer: RabbitMQConsumerConfig
    log_level: str = "INFO"


def _require_env(name: str, hint: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigMissingError(name, hint)
    return value


def load_config() -> MetadataServiceConfig:
    """Load the service configuration from environment variables.

    Raises:
        ConfigMissingError: If PORT, DBHOST, DBNAME or RABBIT is not set, or
            PORT is not an integer.
    """
    port_str = _require_env("PORT", "the port number for the HTTP server")
    mongo_uri = _require_env("DBHOST", "the database host")
    mongo_db_name = _require_env("DBNAME", "the database name")
    rabbit = _require_env("RABBIT", "the RabbitMQ host or amqp:// URL")

    try:
        http_port = int(port_str)
    except ValueError:
        raise ConfigMissingError("PORT", f"expected an integer, got {port_str!r}")

    is_url = rabbit.startswith(("amqp://", "amqps://"))

    consumer_cfg = RabbitMQConsumerConfig(
        host="" if is_url else rabbit,
        port=int(os.getenv("RABBITMQ_PORT", "5672")),
        username=os.getenv("RABBITMQ_USER", "guest"),
        password=os.getenv("RABBITMQ_PASS", "guest"),
        url=rabbit if is_url else None,
        exchange_name=os.getenv("VIDEO_UPLOADED_EXCHANGE", "video-uploaded"),
        dead_letter_exchange=os.getenv("DEAD_LETTER_EXCHANGE") or None,
    )

    return MetadataServiceConfig(
        http_host=os.getenv("HTTP_HOST", "0.0.0.0"),
        http_port=http_port,
        mongo_uri=mongo_uri,
        mongo_db_name=mongo_db_name,
        consumer=consumer_cfg,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
