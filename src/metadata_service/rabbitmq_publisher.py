import json
import logging
from typing import Optional

import pika
from pydantic import BaseModel

from src.metadata_service.domain import VideoUploadedEvent

logger = logging.getLogger(__name__)


class RabbitMQConfig(BaseModel):
    """Configuration for RabbitMQ connection."""

    host: str
    port: int = 5672
    username: str = "guest"
    password: str = "guest"
    url: Optional[str] = None
    exchange_name: str = "video-uploaded"


class RabbitMQVideoUploadedPublisher:
    """Publishes VideoUploadedEvent messages to the fanout exchange.

    Mirrors what the upstream upload service sends; used to smoke-test a
    running metadata service.
    """

    def __init__(self, config: RabbitMQConfig) -> None:
        self._config = config

    def publish_video_uploaded(self, event: VideoUploadedEvent) -> None:
        """Publish a VideoUploadedEvent to every queue bound to the exchange."""
        if self._config.url:
            parameters = pika.URLParameters(self._config.url)
        else:
            credentials = pika.PlainCredentials(
                self._config.username,
                self._config.password,
            )
            parameters = pika.ConnectionParameters(
                host=self._config.host,
                port=self._config.port,
                credentials=credentials,
            )

        connection = pika.BlockingConnection(parameters)
        try:
            channel = connection.channel()

            channel.exchange_declare(
                exchange=self._config.exchange_name,
                exchange_type="fanout",
                durable=True,
            )

            body = json.dumps(event.model_dump()).encode("utf-8")

            channel.basic_publish(
                exchange=self._config.exchange_name,
                routing_key="",
                body=body,
                properties=pika.BasicProperties(
                    content_type="application/json",
                    delivery_mode=pika.DeliveryMode.Persistent,
                ),
            )
            logger.info(
                "Published video-uploaded event",
                extra={"exchange": self._config.exchange_name, "video_id": event.video.id},
            )
        finally:
            connection.close()
