import logging
import threading
import time
from typing import Optional

import pika
import pika.exceptions
from pydantic import BaseModel, Field

from src.metadata_service.domain import Settlement, VideosRepository
from src.metadata_service.worker import process_video_uploaded_message

logger = logging.getLogger(__name__)


class RabbitMQConsumerConfig(BaseModel):
    host: str
    port: int = 5672
    username: str = "guest"
    password: str = "guest"
    url: Optional[str] = None
    exchange_name: str = "video-uploaded"
    dead_letter_exchange: Optional[str] = None
    connect_retries: int = Field(default=10, ge=1)
    retry_delay_seconds: float = 2.0
    requeue_delay_seconds: float = 1.0


class RabbitMQVideoUploadedConsumer:
    """Subscribes a private queue to the video-uploaded fanout exchange.

    Deliveries are handed one at a time to the ingestion worker and settled
    according to the Settlement it returns. This class is the only place that
    acknowledges or rejects messages.
    """

    def __init__(
        self,
        config: RabbitMQConsumerConfig,
        repository: VideosRepository,
    ) -> None:
        """Initialize the consumer.

        Args:
            config: RabbitMQ configuration.
            repository: Metadata store that ingested events are written to.
        """
        self._config = config
        self._repository = repository
        self._connection = None
        self._channel = None
        self._queue_name: Optional[str] = None
        self._consuming = False
        self._stopped = False
        self._lock = threading.Lock()

    @property
    def queue_name(self) -> Optional[str]:
        """Name of the broker-generated queue, once started."""
        return self._queue_name

    def start(self) -> None:
        """Connect, declare the topology and register the message callback.

        Calling it again on a started consumer is a no-op, so the queue is
        never bound twice.
        """
        if self._channel is not None:
            return

        connection = self._connect()
        channel = connection.channel()

        channel.exchange_declare(
            exchange=self._config.exchange_name,
            exchange_type="fanout",
            durable=True,
        )

        arguments = None
        if self._config.dead_letter_exchange:
            channel.exchange_declare(
                exchange=self._config.dead_letter_exchange,
                exchange_type="fanout",
                durable=True,
            )
            arguments = {"x-dead-letter-exchange": self._config.dead_letter_exchange}

        result = channel.queue_declare(queue="", exclusive=True, arguments=arguments)
        queue_name = result.method.queue
        channel.queue_bind(queue=queue_name, exchange=self._config.exchange_name)

        # one unacknowledged message at a time keeps processing FIFO
        channel.basic_qos(prefetch_count=1)
        channel.basic_consume(
            queue=queue_name,
            on_message_callback=self._on_message,
        )

        self._connection = connection
        self._channel = channel
        self._queue_name = queue_name

        logger.info(
            "Subscribed to exchange",
            extra={"exchange": self._config.exchange_name, "queue": queue_name},
        )

    def run_forever(self) -> None:
        """Start consuming messages until stop() is called.

        Blocks the calling thread. The connection is closed on exit. Returns
        immediately if stop() was already called.
        """
        with self._lock:
            if self._stopped:
                return
            self.start()
            self._consuming = True
        logger.info("Message consumption started", extra={"queue": self._queue_name})
        try:
            self._channel.start_consuming()
        finally:
            with self._lock:
                self._consuming = False
                self._close()

    def stop(self) -> None:
        """Stop consuming. Safe to call from any thread."""
        with self._lock:
            self._stopped = True
            connection, channel = self._connection, self._channel
            if connection is None:
                return
            if not self._consuming:
                self._close()
                return
        try:
            connection.add_callback_threadsafe(channel.stop_consuming)
        except pika.exceptions.ConnectionWrongStateError:
            logger.debug("Connection already closed, nothing to stop")

    def _on_message(self, ch, method, properties, body: bytes) -> None:
        delivery_tag = method.delivery_tag
        logger.info(
            "Message received",
            extra={"delivery_tag": delivery_tag, "redelivered": method.redelivered},
        )

        try:
            settlement = process_video_uploaded_message(body, self._repository)
        except Exception:
            logger.exception(
                "Message processing failed",
                extra={"delivery_tag": delivery_tag},
            )
            settlement = Settlement.REQUEUE

        self._settle(ch, delivery_tag, settlement)

    def _settle(self, ch, delivery_tag: int, settlement: Settlement) -> None:
        if settlement is Settlement.ACK:
            ch.basic_ack(delivery_tag=delivery_tag)
        elif settlement is Settlement.REJECT:
            ch.basic_reject(delivery_tag=delivery_tag, requeue=False)
        else:
            if self._config.requeue_delay_seconds > 0:
                ch.connection.sleep(self._config.requeue_delay_seconds)
            ch.basic_nack(delivery_tag=delivery_tag, requeue=True)
        logger.info(
            "Message settled",
            extra={"delivery_tag": delivery_tag, "settlement": settlement.value},
        )

    def _connection_parameters(self) -> pika.connection.Parameters:
        if self._config.url:
            return pika.URLParameters(self._config.url)
        credentials = pika.PlainCredentials(
            self._config.username,
            self._config.password,
        )
        return pika.ConnectionParameters(
            host=self._config.host,
            port=self._config.port,
            credentials=credentials,
        )

    def _connect(self) -> pika.BlockingConnection:
        parameters = self._connection_parameters()
        max_retries = self._config.connect_retries
        retry_delay = self._config.retry_delay_seconds

        for attempt in range(max_retries):
            try:
                logger.info(
                    "Connecting to RabbitMQ",
                    extra={"attempt": attempt + 1, "max_attempts": max_retries},
                )
                return pika.BlockingConnection(parameters)
            except pika.exceptions.AMQPConnectionError:
                if attempt == max_retries - 1:
                    logger.error("Failed to connect to RabbitMQ after maximum retries")
                    raise
                logger.warning(
                    "RabbitMQ not ready, retrying",
                    extra={"retry_delay_seconds": retry_delay},
                )
                time.sleep(retry_delay)
                retry_delay = min(retry_delay * 2, 30)

    def _close(self) -> None:
        connection = self._connection
        self._connection = None
        self._channel = None
        if connection is not None and connection.is_open:
            connection.close()
