import logging
import threading
from typing import Optional

import uvicorn
from fastapi import FastAPI
from pymongo import MongoClient

from src.metadata_service.app import create_app
from src.metadata_service.config import MetadataServiceConfig
from src.metadata_service.rabbitmq_consumer import RabbitMQVideoUploadedConsumer
from src.shared.videos_repository import MongoVideosRepository

logger = logging.getLogger(__name__)


class Microservice:
    """A running metadata service: one consumer thread and one HTTP thread.

    Every instance owns its own store client, broker connection, queue and
    HTTP server, so several can coexist in one test process.
    """

    def __init__(
        self,
        app: FastAPI,
        repository: MongoVideosRepository,
        consumer: RabbitMQVideoUploadedConsumer,
        server: uvicorn.Server,
        mongo_client: Optional[MongoClient] = None,
    ) -> None:
        self.app = app
        self.repository = repository
        self.consumer = consumer
        self.server = server
        self._mongo_client = mongo_client
        self._threads: list[threading.Thread] = []
        self._failure: Optional[BaseException] = None

    def start(self) -> None:
        self._threads = [
            threading.Thread(
                target=self._run_consumer,
                name="video-uploaded-consumer",
                daemon=True,
            ),
            threading.Thread(
                target=self._run_http,
                name="http-server",
                daemon=True,
            ),
        ]
        for thread in self._threads:
            thread.start()
        logger.info("Microservice online")

    def stop(self) -> None:
        """Ask the HTTP server and the consumer to stop. Does not block."""
        logger.info("Stopping microservice")
        self.server.should_exit = True
        self.consumer.stop()

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until both threads have exited, then release the store client.

        Raises:
            The exception that terminated the consumer, if any.
        """
        for thread in self._threads:
            thread.join(timeout)
        if any(thread.is_alive() for thread in self._threads):
            return
        if self._mongo_client is not None:
            self._mongo_client.close()
            self._mongo_client = None
        if self._failure is not None:
            raise self._failure

    def _run_consumer(self) -> None:
        try:
            self.consumer.run_forever()
        except Exception as e:
            logger.exception("Consumer stopped unexpectedly")
            self._failure = e
            self.server.should_exit = True

    def _run_http(self) -> None:
        try:
            self.server.run()
        finally:
            self.consumer.stop()


def start_microservice(
    config: MetadataServiceConfig,
    mongo_client: Optional[MongoClient] = None,
) -> Microservice:
    """
    Wire the store, the subscriber and the HTTP listener, in that order.

    The store must answer a ping before the subscriber is started, so no
    event is consumed while the store is unready.

    Args:
        config: Service configuration.
        mongo_client: Client to use instead of creating one from
            ``config.mongo_uri``. An injected client is not closed on shutdown.

    Returns:
        The running Microservice.

    Raises:
        StoreUnavailableError: If the store cannot be reached.
        pika.exceptions.AMQPConnectionError: If the broker cannot be reached
            after the configured retries.
    """
    owned_client = None
    if mongo_client is None:
        mongo_client = owned_client = MongoClient(
            config.mongo_uri,
            serverSelectionTimeoutMS=5000,
        )

    repository = MongoVideosRepository(mongo_client, db_name=config.mongo_db_name)
    consumer = RabbitMQVideoUploadedConsumer(config.consumer, repository)
    try:
        repository.ping()
        logger.info("Connected to metadata store", extra={"db_name": config.mongo_db_name})
        consumer.start()
    except Exception:
        if owned_client is not None:
            owned_client.close()
        raise

    app = create_app(repository)
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=config.http_host,
            port=config.http_port,
            log_config=None,
        )
    )

    microservice = Microservice(
        app=app,
        repository=repository,
        consumer=consumer,
        server=server,
        mongo_client=owned_client,
    )
    microservice.start()
    return microservice
