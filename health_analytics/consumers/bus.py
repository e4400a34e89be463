"""
Message bus adapter.

Wraps one aiokafka consumer per topic behind ``fetch``/``commit`` so the
consume loop never sees Kafka types. Every bus-level error surfaces as
BusFailure.
"""

from dataclasses import dataclass
from typing import Protocol

from aiokafka import AIOKafkaConsumer, TopicPartition
from aiokafka.errors import KafkaError

from health_analytics.exceptions import BusFailure
from health_analytics.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class BusMessage:
    topic: str
    partition: int
    offset: int
    key: str | None
    value: bytes


class MessageSource(Protocol):
    async def fetch(self) -> BusMessage: ...

    async def commit(self, message: BusMessage) -> None: ...


class KafkaMessageSource:
    """Manually committed reader for one topic and consumer group."""

    def __init__(
        self,
        bootstrap_servers: list[str],
        topic: str,
        group_id: str,
        auto_offset_reset: str = "earliest",
    ):
        self.topic = topic
        self.group_id = group_id
        self._consumer = AIOKafkaConsumer(
            topic,
            bootstrap_servers=bootstrap_servers,
            group_id=group_id,
            enable_auto_commit=False,
            auto_offset_reset=auto_offset_reset,
        )

    async def start(self) -> None:
        try:
            await self._consumer.start()
        except KafkaError as e:
            raise BusFailure(f"Failed to connect to topic {self.topic}: {e}", operation="start") from e
        logger.info("Kafka consumer started", topic=self.topic, group_id=self.group_id)

    async def stop(self) -> None:
        try:
            await self._consumer.stop()
        except KafkaError as e:
            logger.error("Error stopping Kafka consumer", topic=self.topic, error=str(e))
        else:
            logger.info("Kafka consumer stopped", topic=self.topic)

    async def fetch(self) -> BusMessage:
        try:
            record = await self._consumer.getone()
        except KafkaError as e:
            raise BusFailure(f"Error fetching message from {self.topic}: {e}", operation="fetch") from e

        key = record.key.decode("utf-8", errors="replace") if record.key is not None else None
        return BusMessage(
            topic=record.topic,
            partition=record.partition,
            offset=record.offset,
            key=key,
            value=record.value or b"",
        )

    async def commit(self, message: BusMessage) -> None:
        partition = TopicPartition(message.topic, message.partition)
        try:
            await self._consumer.commit({partition: message.offset + 1})
        except KafkaError as e:
            raise BusFailure(
                f"Error committing offset {message.offset} on {message.topic}: {e}",
                operation="commit",
            ) from e
