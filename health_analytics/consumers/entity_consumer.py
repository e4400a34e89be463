"""
Per-topic ingestion loop.

fetch -> route by key -> decode -> apply to repository -> notify -> commit.

Only bus failures end the loop. Unknown keys, undecodable bodies and storage
errors are logged and the message is committed anyway, so one bad message can
never stall its topic.
"""

from enum import StrEnum

from pydantic import ValidationError

from health_analytics.consumers.bus import BusMessage, MessageSource
from health_analytics.exceptions import BusFailure, DecodeFailure, HealthDataError
from health_analytics.infrastructure.observability.logging import get_logger
from health_analytics.models.domain.entity_kinds import EntityKind
from health_analytics.models.domain.health_domain import HealthRecordBase
from health_analytics.repositories.entity_repository import EntityRepository
from health_analytics.services.notification_service import NotificationDispatcher

logger = get_logger(__name__)


class HandleOutcome(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    UNKNOWN_KEY = "unknown_key"
    DECODE_FAILED = "decode_failed"
    APPLY_FAILED = "apply_failed"


class EntityConsumer:
    """Consumes one entity kind's topic into its repository."""

    def __init__(
        self,
        kind: EntityKind,
        source: MessageSource,
        repository: EntityRepository,
        notifier: NotificationDispatcher | None = None,
    ):
        self.kind = kind
        self._source = source
        self._repository = repository
        self._notifier = notifier

    async def consume(self) -> None:
        """Run until the bus fails; the BusFailure is raised to the caller."""
        logger.info("Consumer loop started", kind=self.kind.name, group_id=self.kind.group_id)

        while True:
            try:
                message = await self._source.fetch()
                await self.handle(message)
                await self._source.commit(message)
            except BusFailure as e:
                logger.error(
                    "Consumer loop stopped by bus failure",
                    kind=self.kind.name,
                    operation=e.operation,
                    error=str(e),
                )
                raise

    async def handle(self, message: BusMessage) -> HandleOutcome:
        log = logger.bind(
            kind=self.kind.name,
            topic=message.topic,
            partition=message.partition,
            offset=message.offset,
            key=message.key,
        )

        if message.key == self.kind.create_key:
            operation = "create"
        elif message.key == self.kind.update_key:
            operation = "update"
        else:
            log.info("Skipping message with unknown key")
            return HandleOutcome.UNKNOWN_KEY

        try:
            record = self._decode(message.value)
        except DecodeFailure as e:
            log.warning("Skipping undecodable message", error=str(e))
            return HandleOutcome.DECODE_FAILED

        outcome = await self._apply(operation, record, log)
        self._notify(operation, record, log)
        return outcome

    def _decode(self, value: bytes) -> HealthRecordBase:
        try:
            return self.kind.record_model.model_validate_json(value)
        except ValidationError as e:
            raise DecodeFailure(f"Invalid {self.kind.name} message body: {e}") from e

    async def _apply(self, operation: str, record: HealthRecordBase, log) -> HandleOutcome:
        try:
            if operation == "create":
                record_id = await self._repository.create(record)
                log.info("Record created from event", record_id=record_id, user_id=record.user_id)
                return HandleOutcome.CREATED

            await self._repository.update(record)
            log.info("Record updated from event", record_id=record.id, user_id=record.user_id)
            return HandleOutcome.UPDATED

        except HealthDataError as e:
            log.error(
                f"Failed to {operation} {self.kind.name}",
                error=str(e),
                error_type=type(e).__name__,
                record_id=record.id,
            )
        except Exception as e:
            log.error(
                f"Unexpected error during {operation} of {self.kind.name}",
                error=str(e),
                error_type=type(e).__name__,
                record_id=record.id,
            )
        return HandleOutcome.APPLY_FAILED

    def _notify(self, operation: str, record: HealthRecordBase, log) -> None:
        if self._notifier is None:
            return

        text = self.kind.created_message if operation == "create" else self.kind.updated_message
        if text is None:
            return

        if not record.user_id:
            log.debug("No user id on event, skipping notification")
            return

        self._notifier.submit(record.user_id, text)
