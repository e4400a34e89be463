"""
Ingestion worker runner.

Reads the desired job from CLI args or the WORKER_JOB environment variable:
``ingestion`` runs all five topic consumers, a kind name (e.g.
``genetic_data``) runs that consumer alone. The process exits with the first
consumer failure so the supervisor can restart it.
"""

import asyncio
import functools
import os
import sys
from collections.abc import Awaitable, Callable, Sequence

from health_analytics.config import Settings, settings
from health_analytics.consumers.bus import KafkaMessageSource
from health_analytics.consumers.entity_consumer import EntityConsumer
from health_analytics.db.mongo import MongoClientManager
from health_analytics.infrastructure.observability.logging import get_logger, setup_logging
from health_analytics.models.domain.entity_kinds import ENTITY_KINDS, EntityKind
from health_analytics.repositories.health_repositories import build_repositories
from health_analytics.services.infrastructure.redis_client import RedisClient
from health_analytics.services.notification_service import (
    NotificationDispatcher,
    RedisNotificationSink,
)

logger = get_logger(__name__)

JobCoroutine = Callable[[], Awaitable[None]]


async def run_consumers(consumers: Sequence[EntityConsumer]) -> None:
    """
    Run consumers concurrently until one of them stops.

    The first failure cancels the others and is raised.
    """
    tasks = [
        asyncio.create_task(consumer.consume(), name=f"consumer:{consumer.kind.name}")
        for consumer in consumers
    ]

    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    finally:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    for task in tasks:
        if task in done and task.exception() is not None:
            logger.error(
                "Consumer failed, stopping worker",
                consumer=task.get_name(),
                error=str(task.exception()),
            )
            raise task.exception()


async def run_ingestion(kinds: Sequence[EntityKind] = ENTITY_KINDS, config: Settings = settings) -> None:
    """Open the stores, start one consumer per kind, and run until a bus failure."""
    mongo = MongoClientManager(config)
    redis_client = RedisClient(config.REDIS_URL)
    sources: list[KafkaMessageSource] = []

    await mongo.initialize()
    try:
        await redis_client.initialize()
        dispatcher = NotificationDispatcher(
            RedisNotificationSink(redis_client.client), max_pending=config.NOTIFICATION_QUEUE_SIZE
        )
        await dispatcher.start()

        try:
            repositories = build_repositories(mongo.database)
            consumers = []
            for kind in kinds:
                source = KafkaMessageSource(
                    config.kafka_bootstrap_servers(),
                    config.topic_for(kind.topic_setting),
                    kind.group_id,
                    auto_offset_reset=config.KAFKA_AUTO_OFFSET_RESET,
                )
                await source.start()
                sources.append(source)
                consumers.append(
                    EntityConsumer(kind, source, repositories.for_kind(kind), dispatcher)
                )

            logger.info("Ingestion started", kinds=[kind.name for kind in kinds])
            await run_consumers(consumers)

        finally:
            for source in sources:
                await source.stop()
            await dispatcher.stop()
    finally:
        await redis_client.close()
        await mongo.close()


JOB_REGISTRY: dict[str, JobCoroutine] = {
    "ingestion": run_ingestion,
    **{kind.name: functools.partial(run_ingestion, (kind,)) for kind in ENTITY_KINDS},
}


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", "ingestion").strip().lower()


async def run_worker(job_name: str | None = None) -> None:
    """Run the requested background job."""
    name = (job_name or _resolve_job_name()).strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    logger.info("Starting background worker", job=name)
    await JOB_REGISTRY[name]()


def main() -> None:
    """CLI entrypoint."""
    setup_logging(log_level=settings.LOG_LEVEL, process="worker")
    job_name = _resolve_job_name()
    asyncio.run(run_worker(job_name))


if __name__ == "__main__":
    main()
