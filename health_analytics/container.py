"""
Explicit wiring of the query-side services.

Built once in the application lifespan (or by tests around fakes) and handed to
routes through a dependency; nothing here is module-level state.
"""

from dataclasses import dataclass

from pymongo.asynchronous.database import AsyncDatabase

from health_analytics.config import Settings
from health_analytics.db.mongo import MongoClientManager
from health_analytics.repositories.health_repositories import HealthRepositories, build_repositories
from health_analytics.services.infrastructure.redis_client import RedisClient
from health_analytics.services.summary_service import SummaryAggregator


@dataclass
class ServiceContainer:
    settings: Settings
    repositories: HealthRepositories
    aggregator: SummaryAggregator
    mongo: MongoClientManager | None = None
    redis: RedisClient | None = None

    @property
    def query_timeout(self) -> float | None:
        return self.settings.QUERY_TIMEOUT_SECONDS


def build_container(
    settings: Settings,
    database: AsyncDatabase,
    *,
    mongo: MongoClientManager | None = None,
    redis: RedisClient | None = None,
) -> ServiceContainer:
    repositories = build_repositories(database)
    return ServiceContainer(
        settings=settings,
        repositories=repositories,
        aggregator=SummaryAggregator(repositories, settings.SUMMARY_TIMEZONE),
        mongo=mongo,
        redis=redis,
    )
