"""Typed bundle of the five entity repositories over one database handle."""

from dataclasses import dataclass

from pymongo.asynchronous.database import AsyncDatabase

from health_analytics.models.domain.entity_kinds import (
    GENETIC_DATA,
    HEALTH_RECOMMENDATION,
    LIFESTYLE_DATA,
    MEDICAL_RECORD,
    WEARABLE_DATA,
    EntityKind,
)
from health_analytics.models.domain.health_domain import (
    GeneticData,
    HealthRecommendation,
    LifestyleData,
    MedicalRecord,
    WearableData,
)
from health_analytics.repositories.entity_repository import EntityRepository


@dataclass(frozen=True, slots=True)
class HealthRepositories:
    medical_records: EntityRepository[MedicalRecord]
    genetic_data: EntityRepository[GeneticData]
    lifestyle_data: EntityRepository[LifestyleData]
    wearable_data: EntityRepository[WearableData]
    health_recommendations: EntityRepository[HealthRecommendation]

    def for_kind(self, kind: EntityKind) -> EntityRepository:
        return getattr(self, kind.collection)

    def all(self) -> tuple[EntityRepository, ...]:
        return (
            self.medical_records,
            self.genetic_data,
            self.lifestyle_data,
            self.wearable_data,
            self.health_recommendations,
        )


def build_repositories(database: AsyncDatabase) -> HealthRepositories:
    return HealthRepositories(
        medical_records=EntityRepository(database, MEDICAL_RECORD),
        genetic_data=EntityRepository(database, GENETIC_DATA),
        lifestyle_data=EntityRepository(database, LIFESTYLE_DATA),
        wearable_data=EntityRepository(database, WEARABLE_DATA),
        health_recommendations=EntityRepository(database, HEALTH_RECOMMENDATION),
    )
