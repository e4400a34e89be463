"""
Summary domain models.
Composite result of the cross-collection summary and the window it covers.
"""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, Field

from health_analytics.models.domain.health_domain import (
    GeneticData,
    HealthRecommendation,
    LifestyleData,
    MedicalRecord,
    WearableData,
)


@dataclass(frozen=True, slots=True)
class SummaryWindow:
    """Half-open interval [start, end) on record creation time."""

    start: datetime
    end: datetime

    def to_filter(self, user_id: str) -> dict:
        return {"user_id": user_id, "created_at": {"$gte": self.start, "$lt": self.end}}


class HealthSummary(BaseModel):
    """One list per entity kind; a kind with no records in the window is an empty list."""

    medical_records: list[MedicalRecord] = Field(default_factory=list)
    genetic_data: list[GeneticData] = Field(default_factory=list)
    lifestyle_data: list[LifestyleData] = Field(default_factory=list)
    wearable_data: list[WearableData] = Field(default_factory=list)
    health_recommendations: list[HealthRecommendation] = Field(default_factory=list)

    def total_records(self) -> int:
        return (
            len(self.medical_records)
            + len(self.genetic_data)
            + len(self.lifestyle_data)
            + len(self.wearable_data)
            + len(self.health_recommendations)
        )
