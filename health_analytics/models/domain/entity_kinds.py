"""
Entity kind table.

Each of the five record types differs only in its model, collection, fields and
notification wording. Repositories, consumers, topics and routes are all built
from these entries.
"""

from dataclasses import dataclass

from health_analytics.models.domain.health_domain import (
    GeneticData,
    HealthRecommendation,
    HealthRecordBase,
    LifestyleData,
    MedicalRecord,
    WearableData,
)


@dataclass(frozen=True, slots=True)
class EntityKind:
    """Static description of one entity kind."""

    name: str  # message key prefix, e.g. "genetic_data"
    record_model: type[HealthRecordBase]
    collection: str
    fields: tuple[str, ...]
    filter_fields: tuple[str, ...]
    group_id: str
    topic_setting: str
    payload_field: str | None = None
    created_message: str | None = None
    updated_message: str | None = None

    @property
    def create_key(self) -> str:
        return f"{self.name}.create"

    @property
    def update_key(self) -> str:
        return f"{self.name}.update"


MEDICAL_RECORD = EntityKind(
    name="medical_record",
    record_model=MedicalRecord,
    collection="medical_records",
    fields=("user_id", "record_type", "record_date", "description", "doctor_id", "attachments"),
    filter_fields=("user_id", "record_type", "record_date", "description", "doctor_id"),
    group_id="medical-record-group",
    topic_setting="KAFKA_MEDICAL_RECORD_TOPIC",
    created_message="Your medical record has been created.",
    updated_message="Your medical record has been updated.",
)

GENETIC_DATA = EntityKind(
    name="genetic_data",
    record_model=GeneticData,
    collection="genetic_data",
    fields=("user_id", "data_type", "data_value", "analysis_date"),
    filter_fields=("user_id", "data_type", "analysis_date"),
    group_id="genetic-data-group",
    topic_setting="KAFKA_GENETIC_DATA_TOPIC",
    payload_field="data_value",
    created_message="Your genetic data has been created.",
    updated_message="Your genetic data has been updated.",
)

LIFESTYLE_DATA = EntityKind(
    name="lifestyle_data",
    record_model=LifestyleData,
    collection="lifestyle_data",
    fields=("user_id", "data_type", "data_value", "recorded_date"),
    filter_fields=("user_id", "data_type", "recorded_date"),
    group_id="lifestyle-data-group",
    topic_setting="KAFKA_LIFESTYLE_DATA_TOPIC",
    payload_field="data_value",
    created_message="Your lifestyle data has been recorded.",
    updated_message="Your lifestyle data has been updated.",
)

# Wearable samples never notify
WEARABLE_DATA = EntityKind(
    name="wearable_data",
    record_model=WearableData,
    collection="wearable_data",
    fields=("user_id", "device_type", "data_type", "data_value", "recorded_timestamp"),
    filter_fields=("user_id", "device_type", "data_type", "recorded_timestamp"),
    group_id="wearable-data-group",
    topic_setting="KAFKA_WEARABLE_DATA_TOPIC",
    payload_field="data_value",
)

HEALTH_RECOMMENDATION = EntityKind(
    name="health_recommendation",
    record_model=HealthRecommendation,
    collection="health_recommendations",
    fields=("user_id", "recommendation_type", "description", "priority"),
    filter_fields=("user_id", "recommendation_type", "priority"),
    group_id="health-recommendation-group",
    topic_setting="KAFKA_HEALTH_RECOMMENDATION_TOPIC",
    created_message="You have a new health recommendation.",
    updated_message="A health recommendation has been updated.",
)

ENTITY_KINDS: tuple[EntityKind, ...] = (
    MEDICAL_RECORD,
    GENETIC_DATA,
    LIFESTYLE_DATA,
    WEARABLE_DATA,
    HEALTH_RECOMMENDATION,
)
