"""
Health record domain models.

One pydantic model per entity kind, plus the tagged payload used for the
heterogeneous ``data_value`` field. The same models are the wire format of bus
events (snake_case JSON) and of the query facade.
"""

import base64
import binascii
import json
from datetime import datetime
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
)

from health_analytics.exceptions import DecodeFailure

# =================================================================
# TAGGED PAYLOADS
# =================================================================


class SleepData(BaseModel):
    """Sleep session reported by a device or entered by the user."""

    duration_minutes: int
    quality: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None


class HeartRateData(BaseModel):
    """Heart rate sample."""

    bpm: int
    resting: bool = False
    measured_at: datetime | None = None


class ActivityData(BaseModel):
    steps: int = 0
    calories: float | None = None
    active_minutes: int | None = None


PAYLOAD_TYPES: dict[str, type[BaseModel]] = {
    "health.SleepData": SleepData,
    "health.HeartRateData": HeartRateData,
    "health.ActivityData": ActivityData,
}


class TaggedPayload(BaseModel):
    """
    Self-describing value: a type tag plus the serialized body.

    The body is kept as raw bytes so whatever was packed comes back
    byte-for-byte. In JSON the body travels as base64.
    """

    model_config = ConfigDict(frozen=True)

    type_tag: str = Field(..., min_length=1)
    body: bytes = b""

    @field_validator("body", mode="before")
    @classmethod
    def _decode_body(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except binascii.Error as e:
                raise ValueError("body must be base64 encoded") from e
        return value

    @field_serializer("body")
    def _encode_body(self, body: bytes) -> str:
        return base64.b64encode(body).decode("ascii")

    @classmethod
    def pack(cls, payload: BaseModel) -> "TaggedPayload":
        """Tag a registered payload model."""
        for type_tag, model in PAYLOAD_TYPES.items():
            if type(payload) is model:
                return cls(type_tag=type_tag, body=payload.model_dump_json().encode("utf-8"))
        raise ValueError(f"Unregistered payload type: {type(payload).__name__}")

    @classmethod
    def pack_json(cls, type_tag: str, value: dict[str, Any]) -> "TaggedPayload":
        """Tag an arbitrary JSON object."""
        body = json.dumps(value, separators=(",", ":"), sort_keys=True, default=str)
        return cls(type_tag=type_tag, body=body.encode("utf-8"))

    def unpack(self) -> BaseModel | dict[str, Any]:
        """Decode the body into its registered model, or a plain dict for unknown tags."""
        model = PAYLOAD_TYPES.get(self.type_tag)
        try:
            if model is not None:
                return model.model_validate_json(self.body)
            return json.loads(self.body)
        except (ValidationError, ValueError) as e:
            raise DecodeFailure(
                f"Payload tagged {self.type_tag!r} could not be decoded: {e}", operation="unpack"
            ) from e

    def to_storage(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_storage(cls, raw: str) -> "TaggedPayload":
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise DecodeFailure(f"Stored data_value is malformed: {e}", operation="from_storage") from e


# =================================================================
# RECORDS
# =================================================================


class HealthRecordBase(BaseModel):
    """Fields shared by every entity kind."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    user_id: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class MedicalRecord(HealthRecordBase):
    record_type: str = ""
    record_date: str = ""
    description: str = ""
    doctor_id: str = ""
    attachments: list[str] = Field(default_factory=list)


class GeneticData(HealthRecordBase):
    data_type: str = ""
    data_value: TaggedPayload | None = None
    analysis_date: str = ""


class LifestyleData(HealthRecordBase):
    data_type: str = ""
    data_value: TaggedPayload | None = None
    recorded_date: str = ""


class WearableData(HealthRecordBase):
    device_type: str = ""
    data_type: str = ""
    data_value: TaggedPayload | None = None
    recorded_timestamp: str = ""


class HealthRecommendation(HealthRecordBase):
    recommendation_type: str = ""
    description: str = ""
    priority: int | None = None
