import pytest
from pydantic import ValidationError

from health_analytics.exceptions import DecodeFailure
from health_analytics.models.domain.health_domain import (
    GeneticData,
    HeartRateData,
    SleepData,
    TaggedPayload,
)


def test_pack_registered_model_round_trips():
    payload = TaggedPayload.pack(SleepData(duration_minutes=420, quality="good"))

    assert payload.type_tag == "health.SleepData"
    unpacked = payload.unpack()
    assert isinstance(unpacked, SleepData)
    assert unpacked.duration_minutes == 420
    assert unpacked.quality == "good"


def test_pack_unregistered_model_rejected():
    with pytest.raises(ValueError):
        TaggedPayload.pack(GeneticData(user_id="u1"))


def test_unknown_tag_unpacks_to_dict():
    payload = TaggedPayload.pack_json("lab.Panel", {"ldl": 110, "hdl": 55})

    assert payload.unpack() == {"hdl": 55, "ldl": 110}


def test_body_survives_json_byte_for_byte():
    body = b'{"bpm":61,"resting":true}'
    payload = TaggedPayload(type_tag="health.HeartRateData", body=body)

    restored = TaggedPayload.model_validate_json(payload.model_dump_json())

    assert restored.body == body
    assert restored == payload
    assert isinstance(restored.unpack(), HeartRateData)


def test_storage_round_trip():
    payload = TaggedPayload.pack_json("genome.Variant", {"rsid": "rs429358"})

    assert TaggedPayload.from_storage(payload.to_storage()) == payload


def test_empty_tag_rejected():
    with pytest.raises(ValidationError):
        TaggedPayload(type_tag="", body=b"{}")


def test_non_base64_body_rejected():
    with pytest.raises(ValidationError):
        TaggedPayload.model_validate({"type_tag": "x", "body": "not base64!!"})


def test_malformed_body_raises_decode_failure():
    payload = TaggedPayload(type_tag="health.SleepData", body=b'{"quality": "poor"}')

    with pytest.raises(DecodeFailure):
        payload.unpack()


def test_malformed_storage_raises_decode_failure():
    with pytest.raises(DecodeFailure):
        TaggedPayload.from_storage('{"body": "e30="}')


def test_payload_in_record_event_json():
    record = GeneticData(
        user_id="u1",
        data_type="DNA",
        data_value=TaggedPayload.pack_json("genome.Variant", {"rsid": "rs7412"}),
    )

    decoded = GeneticData.model_validate_json(record.model_dump_json())

    assert decoded.data_value == record.data_value
    assert decoded.data_value.unpack() == {"rsid": "rs7412"}
