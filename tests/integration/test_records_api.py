from datetime import UTC, datetime

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from health_analytics.config import Settings
from health_analytics.container import build_container
from health_analytics.main import create_app


@pytest.fixture
def client(fake_db):
    app = create_app()
    app.state.container = build_container(Settings(), fake_db)
    return TestClient(app)


def test_create_get_update_delete_medical_record(client, frozen_clock):
    create_response = client.post(
        "/medical_records",
        json={"user_id": "u1", "record_type": "lab", "description": "Lipid panel", "doctor_id": "d7"},
    )
    assert create_response.status_code == 201
    record_id = create_response.json()["id"]

    get_response = client.get(f"/medical_records/{record_id}")
    assert get_response.status_code == 200
    assert get_response.json()["record_type"] == "lab"
    assert get_response.json()["created_at"] is not None

    update_response = client.put(f"/medical_records/{record_id}", json={"description": "Fasting panel"})
    assert update_response.status_code == 200
    assert update_response.json()["description"] == "Fasting panel"
    assert update_response.json()["doctor_id"] == "d7"

    delete_response = client.delete(f"/medical_records/{record_id}")
    assert delete_response.status_code == 204

    missing = client.get(f"/medical_records/{record_id}")
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"


def test_create_with_existing_id_conflicts(client):
    record_id = str(ObjectId())
    assert client.post("/genetic_data", json={"id": record_id, "user_id": "u1"}).status_code == 201

    response = client.post("/genetic_data", json={"id": record_id, "user_id": "u2"})

    assert response.status_code == 409
    assert response.json()["error"] == "already_exists"
    assert client.get(f"/genetic_data/{record_id}").json()["user_id"] == "u1"


def test_create_with_malformed_id_is_bad_request(client):
    response = client.post("/wearable_data", json={"id": "abc", "user_id": "u1"})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_identity"


def test_update_missing_record_is_not_found(client):
    response = client.put(f"/lifestyle_data/{ObjectId()}", json={"data_type": "sleep"})

    assert response.status_code == 404


def test_list_filters_by_query_params(client):
    client.post("/health_recommendations", json={"user_id": "u1", "priority": 1})
    client.post("/health_recommendations", json={"user_id": "u1", "priority": 2})
    client.post("/health_recommendations", json={"user_id": "u2", "priority": 1})

    response = client.get("/health_recommendations", params={"user_id": "u1", "priority": "1"})

    assert response.status_code == 200
    data = response.json()
    assert data["total_count"] == 1
    assert data["records"][0]["user_id"] == "u1"


def test_list_unknown_filter_is_bad_request(client):
    response = client.get("/medical_records", params={"attachments": "x.pdf"})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_filter"


def test_tagged_payload_round_trips_over_http(client):
    payload = {"type_tag": "health.SleepData", "body": "eyJkdXJhdGlvbl9taW51dGVzIjo0MjB9"}
    record_id = client.post(
        "/lifestyle_data", json={"user_id": "u1", "data_type": "sleep", "data_value": payload}
    ).json()["id"]

    response = client.get(f"/lifestyle_data/{record_id}")

    assert response.json()["data_value"] == payload


def test_store_outage_is_service_unavailable(client, fake_db, store_down):
    fake_db["medical_records"].fail_with = store_down

    response = client.get("/medical_records", params={"user_id": "u1"})

    assert response.status_code == 503
    assert response.json()["error"] == "store_unavailable"


def test_daily_summary_endpoint(client, fake_db):
    object_id = ObjectId()
    created = datetime(2024, 1, 5, 8, tzinfo=UTC)
    fake_db["wearable_data"].seed(
        {"_id": object_id, "user_id": "u1", "device_type": "ring", "created_at": created, "updated_at": created}
    )

    response = client.get("/summary/daily", params={"user_id": "u1", "date": "2024-01-05"})

    assert response.status_code == 200
    data = response.json()
    assert [record["id"] for record in data["wearable_data"]] == [str(object_id)]
    assert data["medical_records"] == []


def test_weekly_summary_bad_date(client):
    response = client.get(
        "/summary/weekly", params={"user_id": "u1", "start_date": "2024-01-01", "end_date": "next week"}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_date_range"


def test_summary_deadline_is_gateway_timeout(fake_db):
    app = create_app()
    app.state.container = build_container(Settings(QUERY_TIMEOUT_SECONDS=0.01), fake_db)
    fake_db["genetic_data"].delay = 1.0

    response = TestClient(app).get("/summary/daily", params={"user_id": "u1", "date": "2024-01-05"})

    assert response.status_code == 504
    assert response.json()["error"] == "cancelled"


def test_summary_at_calendar_edge_is_bad_request(client):
    daily = client.get("/summary/daily", params={"user_id": "u1", "date": "9999-12-31"})
    weekly = client.get(
        "/summary/weekly", params={"user_id": "u1", "start_date": "2024-01-01", "end_date": "9999-12-31"}
    )

    assert daily.status_code == 400
    assert daily.json()["error"] == "invalid_date_range"
    assert weekly.status_code == 400
    assert weekly.json()["error"] == "invalid_date_range"
