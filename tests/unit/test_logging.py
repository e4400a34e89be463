from health_analytics.infrastructure.observability.logging import SERVICE_NAME, _service_context


def test_service_context_stamps_process():
    event = _service_context("worker")(None, "info", {"event": "Ingestion started"})

    assert event["service"] == SERVICE_NAME
    assert event["process"] == "worker"


def test_service_context_keeps_explicit_fields():
    event = _service_context("api")(None, "info", {"event": "x", "service": "other"})

    assert event["service"] == "other"
