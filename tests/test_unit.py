from fastapi.testclient import TestClient

from point_forecast.main import app


client = TestClient(app)


def test_health_ok():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_metrics_exposed():
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "network_bytes_total" in r.text
    assert "decode_failures_total" in r.text
