import sys

import pytest
from prometheus_client.parser import text_string_to_metric_families

from guestbook.db.models import Base


def _scraped_requests_total(body: str) -> float:
    total = 0.0
    for family in text_string_to_metric_families(body):
        for sample in family.samples:
            if sample.name == "http_requests_total":
                total += sample.value
    return total


def _registry_requests_total(metrics) -> float:
    total = 0.0
    for family in metrics.registry.collect():
        for sample in family.samples:
            if sample.name == "http_requests_total":
                total += sample.value
    return total


async def test_metrics_endpoint_uses_exposition_content_type(api_client) -> None:
    resp = await api_client.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert "# TYPE http_requests_total counter" in resp.text


async def test_metrics_count_every_response_including_scrapes(api_client, metrics) -> None:
    await api_client.get("/", params={"email": "a@b.com"})
    await api_client.get("/entries")
    first = await api_client.get("/metrics")

    # The scrape is observed after its own response is sent.
    assert _scraped_requests_total(first.text) == 2
    assert _registry_requests_total(metrics) == 3

    second = await api_client.get("/metrics")
    assert _scraped_requests_total(second.text) == 3
    assert _registry_requests_total(metrics) == 4
    assert metrics.registry.get_sample_value(
        "http_requests_total", {"method": "GET", "route": "/metrics", "status": "200"}
    ) == 2


async def test_requests_are_labelled_by_method_route_and_status(api_client, metrics, engine) -> None:
    await api_client.get("/", params={"email": "a@b.com"})
    await api_client.get("/", params={"email": "c@d.com"})
    await api_client.get("/entries")
    Base.metadata.drop_all(engine)
    await api_client.get("/entries")

    sample = metrics.registry.get_sample_value
    assert sample("http_requests_total", {"method": "GET", "route": "/", "status": "200"}) == 2
    assert sample("http_requests_total", {"method": "GET", "route": "/entries", "status": "200"}) == 1
    assert sample("http_requests_total", {"method": "GET", "route": "/entries", "status": "500"}) == 1
    assert sample("http_request_duration_seconds_count", {"method": "GET", "route": "/"}) == 2


async def test_unmatched_paths_share_one_route_label(api_client, metrics) -> None:
    for i in range(20):
        resp = await api_client.get(f"/scan/{i}")
        assert resp.status_code == 404

    sample = metrics.registry.get_sample_value
    assert sample("http_requests_total", {"method": "GET", "route": "<unmatched>", "status": "404"}) == 20
    assert sample("http_requests_total", {"method": "GET", "route": "/scan/0", "status": "404"}) is None

    routes = {
        s.labels["route"]
        for family in metrics.registry.collect()
        for s in family.samples
        if s.name == "http_requests_total"
    }
    assert routes == {"<unmatched>"}


@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="process metrics read /proc")
async def test_process_metrics_use_configured_prefix(api_client) -> None:
    resp = await api_client.get("/metrics")
    assert "guestbook_app_process_start_time_seconds" in resp.text
    assert "guestbook_app_process_resident_memory_bytes" in resp.text
