import pytest
from fastapi.testclient import TestClient

from pagereplica import main
from pagereplica.errors import JobTimeout, SessionCrash
from pagereplica.models import ExtractionResult, JobState


class StubPipeline:
    def __init__(self, error=None):
        self.error = error
        self.jobs = []

    async def run(self, job):
        self.jobs.append(job)
        if self.error:
            raise self.error
        job.warnings.append("load: slow page")
        job.state = JobState.DONE
        return ExtractionResult(
            slug=job.slug,
            state=JobState.DONE,
            html_path=f"/tmp/out/{job.slug}.html",
            metadata_path=f"/tmp/out/{job.slug}.json",
            search_index_path=f"/tmp/out/{job.slug}-search-index.json",
            handler_path="/tmp/out/search-handler.js",
        )


@pytest.fixture
def client():
    return TestClient(main.app)


def _use(monkeypatch, pipeline):
    monkeypatch.setattr(main, "get_pipeline", lambda: pipeline)
    return pipeline


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_extract_success(client, monkeypatch):
    pipeline = _use(monkeypatch, StubPipeline())
    response = client.post("/extract", json={"url": "shop.example.com", "slug": "shop"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "done"
    assert body["preview_url"] == "/pages/shop.html"
    assert body["warnings"] == ["load: slow page"]
    assert pipeline.jobs[0].url == "https://shop.example.com"


def test_bad_slug_rejected_before_browser(client, monkeypatch):
    pipeline = _use(monkeypatch, StubPipeline())
    response = client.post("/extract", json={"url": "https://example.com", "slug": "../../etc"})
    assert response.status_code == 422
    assert pipeline.jobs == []


@pytest.mark.parametrize("error, status", [
    (JobTimeout("too slow"), 504),
    (SessionCrash("browser gone"), 502),
])
def test_fatal_errors_map_to_status(client, monkeypatch, error, status):
    _use(monkeypatch, StubPipeline(error))
    response = client.post("/extract", json={"url": "https://example.com", "slug": "x"})
    assert response.status_code == status
