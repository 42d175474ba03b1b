"""
HTTP API tests: feed relay, incident intake/review, sync administration.

Uses fastapi.testclient.TestClient with dependency_overrides for the relay's
upstream client and the sync service factory.
"""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from truth_tracker.api.dependencies import get_db, get_relay_client, get_sync_service_factory
from truth_tracker.api.run_manager import run_manager
from truth_tracker.auth import AuthorizationPolicy
from truth_tracker.errors import PersistenceError
from truth_tracker.main import create_app
from truth_tracker.scheduler import ScheduledSync
from truth_tracker.schemas import PoliticalIncident, SyncLog, SyncPipeline, SyncResult, SyncRunState

ADMIN = {"X-User-Email": "admin@example.org"}
FEED_XML = '<?xml version="1.0"?><rss version="2.0"><channel><title>PIB</title></channel></rss>'


@pytest.fixture
def app(settings, db):
    run_manager._runs.clear()
    application = create_app(settings=settings, db=db, auth_policy=AuthorizationPolicy(["Admin@Example.org"]))
    yield application
    run_manager._runs.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def serve_upstream(app, handler):
    async def _client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as upstream:
            yield upstream

    app.dependency_overrides[get_relay_client] = _client


def pending(db, title="Minister accused of bribery in housing scheme"):
    return db.save_pending_incident(PoliticalIncident(
        title=title, category="corruption", date="2024-03-05T05:00:00+00:00", source="PIB",
    ))


# ════════════════════════════════════════════════════════════════════
# Feed relay
# ════════════════════════════════════════════════════════════════════

def test_relay_requires_url(client):
    response = client.get("/fetch-relay")
    assert response.status_code == 400
    assert response.json() == {"error": "Missing 'url' query param"}


def test_relay_rejects_invalid_url(client):
    response = client.get("/fetch-relay", params={"url": "not a url"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid URL"}


def test_relay_rejects_foreign_host(app, client):
    calls = []
    serve_upstream(app, lambda request: calls.append(request) or httpx.Response(200, text=FEED_XML))

    response = client.get("/fetch-relay", params={"url": "https://evil.example.com/feed"})

    assert response.status_code == 403
    assert response.json() == {"error": "Host not allowed"}
    assert calls == []


def test_relay_serves_allowed_subdomain_as_xml(app, client):
    def handler(request):
        assert request.url.host == "www.thehindu.com"
        assert "Political-Truth-Tracker" in request.headers["User-Agent"]
        return httpx.Response(200, text=FEED_XML)

    serve_upstream(app, handler)
    response = client.get("/fetch-relay", params={"url": "https://www.thehindu.com/news/feeder/default.rss"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    assert response.text == FEED_XML


def test_relay_passes_upstream_status_through(app, client):
    serve_upstream(app, lambda request: httpx.Response(404))
    response = client.get("/fetch-relay", params={"url": "https://pib.gov.in/rss/leng.xml"})
    assert response.status_code == 404
    assert response.json() == {"error": "Upstream HTTP 404"}


def test_relay_network_failure_is_500(app, client):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    serve_upstream(app, handler)
    response = client.get("/fetch-relay", params={"url": "https://pib.gov.in/rss/leng.xml"})
    assert response.status_code == 500
    assert "error" in response.json()


# ════════════════════════════════════════════════════════════════════
# Incident intake and listing
# ════════════════════════════════════════════════════════════════════

@pytest.mark.parametrize("payload", [
    {"source": "", "incidents": []},
    {"source": "collector"},
    {"source": "collector", "incidents": "none"},
    ["collector", []],
])
def test_incident_batch_rejects_invalid_data(client, payload):
    response = client.post("/incidents", json=payload)
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid data"}


def test_incident_batch_rejects_non_json(client):
    response = client.post("/incidents", content=b"source=x", headers={"Content-Type": "text/plain"})
    assert response.status_code == 400


def test_incident_batch_is_accepted(client):
    response = client.post("/incidents", json={"source": "collector", "incidents": [{"title": "A"}]})
    assert response.status_code == 200
    assert response.json() == {"success": True}


def test_incident_batch_store_failure_is_500(app, client):
    class BrokenDatabase:
        def save_incident_batch(self, source, incidents):
            raise PersistenceError("disk full")

    app.dependency_overrides[get_db] = lambda: BrokenDatabase()
    response = client.post("/incidents", json={"source": "collector", "incidents": []})
    assert response.status_code == 500
    assert response.json() == {"error": "Internal Server Error"}


def test_public_listing_shows_verified_only(client, db):
    approved_id = pending(db)
    pending(db, title="Farmers rally in capital")
    db.approve_incident(approved_id)

    body = client.get("/incidents").json()

    assert body["total"] == 1
    assert body["incidents"][0]["id"] == approved_id
    assert body["incidents"][0]["verified"] is True


# ════════════════════════════════════════════════════════════════════
# Admin review queue
# ════════════════════════════════════════════════════════════════════

@pytest.mark.parametrize("headers", [{}, {"X-User-Email": "someone@example.org"}, {"X-User-Email": ""}])
def test_review_queue_requires_authorized_principal(client, db, headers):
    incident_id = pending(db)
    assert client.get("/incidents/pending", headers=headers).status_code == 403
    assert client.post(f"/incidents/pending/{incident_id}/approve", headers=headers).status_code == 403
    assert client.post(f"/incidents/pending/{incident_id}/reject", headers=headers).status_code == 403
    assert len(db.get_pending_incidents()) == 1


def test_admin_approves_and_rejects(client, db):
    keep, drop = pending(db), pending(db, title="Farmers rally in capital")

    listing = client.get("/incidents/pending", headers=ADMIN).json()
    assert listing["total"] == 2

    approved = client.post(f"/incidents/pending/{keep}/approve", headers=ADMIN)
    assert approved.status_code == 200
    assert approved.json()["verified"] is True

    rejected = client.post(f"/incidents/pending/{drop}/reject", headers=ADMIN)
    assert rejected.json() == {"success": True}

    assert db.get_pending_incidents() == []
    assert [i.id for i in db.get_verified_incidents()] == [keep]


def test_admin_principal_is_case_insensitive(client):
    assert client.get("/incidents/pending", headers={"X-User-Email": "ADMIN@example.org"}).status_code == 200


def test_approve_unknown_incident_is_404(client):
    assert client.post("/incidents/pending/missing/approve", headers=ADMIN).status_code == 404
    assert client.post("/incidents/pending/missing/reject", headers=ADMIN).status_code == 404


# ════════════════════════════════════════════════════════════════════
# Sync administration
# ════════════════════════════════════════════════════════════════════

class StubSyncService:
    def __init__(self, result):
        self.result = result
        self.state = SyncRunState.IDLE
        self.cancel_events = []

    async def run(self, cancel_event=None):
        self.cancel_events.append(cancel_event)
        self.state = SyncRunState.COMPLETED
        return self.result


def install_factory(app, result):
    created = []

    def factory(pipeline, db, settings=None, mock_mode=False):
        service = StubSyncService(result)
        created.append((pipeline, mock_mode, service))
        return service

    app.dependency_overrides[get_sync_service_factory] = lambda: factory
    return created


def test_sync_requires_admin(app, client):
    created = install_factory(app, SyncResult(success=True))
    assert client.post("/sync/promises").status_code == 403
    assert client.post("/sync/promises", headers={"X-User-Email": "intruder@example.org"}).status_code == 403
    assert client.get("/sync/history").status_code == 403
    assert created == []


def test_start_sync_and_poll(app, client):
    result = SyncResult(pipeline="promises", success=True, status="success", total_fetched=3,
                        total_extracted=2, total_saved=2)
    created = install_factory(app, result)

    started = client.post("/sync/promises", headers=ADMIN, json={"mock_mode": True})
    assert started.status_code == 200
    run_id = started.json()["run_id"]
    assert created[0][0] == "promises"
    assert created[0][1] is True

    status = client.get(f"/sync/runs/{run_id}", headers=ADMIN).json()
    assert status["status"] == "completed"
    assert status["state"] == "completed"
    assert status["result"]["total_saved"] == 2
    assert created[0][2].cancel_events[0] is run_manager.get_run(run_id).cancel_event


def test_unknown_pipeline_is_rejected(app, client):
    install_factory(app, SyncResult())
    assert client.post("/sync/elections", headers=ADMIN).status_code == 422


def test_second_sync_conflicts_while_running(app, client):
    install_factory(app, SyncResult())
    run_manager.create_run("promises_busy", "promises").status = "running"
    assert client.post("/sync/incidents", headers=ADMIN).status_code == 409


def test_sync_conflicts_while_scheduled_run_in_flight(app, client):
    created = install_factory(app, SyncResult(success=True))
    statuses = []

    class ScheduledService:
        pipeline = SyncPipeline.PROMISES

        async def run(self, cancel_event=None):
            statuses.append(client.post("/sync/promises", headers=ADMIN).status_code)
            return SyncResult(pipeline="promises", success=True, status="success")

    result = asyncio.run(ScheduledSync(ScheduledService(), runs=run_manager).fire())

    assert statuses == [409]
    assert created == []
    assert result.success is True
    (run,) = run_manager.list_runs()
    assert run.run_id.startswith("promises_scheduled_")
    assert run.status == "completed"


def test_cancel_running_sync(client):
    run = run_manager.create_run("promises_busy", "promises")
    run.status = "running"

    response = client.post("/sync/runs/promises_busy/cancel", headers=ADMIN)

    assert response.status_code == 200
    assert run.cancel_event.is_set()


def test_cancel_finished_or_unknown_sync(app, client):
    install_factory(app, SyncResult(success=True))
    run_id = client.post("/sync/promises", headers=ADMIN).json()["run_id"]
    assert client.post(f"/sync/runs/{run_id}/cancel", headers=ADMIN).status_code == 409
    assert client.post("/sync/runs/nope/cancel", headers=ADMIN).status_code == 404
    assert client.get("/sync/runs/nope", headers=ADMIN).status_code == 404


def test_sync_history_truncates_errors(client, db):
    result = SyncResult(pipeline="incidents", success=False, status="failed",
                        errors=[f"Error fetching from source {i}" for i in range(15)])
    db.save_sync_log(SyncLog(result=result, details=result.details()))

    (entry,) = client.get("/sync/history", headers=ADMIN).json()

    assert entry["pipeline"] == "incidents"
    assert entry["result"]["error_count"] == 15
    assert len(entry["result"]["errors"]) == 10
    assert entry["details"] == "Fetched: 0, Extracted: 0, Saved: 0, Duplicates: 0"


# ════════════════════════════════════════════════════════════════════
# Health
# ════════════════════════════════════════════════════════════════════

def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["database"]["status"] == "ok"
    assert body["config"]["llm_provider"] == "none"
    assert body["sync_running"] is False
