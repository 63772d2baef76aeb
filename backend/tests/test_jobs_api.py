import json

import pytest
from fastapi.testclient import TestClient

from atomera.main import create_app
from atomera.services.job_service import JobService

COMPLETED_JOB = {
    "id": "job_done0000001",
    "name": "Finished screen",
    "proteinInput": "MKTAYIAKQR",
    "proteinType": "text",
    "ligandInput": "ligand.sdf",
    "ligandType": "file",
    "status": "completed",
    "created": "2026-03-01T09:00:00Z",
    "updated": "2026-03-01T09:00:12Z",
    "runtime": 12345,
    "bindingAffinity": -8.456,
    "poses": [
        {"rank": 1, "score": -6.4, "id": "pose_1_job_done0000001"},
        {"rank": 2, "score": -8.8, "id": "pose_2_job_done0000001"},
    ],
}


@pytest.fixture
def client(service):
    with TestClient(create_app(job_service=service)) as test_client:
        yield test_client


@pytest.fixture
def payload():
    return {
        "name": "T1",
        "proteinInput": "seq",
        "proteinType": "text",
        "ligandInput": "CCO",
        "ligandType": "text",
    }


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_create_job_returns_queued_job(client, payload):
    response = client.post("/api/v1/jobs", json=payload)
    assert response.status_code == 201

    data = response.json()
    assert data["status"] == "queued"
    assert data["progress"] == 10
    assert data["isTerminal"] is False
    assert data["message"].startswith("Job is in queue")
    assert data["proteinInput"] == "seq"
    assert data["bindingAffinity"] is None

    fetched = client.get(f"/api/v1/jobs/{data['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["id"] == data["id"]


def test_create_job_validates_required_fields(client, payload):
    payload["ligandInput"] = ""

    response = client.post("/api/v1/jobs", json=payload)

    assert response.status_code == 422


def test_unknown_job_is_404(client):
    assert client.get("/api/v1/jobs/nonexistent").status_code == 404
    assert client.patch("/api/v1/jobs/nonexistent", json={"name": "x"}).status_code == 404
    assert client.delete("/api/v1/jobs/nonexistent").status_code == 404
    assert client.get("/api/v1/jobs/nonexistent/results").status_code == 404


def test_list_search_and_stats(client, payload):
    kinase = client.post("/api/v1/jobs", json={**payload, "name": "Kinase"}).json()
    client.post("/api/v1/jobs", json={**payload, "name": "Protease"})

    listed = client.get("/api/v1/jobs").json()
    assert [job["name"] for job in listed] == ["Protease", "Kinase"]

    found = client.get("/api/v1/jobs", params={"q": "kin"}).json()
    assert [job["id"] for job in found] == [kinase["id"]]

    assert client.get("/api/v1/jobs", params={"status": "running"}).json() == []
    assert client.get("/api/v1/jobs", params={"status": "bogus"}).status_code == 422

    stats = client.get("/api/v1/jobs/stats").json()
    assert stats["total"] == 2
    assert stats["queued"] == 2


def test_patch_and_delete(client, payload):
    job = client.post("/api/v1/jobs", json=payload).json()

    renamed = client.patch(f"/api/v1/jobs/{job['id']}", json={"notes": "second try"})
    assert renamed.status_code == 200
    assert renamed.json()["notes"] == "second try"
    assert renamed.json()["name"] == "T1"

    assert client.patch(f"/api/v1/jobs/{job['id']}", json={"name": " "}).status_code == 422

    assert client.delete(f"/api/v1/jobs/{job['id']}").status_code == 204
    assert client.get(f"/api/v1/jobs/{job['id']}").status_code == 404


def test_results_require_completed_job(client, payload):
    job = client.post("/api/v1/jobs", json=payload).json()

    response = client.get(f"/api/v1/jobs/{job['id']}/results")

    assert response.status_code == 409
    assert "queued" in response.json()["detail"]


def test_results_of_completed_job(storage, settings, gated_sleep):
    storage.set_item(settings.storage_key, json.dumps([COMPLETED_JOB]))
    service = JobService(storage=storage, settings=settings, sleep=gated_sleep)

    with TestClient(create_app(job_service=service)) as client:
        status_response = client.get("/api/v1/jobs/job_done0000001").json()
        results = client.get("/api/v1/jobs/job_done0000001/results").json()

    assert status_response["progress"] == 100
    assert status_response["isTerminal"] is True
    assert results["bindingAffinityDisplay"] == "-8.46 kcal/mol"
    assert results["runtimeDisplay"] == "12.3s"
    assert results["poseCount"] == 2
    assert results["bestPose"]["rank"] == 2
