import pytest
from fastapi.testclient import TestClient

from app.container import build_services
from app.main import create_app
from app.settings import Settings
from helpers import CV_TEXT

OWNER = {"X-User-Id": "recruiter-1"}
STRANGER = {"X-User-Id": "recruiter-2"}
ADMIN = {"X-User-Id": "root", "X-User-Role": "Admin"}


@pytest.fixture
def client(settings, engine, services):
    app = create_app(settings=settings, engine=engine, services=services)
    with TestClient(app) as c:
        yield c


def create_job(client, **fields):
    body = {"title": "Backend Engineer", "description": "Go services", "required_skills": "Go"}
    body.update(fields)
    resp = client.post("/job-posts", json=body, headers=OWNER)
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_applicant(client, job_id, email="ada@example.com"):
    resp = client.post(f"/job-posts/{job_id}/applicants", headers=OWNER,
                       json={"first_name": "Ada", "last_name": "Lovelace", "email": email})
    assert resp.status_code == 201, resp.text
    return resp.json()


def upload_cv(client, applicant_id, name="resume.txt", data=CV_TEXT.encode(), ctype="text/plain"):
    return client.post(f"/applicants/{applicant_id}/cv-files", headers=OWNER,
                       files={"file": (name, data, ctype)})


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "database": "ok"}


def test_identity_is_required(client):
    resp = client.post("/job-posts", json={"title": "x", "description": "y"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Unauthorized"


def test_request_validation(client):
    assert client.post("/job-posts", json={"title": ""}, headers=OWNER).status_code == 422
    job = create_job(client)
    resp = client.post(f"/job-posts/{job['id']}/applicants", headers=OWNER,
                       json={"first_name": "A", "last_name": "B", "email": "not-an-email"})
    assert resp.status_code == 422


def test_screening_flow(client):
    job = create_job(client)
    applicant = create_applicant(client, job["id"])

    resp = upload_cv(client, applicant["id"])
    assert resp.status_code == 201, resp.text
    assert resp.json()["status"] == "Uploaded"

    resp = client.post(f"/applicants/{applicant['id']}/screenings", headers=OWNER)
    assert resp.status_code == 200, resp.text
    result = resp.json()
    assert result["status"] == "Completed"
    assert result["overall_score"] == 78
    assert result["strengths"] == ["5y Go", "Distributed systems"]

    assert client.get(f"/screenings/{result['id']}", headers=OWNER).json()["id"] == result["id"]
    assert client.get(f"/screenings/{result['id']}", headers=STRANGER).status_code == 404

    page = client.get("/applicants", params={"job_post_id": job["id"], "page_size": 500}, headers=OWNER).json()
    assert page["total_count"] == 1
    assert page["page_size"] == 100
    assert page["has_next_page"] is False
    item = page["items"][0]
    assert item["status"] == "Under Review"
    assert item["latest_screening"]["overall_score"] == 78
    assert item["cv_files"][0]["status"] == "Processed"

    status = client.get(f"/applicants/{applicant['id']}/processing-status", headers=OWNER).json()
    assert status["overall_progress"] == 100


def test_batch_endpoint(client):
    job = create_job(client)
    first = create_applicant(client, job["id"])
    second = create_applicant(client, job["id"], email="grace@example.com")
    upload_cv(client, first["id"])

    resp = client.post(f"/job-posts/{job['id']}/screenings", params={"wait": True}, headers=OWNER,
                       json={"applicant_ids": [first["id"], second["id"]]})
    assert resp.status_code == 202
    assert resp.json() == {"accepted": True, "job_post_id": job["id"], "applicant_count": 2}

    statuses = {s["applicant_id"]: s["screening_status"]
                for s in client.get(f"/job-posts/{job['id']}/processing-status", headers=OWNER).json()}
    assert statuses == {first["id"]: "Completed", second["id"]: "Failed"}

    screened = client.get("/screened-applicants", headers=OWNER).json()
    assert {s["applicant_id"] for s in screened} == {first["id"], second["id"]}


def test_batch_with_foreign_applicant_is_400(client):
    job = create_job(client)
    other = create_job(client, title="Designer")
    mine = create_applicant(client, job["id"])
    theirs = create_applicant(client, other["id"], email="eve@example.com")
    resp = client.post(f"/job-posts/{job['id']}/screenings", params={"wait": True}, headers=OWNER,
                       json={"applicant_ids": [mine["id"], theirs["id"]]})
    assert resp.status_code == 400
    assert client.get(f"/applicants/{mine['id']}/screenings", headers=OWNER).json() == []


def test_bad_upload_is_400(client):
    job = create_job(client)
    applicant = create_applicant(client, job["id"])
    resp = upload_cv(client, applicant["id"], name="cv.exe", data=b"MZ", ctype="application/octet-stream")
    assert resp.status_code == 400
    assert "not allowed" in resp.json()["detail"]

    check = client.post("/cv-files/validate", headers=OWNER,
                        files={"file": ("cv.pdf", b"%PDF-1.4", "application/pdf")}).json()
    assert check == {"valid": True, "reason": None}


def test_extract_download_and_failed_extraction(client):
    job = create_job(client)
    applicant = create_applicant(client, job["id"])
    cv = upload_cv(client, applicant["id"]).json()

    extracted = client.post(f"/cv-files/{cv['id']}/extract", headers=OWNER).json()
    assert extracted["extracted_text"].startswith("Ada Lovelace")

    download = client.get(f"/cv-files/{cv['id']}/download", headers=OWNER)
    assert download.status_code == 200
    assert download.content == CV_TEXT.encode()
    assert "resume.txt" in download.headers["content-disposition"]

    broken = upload_cv(client, applicant["id"], name="cv.pdf", data=b"garbage", ctype="application/pdf").json()
    resp = client.post(f"/cv-files/{broken['id']}/extract", headers=OWNER)
    assert resp.status_code == 422
    assert resp.json()["error"] == "ExtractionFailed"


def test_override_and_delete_results(client, session_factory):
    from infra.repositories.screening_results_repository import ScreeningResultsRepository

    job = create_job(client)
    applicant = create_applicant(client, job["id"])
    stuck = ScreeningResultsRepository(session_factory).create_processing(applicant["id"], job["id"])

    assert client.post(f"/applicants/{applicant['id']}/screenings", headers=OWNER).status_code == 409
    assert client.delete(f"/screenings/{stuck.id}", headers=OWNER).status_code == 409

    hollow = {"status": "Completed", "verdict": {"overall_score": 70, "summary": "Fine", "detailed_analysis": " "}}
    assert client.put(f"/screenings/{stuck.id}/status", headers=OWNER, json=hollow).status_code == 422

    resp = client.put(f"/screenings/{stuck.id}/status", headers=OWNER, json={"status": "Failed"})
    assert resp.status_code == 200
    assert resp.json()["error_message"] == "Marked as failed by operator"

    again = client.put(f"/screenings/{stuck.id}/status", headers=OWNER, json={"status": "Failed"})
    assert again.status_code == 409
    assert client.put(f"/screenings/{stuck.id}/status", headers=OWNER,
                      json={"status": "Processing"}).status_code == 422

    assert client.delete(f"/screenings/{stuck.id}", headers=OWNER).status_code == 204
    assert client.get(f"/screenings/{stuck.id}", headers=OWNER).status_code == 404


def test_admin_sees_everything(client):
    job = create_job(client)
    create_applicant(client, job["id"])
    assert client.get("/applicants", headers=STRANGER).json()["total_count"] == 0
    assert client.get("/applicants", headers=ADMIN).json()["total_count"] == 1
    assert client.get(f"/job-posts/{job['id']}", headers=ADMIN).json()["applicant_count"] == 1
    assert client.get(f"/job-posts/{job['id']}", headers=STRANGER).status_code == 404


def test_patch_and_delete(client):
    job = create_job(client)
    applicant = create_applicant(client, job["id"])

    resp = client.patch(f"/applicants/{applicant['id']}", headers=OWNER, json={"status": "Shortlisted"})
    assert resp.json()["status"] == "Shortlisted"
    assert resp.json()["first_name"] == "Ada"
    assert client.patch(f"/applicants/{applicant['id']}", headers=OWNER,
                        json={"job_post_id": "job_x"}).status_code == 422

    assert client.get("/applicants/search", params={"q": "lovelace"}, headers=OWNER).json()[0]["id"] == applicant["id"]

    assert client.delete(f"/job-posts/{job['id']}", headers=OWNER).status_code == 204
    assert client.get(f"/applicants/{applicant['id']}", headers=OWNER).status_code == 404


def test_size_limit_is_checked_before_storing(engine, session_factory, store, scorer):
    small = Settings(MAX_CV_FILE_SIZE=16)
    app = create_app(settings=small, engine=engine,
                     services=build_services(small, session_factory, store=store, scorer=scorer))
    with TestClient(app) as c:
        job = create_job(c)
        applicant = create_applicant(c, job["id"])

        check = c.post("/cv-files/validate", headers=OWNER,
                       files={"file": ("resume.txt", b"x" * 32, "text/plain")}).json()
        assert check["valid"] is False
        assert "maximum size" in check["reason"]

        resp = upload_cv(c, applicant["id"], data=b"x" * 32)
        assert resp.status_code == 400
        assert resp.json()["error"] == "ValidationError"
        assert c.get(f"/applicants/{applicant['id']}/cv-files", headers=OWNER).json() == []
