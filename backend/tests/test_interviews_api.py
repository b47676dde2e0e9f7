# backend/tests/test_interviews_api.py
from conftest import make_user
from db.models import Company, ExtractionJob, Interview, InterviewSource, ProcessStatus
from services.company_resolver import get_unknown_company
from services.extractor import ExtractedData, ExtractedQuestion
from tasks import extraction_tasks as t


class StubExtractor:
    def __init__(self, data):
        self.data = data

    def extract(self, content):
        return self.data

    def extract_questions(self, content):
        return self.data.questions


def _manual_payload(**overrides):
    payload = {
        "source": "personal",
        "company_name": "Google",
        "position": "SDE2",
        "no_of_round": 4,
        "location": "Bangalore",
        "raw_input": "Round 1: two sum. Round 2: design twitter.",
    }
    payload.update(overrides)
    return payload


# ---------------------------
# Manual creation
# ---------------------------

def test_manual_create_is_success_immediately(client, db, owner, dispatched):
    r = client.post("/interview/manual", json=_manual_payload())
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["process_status"] == "success"
    assert body["company_name"] == "google"
    assert body["position"] == "SDE2"
    assert body["no_of_round"] == 4
    assert body["metadata"]["full_experience"].startswith("Round 1")

    # question derivation queued, nothing else
    assert dispatched == [("tasks.extract_manual_questions", (body["interview_id"],))]
    assert db.query(ExtractionJob).count() == 0


def test_manual_create_with_company_id(client, db, owner):
    sentinel_id = get_unknown_company(db, owner.id).id
    r = client.post("/interview/manual", json=_manual_payload(company_name=None, company_id=sentinel_id))
    assert r.status_code == 201, r.text
    assert r.json()["company_id"] == sentinel_id


def test_manual_create_rejects_foreign_company(client, db, owner):
    other = make_user(db, "other@example.com")
    foreign_id = get_unknown_company(db, other.id).id
    r = client.post("/interview/manual", json=_manual_payload(company_name=None, company_id=foreign_id))
    assert r.status_code == 404
    assert db.query(Interview).count() == 0


def test_manual_create_validation(client, db, owner, dispatched):
    r = client.post("/interview/manual", json=_manual_payload(company_name="  "))
    assert r.status_code == 422
    r = client.post("/interview/manual", json=_manual_payload(no_of_round=-1))
    assert r.status_code == 422
    r = client.post("/interview/manual", json=_manual_payload(source="linkedin"))
    assert r.status_code == 422
    assert db.query(Interview).count() == 0
    assert dispatched == []


# ---------------------------
# AI-assisted creation
# ---------------------------

def test_ai_text_submission_is_queued(client, db, owner, fake_resolver, dispatched):
    r = client.post("/interview", json={"source": "personal", "raw_input": "My Google loop ..."})
    assert r.status_code == 202, r.text
    body = r.json()
    assert body["queued"] is True
    assert body["metadata"] == {"title": "", "full_experience": "My Google loop ..."}
    assert body["task_id"] == "fake-tasks.extract_interview-1"
    assert dispatched == [("tasks.extract_interview", (body["job_id"],))]
    assert fake_resolver.calls == []

    job = db.get(ExtractionJob, body["job_id"])
    assert job.status == ProcessStatus.queued
    assert job.task_id == body["task_id"]
    # nothing visible until the worker finishes
    assert db.query(Interview).count() == 0


def test_ai_link_submission_uses_fetched_content(client, db, owner, fake_resolver):
    url = "https://leetcode.com/discuss/post/123/amazon-sde/"
    r = client.post(
        "/interview",
        json={"source": "leetcode", "raw_input": url},
        headers={"User-Agent": "pytest-agent"},
    )
    assert r.status_code == 202, r.text
    assert r.json()["metadata"] == {"title": "Fetched title", "full_experience": "Fetched interview content"}
    assert fake_resolver.calls == [(url, InterviewSource.leetcode, "pytest-agent")]

    job = db.get(ExtractionJob, r.json()["job_id"])
    assert job.raw_input == url
    assert job.content == "Fetched interview content"


def test_ai_fetch_failure_creates_nothing(client, db, owner, fake_resolver, dispatched):
    fake_resolver.fail_with("unexpected status 404 from reddit")
    r = client.post("/interview", json={"source": "reddit", "raw_input": "https://reddit.com/r/x/comments/abc"})
    assert r.status_code == 400
    assert r.json()["detail"].startswith("fetch failed")
    assert db.query(ExtractionJob).count() == 0
    assert db.query(Interview).count() == 0
    assert dispatched == []


def test_ai_submission_without_unknown_company_is_rejected(client, db, owner, fake_resolver, dispatched):
    db.query(Company).filter(Company.user_id == owner.id).delete()
    db.commit()
    r = client.post("/interview", json={"source": "other", "raw_input": "text"})
    assert r.status_code == 500
    assert db.query(ExtractionJob).count() == 0
    assert dispatched == []


def test_ai_leetcode_submission_end_to_end(client, db, owner, fake_resolver, dispatched):
    url = "https://leetcode.com/discuss/post/4242/google-swe-l3/"
    r = client.post("/interview", json={"source": "leetcode", "raw_input": url})
    job_id = r.json()["job_id"]

    r = client.get(f"/interview/jobs/{job_id}")
    assert r.json()["status"] == "queued"

    extracted = ExtractedData(
        company="Google",
        position="SWE",
        no_of_round=3,
        questions=[ExtractedQuestion(question="Two Sum", type="dsa")],
    )
    out = t.process_extraction_job(db, job_id, StubExtractor(extracted))

    r = client.get(f"/interview/jobs/{job_id}")
    job = r.json()
    assert job["status"] == "success"
    assert job["interview_id"] == out["interview_id"]

    r = client.get(f"/interview/{out['interview_id']}")
    assert r.status_code == 200
    detail = r.json()
    assert detail["interview"]["company_name"] == "google"
    assert detail["interview"]["raw_input"] == url
    assert detail["interview"]["position"] == "SWE"
    assert detail["interview"]["no_of_round"] == 3
    assert detail["interview"]["process_status"] == "success"
    assert detail["interview"]["metadata"] == {"title": "Fetched title", "full_experience": "Fetched interview content"}
    assert [q["type"] for q in detail["questions"]] == ["dsa"]


# ---------------------------
# Reads
# ---------------------------

def test_list_filters_and_stats(client, db, owner):
    client.post("/interview/manual", json=_manual_payload())
    client.post("/interview/manual", json=_manual_payload(source="other", company_name="Meta"))

    r = client.get("/interview")
    assert r.status_code == 200
    assert r.json()["total"] == 2

    r = client.get("/interview", params={"source": "other"})
    assert [i["company_name"] for i in r.json()["data"]] == ["meta"]

    r = client.get("/interview/stats")
    stats = r.json()
    by_source = {s["field"]: s["count"] for s in stats["source_stats"]}
    assert by_source == {"personal": 1, "other": 1, "leetcode": 0, "reddit": 0, "gfg": 0}
    by_status = {s["field"]: s["count"] for s in stats["process_status_stats"]}
    assert by_status["success"] == 2
    assert by_status["failed"] == 0


def test_interviews_are_owner_scoped(client, db, owner):
    other = make_user(db, "other@example.com")
    foreign = Interview(
        user_id=other.id,
        company_id=get_unknown_company(db, other.id).id,
        source=InterviewSource.personal,
        raw_input="secret",
        process_status=ProcessStatus.success,
        meta={},
    )
    db.add(foreign)
    db.commit()

    assert client.get(f"/interview/{foreign.id}").status_code == 404
    assert client.get("/interview").json()["total"] == 0


def test_delete_interviews(client, db, owner):
    a = client.post("/interview/manual", json=_manual_payload()).json()["interview_id"]
    b = client.post("/interview/manual", json=_manual_payload(company_name="Meta")).json()["interview_id"]

    r = client.request("DELETE", "/interview", json={"interview_ids": [a, 9999]})
    assert r.status_code == 404

    r = client.request("DELETE", "/interview", json={"interview_ids": [a]})
    assert r.status_code == 200
    assert r.json() == {"ok": True, "deleted": 1}
    assert client.get(f"/interview/{a}").status_code == 404
    assert client.get(f"/interview/{b}").status_code == 200


def test_company_listing_and_details(client, db, owner):
    client.post("/interview/manual", json=_manual_payload(no_of_round=3))
    client.post("/interview/manual", json=_manual_payload(no_of_round=4))
    client.post("/interview/manual", json=_manual_payload(company_name="Meta", no_of_round=2))

    r = client.get("/companies", params={"sort": "interviews"})
    assert r.status_code == 200
    body = r.json()
    # the unknown company has no interviews and is not listed
    assert body["total"] == 2
    assert [(c["slug"], c["total_interviews"]) for c in body["data"]] == [("google", 2), ("meta", 1)]

    r = client.get("/companies/google")
    assert r.json() == {
        "company_id": body["data"][0]["company_id"],
        "name": "google",
        "slug": "google",
        "total_interviews": 2,
        "avg_rounds": 3.5,
    }
    assert client.get("/companies/nope").status_code == 404


def test_company_details_by_id_when_slugs_collide(client, db, owner):
    a = client.post("/interview/manual", json=_manual_payload(company_name="Google Inc", no_of_round=2)).json()
    b = client.post("/interview/manual", json=_manual_payload(company_name="Google Inc.", no_of_round=5)).json()
    assert a["company_id"] != b["company_id"]

    by_slug = client.get("/companies/google-inc").json()
    assert by_slug["company_id"] == min(a["company_id"], b["company_id"])

    r = client.get(f"/companies/{b['company_id']}")
    assert r.status_code == 200
    assert r.json()["name"] == "google inc."
    assert r.json()["avg_rounds"] == 5.0

    other = make_user(db, "other@example.com")
    foreign_id = get_unknown_company(db, other.id).id
    assert client.get(f"/companies/{foreign_id}").status_code == 404


def test_company_names(client, db, owner):
    client.post("/interview/manual", json=_manual_payload(company_name="Google"))
    client.post("/interview/manual", json=_manual_payload(company_name="Goldman Sachs"))

    r = client.get("/companies/names", params={"search": " GO ", "limit": 1})
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 2
    assert body["has_next"] is True
    assert [c["name"] for c in body["data"]] == ["goldman sachs"]

    # unused companies (the unknown one) are listed too
    names = [c["name"] for c in client.get("/companies/names").json()["data"]]
    assert names == ["goldman sachs", "google", "unknown company"]


# ---------------------------
# Corrections
# ---------------------------

def test_patch_interview_fields(client, db, owner):
    iid = client.post("/interview/manual", json=_manual_payload(title="Old title")).json()["interview_id"]

    r = client.patch(
        f"/interview/{iid}",
        json={"company_name": "Alphabet", "position": " L4 ", "no_of_round": 5, "location": "", "title": "New title"},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["company_name"] == "alphabet"
    assert body["position"] == "L4"
    assert body["no_of_round"] == 5
    assert body["location"] is None
    assert body["metadata"]["title"] == "New title"
    assert body["metadata"]["full_experience"].startswith("Round 1")
    assert body["process_status"] == "success"

    # untouched fields stay
    r = client.patch(f"/interview/{iid}", json={"no_of_round": 2})
    assert r.json()["position"] == "L4"
    assert r.json()["company_name"] == "alphabet"


def test_patch_interview_company_rules(client, db, owner):
    iid = client.post("/interview/manual", json=_manual_payload()).json()["interview_id"]
    sentinel_id = get_unknown_company(db, owner.id).id

    r = client.patch(f"/interview/{iid}", json={"company_id": sentinel_id})
    assert r.json()["company_id"] == sentinel_id

    other = make_user(db, "other@example.com")
    foreign_id = get_unknown_company(db, other.id).id
    assert client.patch(f"/interview/{iid}", json={"company_id": foreign_id}).status_code == 404
    assert client.patch(f"/interview/{iid}", json={"company_id": sentinel_id, "company_name": "x"}).status_code == 422
    assert client.patch(f"/interview/{iid}", json={}).status_code == 422
    assert client.patch("/interview/9999", json={"position": "x"}).status_code == 404
