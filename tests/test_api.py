"""
Tests for the HTTP gateway using FastAPI's TestClient.
"""

import pytest
from fastapi.testclient import TestClient

from visascore.api.main import create_app
from visascore.core.config import Settings

from conftest import SAMPLE_REPORT, StubTextGenerator


PETITION = (
    b"Petition for Dr. Jane Smith, a researcher in computational biology. She received the "
    b"International Society award in 2022 and has served as a reviewer for three journals."
)


def _settings(**overrides):
    data = dict(_env_file=None, structured_logging=False, anthropic_api_key="", gemini_api_key="")
    data.update(overrides)
    return Settings(**data)


@pytest.fixture
def generator():
    return StubTextGenerator(reply=SAMPLE_REPORT)


@pytest.fixture
def client(generator):
    with TestClient(create_app(_settings(), generator=generator)) as test_client:
        yield test_client


def _create_session(client, files=None, **form):
    data = {"visa_type": "O-1A", "document_type": "full_petition", "beneficiary_name": "Dr. Jane Smith"}
    data.update(form)
    return client.post(
        "/api/v1/sessions",
        data=data,
        files=files or [("files", ("petition.txt", PETITION, "text/plain"))],
    )


class TestHealthAndReference:
    """Test informational endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["services"] == {"job_store": "healthy", "officer_scoring": "healthy"}
        assert "counters" in body["metrics"]
        assert "X-Request-ID" in response.headers

    def test_health_degraded_without_provider(self):
        with TestClient(create_app(_settings())) as test_client:
            body = test_client.get("/health").json()

        assert body["status"] == "degraded"
        assert body["services"]["officer_scoring"] == "not_configured"

    def test_visa_types(self, client):
        body = client.get("/api/v1/visa-types").json()
        by_code = {v["code"]: v for v in body["visaTypes"]}

        assert set(by_code) == {"O-1A", "O-1B", "P-1A", "EB-1A"}
        assert len(by_code["EB-1A"]["criteria"]) == 10
        assert by_code["P-1A"]["minimumCriteria"] == 2
        assert by_code["O-1A"]["criteria"][0] == {
            "number": 1,
            "letter": "A",
            "name": "Nationally or internationally recognized prizes or awards",
        }
        assert "rfe_response" in body["documentTypes"]


class TestParseEndpoint:
    """Test parsing an existing report."""

    def test_parse_report(self, client):
        response = client.post("/api/v1/reports/parse", json={"reportText": SAMPLE_REPORT, "visaType": "O-1A"})

        assert response.status_code == 200
        body = response.json()
        assert body["overallScore"] == 64
        assert body["overallRating"] == "RFE Likely"
        assert len(body["criteriaScores"]) == 8
        assert body["criteriaScores"][0]["officerConcerns"][0] == "Prize jury composition is not documented"
        assert body["evidenceQuality"]["tier1Count"] == 3

    def test_unknown_visa_type_rejected(self, client):
        response = client.post("/api/v1/reports/parse", json={"reportText": "x", "visaType": "H-1B"})
        assert response.status_code == 422


class TestSessions:
    """Test the scoring session lifecycle."""

    def test_create_and_complete(self, client, generator):
        response = _create_session(client)

        assert response.status_code == 202
        created = response.json()
        assert created["status"] == "queued"
        assert created["documentCount"] == 1

        status_body = client.get(f"/api/v1/sessions/{created['sessionId']}").json()
        assert status_body["status"] == "completed"
        assert status_body["progress"] == 100
        assert status_body["visaType"] == "O-1A"

        results = client.get(f"/api/v1/sessions/{created['sessionId']}/results").json()
        assert results["report"]["overallScore"] == 64
        assert results["report"]["rfePredictions"][0]["topic"] == "Judging"
        assert "Dr. Jane Smith" in generator.calls[0][0]

    def test_disallowed_file_type(self, client):
        response = _create_session(client, files=[("files", ("scan.png", b"\x89PNG", "image/png"))])

        assert response.status_code == 400
        assert "not allowed" in response.json()["error"]["message"]

    def test_too_many_files(self):
        settings = _settings(max_files_per_request=1)
        files = [
            ("files", ("a.txt", PETITION, "text/plain")),
            ("files", ("b.txt", PETITION, "text/plain")),
        ]
        with TestClient(create_app(settings, generator=StubTextGenerator())) as test_client:
            response = _create_session(test_client, files=files)

        assert response.status_code == 400

    def test_file_too_large(self):
        settings = _settings(max_file_size=10)
        with TestClient(create_app(settings, generator=StubTextGenerator())) as test_client:
            response = _create_session(test_client)

        assert response.status_code == 413

    def test_scoring_unavailable_without_provider(self):
        with TestClient(create_app(_settings())) as test_client:
            response = _create_session(test_client)

        assert response.status_code == 503
        assert response.json()["error"]["code"] == 503

    def test_failed_session_has_no_results(self):
        generator = StubTextGenerator(error=RuntimeError("provider down"))
        with TestClient(create_app(_settings(), generator=generator)) as test_client:
            session_id = _create_session(test_client).json()["sessionId"]

            status_body = test_client.get(f"/api/v1/sessions/{session_id}").json()
            results = test_client.get(f"/api/v1/sessions/{session_id}/results")

        assert status_body["status"] == "error"
        assert "provider down" in status_body["errorMessage"]
        assert results.status_code == 409

    def test_invalid_session_id(self, client):
        response = client.get("/api/v1/sessions/not-a-uuid")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["message"] == "Invalid session ID format"
        assert error["request_id"] == response.headers["X-Request-ID"]

    def test_unknown_session(self, client):
        response = client.get("/api/v1/sessions/00000000-0000-0000-0000-000000000000")

        assert response.status_code == 404
        assert "not found" in response.json()["error"]["message"]


IMPROVED_REPORT = """## 1. EXECUTIVE SUMMARY
Overall Score: 90/100
Approval Probability: 88%

### Criterion 1: Awards
**My Rating:** Strong
**Evidence Score:** 90
"""


class TestCompare:
    """Test before/after comparison of two sessions."""

    def test_compare_sessions(self, client, generator):
        before_id = _create_session(client).json()["sessionId"]
        generator.reply = IMPROVED_REPORT
        after_id = _create_session(client, document_type="rfe_response").json()["sessionId"]

        response = client.post(
            "/api/v1/sessions/compare",
            json={"beforeSessionId": before_id, "afterSessionId": after_id},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["beforeSessionId"] == before_id
        comparison = body["comparison"]
        assert comparison["overallScore"] == {"before": 64, "after": 90, "change": 26, "improved": True}
        assert comparison["approvalProbability"]["change"] == 26
        assert comparison["rfeProbability"] == {"before": 30, "after": 10, "change": -20, "improved": True}
        assert comparison["criteriaComparison"][0]["criterionNumber"] == 1
        assert comparison["criteriaComparison"][0]["change"] == 8
        assert comparison["criteriaComparison"][-1]["criterionNumber"] == 3
        assert comparison["weaknessesResolved"] == [
            "Salary evidence does not show top-of-field compensation",
            "Gap in publications between 2019 and 2021",
        ]
        assert comparison["summary"].startswith("Excellent improvement!")

    def test_invalid_session_ids(self, client):
        session_id = _create_session(client).json()["sessionId"]

        before = client.post("/api/v1/sessions/compare", json={"beforeSessionId": "nope", "afterSessionId": session_id})
        after = client.post("/api/v1/sessions/compare", json={"beforeSessionId": session_id, "afterSessionId": "nope"})

        assert before.status_code == 400
        assert before.json()["error"]["message"] == "Valid beforeSessionId is required"
        assert after.status_code == 400
        assert after.json()["error"]["message"] == "Valid afterSessionId is required"

    def test_unknown_session(self, client):
        session_id = _create_session(client).json()["sessionId"]

        response = client.post(
            "/api/v1/sessions/compare",
            json={"beforeSessionId": session_id, "afterSessionId": "00000000-0000-0000-0000-000000000000"},
        )

        assert response.status_code == 404

    def test_session_without_results(self, client, generator):
        before_id = _create_session(client).json()["sessionId"]
        generator.error = RuntimeError("provider down")
        after_id = _create_session(client).json()["sessionId"]

        response = client.post(
            "/api/v1/sessions/compare",
            json={"beforeSessionId": before_id, "afterSessionId": after_id},
        )

        assert response.status_code == 409


class TestChat:
    """Test officer chat about a completed session."""

    def test_chat_round_trip(self, client, generator):
        session_id = _create_session(client).json()["sessionId"]
        generator.reply = "I would still request judging evidence."

        first = client.post(f"/api/v1/sessions/{session_id}/chat", json={"message": "What is my biggest risk?"})
        second = client.post(f"/api/v1/sessions/{session_id}/chat", json={"message": "Anything else?"})

        assert first.status_code == 200
        assert first.json()["reply"] == "I would still request judging evidence."
        assert second.status_code == 200

        chat_prompt = generator.calls[-1][0]
        assert "Overall Score: 64/100 (RFE Likely)" in chat_prompt
        assert "USER: What is my biggest risk?" in chat_prompt
        assert "ASSISTANT: I would still request judging evidence." in chat_prompt
        assert "USER: Anything else?" in chat_prompt

    def test_chat_before_completion(self):
        generator = StubTextGenerator(error=RuntimeError("provider down"))
        with TestClient(create_app(_settings(), generator=generator)) as test_client:
            session_id = _create_session(test_client).json()["sessionId"]
            response = test_client.post(f"/api/v1/sessions/{session_id}/chat", json={"message": "Hello?"})

        assert response.status_code == 409

    def test_chat_generation_failure(self, client, generator):
        session_id = _create_session(client).json()["sessionId"]
        generator.error = RuntimeError("quota exceeded")

        response = client.post(f"/api/v1/sessions/{session_id}/chat", json={"message": "Hello?"})

        assert response.status_code == 502
        assert "quota exceeded" in response.json()["error"]["message"]
