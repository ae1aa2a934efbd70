"""HTTP contract of /api/chat and /api/health with the backends faked out."""
from fastapi.testclient import TestClient

from conftest import RecordingLLM

from campus_mentor.api.server import create_app
from campus_mentor.config import Settings
from campus_mentor.errors import BadRequest, RateLimited, UpstreamFailure
from campus_mentor.services.memory import MemoryService


class OfflineMemory(MemoryService):
    async def ping(self):
        return False


def client_for(services):
    return TestClient(create_app(Settings(shutdown_drain_timeout=5), services=services))


def test_chat_returns_reply_and_refreshes_summary(make_services, db):
    services = make_services(reply_llm=RecordingLLM(replies=["Fais une liste de tes priorités."]))

    with client_for(services) as client:
        response = client.post("/api/chat", json={"email": "ada@example.com", "message": "Par où commencer ?"})

    assert response.status_code == 200
    assert response.json() == {"reply": "Fais une liste de tes priorités."}
    # shutdown drains the pending summary update
    stored = db.summaries["ada@example.com"]
    assert stored["summary"] == "- résumé à jour"
    assert stored["updatedAt"] is not None


def test_summary_timestamp_advances_after_each_exchange(make_services, db):
    services = make_services()

    with client_for(services) as client:
        client.post("/api/chat", json={"email": "ada@example.com", "message": "Un"})
    first = db.summaries["ada@example.com"]["updatedAt"]

    with client_for(services) as client:
        client.post("/api/chat", json={"email": "ada@example.com", "message": "Deux"})

    assert db.summaries["ada@example.com"]["updatedAt"] > first


def test_program_id_spellings_are_accepted(make_services):
    llm = RecordingLLM()
    services = make_services(reply_llm=llm)

    with client_for(services) as client:
        client.post("/api/chat", json={"email": "a@example.com", "message": "x", "programID": "A1"})
        client.post("/api/chat", json={"email": "a@example.com", "message": "y", "programId": "A1"})

    assert all("Bachelor web, 1re année" in instructions for instructions, _ in llm.calls)


def test_missing_fields_return_400_without_side_effects(make_services, db):
    llm = RecordingLLM()
    services = make_services(reply_llm=llm, log_messages=True)

    with client_for(services) as client:
        responses = [
            client.post("/api/chat", json={}),
            client.post("/api/chat", json={"email": "ada@example.com"}),
            client.post("/api/chat", json={"message": "Salut"}),
            client.post("/api/chat", json={"email": 42, "message": "Salut"}),
            client.post("/api/chat", json=["not", "an", "object"]),
            client.post("/api/chat", content=b"{broken", headers={"Content-Type": "application/json"}),
        ]

    for response in responses:
        assert response.status_code == 400
        assert response.json() == {"reply": BadRequest.public_message}
    assert BadRequest.public_message == "email et message sont requis."
    assert llm.calls == []
    assert db.summaries == {}
    assert db.messages == []


def test_rate_limited_upstream_returns_503_and_keeps_summary(make_services, db):
    summary_llm = RecordingLLM()
    services = make_services(reply_llm=RecordingLLM(error=RateLimited("429")), summary_llm=summary_llm)

    with client_for(services) as client:
        response = client.post("/api/chat", json={"email": "ada@example.com", "message": "Salut"})

    assert response.status_code == 503
    assert response.json() == {"reply": RateLimited.public_message}
    assert summary_llm.calls == []
    assert db.summaries == {}


def test_upstream_failure_hides_internal_detail(make_services):
    services = make_services(reply_llm=RecordingLLM(error=UpstreamFailure("ollama exploded at 10.0.0.3")))

    with client_for(services) as client:
        response = client.post("/api/chat", json={"email": "ada@example.com", "message": "Salut"})

    assert response.status_code == 500
    assert "10.0.0.3" not in response.json()["reply"]
    assert response.json()["reply"]


def test_missing_template_returns_500_apology(make_services):
    services = make_services(template="")

    with client_for(services) as client:
        response = client.post("/api/chat", json={"email": "ada@example.com", "message": "Salut"})

    assert response.status_code == 500
    assert "configuré" in response.json()["reply"]


def test_health_reports_true_when_backends_answer(make_services):
    with client_for(make_services()) as client:
        response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() is True


def test_health_is_503_when_storage_is_down(make_services, db):
    services = make_services(memory=OfflineMemory(db))

    with client_for(services) as client:
        response = client.get("/api/health")

    assert response.status_code == 503
    assert response.json() is False


def test_mock_mode_serves_replies_without_external_services():
    settings = Settings(mock_mode=True, use_memory_store=True, mentor_config_path="", program_contexts_path="")

    with TestClient(create_app(settings)) as client:
        response = client.post("/api/chat", json={"email": "demo@example.com", "message": "Bonjour"})
        summary = client.app.state.services.memory.db.summaries

    assert response.status_code == 200
    assert "Mode démo" in response.json()["reply"]
    assert summary["demo@example.com"]["summary"].startswith("- ")


def test_null_stored_summary_still_gets_a_reply(make_services, db):
    db.summaries["ada@example.com"] = {"email": "ada@example.com", "summary": None}
    services = make_services(reply_llm=RecordingLLM(replies=["Bonjour Ada."]))

    with client_for(services) as client:
        response = client.post("/api/chat", json={"email": "ada@example.com", "message": "Salut"})

    assert response.status_code == 200
    assert response.json() == {"reply": "Bonjour Ada."}
    assert db.summaries["ada@example.com"]["summary"] == "- résumé à jour"


def test_health_is_503_when_the_model_is_not_ready(make_services):
    services = make_services(reply_llm=RecordingLLM(available=False))

    with client_for(services) as client:
        response = client.get("/api/health")

    assert response.status_code == 503
    assert response.json() is False
