import pytest

from app.core.cookies import SESSION_COOKIE_NAME, load_session_payload
from app.domain.insights import services

STUB_KEY = {"X-OpenAI-Key": "stub"}
CREDENTIALS = {"email": "saver@example.com", "password": "s3cret-pass"}
BUDGET = {"income": 5000, "essential_expenses": 2000}


async def _sign_up(client):
    response = await client.post("/auth/signup", json=CREDENTIALS)
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ok"}
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_new_client_is_anonymous(client):
    response = await client.get("/auth/session")

    assert response.json() == {"mode": "anonymous", "user_id": None, "email": None, "saves_results": False}


@pytest.mark.asyncio
async def test_sign_up_then_generate_saves_snapshot(client):
    body = await _sign_up(client)
    assert body["mode"] == "authenticated"
    assert body["saves_results"] is True

    generated = await client.post("/api/insights/budget", json=BUDGET, headers=STUB_KEY)
    assert generated.status_code == 200
    payload = generated.json()
    assert payload["saved"] is True
    assert set(payload["result"]) >= {"savings", "essential", "analysis", "advice"}

    latest = await client.get("/api/insights/budget/latest")
    assert latest.status_code == 200
    assert latest.json()["id"] == payload["snapshot_id"]
    assert latest.json()["inputs"] == {"income": 5000.0, "essential_expenses": 2000.0}


@pytest.mark.asyncio
async def test_guest_generation_is_not_saved(client):
    guest = await client.post("/auth/guest")
    assert guest.json()["mode"] == "guest"

    response = await client.post(
        "/api/insights/score",
        json={"income": 4000, "expenses": 2000, "savings": 800},
        headers=STUB_KEY,
    )

    assert response.status_code == 200
    assert response.json()["saved"] is False
    assert response.json()["result"]["category"] in {"Poor", "Fair", "Good", "Excellent"}
    assert (await client.get("/api/insights/score/latest")).status_code == 401


@pytest.mark.asyncio
async def test_guest_then_sign_in_persists(client):
    await _sign_up(client)
    await client.post("/auth/signout")
    await client.post("/auth/guest")

    signed_in = await client.post("/auth/signin", json=CREDENTIALS)
    assert signed_in.json()["mode"] == "authenticated"

    response = await client.post(
        "/api/insights/investment_strategy",
        json={"income": 6000, "savings_amount": 1000, "risk_tolerance": "high"},
        headers=STUB_KEY,
    )
    assert response.json()["saved"] is True


@pytest.mark.asyncio
async def test_sign_out_stops_persistence(client):
    await _sign_up(client)
    signed_out = await client.post("/auth/signout")
    assert signed_out.json()["mode"] == "anonymous"

    response = await client.post("/api/insights/budget", json=BUDGET, headers=STUB_KEY)
    assert response.json()["saved"] is False


@pytest.mark.asyncio
async def test_guest_while_signed_in_conflicts(client):
    await _sign_up(client)

    assert (await client.post("/auth/guest")).status_code == 409


@pytest.mark.asyncio
async def test_invalid_budget_request_is_rejected(client):
    response = await client.post(
        "/api/insights/budget",
        json={"income": 1000, "essential_expenses": 1500},
        headers=STUB_KEY,
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_malformed_completion_is_bad_gateway(client, monkeypatch):
    async def sorry(prompt, credential, **kwargs):
        return "Sorry, I can't help"

    monkeypatch.setattr(services, "complete", sorry)
    await _sign_up(client)

    response = await client.post("/api/insights/budget", json=BUDGET, headers={"X-OpenAI-Key": "sk-test"})

    assert response.status_code == 502
    assert (await client.get("/api/insights/budget/latest")).status_code == 404


@pytest.mark.asyncio
async def test_missing_key_is_service_unavailable(client):
    response = await client.post("/api/insights/budget", json=BUDGET)

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_dashboard_and_history(client):
    await _sign_up(client)
    await client.post("/api/insights/budget", json=BUDGET, headers=STUB_KEY)
    await client.post("/api/insights/budget", json={"income": 8000, "essential_expenses": 3000}, headers=STUB_KEY)

    dashboard = (await client.get("/api/insights/latest")).json()
    assert dashboard["budget"]["inputs"]["income"] == 8000.0
    assert dashboard["score"] is None
    assert dashboard["investment_strategy"] is None

    history = (await client.get("/api/insights/budget/history")).json()
    assert [item["inputs"]["income"] for item in history] == [8000.0, 5000.0]


@pytest.mark.asyncio
async def test_duplicate_sign_up_conflicts(client):
    await _sign_up(client)
    await client.post("/auth/signout")

    response = await client.post("/auth/signup", json=CREDENTIALS)

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_wrong_password_is_unauthorized(client):
    await _sign_up(client)
    await client.post("/auth/signout")

    response = await client.post("/auth/signin", json={**CREDENTIALS, "password": "wrong-pass"})

    assert response.status_code == 401
    assert (await client.get("/auth/session")).json()["mode"] == "anonymous"


@pytest.mark.asyncio
async def test_sign_in_is_rate_limited(client, monkeypatch):
    monkeypatch.setattr("app.core.config.settings.SIGNIN_RATE_LIMIT_MAX", 2)
    bad = {**CREDENTIALS, "password": "wrong-pass"}

    codes = [(await client.post("/auth/signin", json=bad)).status_code for _ in range(3)]

    assert codes == [401, 401, 429]


@pytest.mark.asyncio
async def test_chat_answers_without_saving(client):
    response = await client.post("/api/chat", json={"question": "What is an ETF?"}, headers=STUB_KEY)

    assert response.status_code == 200
    assert response.json()["answer"].startswith("[stub]")


def _session_id(client) -> str:
    return load_session_payload(client.cookies.get(SESSION_COOKIE_NAME))["sid"]


@pytest.mark.asyncio
async def test_anonymous_generation_keeps_one_session_id(client):
    first = await client.post("/api/insights/budget", json=BUDGET, headers=STUB_KEY)
    assert SESSION_COOKIE_NAME in first.cookies
    session_id = _session_id(client)

    await client.post("/api/insights/score", json={"income": 4000}, headers=STUB_KEY)

    assert _session_id(client) == session_id


@pytest.mark.asyncio
async def test_session_read_issues_cookie(client):
    await client.get("/auth/session")
    session_id = _session_id(client)

    await client.post("/api/insights/budget", json=BUDGET, headers=STUB_KEY)

    assert _session_id(client) == session_id
