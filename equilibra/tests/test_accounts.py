from equilibra.app.api import deps
from equilibra.app.db import SessionLocal
from equilibra.app.models import Profile
from equilibra.app.services import account_service


def test_update_profile_keeps_unset_fields(sqlite_session, owner_id):
    account_service.update_profile(
        sqlite_session,
        owner_id,
        full_name="Carla Souza",
        preferences={"tema": "escuro", "notificacoes": {"email": True}},
    )

    profile = account_service.update_profile(sqlite_session, owner_id, full_name="Carla S.")

    assert profile.full_name == "Carla S."
    assert profile.preferences == {"tema": "escuro", "notificacoes": {"email": True}}


def test_profile_api_round_trip(api_client):
    headers = {"X-User-Id": "api-profile-user", "X-User-Name": "Diego"}

    initial = api_client.get("/api/accounts/me", headers=headers).json()
    assert initial["full_name"] == "Diego"
    assert initial["preferences"] == {}

    updated = api_client.put(
        "/api/accounts/me",
        json={"full_name": "Diego Lima", "preferences": {"tema": "claro", "moeda": "BRL", "alertas": True}},
        headers=headers,
    )
    assert updated.status_code == 200

    fetched = api_client.get("/api/accounts/me", headers=headers).json()
    assert fetched["full_name"] == "Diego Lima"
    assert fetched["preferences"] == {"tema": "claro", "moeda": "BRL", "alertas": True}

    renamed = api_client.put("/api/accounts/me", json={"full_name": "D. Lima"}, headers=headers).json()
    assert renamed["preferences"]["moeda"] == "BRL"


def test_concurrent_first_request_reuses_winning_profile(api_client, monkeypatch):
    def provision_after_another_request(db, owner_id, *, full_name=None):
        other = SessionLocal()
        try:
            other.add(Profile(id=owner_id, full_name="Primeira Requisição"))
            other.commit()
        finally:
            other.close()
        profile = Profile(id=owner_id, full_name=full_name)
        db.add(profile)
        db.flush()
        return profile

    monkeypatch.setattr(deps, "get_or_create_profile", provision_after_another_request)

    response = api_client.get("/api/accounts/me", headers={"X-User-Id": "api-race-user", "X-User-Name": "Segunda"})

    assert response.status_code == 200
    assert response.json()["full_name"] == "Primeira Requisição"
