from datetime import timedelta

import pytest
from fastapi import HTTPException

from equilibra.app.insights.aggregate import month_key
from equilibra.app.models import utcnow
from equilibra.app.services import goal_service, offer_service
from equilibra.app.services.transaction_service import TransactionDraft, record_transaction


def _spend(session, owner_id, amount, category, mode="personal", occurred_at=None):
    record_transaction(
        session,
        owner_id,
        TransactionDraft(amount=amount, direction="outflow", category=category, mode=mode, occurred_at=occurred_at),
    )


def test_duplicate_goal_conflicts(sqlite_session, owner_id):
    goal_service.create_goal(sqlite_session, owner_id, category="Lazer", mode="personal", limit_amount=100)

    with pytest.raises(HTTPException) as exc:
        goal_service.create_goal(sqlite_session, owner_id, category="Lazer", mode="personal", limit_amount=150)

    assert exc.value.status_code == 409
    # same category in the other mode is a separate goal
    goal_service.create_goal(sqlite_session, owner_id, category="Lazer", mode="work", limit_amount=150)
    assert len(goal_service.list_goals(sqlite_session, owner_id)) == 2


def test_goal_rejects_bad_input(sqlite_session, owner_id):
    with pytest.raises(HTTPException) as bad_period:
        goal_service.create_goal(
            sqlite_session, owner_id, category="Lazer", mode="personal", limit_amount=100, period_month="2024-13"
        )
    with pytest.raises(HTTPException) as bad_limit:
        goal_service.create_goal(sqlite_session, owner_id, category="Lazer", mode="personal", limit_amount=0)

    assert bad_period.value.status_code == 422
    assert bad_limit.value.status_code == 400


def test_goal_progress_statuses(sqlite_session, owner_id):
    now = utcnow()
    goal_service.create_goal(sqlite_session, owner_id, category="Alimentação", mode="personal", limit_amount=400)
    goal_service.create_goal(sqlite_session, owner_id, category="Lazer", mode="personal", limit_amount=50)
    goal_service.create_goal(sqlite_session, owner_id, category="Saúde", mode="personal", limit_amount=100)
    _spend(sqlite_session, owner_id, 350, "Alimentação", occurred_at=now)
    _spend(sqlite_session, owner_id, 60, "Lazer", occurred_at=now)
    _spend(sqlite_session, owner_id, 500, "Saúde", mode="work", occurred_at=now)

    progress = {p.goal.category: p for p in goal_service.goal_progress(sqlite_session, owner_id, mode="personal")}

    assert progress["Alimentação"].status == "warning"
    assert progress["Alimentação"].percent == pytest.approx(87.5)
    assert progress["Alimentação"].remaining == pytest.approx(50.0)
    assert progress["Lazer"].status == "exceeded"
    assert progress["Lazer"].remaining == 0.0
    assert progress["Saúde"].status == "on_track"
    assert progress["Saúde"].spent == 0.0


def test_goals_api(api_client):
    headers = {"X-User-Id": "api-goals-user"}
    period = month_key(utcnow())

    created = api_client.post(
        "/api/goals",
        json={"category": "Transporte", "mode": "personal", "limit_amount": 200},
        headers=headers,
    )
    assert created.status_code == 201
    assert created.json()["period_month"] == period

    progress = api_client.get("/api/goals/progress?mode=personal", headers=headers).json()
    assert progress[0]["status"] == "on_track"
    assert progress[0]["goal"]["category"] == "Transporte"

    deleted = api_client.delete(f"/api/goals/{created.json()['id']}", headers=headers)
    assert deleted.status_code == 204
    assert api_client.get("/api/goals", headers=headers).json() == []


def test_offer_candidates_follow_spending():
    candidates = offer_service.offer_candidates({"Alimentação": 400.0, "Transporte": 250.0})
    by_kind = {c.kind: c for c in candidates}

    assert set(by_kind) == {"cashback", "loan", "insurance"}
    assert by_kind["cashback"].details["category"] == "Alimentação"
    assert offer_service.offer_candidates({}) == []
    assert [c.kind for c in offer_service.offer_candidates({"Lazer": 100.0})] == ["cashback"]


def test_generate_offers_dedupes_active_kinds(sqlite_session, owner_id):
    now = utcnow()
    _spend(sqlite_session, owner_id, 400, "Alimentação", occurred_at=now - timedelta(days=3))
    _spend(sqlite_session, owner_id, 250, "Transporte", mode="work", occurred_at=now - timedelta(days=2))
    _spend(sqlite_session, owner_id, 900, "Moradia", occurred_at=now - timedelta(days=60))

    first = offer_service.generate_offers(sqlite_session, owner_id)
    second = offer_service.generate_offers(sqlite_session, owner_id)

    assert {o.kind for o in first} == {"cashback", "loan", "insurance"}
    assert next(o for o in first if o.kind == "cashback").details["category"] == "Alimentação"
    assert second == []

    loan = next(o for o in first if o.kind == "loan")
    offer_service.deactivate_offer(sqlite_session, owner_id, loan.id)
    assert {o.kind for o in offer_service.list_active_offers(sqlite_session, owner_id)} == {"cashback", "insurance"}
    assert [o.kind for o in offer_service.generate_offers(sqlite_session, owner_id)] == ["loan"]


def test_deactivate_offer_is_scoped_to_owner(sqlite_session, owner_id):
    _spend(sqlite_session, owner_id, 100, "Lazer")
    (offer,) = offer_service.generate_offers(sqlite_session, owner_id)

    with pytest.raises(HTTPException) as exc:
        offer_service.deactivate_offer(sqlite_session, "someone-else", offer.id)

    assert exc.value.status_code == 404
