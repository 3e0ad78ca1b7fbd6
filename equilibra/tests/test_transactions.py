from datetime import timedelta

import pytest
from fastapi import HTTPException
from sqlalchemy import select

from equilibra.app.models import Account, Insight, utcnow
from equilibra.app.services import account_service, transaction_service
from equilibra.app.services.transaction_service import TransactionDraft, record_transaction


def _draft(amount, direction, category="Alimentação", mode="personal", **kwargs):
    return TransactionDraft(amount=amount, direction=direction, category=category, mode=mode, **kwargs)


def test_record_moves_primary_balance(sqlite_session, owner_id):
    record_transaction(sqlite_session, owner_id, _draft(1000, "inflow", "Salário"))
    record_transaction(sqlite_session, owner_id, _draft(250.45, "outflow"))

    assert account_service.primary_balance(sqlite_session, owner_id) == pytest.approx(749.55)
    assert len(account_service.list_accounts(sqlite_session, owner_id)) == 1


def test_delete_reverses_balance(sqlite_session, owner_id):
    record_transaction(sqlite_session, owner_id, _draft(500, "inflow", "Salário"))
    txn = record_transaction(sqlite_session, owner_id, _draft(120, "outflow"))

    transaction_service.delete_transaction(sqlite_session, owner_id, txn.id)

    assert account_service.primary_balance(sqlite_session, owner_id) == pytest.approx(500.0)
    with pytest.raises(HTTPException) as exc:
        transaction_service.delete_transaction(sqlite_session, owner_id, txn.id)
    assert exc.value.status_code == 404


@pytest.mark.parametrize(
    "draft",
    [
        _draft(0, "outflow"),
        _draft(10, "sideways"),
        _draft(10, "outflow", mode="business"),
        _draft(10, "outflow", category="  "),
    ],
)
def test_invalid_drafts_are_rejected(sqlite_session, owner_id, draft):
    with pytest.raises(HTTPException) as exc:
        record_transaction(sqlite_session, owner_id, draft)

    assert exc.value.status_code == 400
    assert account_service.get_primary_account(sqlite_session, owner_id) is None


def test_foreign_account_is_not_found(sqlite_session, owner_id):
    stranger = account_service.get_or_create_primary_account(sqlite_session, "stranger-account-owner")
    sqlite_session.commit()

    with pytest.raises(HTTPException) as exc:
        record_transaction(sqlite_session, owner_id, _draft(10, "outflow", account_id=stranger.id))

    assert exc.value.status_code == 404
    assert float(sqlite_session.get(Account, stranger.id).current_balance) == 0.0


def test_listeners_run_after_commit(sqlite_session, owner_id):
    calls = []

    def listener(db, txn):
        calls.append((txn.id, account_service.primary_balance(db, owner_id)))

    txn = record_transaction(sqlite_session, owner_id, _draft(80, "inflow", "Freelance"), listeners=[listener])

    assert calls == [(txn.id, 80.0)]


def test_fetch_ledger_entries_is_bounded_and_ordered(sqlite_session, owner_id):
    now = utcnow()
    record_transaction(sqlite_session, owner_id, _draft(30, "outflow", occurred_at=now - timedelta(days=2)))
    record_transaction(sqlite_session, owner_id, _draft(20, "outflow", occurred_at=now - timedelta(days=40)))
    record_transaction(sqlite_session, owner_id, _draft(10, "outflow", occurred_at=now - timedelta(days=5)))
    record_transaction(sqlite_session, owner_id, _draft(99, "outflow", mode="work", occurred_at=now - timedelta(days=1)))

    entries = transaction_service.fetch_ledger_entries(
        sqlite_session, owner_id, "personal", now - timedelta(days=30), now
    )

    assert [e.amount for e in entries] == [10.0, 30.0]
    assert all(e.occurred_at.tzinfo is not None for e in entries)


def test_transactions_api_round_trip(api_client):
    headers = {"X-User-Id": "api-transactions-user"}

    created = api_client.post(
        "/api/transactions",
        json={"amount": 42.5, "direction": "outflow", "category": "Transporte", "mode": "work", "description": "Uber"},
        headers=headers,
    )
    assert created.status_code == 201
    txn = created.json()
    assert txn["mode"] == "work"

    listed = api_client.get("/api/transactions?mode=work", headers=headers).json()
    assert [row["id"] for row in listed] == [txn["id"]]
    assert api_client.get("/api/transactions?mode=personal", headers=headers).json() == []

    accounts = api_client.get("/api/accounts", headers=headers).json()
    assert accounts[0]["current_balance"] == pytest.approx(-42.5)

    deleted = api_client.delete(f"/api/transactions/{txn['id']}", headers=headers)
    assert deleted.status_code == 204
    assert api_client.get("/api/transactions", headers=headers).json() == []


def test_transactions_api_validates_payload(api_client):
    response = api_client.post(
        "/api/transactions",
        json={"amount": -5, "direction": "outflow", "category": "Lazer", "mode": "personal"},
        headers={"X-User-Id": "api-validation-user"},
    )

    assert response.status_code == 422


def test_refresh_insights_flag_regenerates(api_client, sqlite_session, monkeypatch):
    monkeypatch.delenv("INSIGHTS_STRATEGY", raising=False)
    headers = {"X-User-Id": "api-refresh-user"}

    response = api_client.post(
        "/api/transactions?refresh_insights=true",
        json={"amount": 900, "direction": "inflow", "category": "Salário", "mode": "personal"},
        headers=headers,
    )

    assert response.status_code == 201
    stored = sqlite_session.execute(select(Insight).where(Insight.owner_id == "api-refresh-user")).scalars().all()
    assert stored


def test_failing_listener_keeps_the_stored_transaction(sqlite_session, owner_id):
    calls = []

    def broken_listener(db, txn):
        raise HTTPException(status_code=502, detail="AI gateway request failed")

    def next_listener(db, txn):
        calls.append(txn.id)

    txn = record_transaction(
        sqlite_session,
        owner_id,
        _draft(10, "outflow"),
        listeners=[broken_listener, next_listener],
    )

    assert calls == [txn.id]
    assert [row.id for row in transaction_service.list_transactions(sqlite_session, owner_id)] == [txn.id]
    assert account_service.primary_balance(sqlite_session, owner_id) == pytest.approx(-10.0)


def test_refresh_failure_still_returns_created(api_client, monkeypatch):
    monkeypatch.setenv("INSIGHTS_STRATEGY", "ai")
    monkeypatch.delenv("AI_GATEWAY_API_KEY", raising=False)
    headers = {"X-User-Id": "api-refresh-failure-user"}

    response = api_client.post(
        "/api/transactions?refresh_insights=true",
        json={"amount": 10, "direction": "outflow", "category": "Lazer", "mode": "personal"},
        headers=headers,
    )

    assert response.status_code == 201
    listed = api_client.get("/api/transactions", headers=headers).json()
    assert [row["id"] for row in listed] == [response.json()["id"]]
