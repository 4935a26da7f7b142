"""
Pfand API route tests (Flask test client, in-memory SQLite).
"""

from pfand.models import PfandTransaction


def _deposit(client, account_id, units, **extra):
    body = {"account_id": account_id, "unit_count": units}
    body.update(extra)
    return client.post("/api/pfand/deposit", json=body)


def _return(client, account_id, units, **extra):
    body = {"account_id": account_id, "units_requested": units}
    body.update(extra)
    return client.post("/api/pfand/return", json=body)


def test_deposit_then_return_scenario(client, account_a):
    response = _deposit(client, account_a.id, 3, order_id="ord-7")
    assert response.status_code == 201
    assert response.json["transaction"]["kind"] == "DEPOSIT"
    assert response.json["transaction"]["amount"] == "6.00"
    assert response.json["transaction"]["order_id"] == "ord-7"

    response = _return(client, account_a.id, 2, processed_by="Staff")
    assert response.status_code == 200
    assert response.json["refund_amount"] == "4.00"
    assert response.json["remaining_units"] == 1
    assert response.json["transaction"]["kind"] == "RETURN"
    assert response.json["transaction"]["processed_by"] == "Staff"

    response = _return(client, account_a.id, 2)
    assert response.status_code == 400
    error = response.json["error"]
    assert error["kind"] == "INSUFFICIENT_BALANCE"
    assert error["requested"] == 2
    assert error["available"] == 1


def test_return_for_unknown_account_is_404(client, db_session):
    response = _return(client, 4242, 1)
    assert response.status_code == 404
    assert response.json["error"]["kind"] == "ACCOUNT_NOT_FOUND"


def test_return_with_invalid_units_is_400(client, account_a):
    _deposit(client, account_a.id, 3)
    for units in (0, -1, 1.5, "two", None):
        response = _return(client, account_a.id, units)
        assert response.status_code == 400
        assert response.json["error"]["kind"] == "INVALID_REQUEST"


def test_return_requires_json_object(client, db_session):
    response = client.post("/api/pfand/return", data="not json", content_type="text/plain")
    assert response.status_code == 400
    assert response.json["error"]["kind"] == "INVALID_REQUEST"

    response = client.post("/api/pfand/return", json=[1, 2])
    assert response.status_code == 400


def test_rejected_return_writes_nothing(client, account_a, db_session):
    _deposit(client, account_a.id, 1)
    _return(client, account_a.id, 5)
    assert db_session.query(PfandTransaction).count() == 1


def test_deposit_for_unknown_account_is_404(client, db_session):
    response = _deposit(client, 4242, 1)
    assert response.status_code == 404


def test_persistence_failure_is_500(client, account_a, monkeypatch):
    from pfand.errors import PersistenceError
    from pfand.services.transaction_log import SqlTransactionLog

    def broken_append(self, draft):
        raise PersistenceError("Failed to record Pfand transaction")

    _deposit(client, account_a.id, 2)
    monkeypatch.setattr(SqlTransactionLog, "append", broken_append)

    response = _return(client, account_a.id, 1)
    assert response.status_code == 500
    assert response.json["error"]["kind"] == "PERSISTENCE_ERROR"


def test_failing_subscriber_still_returns_committed_refund(client, account_a, db_session):
    from pfand.services import events

    def broken_receiver(sender, **kwargs):
        raise RuntimeError("notification backend down")

    _deposit(client, account_a.id, 3)
    events.return_processed.connect(broken_receiver)
    try:
        response = _return(client, account_a.id, 2)
    finally:
        events.return_processed.disconnect(broken_receiver)

    assert response.status_code == 200
    assert response.json["remaining_units"] == 1
    assert db_session.query(PfandTransaction).count() == 2


def test_outstanding_lists_accounts_with_cups(client, account_a, account_b):
    _deposit(client, account_a.id, 2)
    _deposit(client, account_b.id, 5)
    _return(client, account_b.id, 1)

    response = client.get("/api/pfand/outstanding")
    assert response.status_code == 200
    items = response.json["items"]
    assert [i["account_id"] for i in items] == [account_b.id, account_a.id]
    assert items[0]["outstanding_units"] == 4
    assert items[0]["outstanding_value"] == "8.00"
    assert items[0]["account"]["name"] == "Jonas Weber"
    assert items[0]["last_activity"].endswith("Z")


def test_outstanding_hides_settled_accounts(client, account_a):
    _deposit(client, account_a.id, 2)
    _return(client, account_a.id, 2)

    response = client.get("/api/pfand/outstanding")
    assert response.json["items"] == []


def test_stats(client, account_a, account_b):
    _deposit(client, account_a.id, 3)
    _deposit(client, account_b.id, 1)
    _return(client, account_a.id, 2)

    response = client.get("/api/pfand/stats")
    assert response.status_code == 200
    assert response.json == {
        "total_units_outstanding": 2,
        "total_value_outstanding": "4.00",
        "accounts_with_outstanding_units": 2,
        "total_units_returned": 2,
        "total_value_refunded": "4.00",
    }


def test_account_pfand_summary(client, account_a):
    _deposit(client, account_a.id, 3)
    _return(client, account_a.id, 1, processed_by="Anna")

    response = client.get(f"/api/accounts/{account_a.id}/pfand")
    assert response.status_code == 200
    data = response.json
    assert data["outstanding_units"] == 2
    assert data["outstanding_value"] == "4.00"
    assert data["total_returned"] == 1
    assert data["total_deposit_paid"] == "6.00"
    assert data["total_deposit_returned"] == "2.00"
    assert [a["kind"] for a in data["activity"]] == ["RETURN", "DEPOSIT"]
    assert data["activity"][0]["note"] == "Returned 1 cup - processed by Anna"


def test_account_pfand_summary_without_history(client, account_a):
    response = client.get(f"/api/accounts/{account_a.id}/pfand")
    assert response.status_code == 200
    assert response.json["outstanding_units"] == 0
    assert response.json["activity"] == []


def test_account_pfand_summary_unknown_account(client, db_session):
    response = client.get("/api/accounts/4242/pfand")
    assert response.status_code == 404


def test_health(client, db_session):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json["status"] == "healthy"
    assert response.json["pfand_unit_value"] == "2.00"


def test_cors_headers_for_allowed_origin(client, db_session):
    response = client.get("/api/pfand/stats", headers={"Origin": "http://localhost:5173"})
    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

    response = client.get("/api/pfand/stats", headers={"Origin": "http://evil.example"})
    assert "Access-Control-Allow-Origin" not in response.headers
