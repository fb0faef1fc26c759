"""
HTTP API tests through FastAPI's TestClient.

Run with: pytest tests/test_api.py -v
"""

import pytest

from app.core.timezone import local_today
from app.modules.ledger import services as ledger_services
from app.modules.ledger.services import TRANSFER_OUT_CATEGORY


API = "/api/v1"


def create_wallet(client, headers, name="Cash", balance=0, type_="cash"):
    response = client.post(f"{API}/wallets/", json={"name": name, "type": type_, "initial_balance": balance},
                           headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def create_category(client, headers, name, type_):
    response = client.post(f"{API}/categories/", json={"name": name, "type": type_}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def register(client, username):
    response = client.post(f"{API}/auth/register", json={"username": username, "password": "secret123"})
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


class TestHealth:

    def test_root(self, client):
        assert client.get("/").json()["status"] == "running"

    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "healthy"}


class TestAuth:

    def test_login_verify_me(self, client, auth_headers):
        response = client.post(f"{API}/auth/login", json={"username": "CAROL", "password": "secret123"})
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["username"] == "carol"

        headers = {"Authorization": f"Bearer {body['access_token']}"}
        assert client.get(f"{API}/auth/verify", headers=headers).json()["valid"] is True
        assert client.get(f"{API}/auth/me", headers=headers).json()["username"] == "carol"

    def test_bad_password(self, client, auth_headers):
        response = client.post(f"{API}/auth/login", json={"username": "carol", "password": "nope"})
        assert response.status_code == 401

    def test_duplicate_username(self, client, auth_headers):
        response = client.post(f"{API}/auth/register", json={"username": "Carol", "password": "secret123"})
        assert response.status_code == 400

    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer not-a-token"}])
    def test_protected_routes_need_token(self, client, headers):
        assert client.get(f"{API}/wallets/", headers=headers).status_code == 401

    def test_change_password(self, client, auth_headers):
        response = client.put(f"{API}/user/change-password", headers=auth_headers,
                              json={"current_password": "wrong-one", "new_password": "another123"})
        assert response.status_code == 400

        response = client.put(f"{API}/user/change-password", headers=auth_headers,
                              json={"current_password": "secret123", "new_password": "another123"})
        assert response.status_code == 200
        login = client.post(f"{API}/auth/login", json={"username": "carol", "password": "another123"})
        assert login.status_code == 200


class TestWalletsAndTransactions:

    def test_transaction_lifecycle(self, client, auth_headers):
        wallet = create_wallet(client, auth_headers, balance=1000)
        food = create_category(client, auth_headers, "Food", "out")

        response = client.post(f"{API}/transactions/", headers=auth_headers, json={
            "category_id": food["id"], "wallet_id": wallet["id"], "amount": 250,
            "transaction_date": "2026-03-10T12:00:00", "note": "lunch",
        })
        assert response.status_code == 201, response.text
        tx = response.json()
        assert tx["direction"] == "out"
        assert tx["wallet_balance"] == 750.0

        listing = client.get(f"{API}/transactions/", headers=auth_headers,
                             params={"start_date": "2026-03-10", "end_date": "2026-03-10", "search": "LUN"}).json()
        assert listing["pagination"]["total"] == 1
        assert listing["transactions"][0]["id"] == tx["id"]

        response = client.delete(f"{API}/transactions/{tx['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert client.get(f"{API}/wallets/{wallet['id']}", headers=auth_headers).json()["balance"] == 1000.0

    @pytest.mark.parametrize("amount", [0, -10])
    def test_non_positive_amount_is_422(self, client, auth_headers, amount):
        wallet = create_wallet(client, auth_headers, balance=1000)
        food = create_category(client, auth_headers, "Food", "out")
        response = client.post(f"{API}/transactions/", headers=auth_headers, json={
            "category_id": food["id"], "wallet_id": wallet["id"], "amount": amount,
        })
        assert response.status_code == 422

    def test_sub_cent_amounts_are_422(self, client, auth_headers):
        wallet = create_wallet(client, auth_headers, balance=1000)
        food = create_category(client, auth_headers, "Food", "out")

        response = client.post(f"{API}/transactions/", headers=auth_headers, json={
            "category_id": food["id"], "wallet_id": wallet["id"], "amount": "0.005",
        })
        assert response.status_code == 422

        response = client.post(f"{API}/wallets/", headers=auth_headers,
                               json={"name": "Odd", "initial_balance": "10.555"})
        assert response.status_code == 422

        assert client.get(f"{API}/wallets/{wallet['id']}", headers=auth_headers).json()["balance"] == 1000.0
        assert client.get(f"{API}/transactions/", headers=auth_headers).json()["pagination"]["total"] == 0

    def test_failed_transfer_leaves_nothing_behind(self, client, auth_headers, monkeypatch):
        a = create_wallet(client, auth_headers, "A", 100)
        b = create_wallet(client, auth_headers, "B", 0)

        def fail(*args, **kwargs):
            raise RuntimeError("disk full")

        # Raised after both legs and both balances have been flushed
        monkeypatch.setattr(ledger_services.logger, "info", fail)

        response = client.post(f"{API}/wallets/transfer", headers=auth_headers, json={
            "from_wallet_id": a["id"], "to_wallet_id": b["id"], "amount": 60,
        })
        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}

        assert client.get(f"{API}/wallets/{a['id']}", headers=auth_headers).json()["balance"] == 100.0
        assert client.get(f"{API}/wallets/{b['id']}", headers=auth_headers).json()["balance"] == 0.0
        assert client.get(f"{API}/transactions/", headers=auth_headers).json()["pagination"]["total"] == 0
        assert client.get(f"{API}/categories/", headers=auth_headers).json() == []

    def test_transfer_refreshes_budgets_on_transfer_category(self, client, auth_headers):
        a = create_wallet(client, auth_headers, "A", 1000)
        b = create_wallet(client, auth_headers, "B", 0)
        body = {"from_wallet_id": a["id"], "to_wallet_id": b["id"], "amount": 60}
        assert client.post(f"{API}/wallets/transfer", headers=auth_headers, json=body).status_code == 200

        outgoing = next(c for c in client.get(f"{API}/categories/", headers=auth_headers).json()
                        if c["name"] == TRANSFER_OUT_CATEGORY)
        response = client.post(f"{API}/budgets/", headers=auth_headers, json={
            "category_id": outgoing["id"], "amount": 100,
            "start_date": local_today().replace(day=1).isoformat(),
        })
        assert response.status_code == 201, response.text
        assert client.get(f"{API}/notifications/", headers=auth_headers).json() == []

        body["amount"] = 30
        assert client.post(f"{API}/wallets/transfer", headers=auth_headers, json=body).status_code == 200

        notifications = client.get(f"{API}/notifications/", headers=auth_headers).json()
        assert [n["type"] for n in notifications] == ["BUDGET_WARNING"]

    def test_transfer_and_insufficient_funds(self, client, auth_headers):
        a = create_wallet(client, auth_headers, "A", 100)
        b = create_wallet(client, auth_headers, "B", 0)

        response = client.post(f"{API}/wallets/transfer", headers=auth_headers, json={
            "from_wallet_id": a["id"], "to_wallet_id": b["id"], "amount": 60,
        })
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["from_wallet"]["balance"] == 40.0
        assert body["to_wallet"]["balance"] == 60.0
        assert {t["kind"] for t in body["transactions"]} == {"transfer_out", "transfer_in"}

        response = client.post(f"{API}/wallets/transfer", headers=auth_headers, json={
            "from_wallet_id": a["id"], "to_wallet_id": b["id"], "amount": 41,
        })
        assert response.status_code == 400
        assert response.json()["detail"]["available"] == 40.0

        summary = client.get(f"{API}/wallets/summary/total", headers=auth_headers).json()
        assert summary["total_balance"] == 100.0
        assert summary["total_wallets"] == 2

        for wallet in (a, b):
            audit = client.get(f"{API}/wallets/{wallet['id']}/reconcile", headers=auth_headers).json()
            assert audit["consistent"] is True

    def test_balance_is_not_editable(self, client, auth_headers):
        wallet = create_wallet(client, auth_headers, balance=100)
        response = client.put(f"{API}/wallets/{wallet['id']}", headers=auth_headers, json={"balance": 5000})
        assert response.status_code == 400

        response = client.put(f"{API}/wallets/{wallet['id']}", headers=auth_headers, json={"name": "Pocket"})
        assert response.json()["name"] == "Pocket"
        assert response.json()["balance"] == 100.0

    def test_soft_deleted_wallet_hidden_from_list(self, client, auth_headers):
        wallet = create_wallet(client, auth_headers)
        assert client.delete(f"{API}/wallets/{wallet['id']}", headers=auth_headers).status_code == 200

        assert client.get(f"{API}/wallets/", headers=auth_headers).json() == []
        listed = client.get(f"{API}/wallets/", headers=auth_headers, params={"include_inactive": True}).json()
        assert [w["is_active"] for w in listed] == [False]

    def test_other_users_data_is_not_found(self, client, auth_headers):
        wallet = create_wallet(client, auth_headers, balance=100)
        intruder = register(client, "mallory")

        assert client.get(f"{API}/wallets/{wallet['id']}", headers=intruder).status_code == 404
        assert client.delete(f"{API}/wallets/{wallet['id']}", headers=intruder).status_code == 404
        assert client.get(f"{API}/wallets/", headers=intruder).json() == []


class TestCategoriesApi:

    def test_reactivation_returns_200(self, client, auth_headers):
        food = create_category(client, auth_headers, "Food", "out")
        assert client.delete(f"{API}/categories/{food['id']}", headers=auth_headers).status_code == 200

        response = client.post(f"{API}/categories/", json={"name": "food", "type": "out"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["id"] == food["id"]
        assert response.json()["message"] == "Category reactivated"

    def test_duplicate_is_400(self, client, auth_headers):
        create_category(client, auth_headers, "Food", "out")
        response = client.post(f"{API}/categories/", json={"name": "FOOD", "type": "out"}, headers=auth_headers)
        assert response.status_code == 400


class TestBudgetsAndNotifications:

    def test_budget_warning_flow(self, client, auth_headers):
        wallet = create_wallet(client, auth_headers, balance=5000)
        food = create_category(client, auth_headers, "Food", "out")

        response = client.post(f"{API}/budgets/", headers=auth_headers, json={
            "category_id": food["id"], "amount": 1000, "start_date": "2026-03-01",
        })
        assert response.status_code == 201, response.text
        budget = response.json()
        assert budget["end_date"] == "2026-03-31"
        assert budget["spent"] == 0.0

        client.post(f"{API}/transactions/", headers=auth_headers, json={
            "category_id": food["id"], "wallet_id": wallet["id"], "amount": 900,
            "transaction_date": "2026-03-10T12:00:00",
        })

        budgets = client.get(f"{API}/budgets/", headers=auth_headers).json()
        assert budgets[0]["percentage"] == 90.0
        assert budgets[0]["is_warning"] is True

        assert client.get(f"{API}/notifications/unread-count", headers=auth_headers).json() == {"count": 1}
        notifications = client.get(f"{API}/notifications/", headers=auth_headers).json()
        assert notifications[0]["type"] == "BUDGET_WARNING"

        read = client.put(f"{API}/notifications/{notifications[0]['id']}/read", headers=auth_headers)
        assert read.json()["is_read"] is True
        assert client.delete(f"{API}/notifications/", headers=auth_headers).json()["deleted"] == 1

    def test_overlapping_budget_is_400(self, client, auth_headers):
        food = create_category(client, auth_headers, "Food", "out")
        body = {"category_id": food["id"], "amount": 100, "start_date": "2026-03-01"}
        assert client.post(f"{API}/budgets/", headers=auth_headers, json=body).status_code == 201
        assert client.post(f"{API}/budgets/", headers=auth_headers, json=body).status_code == 400

    def test_alert_uses_local_date_of_the_expense(self, client, auth_headers):
        wallet = create_wallet(client, auth_headers, balance=5000)
        food = create_category(client, auth_headers, "Food", "out")
        client.post(f"{API}/budgets/", headers=auth_headers, json={
            "category_id": food["id"], "amount": 100, "start_date": "2026-11-01",
        })

        # Stored as 2026-10-31T19:00 UTC
        response = client.post(f"{API}/transactions/", headers=auth_headers, json={
            "category_id": food["id"], "wallet_id": wallet["id"], "amount": 150,
            "transaction_date": "2026-11-01T02:00:00+07:00",
        })
        assert response.status_code == 201, response.text

        notifications = client.get(f"{API}/notifications/", headers=auth_headers).json()
        assert [n["type"] for n in notifications] == ["BUDGET_EXCEEDED"]

        listing = client.get(f"{API}/transactions/", headers=auth_headers,
                             params={"start_date": "2026-11-01", "end_date": "2026-11-01"}).json()
        assert listing["pagination"]["total"] == 1

    def test_deleting_budget_removes_its_notifications(self, client, auth_headers):
        wallet = create_wallet(client, auth_headers, balance=5000)
        food = create_category(client, auth_headers, "Food", "out")
        budget = client.post(f"{API}/budgets/", headers=auth_headers, json={
            "category_id": food["id"], "amount": 100, "start_date": "2026-03-01",
        }).json()
        client.post(f"{API}/transactions/", headers=auth_headers, json={
            "category_id": food["id"], "wallet_id": wallet["id"], "amount": 150,
            "transaction_date": "2026-03-02T08:00:00",
        })
        notifications = client.get(f"{API}/notifications/", headers=auth_headers).json()
        assert [n["type"] for n in notifications] == ["BUDGET_EXCEEDED"]

        assert client.delete(f"{API}/budgets/{budget['id']}", headers=auth_headers).status_code == 200
        assert client.get(f"{API}/notifications/", headers=auth_headers).json() == []


class TestSavingsGoalsApi:

    def test_worked_example(self, client, auth_headers):
        a = create_wallet(client, auth_headers, "A", 100000)
        b = create_wallet(client, auth_headers, "B", 0)
        goal = client.post(f"{API}/savings-goals/", headers=auth_headers,
                           json={"name": "Laptop", "target_amount": 50000}).json()

        client.post(f"{API}/wallets/transfer", headers=auth_headers,
                    json={"from_wallet_id": a["id"], "to_wallet_id": b["id"], "amount": 30000})
        response = client.post(f"{API}/savings-goals/{goal['id']}/contribute", headers=auth_headers,
                               json={"wallet_id": a["id"], "amount": 20000})
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["wallet"]["balance"] == 50000.0
        assert body["goal"]["current_amount"] == 20000.0
        assert body["goal"]["percentage"] == 40
        assert body["goal"]["status"] == "active"

        response = client.post(f"{API}/savings-goals/{goal['id']}/withdraw", headers=auth_headers,
                               json={"wallet_id": a["id"], "amount": 20000})
        body = response.json()
        assert body["wallet"]["balance"] == 70000.0
        assert body["goal"]["current_amount"] == 0.0
        assert body["goal"]["withdrawn_amount"] == 20000.0

        assert client.get(f"{API}/wallets/{b['id']}", headers=auth_headers).json()["balance"] == 30000.0
        history = client.get(f"{API}/savings-goals/{goal['id']}/transactions", headers=auth_headers).json()
        assert [t["category_name"] for t in history] == ["Rút tiết kiệm", "Tiết kiệm"]

    def test_milestone_and_completion_notifications(self, client, auth_headers):
        wallet = create_wallet(client, auth_headers, balance=1000)
        goal = client.post(f"{API}/savings-goals/", headers=auth_headers,
                           json={"name": "Bike", "target_amount": 100}).json()

        client.post(f"{API}/savings-goals/{goal['id']}/contribute", headers=auth_headers,
                    json={"wallet_id": wallet["id"], "amount": 60})
        types = [n["type"] for n in client.get(f"{API}/notifications/", headers=auth_headers).json()]
        assert types == ["SAVINGS_MILESTONE"]

        response = client.post(f"{API}/savings-goals/{goal['id']}/contribute", headers=auth_headers,
                               json={"wallet_id": wallet["id"], "amount": 40})
        assert response.json()["goal"]["status"] == "completed"
        types = [n["type"] for n in client.get(f"{API}/notifications/", headers=auth_headers).json()]
        assert types == ["SAVINGS_COMPLETED"]

        response = client.post(f"{API}/savings-goals/{goal['id']}/contribute", headers=auth_headers,
                               json={"wallet_id": wallet["id"], "amount": 1})
        assert response.status_code == 400

    def test_goal_with_money_cannot_be_deleted(self, client, auth_headers):
        wallet = create_wallet(client, auth_headers, balance=1000)
        goal = client.post(f"{API}/savings-goals/", headers=auth_headers,
                           json={"name": "Trip", "target_amount": 500}).json()
        client.post(f"{API}/savings-goals/{goal['id']}/contribute", headers=auth_headers,
                    json={"wallet_id": wallet["id"], "amount": 100})

        assert client.delete(f"{API}/savings-goals/{goal['id']}", headers=auth_headers).status_code == 400

        client.post(f"{API}/savings-goals/{goal['id']}/withdraw", headers=auth_headers,
                    json={"wallet_id": wallet["id"], "amount": 100})
        assert client.delete(f"{API}/savings-goals/{goal['id']}", headers=auth_headers).status_code == 200
        assert client.get(f"{API}/savings-goals/{goal['id']}", headers=auth_headers).status_code == 404


class TestReadModels:

    def test_statistics_and_dashboard(self, client, auth_headers):
        wallet = create_wallet(client, auth_headers, balance=1000)
        salary = create_category(client, auth_headers, "Salary", "in")
        client.post(f"{API}/transactions/", headers=auth_headers, json={
            "category_id": salary["id"], "wallet_id": wallet["id"], "amount": 500,
            "transaction_date": "2026-05-05T09:00:00",
        })

        stats = client.get(f"{API}/statistics/", headers=auth_headers, params={"year": 2026}).json()
        assert stats["summary"]["total_income"] == 500.0
        assert stats["time_series"][4]["income"] == 500.0

        dashboard = client.get(f"{API}/dashboard/", headers=auth_headers).json()
        assert dashboard["user"]["username"] == "carol"
        assert dashboard["pagination"]["total"] == 1
        assert [c["name"] for c in dashboard["categories"]] == ["Salary"]
        assert dashboard["wallets"][0]["balance"] == 1500.0
        assert "budget_alerts" in dashboard

    @pytest.mark.parametrize("year", [0, 9999])
    def test_statistics_year_out_of_range_is_422(self, client, auth_headers, year):
        response = client.get(f"{API}/statistics/", headers=auth_headers, params={"year": year})
        assert response.status_code == 422
