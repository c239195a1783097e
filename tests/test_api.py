"""
Tests for the HTTP API.

Runs the FastAPI app with an in-memory database through TestClient.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from finance_tracker.config import DatabaseSettings, Settings, get_settings
from finance_tracker.orchestrator import create_app_components
from finance_tracker.services.storage import Database

from tests.conftest import MEMORY_URL


PASSWORD = "correct-horse"


@pytest.fixture
def client():
    settings = get_settings()
    components = create_app_components(
        settings,
        database=Database(DatabaseSettings(url=MEMORY_URL)),
    )
    with TestClient(create_app(components, settings)) as test_client:
        yield test_client


def login(client: TestClient, email: str) -> dict:
    response = client.post("/api/auth/register", json={"email": email, "password": PASSWORD})
    assert response.status_code == 201
    response = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


def setup_books(client: TestClient, headers: dict, balance: str = "100.00") -> tuple[str, str]:
    account = client.post(
        "/api/accounts",
        json={"name": "Wallet", "accountType": "Cash", "balance": balance},
        headers=headers,
    )
    category = client.post("/api/categories", json={"name": "Food"}, headers=headers)
    assert account.status_code == 201
    assert category.status_code == 201
    return account.json(), category.json()


def book(client, headers, account_id, category_id, amount, **extra):
    return client.post(
        "/api/transactions",
        json={
            "accountId": account_id,
            "categoryId": category_id,
            "amount": amount,
            "timestamp": "2026-05-01T18:30:00",
            **extra,
        },
        headers=headers,
    )


def balance(client, headers) -> Decimal:
    [account] = client.get("/api/accounts", headers=headers).json()
    return Decimal(str(account["balance"]))


class TestAuthEndpoints:
    """Tests for /api/auth."""

    def test_login_returns_token(self, client):
        """Test a successful login."""
        client.post("/api/auth/register", json={"email": "hana@finance.io", "password": PASSWORD})

        response = client.post("/api/auth/login", json={"email": "hana@finance.io", "password": PASSWORD})

        body = response.json()
        assert response.status_code == 200
        assert body["email"] == "hana@finance.io"
        assert body["token"]
        assert "expiresAt" in body

    def test_bad_password_is_401(self, client):
        """Test a failed login."""
        client.post("/api/auth/register", json={"email": "hana@finance.io", "password": PASSWORD})

        response = client.post("/api/auth/login", json={"email": "hana@finance.io", "password": "nope"})

        assert response.status_code == 401
        assert response.json()["title"] == "Authentication Failed"

    def test_duplicate_registration_is_400(self, client):
        """Test that an email is registered once."""
        payload = {"email": "hana@finance.io", "password": PASSWORD}
        assert client.post("/api/auth/register", json=payload).status_code == 201
        assert client.post("/api/auth/register", json=payload).status_code == 400

    def test_missing_token_is_401(self, client):
        """Test that protected endpoints need a bearer token."""
        response = client.get("/api/transactions")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_invalid_token_is_401(self, client):
        """Test that a forged token is refused."""
        response = client.get("/api/accounts", headers={"Authorization": "Bearer forged"})

        assert response.status_code == 401


class TestTransactionEndpoints:
    """Tests for /api/transactions."""

    def test_create_updates_balance(self, client):
        """Test the full create path."""
        headers = login(client, "ivan@finance.io")
        account_id, category_id = setup_books(client, headers)

        response = book(client, headers, account_id, category_id, "20.00", notes="Salary bonus")

        assert response.status_code == 201
        assert balance(client, headers) == Decimal("120.00")

    def test_list_has_operation_type(self, client):
        """Test the list shape."""
        headers = login(client, "ivan@finance.io")
        account_id, category_id = setup_books(client, headers)
        transaction_id = book(client, headers, account_id, category_id, "-4.20").json()

        [item] = client.get("/api/transactions", headers=headers).json()

        assert item["id"] == transaction_id
        assert item["accountId"] == account_id
        assert item["categoryId"] == category_id
        assert item["operationType"] == "Expense"
        assert Decimal(str(item["amount"])) == Decimal("-4.20")

    def test_update_and_delete(self, client):
        """Test update delta and delete reversal over HTTP."""
        headers = login(client, "ivan@finance.io")
        account_id, category_id = setup_books(client, headers)
        transaction_id = book(client, headers, account_id, category_id, "50.00").json()

        response = client.put(
            "/api/transactions",
            json={
                "id": transaction_id,
                "accountId": account_id,
                "categoryId": category_id,
                "amount": "40.00",
                "timestamp": "2026-05-02T08:00:00",
            },
            headers=headers,
        )
        assert response.status_code == 200
        assert balance(client, headers) == Decimal("140.00")

        response = client.delete(f"/api/transactions/{transaction_id}", headers=headers)
        assert response.status_code == 200
        assert balance(client, headers) == Decimal("100.00")

    def test_zero_amount_is_400_with_field_errors(self, client):
        """Test validation problem details."""
        headers = login(client, "ivan@finance.io")
        account_id, category_id = setup_books(client, headers)

        response = book(client, headers, account_id, category_id, "0")

        assert response.status_code == 400
        assert "amount" in response.json()["errors"]
        assert balance(client, headers) == Decimal("100.00")

    def test_foreign_account_is_400(self, client):
        """Test that another user's account cannot be booked on."""
        owner = login(client, "ivan@finance.io")
        account_id, _ = setup_books(client, owner)
        intruder = login(client, "judy@finance.io")
        _, own_category = setup_books(client, intruder)

        response = book(client, intruder, account_id, own_category, "10.00")

        assert response.status_code == 400
        assert response.json()["detail"] == (
            "The specified account or category does not exist "
            "or you do not have permission to use it."
        )
        assert balance(client, owner) == Decimal("100.00")

    def test_foreign_delete_is_400(self, client):
        """Test that another user's transaction cannot be deleted."""
        owner = login(client, "ivan@finance.io")
        account_id, category_id = setup_books(client, owner)
        transaction_id = book(client, owner, account_id, category_id, "10.00").json()
        intruder = login(client, "judy@finance.io")

        response = client.delete(f"/api/transactions/{transaction_id}", headers=intruder)

        assert response.status_code == 400
        assert balance(client, owner) == Decimal("110.00")


class TestAccountAndCategoryEndpoints:
    """Tests for /api/accounts and /api/categories."""

    def test_category_in_use_is_409(self, client):
        """Test that a referenced category cannot be deleted."""
        headers = login(client, "kim@finance.io")
        account_id, category_id = setup_books(client, headers)
        book(client, headers, account_id, category_id, "10.00")

        response = client.delete(f"/api/categories/{category_id}", headers=headers)

        assert response.status_code == 409
        assert len(client.get("/api/categories", headers=headers).json()) == 1

    def test_account_update_overrides_balance(self, client):
        """Test the absolute balance override."""
        headers = login(client, "kim@finance.io")
        account_id, category_id = setup_books(client, headers)
        book(client, headers, account_id, category_id, "10.00")

        response = client.put(
            "/api/accounts",
            json={"id": account_id, "name": "Wallet", "accountType": "Bank", "balance": "7.00"},
            headers=headers,
        )

        assert response.status_code == 200
        assert balance(client, headers) == Decimal("7.00")

    def test_account_delete_cascades(self, client):
        """Test that an account takes its transactions with it."""
        headers = login(client, "kim@finance.io")
        account_id, category_id = setup_books(client, headers)
        book(client, headers, account_id, category_id, "10.00")

        assert client.delete(f"/api/accounts/{account_id}", headers=headers).status_code == 200
        assert client.get("/api/transactions", headers=headers).json() == []
        assert client.delete(f"/api/categories/{category_id}", headers=headers).status_code == 200

    def test_get_single_account(self, client):
        """Test reading one owned account by id."""
        headers = login(client, "kim@finance.io")
        account_id, category_id = setup_books(client, headers)
        book(client, headers, account_id, category_id, "-2.50")

        response = client.get(f"/api/accounts/{account_id}", headers=headers)

        body = response.json()
        assert response.status_code == 200
        assert body["id"] == account_id
        assert body["accountType"] == "Cash"
        assert Decimal(str(body["balance"])) == Decimal("97.50")

    def test_get_foreign_account_is_404(self, client):
        """Test that another user's account reads as missing."""
        owner = login(client, "kim@finance.io")
        account_id, _ = setup_books(client, owner)
        intruder = login(client, "lee@finance.io")

        response = client.get(f"/api/accounts/{account_id}", headers=intruder)

        assert response.status_code == 404
        assert response.json()["title"] == "Account Not Found"

    def test_balance_at_money_limit(self, client):
        """Test the largest balance and a booking that would overflow it."""
        headers = login(client, "kim@finance.io")
        account_id, category_id = setup_books(client, headers, balance="9999999999999999.99")

        response = book(client, headers, account_id, category_id, "0.01")

        assert response.status_code == 400
        assert response.json()["title"] == "Balance Out Of Range"
        assert balance(client, headers) == Decimal("9999999999999999.99")
        assert client.get("/api/transactions", headers=headers).json() == []


class TestHealthEndpoint:
    """Tests for /api/health."""

    def test_health_needs_no_token(self, client):
        """Test the health payload."""
        response = client.get("/api/health")

        body = response.json()
        assert response.status_code == 200
        assert body["isHealthy"] is True
        assert body["databaseVersion"].startswith("SQLite")


class TestStartupSettings:
    """Tests for configuration checks in create_app."""

    def test_invalid_settings_refuse_to_start(self, monkeypatch):
        """Test that an invalid group is named and the app is not built."""
        monkeypatch.setenv("JWT_SECRET_KEY", "too-short")

        with pytest.raises(RuntimeError, match="jwt"):
            create_app(settings=Settings())

    def test_debug_mode_reaches_the_app(self, monkeypatch):
        """Test that DEBUG_MODE switches FastAPI's debug flag."""
        monkeypatch.setenv("DEBUG_MODE", "true")
        settings = Settings()
        components = create_app_components(
            settings,
            database=Database(DatabaseSettings(url=MEMORY_URL)),
        )

        assert create_app(components, settings).debug is True
