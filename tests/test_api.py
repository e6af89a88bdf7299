import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
from main import app, get_db


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def login(client: TestClient, email: str) -> dict[str, str]:
    resp = client.post("/api/login", json={"email": email, "password": "secret"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['token']}"}


def test_requests_without_session_are_unauthenticated(client: TestClient) -> None:
    client.cookies.clear()
    assert client.get("/api/dashboard/stats").status_code == 401
    assert client.get("/api/transactions").status_code == 401
    assert client.post("/api/sales", json={}).status_code == 401


def test_login_is_stable_per_email_and_sets_cookie(client: TestClient) -> None:
    first = client.post("/api/login", json={"email": "shop@example.com", "password": "x"})
    second = client.post("/api/login", json={"email": "SHOP@example.com", "password": "y"})

    assert first.json()["user"]["id"] == second.json()["user"]["id"]
    assert "session" in client.cookies
    me = client.get("/api/auth/user")
    assert me.status_code == 200
    assert me.json()["email"] == "shop@example.com"


def test_blank_login_email_is_rejected_after_stripping(client: TestClient) -> None:
    resp = client.post("/api/login", json={"email": "   ", "password": "x"})
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "email"

    padded = client.post(
        "/api/login", json={"email": "  pad@example.com ", "password": "x"}
    )
    assert padded.json()["user"]["email"] == "pad@example.com"


def test_sale_crud_over_http(client: TestClient) -> None:
    headers = login(client, "a@example.com")

    created = client.post(
        "/api/sales",
        json={"amount": "100", "category": "retail", "date": "2024-01-10"},
        headers=headers,
    )
    assert created.status_code == 200
    body = created.json()
    assert body["amount"] == "100.00"
    assert body["notes"] is None
    assert {"id", "userId", "createdAt", "updatedAt"} <= set(body)

    updated = client.put(
        f"/api/sales/{body['id']}", json={"notes": "Till 2"}, headers=headers
    )
    assert updated.status_code == 200
    assert updated.json()["notes"] == "Till 2"
    assert updated.json()["amount"] == "100.00"

    listed = client.get(
        "/api/sales",
        params={"startDate": "2024-01-01", "endDate": "2024-01-31"},
        headers=headers,
    )
    assert [s["id"] for s in listed.json()] == [body["id"]]

    deleted = client.delete(f"/api/sales/{body['id']}", headers=headers)
    assert deleted.json() == {"message": "Sale deleted successfully"}
    assert client.get(f"/api/sales/{body['id']}", headers=headers).status_code == 404


def test_invalid_payload_returns_field_errors(client: TestClient) -> None:
    headers = login(client, "a@example.com")

    resp = client.post(
        "/api/expenses",
        json={"amount": "abc", "type": "", "date": "2024-01-10"},
        headers=headers,
    )

    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid expense data"
    assert sorted(err["field"] for err in resp.json()["errors"]) == ["amount", "type"]
    assert client.get("/api/expenses", headers=headers).json() == []


def test_foreign_rows_are_not_found(client: TestClient) -> None:
    owner = login(client, "owner@example.com")
    intruder = login(client, "intruder@example.com")
    expense = client.post(
        "/api/expenses",
        json={"amount": "30", "type": "rent", "date": "2024-01-10"},
        headers=owner,
    ).json()

    assert client.delete(f"/api/expenses/{expense['id']}", headers=intruder).status_code == 404
    assert (
        client.put(
            f"/api/expenses/{expense['id']}", json={"amount": "1"}, headers=intruder
        ).status_code
        == 404
    )
    assert len(client.get("/api/expenses", headers=owner).json()) == 1


def test_dashboard_stats_and_transactions(client: TestClient) -> None:
    headers = login(client, "a@example.com")
    client.post(
        "/api/sales",
        json={"amount": "100.00", "category": "retail", "date": "2024-01-10"},
        headers=headers,
    )
    client.post(
        "/api/expenses",
        json={"amount": "30.00", "type": "rent", "date": "2024-01-10", "description": "Rent"},
        headers=headers,
    )

    stats = client.get(
        "/api/dashboard/stats", params={"asOf": "2024-01-10T12:00:00Z"}, headers=headers
    )
    assert stats.status_code == 200
    assert stats.json() == {
        "todaySales": "100.00",
        "todayExpenses": "30.00",
        "thisWeekSales": "100.00",
        "thisWeekExpenses": "30.00",
        "expensesByCategory": [{"category": "rent", "amount": "30.00"}],
        "salesTrend": [{"date": "2024-01-10", "amount": "100.00"}],
    }

    txns = client.get("/api/transactions", params={"type": "expense"}, headers=headers)
    assert txns.status_code == 200
    assert [(t["type"], t["category"], t["description"]) for t in txns.json()] == [
        ("expense", "rent", "Rent")
    ]
    assert set(txns.json()[0]) == {
        "id",
        "type",
        "amount",
        "category",
        "date",
        "description",
        "createdAt",
    }

    bad = client.get("/api/transactions", params={"type": "refund"}, headers=headers)
    assert bad.status_code == 400
    half = client.get("/api/transactions", params={"startDate": "2024-01-01"}, headers=headers)
    assert half.status_code == 400


def test_bad_as_of_is_invalid_input(client: TestClient) -> None:
    headers = login(client, "a@example.com")
    resp = client.get("/api/dashboard/stats", params={"asOf": "soon"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "asOf"


def test_logout_clears_the_session_cookie(client: TestClient) -> None:
    client.post("/api/login", json={"email": "a@example.com", "password": "x"})
    assert client.get("/api/auth/user").status_code == 200

    client.post("/api/logout")

    assert client.get("/api/auth/user").status_code == 401
