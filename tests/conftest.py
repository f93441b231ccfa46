"""Pytest configuration and fixtures."""

import os
import time
from collections.abc import Generator
from contextlib import ExitStack
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from jose import jwt

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-for-unit-tests"
os.environ.setdefault("DELIVERY_FEE", "20")

TEST_JWT_SECRET = os.environ["SUPABASE_JWT_SECRET"]

SUPABASE_CLIENT_TARGETS = (
    "src.core.supabase.get_supabase_client",
    "src.services.order_service.get_supabase_client",
    "src.services.loyalty_service.get_supabase_client",
    "src.services.product_service.get_supabase_client",
    "src.services.feedback_service.get_supabase_client",
    "src.services.staff_service.get_supabase_client",
)

QUERY_OPERATIONS = ("select", "insert", "update", "delete", "upsert")
QUERY_FILTERS = ("eq", "neq", "gte", "lte", "in_", "order", "limit")


def make_response(data: Any) -> MagicMock:
    """Build a PostgREST-style response object."""
    response = MagicMock()
    response.data = data
    return response


def _sequence(results: tuple[Any, ...]) -> Any:
    """Return successive results on each call, repeating the last one.

    Exception instances are raised instead of returned.
    """
    queue = list(results)

    def execute() -> MagicMock:
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(result, Exception):
            raise result
        return make_response(result)

    return execute


class SupabaseStub:
    """MagicMock Supabase client with responses per table and operation.

    ``client.table(name).<operation>(...)`` returns a query whose filter
    methods return the query itself, so any chain of ``eq``/``order``/...
    ends at the same ``execute`` mock. Unconfigured queries return no rows.
    """

    def __init__(self) -> None:
        self.client = MagicMock()
        self.tables: dict[str, MagicMock] = {}
        self.client.table.side_effect = self.table

    def table(self, name: str) -> MagicMock:
        if name not in self.tables:
            table = MagicMock(name=f"table:{name}")
            for operation in QUERY_OPERATIONS:
                query = getattr(table, operation).return_value
                for method in QUERY_FILTERS:
                    getattr(query, method).return_value = query
                query.execute.return_value = make_response([])
            self.tables[name] = table
        return self.tables[name]

    def query(self, table: str, operation: str) -> MagicMock:
        return getattr(self.table(table), operation).return_value

    def respond(self, table: str, operation: str, *results: Any) -> None:
        """Queue the data returned by successive ``execute()`` calls."""
        self.query(table, operation).execute.side_effect = _sequence(results)


@pytest.fixture
def supabase_stub() -> Generator[SupabaseStub, None, None]:
    """Provide a Supabase stub patched into every service module.

    Yields:
        SupabaseStub: Stub whose ``client`` services receive.
    """
    stub = SupabaseStub()
    with ExitStack() as stack:
        for target in SUPABASE_CLIENT_TARGETS:
            stack.enter_context(patch(target, return_value=stub.client))
        yield stub


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from src.core.config import get_settings

    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


@pytest.fixture
def client(supabase_stub: SupabaseStub) -> Generator[TestClient, None, None]:
    """Provide a test client for the FastAPI application.

    Yields:
        TestClient: FastAPI test client backed by the Supabase stub.
    """
    from src.main import app

    with TestClient(app) as test_client:
        yield test_client


def create_test_token(
    sub: str = "550e8400-e29b-41d4-a716-446655440000",
    email: str = "asha@example.com",
    role: str | None = None,
) -> str:
    """Create a Supabase-style access token signed with the test secret."""
    now = int(time.time())
    payload: dict[str, Any] = {
        "sub": sub,
        "email": email,
        "role": "authenticated",
        "aud": "authenticated",
        "app_metadata": {"role": role} if role else {},
        "exp": now + 3600,
        "iat": now,
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


@pytest.fixture
def customer_headers() -> dict[str, str]:
    """Authorization headers for a regular customer."""
    return {"Authorization": f"Bearer {create_test_token()}"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Authorization headers for an admin."""
    token = create_test_token(
        sub="660e8400-e29b-41d4-a716-446655440000",
        email="owner@freshjuice.example",
        role="admin",
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for() -> Any:
    """Factory fixture building Authorization headers for any email/role."""

    def build(email: str, role: str | None = None) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_test_token(email=email, role=role)}"}

    return build


def order_row(
    order_id: str = "OJ-123456",
    product_id: str = "p-orange",
    product_name: str = "Orange Juice",
    quantity: int = 2,
    unit_price: str = "100",
    status: str = "received",
    line_id: int = 1,
    **overrides: Any,
) -> dict[str, Any]:
    """Build one stored ``orders`` line row."""
    row = {
        "id": line_id,
        "order_id": order_id,
        "customer_name": "Asha Rao",
        "customer_email": "asha@example.com",
        "phone": "9876543210",
        "address": "12 MG Road, Pune",
        "product_id": product_id,
        "product_name": product_name,
        "quantity": quantity,
        "unit_price": unit_price,
        "line_total": str(int(unit_price) * quantity),
        "payment_mode": "cash",
        "payment_status": "cod",
        "payment_reference": None,
        "status": status,
        "created_at": "2026-10-01T10:00:00+00:00",
        "updated_at": "2026-10-01T10:00:00+00:00",
    }
    row.update(overrides)
    return row


@pytest.fixture
def make_order_row() -> Any:
    """Factory fixture for stored order line rows."""
    return order_row
