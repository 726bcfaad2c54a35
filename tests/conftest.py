"""
Test fixtures for the Cashbook API test suite.

This module provides shared fixtures used across all test files:

  - store: A StoreProvider on a fresh SQLite file in tmp_path
  - seed: Users, banks, branches, transaction types and expense categories
  - client: Async HTTP test client (unauthenticated)
  - authenticated_client: Test client carrying a regular user's JWT
  - admin_client: Test client carrying an admin user's JWT
  - create_account / post: Small helpers that drive the API

Key design decisions:
  - A file-backed database (not in-memory) so that every session gets its
    own connection; concurrent requests then really contend for the
    database lock the way two server workers would.
  - We override FastAPI's get_store dependency to inject the test provider,
    so get_db() and the auth dependency run exactly as in production.
  - Reference data is inserted directly through a session, since the
    API has no endpoints for users, banks or chart-of-accounts entries.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402

from cashbook.database import StoreProvider, get_store  # noqa: E402
from cashbook.main import app  # noqa: E402
from cashbook.models import Bank, Branch, ExpenseCategory, Particular, User  # noqa: E402
from cashbook.security import create_access_token  # noqa: E402


def make_token(user_code: int, **claims) -> str:
    return create_access_token({"sub": str(user_code), **claims})


@pytest_asyncio.fixture
async def store(tmp_path):
    """A READY store provider on its own SQLite file, with all tables."""
    provider = StoreProvider(
        f"sqlite+aiosqlite:///{tmp_path / 'cashbook.db'}",
        reconnect_delay=0.05,
    )
    assert await provider.connect()
    await provider.create_all()
    yield provider
    await provider.dispose()


@pytest_asyncio.fixture
async def seed(store):
    """
    Reference data shared by most tests:

      ABC Bank ── Main St
               └─ North Ave
      XYZ Bank ── Main St

    plus a regular user, an admin, an inactive user, a credit type
    ("Cash Deposit"), a debit type ("Cash Withdrawal") and one expense
    category ("Electricity").
    """
    async with store.session() as session:
        user = User(name="Test User", login_name="tester")
        admin = User(name="Admin User", login_name="admin", is_admin=True)
        inactive = User(name="Gone User", login_name="gone", is_active=False)
        abc = Bank(name="ABC Bank")
        xyz = Bank(name="XYZ Bank")
        session.add_all([user, admin, inactive, abc, xyz])
        await session.flush()

        main_st = Branch(address="Main St", bank_code=abc.code)
        north_ave = Branch(address="North Ave", bank_code=abc.code)
        xyz_main = Branch(address="Main St", bank_code=xyz.code)
        deposit = Particular(particular="Cash Deposit", account_code="1001", credit=True)
        withdrawal = Particular(particular="Cash Withdrawal", account_code="2001", credit=False)
        electricity = ExpenseCategory(name="Electricity")
        session.add_all([main_st, north_ave, xyz_main, deposit, withdrawal, electricity])
        await session.flush()

        data = SimpleNamespace(
            user_code=user.code,
            admin_code=admin.code,
            inactive_code=inactive.code,
            abc=abc.code,
            xyz=xyz.code,
            main_st=main_st.code,
            north_ave=north_ave.code,
            xyz_main=xyz_main.code,
            deposit_id=deposit.id,
            withdrawal_id=withdrawal.id,
            electricity=electricity.code,
        )
        await session.commit()
    return data


@pytest_asyncio.fixture
async def client(store, seed):
    """
    Async HTTP test client with the test store injected.

    This overrides the get_store dependency so all requests hit the
    per-test database instead of the configured one.
    """
    app.dependency_overrides[get_store] = lambda: store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def authenticated_client(client, seed):
    """Test client with a regular user's bearer token."""
    client.headers["Authorization"] = f"Bearer {make_token(seed.user_code, login_name='tester')}"
    return client


@pytest_asyncio.fixture
async def admin_client(client, seed):
    """Test client with an admin user's bearer token (admin claim set)."""
    token = make_token(seed.admin_code, login_name="admin", admin=True)
    client.headers["Authorization"] = f"Bearer {token}"
    return client


@pytest.fixture
def create_account(seed):
    """
    Returns an async helper that opens an account through the API:

        account = await create_account(client, "SAV001", opening_balance="100.00")
    """

    async def _create(
        client,
        prefix: str = "SAV001",
        bank_code: int | None = None,
        branch_code: int | None = None,
        account_type: str = "Savings",
        opening_balance: str = "0",
    ) -> dict:
        response = await client.post(
            "/accounts",
            json={
                "bank_code": seed.abc if bank_code is None else bank_code,
                "branch_code": seed.main_st if branch_code is None else branch_code,
                "prefix": prefix,
                "account_type": account_type,
                "opening_balance": opening_balance,
            },
        )
        assert response.status_code == 201, f"Account creation failed: {response.text}"
        return response.json()["account"]

    return _create


@pytest.fixture
def post():
    """
    Returns an async helper that posts a transaction and returns the
    raw response:

        response = await post(client, account["code"], "Cash Deposit", "50.00")
    """

    async def _post(client, account_code: int, particular: str, amount, **extra):
        return await client.post(
            "/transactions",
            json={
                "account_code": account_code,
                "particular": particular,
                "amount": amount,
                **extra,
            },
        )

    return _post
