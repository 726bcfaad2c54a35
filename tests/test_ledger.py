"""
Tests for posting transactions to the ledger.

These tests verify:
  - Credit types increase the balance, debit types decrease it
  - Each entry has exactly one of credit / debit populated
  - Debits larger than the balance are rejected and leave no entry
  - A debit of exactly the balance is allowed (balance becomes 0.00)
  - Bad amounts, types, expenses and accounts are rejected up front
  - cash_in_bank == opening balance + credits - debits after any sequence
  - Amounts and balances stay within DECIMAL(18, 2)
  - Ledger entries cannot be modified or deleted
  - Posting and listing report the same UTC timestamps
"""

from datetime import date

import pytest
from sqlalchemy import select

from cashbook.exceptions import ImmutableRecordError
from cashbook.models import LedgerEntry


async def _entries(client, account_code: int) -> list[dict]:
    response = await client.get(f"/transactions?account_code={account_code}")
    return response.json()["transactions"]


class TestCredit:

    async def test_credit_increases_balance(self, authenticated_client, create_account, post, seed):
        account = await create_account(authenticated_client, opening_balance="100.00")

        response = await post(
            authenticated_client, account["code"], "Cash Deposit", "50.00", notes="Float"
        )
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "success"
        assert data["cash_in_bank"] == "150.00"

        txn = data["transaction"]
        assert txn["credit"] == "50.00"
        assert txn["debit"] is None
        assert txn["notes"] == "Float"
        assert txn["particular"] == "Cash Deposit"
        assert txn["user_code"] == seed.user_code
        # date and time come from the same instant
        assert data["date"] == txn["date"]
        assert data["time"] == txn["time"]
        assert txn["posted_at"].startswith(txn["date"])

    async def test_credits_accumulate(self, authenticated_client, create_account, post):
        account = await create_account(authenticated_client)
        await post(authenticated_client, account["code"], "Cash Deposit", "30.00")
        response = await post(authenticated_client, account["code"], "Cash Deposit", "20.25")
        assert response.json()["cash_in_bank"] == "50.25"


class TestDebit:

    async def test_debit_decreases_balance(self, authenticated_client, create_account, post):
        account = await create_account(authenticated_client, opening_balance="100.00")

        response = await post(authenticated_client, account["code"], "Cash Withdrawal", "30.00")
        assert response.status_code == 201
        data = response.json()
        assert data["cash_in_bank"] == "70.00"
        assert data["transaction"]["debit"] == "30.00"
        assert data["transaction"]["credit"] is None

    async def test_insufficient_balance_rejected_without_entry(
        self, authenticated_client, create_account, post
    ):
        account = await create_account(authenticated_client, opening_balance="50.00")

        response = await post(authenticated_client, account["code"], "Cash Withdrawal", "100.00")
        assert response.status_code == 400
        body = response.json()
        assert body["status"] == "error"
        assert body["message"] == "Insufficient balance"
        assert body["requested_cents"] == 10000
        assert body["available_cents"] == 5000

        assert await _entries(authenticated_client, account["code"]) == []
        balance = await authenticated_client.get(f"/accounts/{account['code']}/balance")
        assert balance.json()["cached_balance"] == "50.00"

    async def test_debit_of_exact_balance(self, authenticated_client, create_account, post):
        account = await create_account(authenticated_client, opening_balance="42.10")

        response = await post(authenticated_client, account["code"], "Cash Withdrawal", "42.10")
        assert response.status_code == 201
        assert response.json()["cash_in_bank"] == "0.00"

    async def test_debit_with_expense_category(self, authenticated_client, create_account, post, seed):
        account = await create_account(authenticated_client, opening_balance="100.00")

        response = await post(
            authenticated_client, account["code"], "Cash Withdrawal", "12.00",
            expense_code=seed.electricity,
        )
        assert response.status_code == 201

        entries = await _entries(authenticated_client, account["code"])
        assert entries[0]["expense"] == "Electricity"


class TestValidation:
    """Every rejection happens before anything is written."""

    @pytest.mark.parametrize("amount", ["0", "-5.00", "10.005", "abc"])
    async def test_invalid_amount(self, authenticated_client, create_account, post, amount):
        account = await create_account(authenticated_client, opening_balance="100.00")

        response = await post(authenticated_client, account["code"], "Cash Deposit", amount)
        assert response.status_code == 400
        assert response.json()["status"] == "error"
        assert await _entries(authenticated_client, account["code"]) == []

    async def test_empty_transaction_type(self, authenticated_client, create_account, post):
        account = await create_account(authenticated_client)
        response = await post(authenticated_client, account["code"], "   ", "10.00")
        assert response.status_code == 400

    async def test_unknown_transaction_type(self, authenticated_client, create_account, post):
        account = await create_account(authenticated_client)
        response = await post(authenticated_client, account["code"], "Lottery Win", "10.00")
        assert response.status_code == 404

    async def test_unknown_expense(self, authenticated_client, create_account, post):
        account = await create_account(authenticated_client, opening_balance="100.00")
        response = await post(
            authenticated_client, account["code"], "Cash Withdrawal", "10.00", expense_code=9999
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid ExpensesCode"

    async def test_unknown_account(self, authenticated_client, post):
        response = await post(authenticated_client, 9999, "Cash Deposit", "10.00")
        assert response.status_code == 404
        assert response.json()["message"] == "Account not found"

    async def test_amount_too_large(self, authenticated_client, create_account, post):
        account = await create_account(authenticated_client)

        response = await post(
            authenticated_client, account["code"], "Cash Deposit", "100000000000000000000"
        )
        assert response.status_code == 400
        assert response.json() == {
            "status": "error",
            "message": "Amount cannot exceed 9999999999999999.99",
            "error_type": "validation_error",
        }
        assert await _entries(authenticated_client, account["code"]) == []

    async def test_credit_cannot_push_balance_past_maximum(
        self, authenticated_client, create_account, post
    ):
        account = await create_account(authenticated_client, opening_balance="9999999999999999.00")

        response = await post(authenticated_client, account["code"], "Cash Deposit", "0.99")
        assert response.status_code == 201
        assert response.json()["cash_in_bank"] == "9999999999999999.99"

        response = await post(authenticated_client, account["code"], "Cash Deposit", "0.01")
        assert response.status_code == 400
        assert response.json()["message"] == "Transaction would exceed the maximum account balance"

        balance = (await authenticated_client.get(f"/accounts/{account['code']}/balance")).json()
        assert balance["cached_balance"] == "9999999999999999.99"
        assert balance["match"] is True
        assert len(await _entries(authenticated_client, account["code"])) == 1


class TestLedgerInvariant:

    async def test_balance_equals_opening_plus_credits_minus_debits(
        self, authenticated_client, create_account, post
    ):
        account = await create_account(authenticated_client, opening_balance="20.00")
        steps = [
            ("Cash Deposit", "100.00"),
            ("Cash Withdrawal", "35.50"),
            ("Cash Withdrawal", "500.00"),  # rejected
            ("Cash Deposit", "0.75"),
            ("Cash Withdrawal", "85.25"),
        ]
        for particular, amount in steps:
            await post(authenticated_client, account["code"], particular, amount)

        balance = (await authenticated_client.get(f"/accounts/{account['code']}/balance")).json()
        assert balance["cached_balance"] == "0.00"
        assert balance["computed_balance"] == "0.00"
        assert balance["match"] is True
        assert len(await _entries(authenticated_client, account["code"])) == 4

    async def test_entries_cannot_be_updated(self, authenticated_client, create_account, post, store):
        account = await create_account(authenticated_client)
        await post(authenticated_client, account["code"], "Cash Deposit", "10.00")

        async with store.session() as session:
            entry = (await session.execute(select(LedgerEntry))).scalar_one()
            entry.credit_cents = 99999
            with pytest.raises(ImmutableRecordError):
                await session.flush()
            await session.rollback()

    async def test_entries_cannot_be_deleted(self, authenticated_client, create_account, post, store):
        account = await create_account(authenticated_client)
        await post(authenticated_client, account["code"], "Cash Deposit", "10.00")

        async with store.session() as session:
            entry = (await session.execute(select(LedgerEntry))).scalar_one()
            await session.delete(entry)
            with pytest.raises(ImmutableRecordError):
                await session.flush()
            await session.rollback()


class TestLedgerRead:

    async def test_list_with_display_columns(self, authenticated_client, create_account, post):
        account = await create_account(authenticated_client)
        await post(authenticated_client, account["code"], "Cash Deposit", "10.00")
        await post(authenticated_client, account["code"], "Cash Withdrawal", "4.00")

        entries = await _entries(authenticated_client, account["code"])
        assert len(entries) == 2
        # Newest first
        assert entries[0]["particular"] == "Cash Withdrawal"
        assert entries[1]["particular"] == "Cash Deposit"
        assert entries[0]["account_no"] == "SAV001 Main St ABC Bank"
        assert entries[0]["branch_address"] == "Main St"
        assert entries[0]["bank_name"] == "ABC Bank"

    async def test_posted_and_listed_timestamps_match(self, authenticated_client, create_account, post):
        account = await create_account(authenticated_client)
        posted = (await post(authenticated_client, account["code"], "Cash Deposit", "10.00")).json()

        listed = (await _entries(authenticated_client, account["code"]))[0]
        for field in ("posted_at", "date", "time"):
            assert listed[field] == posted["transaction"][field]
        assert posted["transaction"]["posted_at"].endswith(("Z", "+00:00"))

    async def test_filter_by_account_and_limit(self, authenticated_client, create_account, post):
        first = await create_account(authenticated_client, prefix="A1")
        second = await create_account(authenticated_client, prefix="A2")
        for _ in range(3):
            await post(authenticated_client, first["code"], "Cash Deposit", "1.00")
        await post(authenticated_client, second["code"], "Cash Deposit", "1.00")

        assert len(await _entries(authenticated_client, first["code"])) == 3
        everything = await authenticated_client.get("/transactions")
        assert len(everything.json()["transactions"]) == 4
        limited = await authenticated_client.get("/transactions?limit=2")
        assert len(limited.json()["transactions"]) == 2

    async def test_filter_by_date_range(self, authenticated_client, create_account, post):
        account = await create_account(authenticated_client)
        response = await post(authenticated_client, account["code"], "Cash Deposit", "1.00")
        posted_on = date.fromisoformat(response.json()["date"])

        same_day = await authenticated_client.get(
            f"/transactions?start_date={posted_on}&end_date={posted_on}"
        )
        assert len(same_day.json()["transactions"]) == 1
        before = await authenticated_client.get("/transactions?end_date=2000-01-01")
        assert before.json()["transactions"] == []
        after = await authenticated_client.get("/transactions?start_date=2999-01-01")
        assert after.json()["transactions"] == []

    async def test_years(self, authenticated_client, create_account, post):
        empty = await authenticated_client.get("/transactions/years")
        assert empty.json()["years"] == []

        account = await create_account(authenticated_client)
        response = await post(authenticated_client, account["code"], "Cash Deposit", "1.00")
        year = int(response.json()["date"][:4])

        years = await authenticated_client.get("/transactions/years")
        assert years.json()["years"] == [year]

    async def test_transaction_types(self, authenticated_client):
        response = await authenticated_client.get("/transactions/types")
        assert response.status_code == 200
        types = {t["name"]: t["credit"] for t in response.json()["types"]}
        assert types == {"Cash Deposit": True, "Cash Withdrawal": False}
