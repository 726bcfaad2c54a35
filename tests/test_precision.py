"""
Tests for decimal-to-cent precision: no floating point anywhere.

Amounts enter and leave the API as two-decimal strings and are stored as
integer cents, so repeated small postings never accumulate rounding
errors (0.1 + 0.2 is exactly 0.30).
"""

from decimal import Decimal

import pytest

from cashbook.exceptions import ValidationError
from cashbook.money import MAX_AMOUNT, MAX_CENTS, from_cents, to_cents


class TestMoneyHelpers:

    @pytest.mark.parametrize(
        "amount,cents",
        [
            (Decimal("150.25"), 15025),
            ("0.01", 1),
            ("10", 1000),
            ("10.5", 1050),
            (7, 700),
        ],
    )
    def test_to_cents(self, amount, cents):
        assert to_cents(amount) == cents

    @pytest.mark.parametrize(
        "amount",
        ["0.001", "1.999", "NaN", "Infinity", "abc", "-1", "0", "10000000000000000.00", "1E+30"],
    )
    def test_to_cents_rejects(self, amount):
        with pytest.raises(ValidationError):
            to_cents(amount)

    def test_largest_amount_fits_in_bigint(self):
        assert str(MAX_AMOUNT) == "9999999999999999.99"
        assert to_cents(MAX_AMOUNT) == MAX_CENTS
        assert MAX_CENTS < 2**63

    def test_zero_allowed_for_opening_balances(self):
        assert to_cents("0", allow_zero=True) == 0
        assert to_cents("0.00", allow_zero=True) == 0

    def test_from_cents_has_two_places(self):
        assert str(from_cents(15025)) == "150.25"
        assert str(from_cents(0)) == "0.00"
        assert str(from_cents(7)) == "0.07"


class TestApiPrecision:

    async def test_amounts_are_two_decimal_strings(self, authenticated_client, create_account, post):
        account = await create_account(authenticated_client, opening_balance="5")
        assert account["cash_in_bank"] == "5.00"

        response = await post(authenticated_client, account["code"], "Cash Deposit", "1.5")
        data = response.json()
        assert data["cash_in_bank"] == "6.50"
        assert data["transaction"]["credit"] == "1.50"

    async def test_tenths_add_up_exactly(self, authenticated_client, create_account, post):
        account = await create_account(authenticated_client)
        await post(authenticated_client, account["code"], "Cash Deposit", "0.10")
        response = await post(authenticated_client, account["code"], "Cash Deposit", "0.20")
        assert response.json()["cash_in_bank"] == "0.30"

    async def test_json_number_amount(self, authenticated_client, create_account, post):
        account = await create_account(authenticated_client)
        response = await post(authenticated_client, account["code"], "Cash Deposit", 12.34)
        assert response.status_code == 201
        assert response.json()["cash_in_bank"] == "12.34"

    async def test_many_small_postings(self, authenticated_client, create_account, post):
        account = await create_account(authenticated_client)
        for _ in range(25):
            await post(authenticated_client, account["code"], "Cash Deposit", "0.01")

        balance = (await authenticated_client.get(f"/accounts/{account['code']}/balance")).json()
        assert balance["cached_balance"] == "0.25"
        assert balance["match"] is True

    async def test_large_values(self, authenticated_client, create_account, post):
        account = await create_account(authenticated_client)
        await post(authenticated_client, account["code"], "Cash Deposit", "1000000.00")
        response = await post(authenticated_client, account["code"], "Cash Withdrawal", "999999.99")
        assert response.json()["cash_in_bank"] == "0.01"
