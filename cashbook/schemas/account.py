"""
Pydantic schemas for Account endpoints.

Monetary amounts cross the API as decimals with two fraction digits
(serialized as strings, e.g. "150.00") and are stored as integer cents.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from cashbook.models.account import Account
from cashbook.money import from_cents


class AccountCreateRequest(BaseModel):
    """Request body for POST /accounts."""
    bank_code: int
    branch_code: int
    prefix: str = Field(description="Single token, e.g. SAV001")
    account_type: str = Field(max_length=30)
    opening_balance: Decimal = Field(default=Decimal("0"), ge=0)
    is_active: bool = True


class AccountUpdateRequest(BaseModel):
    """Request body for PUT /accounts/{account_code}.

    The cached balance is not part of the update; it only moves through
    posted transactions.
    """
    bank_code: int
    branch_code: int
    prefix: str
    account_type: str = Field(max_length=30)
    is_active: bool = True


class AccountResponse(BaseModel):
    """Public representation of a cash account."""
    code: int
    prefix: str | None
    account_no: str
    account_type: str
    opening_balance: Decimal
    cash_in_bank: Decimal
    is_active: bool
    branch_code: int
    created_at: datetime

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            code=account.code,
            prefix=account.prefix,
            account_no=account.account_no,
            account_type=account.account_type,
            opening_balance=from_cents(account.opening_balance_cents),
            cash_in_bank=from_cents(account.cash_in_bank_cents),
            is_active=account.is_active,
            branch_code=account.branch_code,
            created_at=account.created_at,
        )


class AccountEnvelope(BaseModel):
    status: Literal["success"] = "success"
    account: AccountResponse


class AccountListEnvelope(BaseModel):
    status: Literal["success"] = "success"
    accounts: list[AccountResponse]


class BalanceEnvelope(BaseModel):
    """
    Balance check response — includes both cached and computed values.

    `match` is False when the cached balance disagrees with the opening
    balance plus the ledger's credits minus its debits.
    """
    status: Literal["success"] = "success"
    account_code: int
    account_no: str
    cached_balance: Decimal
    computed_balance: Decimal
    match: bool


class MessageEnvelope(BaseModel):
    status: Literal["success"] = "success"
    message: str
