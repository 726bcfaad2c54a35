"""
Pydantic schemas for ledger (transaction) endpoints.

A posted entry has exactly one of `debit` / `credit` set; the other is
null. `date` and `time` are both derived from the entry's single
server-assigned `posted_at` instant.
"""

import datetime as dt
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from cashbook.models.ledger_entry import LedgerEntry
from cashbook.money import from_cents


def _money(cents: int | None) -> Decimal | None:
    return from_cents(cents) if cents is not None else None


class TransactionCreateRequest(BaseModel):
    """Request body for POST /transactions."""
    account_code: int
    particular: str = Field(description="Transaction type (chart-of-accounts display name)")
    amount: Decimal = Field(gt=0, description="Positive amount, at most two decimal places")
    expense_code: int | None = None
    notes: str | None = Field(default=None, max_length=2000)


class TransactionResponse(BaseModel):
    """One ledger entry with its display columns."""
    id: int
    account_code: int
    account_no: str | None = None
    particular: str | None = None
    expense: str | None = None
    branch_address: str | None = None
    bank_name: str | None = None
    debit: Decimal | None
    credit: Decimal | None
    notes: str
    user_code: int
    posted_at: dt.datetime
    date: dt.date
    time: dt.time

    @classmethod
    def from_entry(cls, entry: LedgerEntry, **display) -> "TransactionResponse":
        return cls(
            id=entry.id,
            account_code=entry.account_code,
            debit=_money(entry.debit_cents),
            credit=_money(entry.credit_cents),
            notes=entry.notes,
            user_code=entry.user_code,
            posted_at=entry.posted_at,
            date=entry.posted_at.date(),
            time=entry.posted_at.time().replace(microsecond=0),
            **display,
        )


class TransactionPostEnvelope(BaseModel):
    """Response for a posted transaction: the entry plus the new balance."""
    status: Literal["success"] = "success"
    message: str = "Transaction added"
    cash_in_bank: Decimal
    date: dt.date
    time: dt.time
    transaction: TransactionResponse


class TransactionListEnvelope(BaseModel):
    status: Literal["success"] = "success"
    transactions: list[TransactionResponse]


class YearListEnvelope(BaseModel):
    status: Literal["success"] = "success"
    years: list[int]


class TransactionTypeResponse(BaseModel):
    id: int
    name: str
    credit: bool
    fund_transfer: bool


class TransactionTypeListEnvelope(BaseModel):
    status: Literal["success"] = "success"
    types: list[TransactionTypeResponse]
