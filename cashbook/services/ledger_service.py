"""
Ledger service — posting transactions against an account's cached balance.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It handles:
  - Validating a transaction request (amount, type, expense, account)
  - Deciding the direction from the chart-of-accounts particular
  - Enforcing sufficient funds for balance-decreasing postings
  - Updating the cached balance and appending the ledger entry together

Per request the posting moves through:

    Received -> Validated -> BalanceComputed -> Committed
                    |               |
                    +---------------+----------> Aborted (exception)

Atomicity:
  The balance update and the ledger entry are written in the SAME database
  transaction (the request session, committed by get_db()). If either
  fails, both are rolled back, so at all times:

      cash_in_bank == opening balance + Σ credits − Σ debits

Concurrency:
  The account row is read with SELECT ... FOR UPDATE, and the new balance
  is computed and written while that lock is held. Two concurrent debits
  against the same account therefore serialize: the second one sees the
  balance left by the first. On SQLite (no row locks) every transaction
  starts with BEGIN IMMEDIATE, which serializes writers on the database
  lock instead (see database.py).

Declined postings (insufficient funds) leave no trace in the ledger; the
request fails with InsufficientFundsError and the session rolls back.
"""

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import extract, select
from sqlalchemy.ext.asyncio import AsyncSession

from cashbook.exceptions import (
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from cashbook.models.account import Account
from cashbook.models.bank import Bank, Branch
from cashbook.models.chart import ExpenseCategory, Particular
from cashbook.models.ledger_entry import LedgerEntry
from cashbook.money import MAX_CENTS, to_cents
from cashbook.services import directory_service

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100


async def _resolve_particular(db: AsyncSession, particular_name: str | None) -> Particular:
    name = (particular_name or "").strip()
    if not name:
        raise ValidationError("TransactionType is required")

    matches = await directory_service.find_particulars(db, name)
    if not matches:
        raise NotFoundError(f"Invalid TransactionType: {name}")
    if len(matches) > 1:
        raise ValidationError(f"TransactionType {name} is ambiguous")
    return matches[0]


async def post_transaction(
    db: AsyncSession,
    account_code: int,
    particular_name: str,
    amount: Decimal,
    user_code: int,
    expense_code: int | None = None,
    notes: str | None = None,
) -> tuple[LedgerEntry, int]:
    """
    Post one transaction to an account.

    For balance-increasing particulars (credit = True):
      - Adds the amount to the cached balance
      - Appends an entry with credit_cents set, debit_cents NULL

    For balance-decreasing particulars (credit = False):
      - Requires cached balance >= amount, else InsufficientFundsError
      - Subtracts the amount from the cached balance
      - Appends an entry with debit_cents set, credit_cents NULL

    Args:
        db: Database session.
        account_code: The account to post to.
        particular_name: Display name of the chart-of-accounts entry.
        amount: Positive decimal amount with at most two fraction digits.
        user_code: Acting user (from the bearer token).
        expense_code: Optional expense category.
        notes: Optional free-text memo.

    Returns:
        Tuple of (ledger entry, new cached balance in cents).

    Raises:
        ValidationError: Bad amount, empty or ambiguous type, unknown expense,
            or a credit that would push the balance past MAX_CENTS.
        NotFoundError: Unknown transaction type or account.
        InsufficientFundsError: A debit larger than the cached balance.
    """
    # --- Validated ---
    amount_cents = to_cents(amount)
    particular = await _resolve_particular(db, particular_name)

    if expense_code is not None and not await directory_service.expense_exists(db, expense_code):
        raise ValidationError("Invalid ExpensesCode")

    # Lock the account row for the read-modify-write of the balance
    result = await db.execute(
        select(Account).where(Account.code == account_code).with_for_update()
    )
    account = result.scalar_one_or_none()
    if account is None:
        raise NotFoundError("Account not found")

    # --- BalanceComputed ---
    current_cents = account.cash_in_bank_cents
    if particular.credit:
        new_cents = current_cents + amount_cents
        if new_cents > MAX_CENTS:
            raise ValidationError("Transaction would exceed the maximum account balance")
        debit_cents, credit_cents = None, amount_cents
    else:
        if current_cents < amount_cents:
            logger.warning(
                "Transaction declined: insufficient balance",
                extra={
                    "account_code": account_code,
                    "requested_cents": amount_cents,
                    "available_cents": current_cents,
                },
            )
            raise InsufficientFundsError(
                account_code=account_code,
                requested_cents=amount_cents,
                available_cents=current_cents,
            )
        new_cents = current_cents - amount_cents
        debit_cents, credit_cents = amount_cents, None

    # --- Committed (by the session owner) ---
    account.cash_in_bank_cents = new_cents
    entry = LedgerEntry(
        account_code=account_code,
        particular_id=particular.id,
        expense_code=expense_code,
        user_code=user_code,
        debit_cents=debit_cents,
        credit_cents=credit_cents,
        notes=(notes or "").strip(),
    )
    db.add(entry)
    await db.flush()

    logger.info(
        "Transaction posted",
        extra={
            "entry_id": entry.id,
            "account_code": account_code,
            "particular": particular.particular,
            "direction": "credit" if particular.credit else "debit",
            "amount_cents": amount_cents,
            "balance_cents": new_cents,
            "user_code": user_code,
        },
    )
    return entry, new_cents


async def list_transactions(
    db: AsyncSession,
    start_date: date | None = None,
    end_date: date | None = None,
    account_code: int | None = None,
    limit: int = DEFAULT_LIST_LIMIT,
) -> list[dict]:
    """
    List ledger entries, newest first, with display columns joined in.

    The date range is inclusive on both ends (end_date covers the whole day).
    """
    query = (
        select(
            LedgerEntry,
            Account.account_no,
            Particular.particular,
            ExpenseCategory.name,
            Branch.address,
            Bank.name,
        )
        .join(Account, LedgerEntry.account_code == Account.code)
        .join(Particular, LedgerEntry.particular_id == Particular.id)
        .outerjoin(ExpenseCategory, LedgerEntry.expense_code == ExpenseCategory.code)
        .join(Branch, Account.branch_code == Branch.code)
        .join(Bank, Branch.bank_code == Bank.code)
        .order_by(LedgerEntry.posted_at.desc(), LedgerEntry.id.desc())
        .limit(limit)
    )
    if start_date is not None:
        query = query.where(LedgerEntry.posted_at >= datetime.combine(start_date, time.min))
    if end_date is not None:
        query = query.where(
            LedgerEntry.posted_at < datetime.combine(end_date + timedelta(days=1), time.min)
        )
    if account_code is not None:
        query = query.where(LedgerEntry.account_code == account_code)

    result = await db.execute(query)
    return [
        {
            "entry": entry,
            "account_no": account_no,
            "particular": particular,
            "expense": expense,
            "branch_address": branch_address,
            "bank_name": bank_name,
        }
        for entry, account_no, particular, expense, branch_address, bank_name in result.all()
    ]


async def list_years(db: AsyncSession) -> list[int]:
    """Distinct calendar years that have ledger entries, ascending."""
    year = extract("year", LedgerEntry.posted_at)
    result = await db.execute(select(year).distinct().order_by(year))
    return [int(value) for value in result.scalars().all() if value is not None]


async def list_transaction_types(db: AsyncSession) -> list[Particular]:
    return await directory_service.list_particulars(db)
