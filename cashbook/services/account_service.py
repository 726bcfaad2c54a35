"""
Account service — business logic for cash accounts.

This module handles:
  - Account creation and update (composite account number + uniqueness)
  - Account retrieval (single, by branch, by bank)
  - Account deletion (only while the account has no ledger history)
  - Balance verification (cached vs. computed from the ledger)

Uniqueness guard:
  Account numbers are unique across the whole store, not just within a
  bank. Branch addresses may contain spaces, so two different
  (branch, bank) pairs can spell the same suffix. ensure_unique_account_no()
  runs before every insert/update of an account number; the column's
  UNIQUE constraint is the backstop. Comparison is exact (case-sensitive).

Balances:
  The cached balance is never edited here. It starts at the opening
  balance and then only moves through ledger_service.post_transaction().
"""

import logging
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from cashbook.exceptions import ConflictError, NotFoundError, ValidationError
from cashbook.models.account import Account
from cashbook.models.bank import Branch
from cashbook.models.ledger_entry import LedgerEntry
from cashbook.money import to_cents
from cashbook.services import account_number, directory_service

logger = logging.getLogger(__name__)


async def ensure_unique_account_no(
    db: AsyncSession,
    account_no: str,
    exclude_code: int | None = None,
) -> None:
    """
    Raise ConflictError if another account already uses this number.

    Args:
        db: Database session.
        account_no: The composed account number about to be written.
        exclude_code: The account being updated (it may keep its own number).
    """
    query = select(Account.code).where(Account.account_no == account_no)
    if exclude_code is not None:
        query = query.where(Account.code != exclude_code)
    result = await db.execute(query.limit(1))
    if result.scalar_one_or_none() is not None:
        raise ConflictError("Account number already exists")


async def _compose(
    db: AsyncSession,
    bank_code: int,
    branch_code: int,
    prefix: str,
) -> tuple[str, str]:
    """Validate the parts and return (prefix, account_no)."""
    prefix = account_number.validate_prefix(prefix)
    branch_address = await directory_service.get_branch_address(db, branch_code, bank_code)
    bank_name = await directory_service.get_bank_name(db, bank_code)
    return prefix, account_number.build(prefix, branch_address, bank_name)


def _clean_account_type(account_type: str | None) -> str:
    cleaned = (account_type or "").strip()
    if not cleaned:
        raise ValidationError("AccountType is required")
    return cleaned


async def create_account(
    db: AsyncSession,
    bank_code: int,
    branch_code: int,
    prefix: str,
    account_type: str,
    opening_balance: Decimal = Decimal("0"),
    is_active: bool = True,
) -> Account:
    """
    Create an account under a branch of the given bank.

    Returns:
        The newly created Account instance.

    Raises:
        ValidationError: Bad prefix/type/opening balance, branch not under
            bank, or account number longer than 50 characters.
        ConflictError: The composed account number already exists.
    """
    account_type = _clean_account_type(account_type)
    opening_cents = to_cents(opening_balance, allow_zero=True)
    prefix, account_no = await _compose(db, bank_code, branch_code, prefix)
    await ensure_unique_account_no(db, account_no)

    account = Account(
        prefix=prefix,
        account_no=account_no,
        account_type=account_type,
        opening_balance_cents=opening_cents,
        cash_in_bank_cents=opening_cents,
        is_active=is_active,
        branch_code=branch_code,
    )
    db.add(account)
    await db.flush()
    logger.info(
        "Account created",
        extra={"account_code": account.code, "account_no": account_no, "bank_code": bank_code},
    )
    return account


async def update_account(
    db: AsyncSession,
    account_code: int,
    bank_code: int,
    branch_code: int,
    prefix: str,
    account_type: str,
    is_active: bool = True,
) -> Account:
    """
    Rebuild an account's number from new parts and update it.

    Raises:
        NotFoundError: If the account doesn't exist.
        ValidationError / ConflictError: As for create_account().
    """
    account_type = _clean_account_type(account_type)
    prefix, account_no = await _compose(db, bank_code, branch_code, prefix)
    await ensure_unique_account_no(db, account_no, exclude_code=account_code)

    result = await db.execute(
        select(Account).where(Account.code == account_code).with_for_update()
    )
    account = result.scalar_one_or_none()
    if account is None:
        raise NotFoundError("Account not found")

    account.prefix = prefix
    account.account_no = account_no
    account.account_type = account_type
    account.is_active = is_active
    account.branch_code = branch_code
    await db.flush()
    logger.info(
        "Account updated",
        extra={"account_code": account_code, "account_no": account_no},
    )
    return account


async def get_account(db: AsyncSession, account_code: int) -> Account:
    """
    Raises:
        NotFoundError: If the account doesn't exist.
    """
    result = await db.execute(select(Account).where(Account.code == account_code))
    account = result.scalar_one_or_none()
    if account is None:
        raise NotFoundError("Account not found")
    return account


async def get_accounts(
    db: AsyncSession,
    branch_code: int | None = None,
    bank_code: int | None = None,
) -> list[Account]:
    """List accounts, optionally narrowed to one branch and/or one bank."""
    query = select(Account).order_by(Account.account_no)
    if branch_code is not None:
        query = query.where(Account.branch_code == branch_code)
    if bank_code is not None:
        query = query.join(Branch, Account.branch_code == Branch.code).where(
            Branch.bank_code == bank_code
        )
    result = await db.execute(query)
    return list(result.scalars().all())


async def count_ledger_entries(db: AsyncSession, account_codes: list[int]) -> int:
    if not account_codes:
        return 0
    result = await db.execute(
        select(func.count(LedgerEntry.id)).where(LedgerEntry.account_code.in_(account_codes))
    )
    return result.scalar_one()


async def delete_account(db: AsyncSession, account_code: int) -> None:
    """
    Delete an account that has no ledger history.

    Raises:
        NotFoundError: If the account doesn't exist.
        ConflictError: If ledger entries reference the account.
    """
    account = await get_account(db, account_code)
    if await count_ledger_entries(db, [account_code]):
        raise ConflictError("Account has ledger entries and cannot be deleted")
    await db.delete(account)
    await db.flush()
    logger.info("Account deleted", extra={"account_code": account_code})


async def get_balance(db: AsyncSession, account_code: int) -> dict:
    """
    Get the account balance — both cached and computed from the ledger.

    The computed balance is the opening balance plus all credits minus all
    debits. If it doesn't match the cached balance, that signals a data
    integrity issue.
    """
    account = await get_account(db, account_code)
    result = await db.execute(
        select(
            func.coalesce(func.sum(LedgerEntry.credit_cents), 0),
            func.coalesce(func.sum(LedgerEntry.debit_cents), 0),
        ).where(LedgerEntry.account_code == account_code)
    )
    total_credits, total_debits = result.one()
    computed = account.opening_balance_cents + total_credits - total_debits

    return {
        "account_code": account.code,
        "account_no": account.account_no,
        "cached_balance_cents": account.cash_in_bank_cents,
        "computed_balance_cents": computed,
        "match": account.cash_in_bank_cents == computed,
    }
