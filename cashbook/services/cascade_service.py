"""
Cascade service — bank/branch changes that fan out to account numbers.

Every account number embeds its branch address and bank name:

    SAV001 Main St ABC Bank
           ^^^^^^^ ^^^^^^^^
           branch  bank

so renaming a bank, or changing a branch's address or owning bank, must
rewrite the account number of every account underneath it.

Atomicity:
  All steps run in the request's session and are committed once by
  get_db(). Any exception (validation, conflict, length overflow in one
  rebuilt number, store failure) rolls back the rename together with every
  rewritten account, so no partial cascade is ever visible.

Steps for a rename:
  1. Validate the new value and check siblings for duplicates
  2. Lock and update the bank/branch row (NotFoundError if gone)
  3. Rebuild each dependent account number from its stored prefix
  4. Re-check uniqueness of the rebuilt numbers
  5. Flush; the caller receives the number of accounts rewritten

Cascading deletes remove accounts, then branches, then the bank. They
refuse to run when any affected account has ledger entries, since ledger
entries are immutable and must keep their account.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cashbook.exceptions import ConflictError, NotFoundError, ValidationError
from cashbook.models.account import Account
from cashbook.models.bank import (
    MAX_BANK_NAME_LENGTH,
    MAX_BRANCH_ADDRESS_LENGTH,
    Bank,
    Branch,
)
from cashbook.services import account_number
from cashbook.services.account_service import count_ledger_entries

logger = logging.getLogger(__name__)


@dataclass
class RenameResult:
    """Outcome of a cascading rename."""
    entity: Bank | Branch
    bank_name: str
    accounts_updated: int


@dataclass
class DeleteResult:
    accounts_deleted: int
    branches_deleted: int
    banks_deleted: int = 0


# ---------------------------------------------------------------------------
# Account number rewrite
# ---------------------------------------------------------------------------

async def _rewrite_account_numbers(
    db: AsyncSession,
    accounts: list[tuple[Account, str]],
    bank_name: str,
) -> int:
    """
    Rebuild the account number of each (account, branch address) pair.

    The prefix comes from the stored column; rows without one fall back to
    the first token of their current number.

    Raises:
        ValidationError: If any rebuilt number is longer than 50 characters.
        ConflictError: If rebuilt numbers collide with each other or with
            an account outside this cascade.
    """
    if not accounts:
        return 0

    rebuilt: dict[int, str] = {}
    for account, branch_address in accounts:
        prefix = account.prefix or account_number.extract_prefix(account.account_no)
        rebuilt[account.code] = account_number.build(prefix, branch_address, bank_name)

    new_numbers = list(rebuilt.values())
    if len(set(new_numbers)) != len(new_numbers):
        raise ConflictError("Rename would produce duplicate account numbers")

    clash = await db.execute(
        select(Account.account_no)
        .where(Account.account_no.in_(new_numbers))
        .where(Account.code.not_in(list(rebuilt)))
        .limit(1)
    )
    existing = clash.scalar_one_or_none()
    if existing is not None:
        raise ConflictError(f"Account number {existing} already exists")

    for account, _ in accounts:
        if account.prefix is None:
            account.prefix = account_number.extract_prefix(account.account_no)
        account.account_no = rebuilt[account.code]
    await db.flush()
    return len(accounts)


# ---------------------------------------------------------------------------
# Bank rename
# ---------------------------------------------------------------------------

def _clean_bank_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Bank Name is required and cannot be empty")
    if len(cleaned) > MAX_BANK_NAME_LENGTH:
        raise ValidationError(
            f"Bank Name cannot exceed {MAX_BANK_NAME_LENGTH} characters"
        )
    return cleaned


async def rename_bank(db: AsyncSession, bank_code: int, name: str) -> RenameResult:
    """
    Rename a bank and rewrite the account numbers of all its accounts.

    Raises:
        ValidationError: Empty/too long name, or a rebuilt number too long.
        ConflictError: Another bank has this name (case-insensitive), or
            rebuilt account numbers collide.
        NotFoundError: The bank doesn't exist.
    """
    name = _clean_bank_name(name)

    duplicate = await db.execute(
        select(Bank.code)
        .where(func.lower(Bank.name) == name.lower())
        .where(Bank.code != bank_code)
        .limit(1)
    )
    if duplicate.scalar_one_or_none() is not None:
        raise ConflictError("Bank Name already exists")

    result = await db.execute(select(Bank).where(Bank.code == bank_code).with_for_update())
    bank = result.scalar_one_or_none()
    if bank is None:
        raise NotFoundError("Bank not found")
    bank.name = name
    await db.flush()

    rows = await db.execute(
        select(Account, Branch.address)
        .join(Branch, Account.branch_code == Branch.code)
        .where(Branch.bank_code == bank_code)
        .with_for_update()
    )
    updated = await _rewrite_account_numbers(db, [tuple(row) for row in rows.all()], name)

    logger.info(
        "Bank renamed",
        extra={"bank_code": bank_code, "bank_name": name, "accounts_updated": updated},
    )
    return RenameResult(entity=bank, bank_name=name, accounts_updated=updated)


# ---------------------------------------------------------------------------
# Branch update
# ---------------------------------------------------------------------------

def _clean_branch_address(address: str | None) -> str:
    cleaned = (address or "").strip()
    if not cleaned:
        raise ValidationError("BranchAdd is required")
    if len(cleaned) > MAX_BRANCH_ADDRESS_LENGTH:
        raise ValidationError(
            f"Branch Address cannot exceed {MAX_BRANCH_ADDRESS_LENGTH} characters"
        )
    return cleaned


async def update_branch(
    db: AsyncSession,
    branch_code: int,
    address: str,
    bank_code: int,
    contact_person: str | None = None,
    phone_no: str | None = None,
    fax_no: str | None = None,
) -> RenameResult:
    """
    Update a branch (address, owning bank, contact metadata) and rewrite
    the account numbers of all its accounts.

    Raises:
        ValidationError: Empty/too long address, unknown bank, or a rebuilt
            number too long.
        ConflictError: The address is taken by another branch of the bank,
            or rebuilt account numbers collide.
        NotFoundError: The branch doesn't exist.
    """
    address = _clean_branch_address(address)

    bank_result = await db.execute(select(Bank.name).where(Bank.code == bank_code))
    bank_name = bank_result.scalar_one_or_none()
    if bank_name is None:
        raise ValidationError("Invalid BankCode")

    duplicate = await db.execute(
        select(Branch.code)
        .where(Branch.address == address)
        .where(Branch.bank_code == bank_code)
        .where(Branch.code != branch_code)
        .limit(1)
    )
    if duplicate.scalar_one_or_none() is not None:
        raise ConflictError("Branch Address already exists for this bank")

    result = await db.execute(
        select(Branch).where(Branch.code == branch_code).with_for_update()
    )
    branch = result.scalar_one_or_none()
    if branch is None:
        raise NotFoundError("Branch not found")

    branch.address = address
    branch.bank_code = bank_code
    branch.contact_person = contact_person or None
    branch.phone_no = phone_no or None
    branch.fax_no = fax_no or None
    await db.flush()

    rows = await db.execute(
        select(Account).where(Account.branch_code == branch_code).with_for_update()
    )
    accounts = [(account, address) for account in rows.scalars().all()]
    updated = await _rewrite_account_numbers(db, accounts, bank_name)

    logger.info(
        "Branch updated",
        extra={"branch_code": branch_code, "branch_address": address, "accounts_updated": updated},
    )
    return RenameResult(entity=branch, bank_name=bank_name, accounts_updated=updated)


# ---------------------------------------------------------------------------
# Cascading deletes
# ---------------------------------------------------------------------------

async def _delete_accounts(db: AsyncSession, branch_codes: list[int]) -> int:
    if not branch_codes:
        return 0
    rows = await db.execute(select(Account.code).where(Account.branch_code.in_(branch_codes)))
    account_codes = list(rows.scalars().all())
    if await count_ledger_entries(db, account_codes):
        raise ConflictError("Accounts with ledger entries cannot be deleted")
    if not account_codes:
        return 0
    await db.execute(delete(Account).where(Account.code.in_(account_codes)))
    return len(account_codes)


async def delete_branch(db: AsyncSession, branch_code: int) -> DeleteResult:
    """
    Delete a branch and all its accounts.

    Raises:
        NotFoundError: The branch doesn't exist.
        ConflictError: One of its accounts has ledger entries.
    """
    result = await db.execute(select(Branch.code).where(Branch.code == branch_code))
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Branch not found")

    accounts_deleted = await _delete_accounts(db, [branch_code])
    await db.execute(delete(Branch).where(Branch.code == branch_code))

    logger.info(
        "Branch deleted",
        extra={"branch_code": branch_code, "accounts_deleted": accounts_deleted},
    )
    return DeleteResult(accounts_deleted=accounts_deleted, branches_deleted=1)


async def delete_bank(db: AsyncSession, bank_code: int) -> DeleteResult:
    """
    Delete a bank with all its branches and their accounts.

    Raises:
        NotFoundError: The bank doesn't exist.
        ConflictError: One of its accounts has ledger entries.
    """
    result = await db.execute(select(Bank.code).where(Bank.code == bank_code))
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Bank not found")

    rows = await db.execute(select(Branch.code).where(Branch.bank_code == bank_code))
    branch_codes = list(rows.scalars().all())

    accounts_deleted = await _delete_accounts(db, branch_codes)
    if branch_codes:
        await db.execute(delete(Branch).where(Branch.code.in_(branch_codes)))
    await db.execute(delete(Bank).where(Bank.code == bank_code))

    logger.info(
        "Bank deleted",
        extra={
            "bank_code": bank_code,
            "accounts_deleted": accounts_deleted,
            "branches_deleted": len(branch_codes),
        },
    )
    return DeleteResult(
        accounts_deleted=accounts_deleted,
        branches_deleted=len(branch_codes),
        banks_deleted=1,
    )
