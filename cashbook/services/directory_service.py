"""
Directory lookups — banks, branches, particulars, expenses, users.

The directory (plain CRUD for these tables) is maintained elsewhere. The
ledger and account services only need it for:
  - existence checks (does this branch belong to this bank?)
  - display lookups (bank name, branch address, transaction types)

Lookups that validate *request input* raise ValidationError ("Invalid
BranchCode or BankCode" is a bad request, not a missing resource).
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cashbook.exceptions import ValidationError
from cashbook.models.bank import Bank, Branch
from cashbook.models.chart import ExpenseCategory, Particular


async def get_bank_name(db: AsyncSession, bank_code: int) -> str:
    """BankCode -> BankName."""
    result = await db.execute(select(Bank.name).where(Bank.code == bank_code))
    name = result.scalar_one_or_none()
    if name is None:
        raise ValidationError("Invalid BankCode")
    return name


async def get_branch_address(db: AsyncSession, branch_code: int, bank_code: int) -> str:
    """
    BranchCode -> BranchAddress, validating that the branch belongs to
    the given bank.
    """
    result = await db.execute(
        select(Branch.address)
        .where(Branch.code == branch_code)
        .where(Branch.bank_code == bank_code)
    )
    address = result.scalar_one_or_none()
    if address is None:
        raise ValidationError("Invalid BranchCode or BankCode")
    return address


async def list_banks(db: AsyncSession) -> list[Bank]:
    result = await db.execute(select(Bank).order_by(Bank.name))
    return list(result.scalars().all())


async def list_branches(db: AsyncSession, bank_code: int) -> list[tuple[Branch, str]]:
    """Branches of one bank with the bank name, ordered by address."""
    result = await db.execute(
        select(Branch, Bank.name)
        .join(Bank, Branch.bank_code == Bank.code)
        .where(Branch.bank_code == bank_code)
        .order_by(Branch.address)
    )
    return [(branch, bank_name) for branch, bank_name in result.all()]


async def find_particulars(db: AsyncSession, name: str) -> list[Particular]:
    """All chart-of-accounts entries with this exact display name."""
    result = await db.execute(select(Particular).where(Particular.particular == name))
    return list(result.scalars().all())


async def list_particulars(db: AsyncSession) -> list[Particular]:
    result = await db.execute(select(Particular).order_by(Particular.particular))
    return list(result.scalars().all())


async def expense_exists(db: AsyncSession, expense_code: int) -> bool:
    result = await db.execute(
        select(ExpenseCategory.code).where(ExpenseCategory.code == expense_code)
    )
    return result.scalar_one_or_none() is not None
