"""
Banks router.

    GET    /banks              — List banks
    PUT    /banks/{bank_code}  — Rename a bank, rewriting its account numbers
    DELETE /banks/{bank_code}  — Delete a bank with its branches and accounts (admin)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cashbook.database import get_db
from cashbook.dependencies import get_current_user, require_admin
from cashbook.models.user import User
from cashbook.schemas.bank import (
    BankEnvelope,
    BankListEnvelope,
    BankRenameRequest,
    BankResponse,
    DeleteEnvelope,
)
from cashbook.services import cascade_service, directory_service

router = APIRouter()


@router.get("", response_model=BankListEnvelope, summary="List banks")
async def list_banks(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    banks = await directory_service.list_banks(db)
    return BankListEnvelope(banks=[BankResponse.model_validate(bank) for bank in banks])


@router.put("/{bank_code}", response_model=BankEnvelope, summary="Rename a bank")
async def rename_bank(
    bank_code: int,
    request: BankRenameRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Rename a bank. Every account under the bank gets its account number
    rebuilt with the new name, in the same transaction as the rename.

    `accounts_updated` is the number of account numbers rewritten.
    """
    result = await cascade_service.rename_bank(db, bank_code, request.name)
    return BankEnvelope(
        bank=BankResponse.model_validate(result.entity),
        accounts_updated=result.accounts_updated,
    )


@router.delete("/{bank_code}", response_model=DeleteEnvelope, summary="Delete a bank")
async def delete_bank(
    bank_code: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    [ADMIN ONLY] Delete a bank together with its branches and their
    accounts. Refused while any of those accounts has ledger entries.
    """
    result = await cascade_service.delete_bank(db, bank_code)
    return DeleteEnvelope(
        message="Bank deleted",
        accounts_deleted=result.accounts_deleted,
        branches_deleted=result.branches_deleted,
        banks_deleted=result.banks_deleted,
    )
