"""
Branches router.

    GET    /branches?bank_code=     — List the branches of a bank
    PUT    /branches/{branch_code}  — Update a branch, rewriting its account numbers
    DELETE /branches/{branch_code}  — Delete a branch with its accounts (admin)
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cashbook.database import get_db
from cashbook.dependencies import get_current_user, require_admin
from cashbook.models.bank import Branch
from cashbook.models.user import User
from cashbook.schemas.bank import (
    BranchEnvelope,
    BranchListEnvelope,
    BranchResponse,
    BranchUpdateRequest,
    DeleteEnvelope,
)
from cashbook.services import cascade_service, directory_service

router = APIRouter()


def _branch_response(branch: Branch, bank_name: str) -> BranchResponse:
    return BranchResponse(
        code=branch.code,
        address=branch.address,
        bank_code=branch.bank_code,
        bank_name=bank_name,
        contact_person=branch.contact_person,
        phone_no=branch.phone_no,
        fax_no=branch.fax_no,
    )


@router.get("", response_model=BranchListEnvelope, summary="List branches of a bank")
async def list_branches(
    bank_code: int = Query(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await directory_service.list_branches(db, bank_code)
    return BranchListEnvelope(
        branches=[_branch_response(branch, bank_name) for branch, bank_name in rows]
    )


@router.put("/{branch_code}", response_model=BranchEnvelope, summary="Update a branch")
async def update_branch(
    branch_code: int,
    request: BranchUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update a branch's address, owning bank and contact details. Every
    account of the branch gets its account number rebuilt, in the same
    transaction as the update.

    `accounts_updated` is the number of account numbers rewritten.
    """
    result = await cascade_service.update_branch(
        db=db,
        branch_code=branch_code,
        address=request.address,
        bank_code=request.bank_code,
        contact_person=request.contact_person,
        phone_no=request.phone_no,
        fax_no=request.fax_no,
    )
    return BranchEnvelope(
        branch=_branch_response(result.entity, result.bank_name),
        accounts_updated=result.accounts_updated,
    )


@router.delete("/{branch_code}", response_model=DeleteEnvelope, summary="Delete a branch")
async def delete_branch(
    branch_code: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    [ADMIN ONLY] Delete a branch together with its accounts. Refused while
    any of those accounts has ledger entries.
    """
    result = await cascade_service.delete_branch(db, branch_code)
    return DeleteEnvelope(
        message="Branch deleted",
        accounts_deleted=result.accounts_deleted,
        branches_deleted=result.branches_deleted,
    )
