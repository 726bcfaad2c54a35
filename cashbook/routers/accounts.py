"""
Accounts router — cash account endpoints.

    POST   /accounts                        — Create an account
    GET    /accounts                        — List accounts (branch/bank filters)
    GET    /accounts/{account_code}         — Get one account
    PUT    /accounts/{account_code}         — Rebuild number, update account
    DELETE /accounts/{account_code}         — Delete an account with no ledger history
    GET    /accounts/{account_code}/balance — Cached vs. ledger-computed balance

All endpoints require a valid bearer token.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cashbook.database import get_db
from cashbook.dependencies import get_current_user
from cashbook.models.user import User
from cashbook.money import from_cents
from cashbook.schemas.account import (
    AccountCreateRequest,
    AccountEnvelope,
    AccountListEnvelope,
    AccountResponse,
    AccountUpdateRequest,
    BalanceEnvelope,
    MessageEnvelope,
)
from cashbook.services import account_service

router = APIRouter()


@router.post(
    "",
    response_model=AccountEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
)
async def create_account(
    request: AccountCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create an account under a branch of the given bank.

    The account number is composed as "<prefix> <branch address> <bank name>"
    and must be unique and at most 50 characters long. The cached balance
    starts at the opening balance.
    """
    account = await account_service.create_account(
        db=db,
        bank_code=request.bank_code,
        branch_code=request.branch_code,
        prefix=request.prefix,
        account_type=request.account_type,
        opening_balance=request.opening_balance,
        is_active=request.is_active,
    )
    return AccountEnvelope(account=AccountResponse.from_account(account))


@router.get("", response_model=AccountListEnvelope, summary="List accounts")
async def list_accounts(
    branch_code: int | None = Query(None),
    bank_code: int | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    accounts = await account_service.get_accounts(db, branch_code=branch_code, bank_code=bank_code)
    return AccountListEnvelope(accounts=[AccountResponse.from_account(a) for a in accounts])


@router.get("/{account_code}", response_model=AccountEnvelope, summary="Get an account")
async def get_account(
    account_code: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    account = await account_service.get_account(db, account_code)
    return AccountEnvelope(account=AccountResponse.from_account(account))


@router.put("/{account_code}", response_model=AccountEnvelope, summary="Update an account")
async def update_account(
    account_code: int,
    request: AccountUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Rebuild the account number from the given parts and update the account.

    Uniqueness is checked against every other account (the account itself
    may keep its current number).
    """
    account = await account_service.update_account(
        db=db,
        account_code=account_code,
        bank_code=request.bank_code,
        branch_code=request.branch_code,
        prefix=request.prefix,
        account_type=request.account_type,
        is_active=request.is_active,
    )
    return AccountEnvelope(account=AccountResponse.from_account(account))


@router.delete("/{account_code}", response_model=MessageEnvelope, summary="Delete an account")
async def delete_account(
    account_code: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Accounts that have ledger entries cannot be deleted."""
    await account_service.delete_account(db, account_code)
    return MessageEnvelope(message="Account deleted")


@router.get(
    "/{account_code}/balance",
    response_model=BalanceEnvelope,
    summary="Check account balance",
)
async def get_balance(
    account_code: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Get the account balance — both cached and computed from the ledger.

    The response includes a `match` boolean indicating whether the cached
    balance agrees with the opening balance plus the ledger's net movement.
    """
    balance = await account_service.get_balance(db, account_code)
    return BalanceEnvelope(
        account_code=balance["account_code"],
        account_no=balance["account_no"],
        cached_balance=from_cents(balance["cached_balance_cents"]),
        computed_balance=from_cents(balance["computed_balance_cents"]),
        match=balance["match"],
    )
