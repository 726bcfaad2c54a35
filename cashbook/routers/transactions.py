"""
Transactions router — the ledger.

    POST /transactions         — Post a transaction to an account
    GET  /transactions         — List ledger entries (date range / account filters)
    GET  /transactions/years   — Years that have ledger entries
    GET  /transactions/types   — Transaction types (chart-of-accounts particulars)
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cashbook.database import get_db
from cashbook.dependencies import get_current_user
from cashbook.models.user import User
from cashbook.money import from_cents
from cashbook.schemas.transaction import (
    TransactionCreateRequest,
    TransactionListEnvelope,
    TransactionPostEnvelope,
    TransactionResponse,
    TransactionTypeListEnvelope,
    TransactionTypeResponse,
    YearListEnvelope,
)
from cashbook.services import ledger_service

router = APIRouter()


@router.post(
    "",
    response_model=TransactionPostEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Post a transaction",
)
async def post_transaction(
    request: TransactionCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Post a transaction to an account.

    The direction comes from the transaction type: credit types add the
    amount to the cached balance, debit types subtract it and are rejected
    with 400 when the balance is insufficient. A rejected posting leaves
    no ledger entry behind.

    The acting user is taken from the bearer token.
    """
    entry, new_balance_cents = await ledger_service.post_transaction(
        db=db,
        account_code=request.account_code,
        particular_name=request.particular,
        amount=request.amount,
        user_code=user.code,
        expense_code=request.expense_code,
        notes=request.notes,
    )
    transaction = TransactionResponse.from_entry(entry, particular=request.particular.strip())
    return TransactionPostEnvelope(
        cash_in_bank=from_cents(new_balance_cents),
        date=transaction.date,
        time=transaction.time,
        transaction=transaction,
    )


@router.get("", response_model=TransactionListEnvelope, summary="List ledger entries")
async def list_transactions(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    account_code: int | None = Query(None),
    limit: int = Query(ledger_service.DEFAULT_LIST_LIMIT, ge=1, le=1000),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List ledger entries, newest first. Both dates are inclusive."""
    rows = await ledger_service.list_transactions(
        db=db,
        start_date=start_date,
        end_date=end_date,
        account_code=account_code,
        limit=limit,
    )
    return TransactionListEnvelope(
        transactions=[
            TransactionResponse.from_entry(
                row["entry"],
                account_no=row["account_no"],
                particular=row["particular"],
                expense=row["expense"],
                branch_address=row["branch_address"],
                bank_name=row["bank_name"],
            )
            for row in rows
        ]
    )


@router.get("/years", response_model=YearListEnvelope, summary="Years with ledger entries")
async def list_years(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return YearListEnvelope(years=await ledger_service.list_years(db))


@router.get("/types", response_model=TransactionTypeListEnvelope, summary="Transaction types")
async def list_transaction_types(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    particulars = await ledger_service.list_transaction_types(db)
    return TransactionTypeListEnvelope(
        types=[
            TransactionTypeResponse(
                id=p.id,
                name=p.particular,
                credit=p.credit,
                fund_transfer=p.fund_transfer,
            )
            for p in particulars
        ]
    )
