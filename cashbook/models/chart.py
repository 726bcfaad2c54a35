"""
Reference data used by the ledger: chart-of-accounts particulars and
expense categories. Both are read-only from this API's point of view.

A Particular names a transaction type ("Cash Deposit", "Utility Bill")
and fixes its direction:

  credit = True   balance-increasing (deposit-like)
  credit = False  balance-decreasing (withdrawal-like)
"""

from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from cashbook.database import Base


class Particular(Base):
    __tablename__ = "chart_of_accounts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    account_code: Mapped[str] = mapped_column(String(20), nullable=False)

    # Display name, this is what clients send as the transaction type
    particular: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )

    credit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    fund_transfer: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class ExpenseCategory(Base):
    __tablename__ = "expenses"

    code: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
