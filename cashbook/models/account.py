"""
Account model — a cash account held at a bank branch.

Each account has:
  - A prefix chosen by the user ("SAV001")
  - A composite account number: "<prefix> <branch address> <bank name>"
  - A type (free text, e.g. "Savings", "Current")
  - A cached balance in integer cents (updated atomically with the ledger)
  - The opening balance it was created with

Account number:
  The prefix column is the source of truth; account_no is a projection
  that is recomputed whenever the prefix, branch address or bank name
  changes. Legacy rows without a stored prefix fall back to the first
  whitespace-delimited token of account_no.

Balance management:
  cash_in_bank_cents is the denormalized running balance. It is only
  written by the ledger service, in the same DB transaction that appends
  the ledger entry, so at all times:

      cash_in_bank_cents == opening_balance_cents + Σ credits − Σ debits

  A CHECK constraint keeps the balance non-negative as a final backstop
  behind the service-level funds check.
"""

from datetime import datetime, timezone

from sqlalchemy import String, Boolean, Integer, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cashbook.database import Base, UTCDateTime

MAX_ACCOUNT_NO_LENGTH = 50


class Account(Base):
    __tablename__ = "accounts"

    __table_args__ = (
        CheckConstraint(
            "cash_in_bank_cents >= 0",
            name="ck_accounts_non_negative_balance",
        ),
        CheckConstraint(
            "opening_balance_cents >= 0",
            name="ck_accounts_non_negative_opening_balance",
        ),
    )

    code: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # NULL only on rows imported before the prefix was stored separately
    prefix: Mapped[str | None] = mapped_column(
        String(MAX_ACCOUNT_NO_LENGTH),
        nullable=True,
    )

    account_no: Mapped[str] = mapped_column(
        String(MAX_ACCOUNT_NO_LENGTH),
        unique=True,
        nullable=False,
    )

    account_type: Mapped[str] = mapped_column(String(30), nullable=False)

    opening_balance_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    cash_in_bank_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    branch_code: Mapped[int] = mapped_column(
        ForeignKey("branches.code"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    branch: Mapped["Branch"] = relationship(back_populates="accounts")
