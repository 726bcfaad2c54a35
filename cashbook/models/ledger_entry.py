"""
LedgerEntry model — one immutable row per posted transaction.

Every change to an account's cached balance appends exactly one entry:

  - credit_cents set, debit_cents NULL  for balance-increasing particulars
  - debit_cents set, credit_cents NULL  for balance-decreasing particulars

Never both, never neither. A CHECK constraint enforces this at the
database level, and another keeps the populated side positive.

Timestamps:
  posted_at is assigned by the server at posting time. The API exposes a
  date and a time, both derived from this single instant.

Immutability:
  Entries are append-only. ORM listeners at the bottom of this module
  reject any flush that would UPDATE or DELETE an entry, so a bug in
  service code cannot silently rewrite history.
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, ForeignKey, CheckConstraint, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cashbook.database import Base, UTCDateTime
from cashbook.exceptions import ImmutableRecordError


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"

    __table_args__ = (
        CheckConstraint(
            "(debit_cents IS NULL AND credit_cents IS NOT NULL)"
            " OR (debit_cents IS NOT NULL AND credit_cents IS NULL)",
            name="ck_ledger_entries_one_side",
        ),
        CheckConstraint(
            "COALESCE(debit_cents, credit_cents) > 0",
            name="ck_ledger_entries_positive_amount",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    account_code: Mapped[int] = mapped_column(
        ForeignKey("accounts.code"),
        nullable=False,
        index=True,
    )

    # The chart-of-accounts entry that decided the direction
    particular_id: Mapped[int] = mapped_column(
        ForeignKey("chart_of_accounts.id"),
        nullable=False,
    )

    expense_code: Mapped[int | None] = mapped_column(
        ForeignKey("expenses.code"),
        nullable=True,
    )

    # Acting user, taken from the bearer token
    user_code: Mapped[int] = mapped_column(
        ForeignKey("users.code"),
        nullable=False,
    )

    debit_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    credit_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)

    notes: Mapped[str] = mapped_column(String(2000), nullable=False, default="")

    # Indexed for date-range queries
    posted_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    # --- Relationships ---
    account: Mapped["Account"] = relationship()
    particular: Mapped["Particular"] = relationship()
    expense: Mapped["ExpenseCategory"] = relationship()


@event.listens_for(LedgerEntry, "before_update")
def _reject_ledger_update(mapper, connection, target: LedgerEntry) -> None:
    raise ImmutableRecordError(f"Ledger entry {target.id} is immutable and cannot be updated")


@event.listens_for(LedgerEntry, "before_delete")
def _reject_ledger_delete(mapper, connection, target: LedgerEntry) -> None:
    raise ImmutableRecordError(f"Ledger entry {target.id} is immutable and cannot be deleted")
