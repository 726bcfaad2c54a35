"""
Bank and Branch models — the two parents of every account number.

An account number is composed from three parts:

    <prefix> <branch address> <bank name>
    SAV001   Main St          ABC Bank

so renaming a bank or a branch address changes the account numbers of
every account underneath it (see services/cascade_service.py).

Uniqueness:
  - Bank names are unique case-insensitively. The check lives in the
    service layer; the column UNIQUE constraint catches exact duplicates.
  - Branch addresses are unique per bank (composite UNIQUE constraint).
"""

from datetime import datetime, timezone

from sqlalchemy import String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cashbook.database import Base, UTCDateTime

MAX_BANK_NAME_LENGTH = 50
MAX_BRANCH_ADDRESS_LENGTH = 15


class Bank(Base):
    __tablename__ = "banks"

    code: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(
        String(MAX_BANK_NAME_LENGTH),
        unique=True,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    branches: Mapped[list["Branch"]] = relationship(back_populates="bank")


class Branch(Base):
    __tablename__ = "branches"

    __table_args__ = (
        UniqueConstraint("bank_code", "address", name="uq_branches_bank_address"),
    )

    code: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Short street address, it is embedded in every account number
    address: Mapped[str] = mapped_column(
        String(MAX_BRANCH_ADDRESS_LENGTH),
        nullable=False,
    )

    bank_code: Mapped[int] = mapped_column(
        ForeignKey("banks.code"),
        nullable=False,
        index=True,
    )

    # Contact metadata (display only)
    contact_person: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone_no: Mapped[str | None] = mapped_column(String(30), nullable=True)
    fax_no: Mapped[str | None] = mapped_column(String(30), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    bank: Mapped[Bank] = relationship(back_populates="branches")
    accounts: Mapped[list["Account"]] = relationship(back_populates="branch")
