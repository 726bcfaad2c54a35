"""
User model — the acting identity behind every ledger entry.

Users are provisioned and authenticated by the login service; this API
only verifies the bearer token and resolves the `sub` claim to a User row.
Deactivated users keep their historic ledger entries but their tokens are
rejected.
"""

from datetime import datetime, timezone

from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from cashbook.database import Base, UTCDateTime


class User(Base):
    __tablename__ = "users"

    code: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Login identifier used by the login service
    login_name: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )

    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
