"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table before create_all() runs
  2. Other modules can import from cashbook.models directly
"""

from cashbook.models.user import User  # noqa: F401
from cashbook.models.bank import Bank, Branch  # noqa: F401
from cashbook.models.account import Account  # noqa: F401
from cashbook.models.chart import Particular, ExpenseCategory  # noqa: F401
from cashbook.models.ledger_entry import LedgerEntry  # noqa: F401
