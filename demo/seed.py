#!/usr/bin/env python3
"""
Demo seed script — populates the database with sample data for demos.

!! NOT FOR PRODUCTION !!
This script writes reference data (users, banks, branches, transaction
types, expense categories) straight into the database, mints bearer
tokens for the demo users, and then drives the running API to open
accounts and post transactions.

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # Reset the database and re-seed:
    python demo/seed.py --reset

    # Custom server URL:
    python demo/seed.py --base-url http://localhost:9000
"""

import argparse
import asyncio
import os
import random
import sys
from decimal import Decimal

import httpx

from cashbook.config import settings
from cashbook.database import StoreProvider
from cashbook.models import Bank, Branch, ExpenseCategory, Particular, User
from cashbook.security import create_access_token

BASE_URL = "http://localhost:8000"

# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------

USERS = [
    {"name": "Admin User", "login_name": "admin", "is_admin": True},
    {"name": "Alice Chen", "login_name": "alice", "is_admin": False},
]

BANKS = {
    "ABC Bank": ["Main St", "North Ave"],
    "City Savings": ["Harbor Rd"],
}

# (display name, chart account code, credit)
PARTICULARS = [
    ("Cash Deposit", "1001", True),
    ("Cheque Deposit", "1002", True),
    ("Interest Received", "4001", True),
    ("Cash Withdrawal", "2001", False),
    ("Utility Bill", "5001", False),
    ("Office Supplies", "5002", False),
]

EXPENSES = ["Electricity", "Stationery", "Rent"]

ACCOUNTS = [
    # (bank, branch, prefix, type, opening balance)
    ("ABC Bank", "Main St", "SAV001", "Savings", Decimal("1500.00")),
    ("ABC Bank", "North Ave", "CUR001", "Current", Decimal("250.00")),
    ("City Savings", "Harbor Rd", "SAV002", "Savings", Decimal("0.00")),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def seed_reference_data() -> dict:
    """Insert users and directory rows; returns the codes needed later."""
    provider = StoreProvider(settings.DATABASE_URL)
    if not await provider.connect():
        print(f"  ERROR: Cannot connect to {settings.DATABASE_URL}")
        sys.exit(1)
    await provider.create_all()

    codes: dict = {"users": {}, "banks": {}, "branches": {}}
    try:
        async with provider.session() as session:
            for row in USERS:
                user = User(**row)
                session.add(user)
                await session.flush()
                codes["users"][row["login_name"]] = (user.code, row["is_admin"])

            for bank_name, addresses in BANKS.items():
                bank = Bank(name=bank_name)
                session.add(bank)
                await session.flush()
                codes["banks"][bank_name] = bank.code
                for address in addresses:
                    branch = Branch(address=address, bank_code=bank.code, contact_person="Front Desk")
                    session.add(branch)
                    await session.flush()
                    codes["branches"][(bank_name, address)] = branch.code

            for name, account_code, credit in PARTICULARS:
                session.add(Particular(particular=name, account_code=account_code, credit=credit))
            for name in EXPENSES:
                session.add(ExpenseCategory(name=name))

            await session.commit()
    finally:
        await provider.dispose()
    return codes


async def create_account(client: httpx.AsyncClient, token: str, bank_code: int,
                         branch_code: int, prefix: str, account_type: str,
                         opening_balance: Decimal) -> dict:
    resp = await client.post(
        f"{BASE_URL}/accounts",
        json={
            "bank_code": bank_code,
            "branch_code": branch_code,
            "prefix": prefix,
            "account_type": account_type,
            "opening_balance": str(opening_balance),
        },
        headers=auth_header(token),
    )
    resp.raise_for_status()
    return resp.json()["account"]


async def transact(client: httpx.AsyncClient, token: str, account_code: int,
                   particular: str, amount: Decimal, notes: str) -> dict:
    resp = await client.post(
        f"{BASE_URL}/transactions",
        json={
            "account_code": account_code,
            "particular": particular,
            "amount": str(amount),
            "notes": notes,
        },
        headers=auth_header(token),
    )
    return resp.json()


# ---------------------------------------------------------------------------
# Seed logic
# ---------------------------------------------------------------------------

async def seed(base_url: str) -> None:
    global BASE_URL
    BASE_URL = base_url

    print("\n========================================")
    print("  DEMO SEED — NOT FOR PRODUCTION")
    print("========================================\n")

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print("  Start the server first: uvicorn cashbook.main:app --reload\n")
            sys.exit(1)

        print("Creating reference data...")
        codes = await seed_reference_data()
        tokens = {}
        for login_name, (user_code, is_admin) in codes["users"].items():
            tokens[login_name] = create_access_token(
                {"sub": str(user_code), "login_name": login_name, "admin": is_admin}
            )
        log(f"{len(codes['banks'])} banks, {len(codes['branches'])} branches, "
            f"{len(PARTICULARS)} transaction types")

        token = tokens["alice"]
        print("\nOpening accounts...")
        credit_types = [name for name, _, credit in PARTICULARS if credit]
        debit_types = [name for name, _, credit in PARTICULARS if not credit]
        for bank_name, address, prefix, account_type, opening in ACCOUNTS:
            account = await create_account(
                client, token, codes["banks"][bank_name],
                codes["branches"][(bank_name, address)], prefix, account_type, opening,
            )
            log(f"{account['account_no']} (opening {account['cash_in_bank']})")

            for _ in range(random.randint(3, 8)):
                if random.random() < 0.5:
                    particular = random.choice(credit_types)
                    amount = Decimal(random.randint(10_00, 500_00)).scaleb(-2)
                else:
                    particular = random.choice(debit_types)
                    amount = Decimal(random.randint(5_00, 200_00)).scaleb(-2)
                result = await transact(client, token, account["code"], particular, amount, "Demo")
                if result.get("status") != "success":
                    log(f"  {particular} {amount}: {result.get('message')}")
            balance = await client.get(
                f"{BASE_URL}/accounts/{account['code']}/balance", headers=auth_header(token)
            )
            log(f"  balance {balance.json()['cached_balance']}")

    print("\n========================================")
    print("  SEED COMPLETE — Bearer tokens")
    print("========================================")
    for login_name, token in tokens.items():
        print(f"\n  {login_name}:\n  {token}")
    print()


def reset_database() -> None:
    """Delete the SQLite database file so the server recreates it on restart."""
    db_path = os.path.join(os.path.dirname(__file__), "..", "data", "cashbook.db")
    db_path = os.path.normpath(db_path)

    if os.path.exists(db_path):
        os.remove(db_path)
        print(f"\n  Deleted {db_path}")
        print("  Restart the server to recreate empty tables.\n")
    else:
        print(f"\n  No database found at {db_path}\n")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Demo seed script — NOT FOR PRODUCTION",
        epilog="Creates sample users, banks, accounts, and transactions for demos.",
    )
    parser.add_argument(
        "--base-url", default="http://localhost:8000",
        help="Base URL of the running API (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Delete the database file and exit (restart server to recreate)",
    )
    args = parser.parse_args()

    if args.reset:
        reset_database()
        return

    await seed(args.base_url)


if __name__ == "__main__":
    asyncio.run(main())
