"""
Composite account number builder.

An account number is three whitespace-trimmed parts joined by single
spaces:

    build("SAV001", "Main St", "ABC Bank")  ->  "SAV001 Main St ABC Bank"

The prefix must be a single token (no whitespace) so that the first token
of a stored account number is always its prefix:

    extract_prefix(build(prefix, address, bank)) == prefix
"""

from cashbook.exceptions import ValidationError
from cashbook.models.account import MAX_ACCOUNT_NO_LENGTH


def validate_prefix(prefix: str | None) -> str:
    """
    Return the trimmed prefix.

    Raises:
        ValidationError: If the prefix is missing, empty, or contains
            whitespace (it would be split apart by extract_prefix).
    """
    cleaned = (prefix or "").strip()
    if not cleaned:
        raise ValidationError("Account prefix is required")
    if any(ch.isspace() for ch in cleaned):
        raise ValidationError("Account prefix cannot contain spaces")
    return cleaned


def build(prefix: str, branch_address: str, bank_name: str) -> str:
    """
    Compose "<prefix> <branch address> <bank name>".

    Raises:
        ValidationError: If the result is longer than 50 characters.
    """
    account_no = " ".join(
        part.strip() for part in (prefix, branch_address, bank_name)
    )
    if len(account_no) > MAX_ACCOUNT_NO_LENGTH:
        raise ValidationError(
            f"Account number exceeds maximum length of {MAX_ACCOUNT_NO_LENGTH} characters"
        )
    return account_no


def extract_prefix(account_no: str) -> str:
    """Everything before the first space; the whole string if there is none."""
    prefix, _, _ = account_no.partition(" ")
    return prefix
