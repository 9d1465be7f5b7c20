"""
Token and email helpers for invitations.
"""

import re
import secrets
from datetime import datetime, timezone
from typing import Optional

from ..exceptions import ValidationError

# Basic shape check: something@something.tld, no whitespace
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

TOKEN_BYTES = 32


def generate_token(nbytes: int = TOKEN_BYTES) -> str:
    """Generate an unguessable URL-safe invitation token."""
    return secrets.token_urlsafe(nbytes)


def normalize_email(email: Optional[str]) -> str:
    """Trim and lowercase an email address."""
    return (email or "").strip().lower()


def validate_email(email: Optional[str], allow_test_domains: bool = False) -> str:
    """
    Normalize an email address and check its shape.

    Args:
        email: Raw email address
        allow_test_domains: Accept addresses on the reserved ``.test`` TLD

    Returns:
        The normalized address

    Raises:
        ValidationError: If the address is empty or malformed
    """
    normalized = normalize_email(email)
    if not normalized:
        raise ValidationError("Email is required", code="email_required")
    if not EMAIL_PATTERN.match(normalized):
        raise ValidationError("Invalid email format", code="invalid_email")
    if not allow_test_domains and normalized.endswith(".test"):
        raise ValidationError("Invalid email format", code="invalid_email")
    return normalized


def mask_token(token: str) -> str:
    """Shorten a token for log output."""
    return f"{token[:6]}..." if len(token) > 6 else "***"


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)
