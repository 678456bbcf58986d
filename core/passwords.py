"""
core/passwords.py -- Password complexity rules for new passwords.

The identity provider enforces its own policy on the server side; these
rules mirror it so the form can explain a rejection before the round trip.
"""

import re

_RULES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"[0-9]"), "Password must contain at least 1 number."),
    (re.compile(r"[a-z]"), "Password must contain at least 1 lowercase letter."),
    (re.compile(r"[A-Z]"), "Password must contain at least 1 uppercase letter."),
    (re.compile(r"[^a-zA-Z0-9]"), "Password must contain at least 1 special character or a space."),
]

MIN_LENGTH = 8
MISMATCH = "Passwords do not match."


def validate_password(password: str) -> list[str]:
    """Return every rule the password breaks, in display order. Empty list means valid."""
    errors: list[str] = []
    if len(password) < MIN_LENGTH:
        errors.append(f"Password must be at least {MIN_LENGTH} characters long.")
    for pattern, message in _RULES:
        if not pattern.search(password):
            errors.append(message)
    return errors


def check_new_password(new_password: str, confirm_password: str) -> str:
    """Return the message to show for a new/confirm pair, or "" when acceptable.

    Rule violations take precedence over a mismatch.
    """
    errors = validate_password(new_password)
    if errors:
        return " ".join(errors)
    if new_password != confirm_password:
        return MISMATCH
    return ""
