"""
Password Strength Policy

Checks a candidate password against the credential rules before it is hashed
and stored. Unlike a login check, every rule is evaluated so the caller can
show all problems at once; nothing here raises on a weak password.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List

MIN_LENGTH = 8
MAX_LENGTH = 100
STRONG_LENGTH = 12

UPPERCASE = re.compile(r"[A-Z]")
LOWERCASE = re.compile(r"[a-z]")
DIGIT = re.compile(r"\d")
SPECIAL = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")

WEAK_PASSWORDS: FrozenSet[str] = frozenset(
    {
        "password",
        "password123",
        "123456",
        "123456789",
        "qwerty",
        "abc123",
        "password1",
        "admin",
        "letmein",
        "welcome",
        "monkey",
        "dragon",
        "master",
        "shadow",
        "passw0rd",
    }
)


class PasswordStrength(str, Enum):
    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"

    @property
    def message(self) -> str:
        return f"Password strength: {self.value.capitalize()}"


@dataclass(frozen=True)
class PasswordValidationResult:
    """Outcome of ``validate_password``.

    Attributes:
        is_valid: True when no rule failed.
        errors: One message per failed rule, in rule order.
        strength: ``WEAK`` whenever a rule failed; otherwise graded by length.
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    strength: PasswordStrength = PasswordStrength.WEAK


def validate_password(password: str) -> PasswordValidationResult:
    """
    Evaluate ``password`` against every strength rule.

    Rules:
        - at least 8 characters and at most 100
        - an uppercase letter, a lowercase letter and a digit
        - a special character from ``!@#$%^&*()_+-=[]{};':"\\|,.<>/?``
        - not one of the common passwords in ``WEAK_PASSWORDS`` (case-insensitive)

    A valid password of 12 or more characters is ``STRONG``; a shorter valid
    one is ``MEDIUM``.
    """
    errors = []

    if len(password) < MIN_LENGTH:
        errors.append(f"Password must be at least {MIN_LENGTH} characters long")
    if not UPPERCASE.search(password):
        errors.append("Password must contain at least one uppercase letter")
    if not LOWERCASE.search(password):
        errors.append("Password must contain at least one lowercase letter")
    if not DIGIT.search(password):
        errors.append("Password must contain at least one number")
    if not SPECIAL.search(password):
        errors.append("Password must contain at least one special character (!@#$%^&*)")
    if password.lower() in WEAK_PASSWORDS:
        errors.append("This password is too common and not allowed")
    if len(password) > MAX_LENGTH:
        errors.append(f"Password must be at most {MAX_LENGTH} characters long")

    if errors:
        return PasswordValidationResult(is_valid=False, errors=errors)

    if len(password) >= STRONG_LENGTH:
        return PasswordValidationResult(is_valid=True, strength=PasswordStrength.STRONG)
    return PasswordValidationResult(is_valid=True, strength=PasswordStrength.MEDIUM)
