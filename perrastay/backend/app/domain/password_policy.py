from __future__ import annotations

import re

from .errors import ValidationError

MIN_PASSWORD_LENGTH = 8

_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"[A-Z]"), "must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "must contain at least one lowercase letter"),
    (re.compile(r"[0-9]"), "must contain at least one number"),
    (re.compile(r"[^A-Za-z0-9]"), "must contain at least one special character"),
)


def password_problems(password: str) -> list[str]:
    problems: list[str] = []
    if len(password or "") < MIN_PASSWORD_LENGTH:
        problems.append(f"must be at least {MIN_PASSWORD_LENGTH} characters")
    for pattern, reason in _RULES:
        if not pattern.search(password or ""):
            problems.append(reason)
    return problems


def ensure_password_complexity(password: str, *, field: str = "password") -> None:
    problems = password_problems(password)
    if problems:
        raise ValidationError(field, "; ".join(problems))
