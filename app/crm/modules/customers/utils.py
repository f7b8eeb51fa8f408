from __future__ import annotations

from typing import Any

from app.crm.modules.customers.models import Gender

MIN_AGE = 1
MAX_AGE = 120


def clean_str(value: Any) -> str | None:
    """Strip strings; blank becomes None. Non-strings pass through untouched."""
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    value = value.strip()
    return value or None


def parse_gender(value: Any) -> Gender | None:
    raw = clean_str(value)
    if raw is None:
        return None
    try:
        return Gender(str(raw).upper())
    except ValueError:
        raise ValueError(f"Invalid gender. Must be one of: {', '.join(g.value for g in Gender)}")


def parse_age(value: Any) -> int | None:
    if value is None or value == "":
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise ValueError("Age must be an integer.")
    try:
        age = int(value)
    except (TypeError, ValueError):
        raise ValueError("Age must be an integer.")
    if isinstance(value, float) and value != age:
        raise ValueError("Age must be an integer.")
    if not MIN_AGE <= age <= MAX_AGE:
        raise ValueError(f"Age must be between {MIN_AGE} and {MAX_AGE}.")
    return age


def _looks_like_email(email: str) -> bool:
    local, _, domain = email.partition("@")
    return bool(local) and "." in domain and " " not in email


def validate_registration_payload(payload: dict) -> list[str]:
    """Validate a registration payload. Returns list of errors."""
    errors: list[str] = []
    if not isinstance(clean_str(payload.get("name")), str):
        errors.append("Name is required.")
    email = clean_str(payload.get("email"))
    if not email:
        errors.append("Email is required.")
    elif not isinstance(email, str) or not _looks_like_email(email):
        errors.append("Email is invalid.")
    password = payload.get("password")
    if not isinstance(password, str) or not password:
        errors.append("Password is required.")
    if payload.get("age") in (None, ""):
        errors.append("Age is required.")
    else:
        try:
            parse_age(payload.get("age"))
        except ValueError as e:
            errors.append(str(e))
    if clean_str(payload.get("gender")) is None:
        errors.append("Gender is required.")
    else:
        try:
            parse_gender(payload.get("gender"))
        except ValueError as e:
            errors.append(str(e))
    return errors


def validate_update_payload(payload: dict) -> list[str]:
    """Validate an update payload. Every field is optional; present fields must be well-formed."""
    errors: list[str] = []
    if payload.get("name") is not None and not isinstance(clean_str(payload["name"]), str):
        errors.append("Name cannot be blank.")
    email = clean_str(payload.get("email"))
    if email is not None and (not isinstance(email, str) or not _looks_like_email(email)):
        errors.append("Email is invalid.")
    try:
        parse_age(payload.get("age"))
    except ValueError as e:
        errors.append(str(e))
    try:
        parse_gender(payload.get("gender"))
    except ValueError as e:
        errors.append(str(e))
    password = payload.get("password")
    if password is not None and (not isinstance(password, str) or not password):
        errors.append("Password cannot be blank.")
    return errors
