from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

from app.crm.modules.customers.models import Customer, Gender
from app.crm.security import DEFAULT_ROLE


@dataclass(frozen=True)
class CustomerRecord:
    """Detached snapshot of a customer row."""

    id: int | None
    name: str
    email: str
    password_hash: str
    age: int
    gender: Gender
    profile_image_id: str | None = None

    @classmethod
    def from_row(cls, row: Customer) -> "CustomerRecord":
        return cls(
            id=row.id,
            name=row.name,
            email=row.email,
            password_hash=row.password_hash,
            age=row.age,
            gender=Gender(row.gender),
            profile_image_id=row.profile_image_id,
        )


@dataclass(frozen=True)
class CustomerPatch:
    """
    Sparse update request. A field left as None means "leave unchanged".
    `password_hash` must already be hashed by the caller.
    """

    name: str | None = None
    email: str | None = None
    age: int | None = None
    gender: Gender | None = None
    password_hash: str | None = None

    def present(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


PATCHABLE_FIELDS = tuple(f.name for f in fields(CustomerPatch))


def customer_dto(record: CustomerRecord) -> dict[str, Any]:
    """Public JSON shape. The password hash is never serialized."""
    return {
        "id": record.id,
        "name": record.name,
        "email": record.email,
        "gender": record.gender.value,
        "age": record.age,
        "roles": [DEFAULT_ROLE],
        "username": record.email,
        "profileImageId": record.profile_image_id,
    }
