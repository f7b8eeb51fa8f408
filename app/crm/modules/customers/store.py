from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.crm.errors import DuplicateIdentity
from app.crm.modules.customers.models import Customer
from app.crm.modules.customers.schemas import PATCHABLE_FIELDS, CustomerRecord

logger = logging.getLogger(__name__)

LIST_LIMIT = 50


def _is_email_conflict(e: IntegrityError) -> bool:
    msg = str(e.orig).lower()
    return "uq_customers_email" in msg or "customers.email" in msg


class CustomerStore:
    """
    Identity store over a SQLAlchemy session.
    Writes flush immediately; committing is left to the caller (request handler, or session_scope in scripts).
    """

    def __init__(self, s: Session):
        self.s = s

    def find_all(self, limit: int = LIST_LIMIT) -> list[CustomerRecord]:
        rows = self.s.scalars(select(Customer).order_by(Customer.id.asc()).limit(limit)).all()
        return [CustomerRecord.from_row(r) for r in rows]

    def find_by_id(self, customer_id: int) -> CustomerRecord | None:
        row = self.s.get(Customer, customer_id)
        return CustomerRecord.from_row(row) if row else None

    def find_by_email(self, email: str) -> CustomerRecord | None:
        row = self.s.scalars(select(Customer).where(Customer.email == email)).one_or_none()
        return CustomerRecord.from_row(row) if row else None

    def exists_by_email(self, email: str) -> bool:
        return bool(self.s.scalar(select(exists().where(Customer.email == email))))

    def exists_by_id(self, customer_id: int) -> bool:
        return bool(self.s.scalar(select(exists().where(Customer.id == customer_id))))

    def insert(self, record: CustomerRecord) -> int:
        row = Customer(
            name=record.name,
            email=record.email,
            password_hash=record.password_hash,
            age=record.age,
            gender=record.gender,
        )
        self.s.add(row)
        with self._email_conflict(record.email):
            self.s.flush()
        return row.id

    def update_fields(self, customer_id: int, changes: dict[str, Any]) -> None:
        unknown = set(changes) - set(PATCHABLE_FIELDS)
        if unknown:
            raise ValueError(f"Not patchable: {', '.join(sorted(unknown))}")
        if not changes:
            return
        with self._email_conflict(changes.get("email")):
            self.s.execute(
                update(Customer).where(Customer.id == customer_id).values(**changes),
                execution_options={"synchronize_session": "fetch"},
            )

    def update_profile_image_id(self, customer_id: int, profile_image_id: str) -> None:
        self.s.execute(
            update(Customer).where(Customer.id == customer_id).values(profile_image_id=profile_image_id),
            execution_options={"synchronize_session": "fetch"},
        )

    def delete(self, customer_id: int) -> None:
        self.s.execute(delete(Customer).where(Customer.id == customer_id))

    @contextmanager
    def _email_conflict(self, email: str | None) -> Iterator[None]:
        try:
            yield
        except IntegrityError as e:
            self.s.rollback()
            if _is_email_conflict(e):
                logger.warning("Unique email constraint rejected write (email=%s)", email)
                raise DuplicateIdentity(f"Customer with email [{email}] already exists") from e
            raise
