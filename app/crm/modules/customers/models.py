from __future__ import annotations

import enum

from sqlalchemy import Enum, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.crm.models import Base


class Gender(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (
        # Email uniqueness lives in the database so concurrent writers cannot race past it.
        UniqueConstraint("email", name="uq_customers_email"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    gender: Mapped[Gender] = mapped_column(
        Enum(Gender, name="customer_gender", native_enum=False, length=16),
        nullable=False,
    )
    profile_image_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
