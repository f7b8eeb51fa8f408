from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Declarative base for all tables.
    Module models register on import; `app.crm.modules.customers.models` must be
    imported before using `Base.metadata` (create_app and migrations/env.py do this).
    """
