"""
Local development bootstrap: create the customers table from the models and
optionally register a first customer so the API can be logged into right away.

    SEED_CUSTOMER_EMAIL=me@dev.com SEED_CUSTOMER_PASSWORD=pw python scripts/init_db.py

Production schema changes go through Alembic (scripts/release.py).
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from flask import Flask  # noqa: E402

from app.crm import create_app  # noqa: E402
from app.crm.db import session_scope  # noqa: E402
from app.crm.models import Base  # noqa: E402
from app.crm.modules.customers.models import Gender  # noqa: E402
from app.crm.modules.customers.service import CustomerService  # noqa: E402
from app.crm.modules.customers.store import CustomerStore  # noqa: E402


def seed_customer(app: Flask, *, name: str, email: str, password: str, age: int, gender: Gender) -> int | None:
    """Register a customer unless the email is already taken. Returns the new id, or None if skipped."""
    with session_scope(app) as s:
        store = CustomerStore(s)
        if store.exists_by_email(email):
            app.logger.info("Seed customer %s already present; skipping", email)
            return None
        service = CustomerService(
            store=store,
            storage=app.extensions["storage"],
            bucket=app.config["S3_BUCKET_CUSTOMER"],
            hasher=app.extensions["password_hasher"],
        )
        return service.register_customer(name=name, email=email, password=password, age=age, gender=gender).id


def bootstrap(app: Flask) -> int | None:
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])

    email = (os.environ.get("SEED_CUSTOMER_EMAIL") or "").strip()
    password = os.environ.get("SEED_CUSTOMER_PASSWORD") or ""
    if not email or not password:
        return None
    return seed_customer(
        app,
        name=(os.environ.get("SEED_CUSTOMER_NAME") or "Dev Customer").strip(),
        email=email,
        password=password,
        age=int(os.environ.get("SEED_CUSTOMER_AGE") or 30),
        gender=Gender((os.environ.get("SEED_CUSTOMER_GENDER") or "FEMALE").strip().upper()),
    )


def main() -> None:
    app = create_app()
    customer_id = bootstrap(app)
    print("Tables created.", flush=True)
    if customer_id is not None:
        print(f"Seeded customer id={customer_id}", flush=True)


if __name__ == "__main__":
    main()
