"""
Release step for the customer service: bring the schema to head and confirm the
profile-image bucket is reachable before new code takes traffic.

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class ReleaseError(RuntimeError):
    pass


def migrate(db_url: str) -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")


def check_customer_bucket(config: dict) -> None:
    """Profile-image uploads fail at request time if the bucket is missing; catch it here instead."""
    from botocore.exceptions import BotoCoreError, ClientError

    from app.crm.storage import S3Storage, storage_from_config

    storage = storage_from_config(config)
    if not isinstance(storage, S3Storage):
        return
    bucket = (config.get("S3_BUCKET_CUSTOMER") or "").strip()
    if not bucket:
        raise ReleaseError("S3_BUCKET_CUSTOMER must be set when STORAGE_BACKEND=s3.")
    try:
        storage._client().head_bucket(Bucket=bucket)
    except (BotoCoreError, ClientError) as e:
        raise ReleaseError(f"Customer bucket '{bucket}' is not reachable: {e}") from e


def run_release() -> None:
    from app.crm.config import load_config

    config = load_config()
    db_url = (os.environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise ReleaseError("DATABASE_URL must be set for a release.")
    if config["ENV"].lower() in ("prod", "production") and db_url.startswith("sqlite"):
        raise ReleaseError("Refusing to release against sqlite in production.")

    print("Migrating customers schema...", flush=True)
    migrate(db_url)
    print(f"Checking profile-image storage ({config['STORAGE_BACKEND']})...", flush=True)
    check_customer_bucket(config)
    print("Release ready.", flush=True)


def main() -> None:
    try:
        run_release()
    except ReleaseError as e:
        print(f"Release failed: {e}", flush=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
