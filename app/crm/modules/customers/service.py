"""
CUSTOMER MUTATION & IDENTITY RESOLUTION
=======================================

Operation               | Store calls                                   | Failure modes
------------------------|-----------------------------------------------|-------------------------------
register_customer       | exists_by_email, insert                       | DuplicateIdentity
update_customer         | find_by_id, [exists_by_email], update_fields  | CustomerNotFound, DuplicateIdentity, NoChanges
delete_customer         | exists_by_id, delete                          | CustomerNotFound
upload_profile_image    | exists_by_id, storage.put, update_profile_... | CustomerNotFound, UploadFailed
get_profile_image       | find_by_id, storage.get                       | CustomerNotFound, NoImage, UploadFailed

INVARIANTS:
- Email is unique across all customers. The pre-check gives the caller a clear error;
  the database unique constraint (surfaced by CustomerStore as DuplicateIdentity) closes
  the race between check and write.
- update_customer performs exactly one store write when something changed, none otherwise.
- The merge never hashes: a password in a patch arrives already hashed.
- Profile images live at profile-images/<customer_id>/<profile_image_id>. Replacing an image
  leaves the previous blob in storage; the customer row only ever points at the latest.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from app.crm.errors import CustomerNotFound, DuplicateIdentity, NoChanges, NoImage, UploadFailed
from app.crm.modules.customers.models import Gender
from app.crm.modules.customers.schemas import CustomerPatch, CustomerRecord
from app.crm.storage import StorageError

if TYPE_CHECKING:
    from app.crm.modules.customers.store import CustomerStore
    from app.crm.security import PasswordHasher
    from app.crm.storage import Storage

logger = logging.getLogger(__name__)

PROFILE_IMAGE_PREFIX = "profile-images"


def profile_image_key(customer_id: int, profile_image_id: str) -> str:
    return f"{PROFILE_IMAGE_PREFIX}/{customer_id}/{profile_image_id}"


def merge_patch(customer: CustomerRecord, patch: CustomerPatch) -> tuple[CustomerRecord, dict[str, Any]]:
    """
    Apply a sparse patch to a customer snapshot.

    Returns the merged record and the change set (field -> new value). A patch value
    equal to the current one is not a change, so an all-equal patch yields an empty dict.
    """
    changes: dict[str, Any] = {}
    for field_name, new_value in patch.present().items():
        if new_value != getattr(customer, field_name):
            changes[field_name] = new_value
    return replace(customer, **changes), changes


class CustomerService:
    def __init__(self, store: "CustomerStore", storage: "Storage", bucket: str, hasher: "PasswordHasher"):
        self.store = store
        self.storage = storage
        self.bucket = bucket
        self.hasher = hasher

    # ---------- Lookup ----------
    def list_customers(self) -> list[CustomerRecord]:
        return self.store.find_all()

    def get_customer(self, customer_id: int) -> CustomerRecord:
        customer = self.store.find_by_id(customer_id)
        if customer is None:
            raise CustomerNotFound(f"Customer with id [{customer_id}] not found")
        return customer

    def get_customer_by_email(self, email: str) -> CustomerRecord:
        customer = self.store.find_by_email(email)
        if customer is None:
            raise CustomerNotFound(f"Customer with email [{email}] not found")
        return customer

    def _require_exists(self, customer_id: int) -> None:
        if not self.store.exists_by_id(customer_id):
            raise CustomerNotFound(f"Customer with id [{customer_id}] not found")

    def _require_email_free(self, email: str) -> None:
        if self.store.exists_by_email(email):
            logger.warning("Rejected duplicate email %s", email)
            raise DuplicateIdentity(f"Customer with email [{email}] already exists")

    # ---------- Registration ----------
    def register_customer(self, name: str, email: str, password: str, age: int, gender: Gender) -> CustomerRecord:
        self._require_email_free(email)
        record = CustomerRecord(
            id=None,
            name=name,
            email=email,
            password_hash=self.hasher.hash(password),
            age=age,
            gender=gender,
        )
        customer_id = self.store.insert(record)
        logger.info("Registered customer id=%s email=%s", customer_id, email)
        return replace(record, id=customer_id)

    # ---------- Update ----------
    def update_customer(self, customer_id: int, patch: CustomerPatch) -> CustomerRecord:
        current = self.get_customer(customer_id)
        merged, changes = merge_patch(current, patch)

        if "email" in changes:
            self._require_email_free(changes["email"])

        if not changes:
            raise NoChanges("No data changes found")

        self.store.update_fields(customer_id, changes)
        logger.info("Updated customer id=%s fields=%s", customer_id, ",".join(sorted(changes)))
        return merged

    # ---------- Delete ----------
    def delete_customer(self, customer_id: int) -> None:
        self._require_exists(customer_id)
        self.store.delete(customer_id)
        logger.info("Deleted customer id=%s", customer_id)

    # ---------- Profile image ----------
    def upload_profile_image(self, customer_id: int, data: bytes, *, content_type: str | None = None) -> str:
        self._require_exists(customer_id)

        profile_image_id = str(uuid.uuid4())
        key = profile_image_key(customer_id, profile_image_id)
        try:
            self.storage.put_bytes(self.bucket, key, data, content_type=content_type)
        except StorageError as e:
            logger.exception("Profile image upload failed (customer_id=%s key=%s)", customer_id, key)
            raise UploadFailed("Failed to upload profile image") from e

        self.store.update_profile_image_id(customer_id, profile_image_id)
        logger.info("Stored profile image customer_id=%s key=%s/%s", customer_id, self.bucket, key)
        return profile_image_id

    def get_profile_image(self, customer_id: int) -> bytes:
        customer = self.get_customer(customer_id)
        profile_image_id = (customer.profile_image_id or "").strip()
        if not profile_image_id:
            raise NoImage(f"Profile image with id [{customer_id}] not found")

        key = profile_image_key(customer_id, profile_image_id)
        try:
            return self.storage.get_bytes(self.bucket, key)
        except StorageError as e:
            logger.exception("Profile image read failed (customer_id=%s key=%s)", customer_id, key)
            raise UploadFailed("Failed to read profile image") from e
