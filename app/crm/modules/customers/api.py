from __future__ import annotations

from flask import Blueprint, Response, current_app, jsonify, request

from app.crm.db import db_session
from app.crm.errors import RequestValidationError
from app.crm.modules.customers.schemas import CustomerPatch, customer_dto
from app.crm.modules.customers.service import CustomerService
from app.crm.modules.customers.store import CustomerStore
from app.crm.modules.customers.utils import (
    clean_str,
    parse_age,
    parse_gender,
    validate_registration_payload,
    validate_update_payload,
)
from app.crm.rbac import require_token
from app.crm.security import DEFAULT_ROLE

bp = Blueprint("customers", __name__)


def customer_service() -> CustomerService:
    return CustomerService(
        store=CustomerStore(db_session()),
        storage=current_app.extensions["storage"],
        bucket=current_app.config["S3_BUCKET_CUSTOMER"],
        hasher=current_app.extensions["password_hasher"],
    )


def _json_payload() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise RequestValidationError(["Request body must be a JSON object."])
    return payload


# ---------- Read ----------
@bp.get("")
@require_token
def customers_list():
    return jsonify([customer_dto(c) for c in customer_service().list_customers()])


@bp.get("/<int:customer_id>")
@require_token
def customer_detail(customer_id: int):
    return jsonify(customer_dto(customer_service().get_customer(customer_id)))


@bp.get("/email/<string:email>")
@require_token
def customer_by_email(email: str):
    return jsonify(customer_dto(customer_service().get_customer_by_email(email)))


# ---------- Register ----------
@bp.post("")
def customer_register():
    payload = _json_payload()
    errors = validate_registration_payload(payload)
    if errors:
        raise RequestValidationError(errors)

    email = clean_str(payload["email"])
    customer_service().register_customer(
        name=clean_str(payload["name"]),
        email=email,
        password=payload["password"],
        age=parse_age(payload["age"]),
        gender=parse_gender(payload["gender"]),
    )
    db_session().commit()

    token = current_app.extensions["token_issuer"].issue(email, [DEFAULT_ROLE])
    return Response(status=200, headers={"Authorization": token})


# ---------- Update ----------
@bp.put("/<int:customer_id>")
@require_token
def customer_update(customer_id: int):
    payload = _json_payload()
    errors = validate_update_payload(payload)
    if errors:
        raise RequestValidationError(errors)

    password = payload.get("password")
    patch = CustomerPatch(
        name=clean_str(payload.get("name")),
        email=clean_str(payload.get("email")),
        age=parse_age(payload.get("age")),
        gender=parse_gender(payload.get("gender")),
        password_hash=current_app.extensions["password_hasher"].hash(password) if password else None,
    )
    customer_service().update_customer(customer_id, patch)
    db_session().commit()
    return Response(status=200)


# ---------- Delete ----------
@bp.delete("/<int:customer_id>")
@require_token
def customer_delete(customer_id: int):
    customer_service().delete_customer(customer_id)
    db_session().commit()
    return Response(status=200)


# ---------- Profile image ----------
@bp.post("/<int:customer_id>/profile-image")
@require_token
def customer_profile_image_upload(customer_id: int):
    f = request.files.get("file")
    if f is None:
        raise RequestValidationError(["File is required."])
    customer_service().upload_profile_image(customer_id, f.read(), content_type=f.mimetype or None)
    db_session().commit()
    return Response(status=200)


@bp.get("/<int:customer_id>/profile-image")
@require_token
def customer_profile_image_get(customer_id: int):
    data = customer_service().get_profile_image(customer_id)
    return Response(data, status=200, mimetype="image/jpeg")
