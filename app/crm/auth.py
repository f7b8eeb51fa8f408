from __future__ import annotations

import uuid

from flask import Blueprint, current_app, g, jsonify, request

from app.crm.db import db_session
from app.crm.modules.customers.schemas import customer_dto
from app.crm.modules.customers.store import CustomerStore
from app.crm.security import DEFAULT_ROLE, InvalidToken

bp = Blueprint("auth", __name__)

_BEARER_PREFIX = "bearer "


def _bearer_token() -> str | None:
    header = (request.headers.get("Authorization") or "").strip()
    if not header.lower().startswith(_BEARER_PREFIX):
        return None
    return header[len(_BEARER_PREFIX):].strip() or None


def load_current_principal() -> None:
    """
    Loads g.current_principal (decoded JWT claims) from the Authorization header.
    Also assigns a simple per-request request_id (for log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.current_principal = None
    if request.path.startswith(("/health", "/healthz")):
        return

    token = _bearer_token()
    if not token:
        return
    try:
        g.current_principal = current_app.extensions["token_issuer"].decode(token)
    except InvalidToken:
        current_app.logger.info("Rejected bearer token (request_id=%s)", g.request_id)


@bp.post("/login")
def login_post():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    username = (payload.get("username") or "").strip() if isinstance(payload.get("username"), str) else ""
    password = payload.get("password") if isinstance(payload.get("password"), str) else ""

    customer = CustomerStore(db_session()).find_by_email(username) if username else None
    hasher = current_app.extensions["password_hasher"]
    if not customer or not password or not hasher.verify(customer.password_hash, password):
        current_app.logger.warning("Login failed (username=%s request_id=%s)", username, g.request_id)
        return jsonify({"error": "Bad credentials"}), 401

    token = current_app.extensions["token_issuer"].issue(customer.email, [DEFAULT_ROLE])
    current_app.logger.info("Login ok (customer_id=%s request_id=%s)", customer.id, g.request_id)
    return jsonify({"token": token, "customerDTO": customer_dto(customer)}), 200, {"Authorization": token}
