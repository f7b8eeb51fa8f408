import logging

from flask import Flask, g, jsonify, request
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from app.crm.config import load_config
from app.crm.db import init_db, teardown_db_session
from app.crm.errors import CustomerError, UploadFailed
from app.crm.routes import bp as routes_bp
from app.crm.auth import bp as auth_bp, load_current_principal
from app.crm.modules.customers.api import bp as customers_bp
from app.crm.security import PasswordHasher, token_issuer_from_config
from app.crm.storage import S3Storage, storage_from_config


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        if str(app.config.get("JWT_SECRET_KEY") or "") in ("", "change-me-jwt"):
            raise RuntimeError("JWT_SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    app.extensions["storage"] = storage_from_config(app.config)
    app.extensions["password_hasher"] = PasswordHasher()
    app.extensions["token_issuer"] = token_issuer_from_config(app.config)

    # Storage health check (fail loudly on misconfiguration)
    storage = app.extensions["storage"]
    if isinstance(storage, S3Storage):
        if not app.config.get("S3_BUCKET_CUSTOMER"):
            app.logger.error("STORAGE CONFIG ERROR: S3_BUCKET_CUSTOMER is not set")
        elif env in ("prod", "production"):
            try:
                storage._client().head_bucket(Bucket=app.config["S3_BUCKET_CUSTOMER"])
                app.logger.info("Storage health check PASSED: S3 bucket '%s' accessible", app.config["S3_BUCKET_CUSTOMER"])
            except Exception as e:
                app.logger.error("STORAGE CONFIG ERROR: Cannot access S3 bucket: %s", e)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(customers_bp, url_prefix="/api/v1/customers")

    app.before_request(load_current_principal)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(CustomerError)
    def _err_customer(e: CustomerError):  # type: ignore[no-redef]
        rid = getattr(g, "request_id", None)
        if isinstance(e, UploadFailed):
            # Keep the storage cause in logs only.
            app.logger.error("%s (request_id=%s cause=%r)", e.message, rid, e.__cause__)
            return jsonify({"error": "Internal server error"}), e.status_code
        app.logger.warning("%s %s rejected: %s (request_id=%s)", request.method, request.path, e.message, rid)
        return jsonify({"error": e.message}), e.status_code

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        return jsonify({"error": e.description}), e.code

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"error": "Internal server error"}), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
