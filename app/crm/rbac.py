from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import g, jsonify

from app.crm.security import DEFAULT_ROLE


def principal_has_role(principal: dict | None, role: str) -> bool:
    if not principal:
        return False
    return role in (principal.get("scopes") or [])


def require_token(fn: Callable[..., Any] | None = None, *, role: str = DEFAULT_ROLE):
    """
    Guard a view with the bearer token loaded by `load_current_principal`.
    Usable bare (`@require_token`) or with a role (`@require_token(role="ROLE_ADMIN")`).
    """

    def decorator(view: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view)
        def wrapped(*args: Any, **kwargs: Any):
            principal = getattr(g, "current_principal", None)
            # Unauthenticated → 401 so clients know to (re)login.
            if not principal:
                return jsonify({"error": "Authentication required"}), 401, {"WWW-Authenticate": "Bearer"}
            # Authenticated but missing the role → 403
            if not principal_has_role(principal, role):
                return jsonify({"error": "Forbidden"}), 403
            return view(*args, **kwargs)

        return wrapped

    if fn is not None:
        return decorator(fn)
    return decorator
