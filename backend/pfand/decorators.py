# Overview: Request decorators and error shaping for API routes.

from functools import wraps
from flask import request, jsonify, current_app

from .errors import InvalidRequestError, LedgerError, PersistenceError


def require_json_body(f):
    """
    Require a JSON object body.

    Returns 400 INVALID_REQUEST for a missing, malformed or non-object body
    before the route runs.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return ledger_error_response(InvalidRequestError("Request body must be a JSON object"))
        return f(*args, **kwargs)

    return decorated_function


def ledger_error_response(exc: LedgerError):
    """
    Shape a ledger error as (json, status).

    Expected outcomes (bad input, unknown account, insufficient balance) are
    not logged. Persistence failures are logged and reported generically.
    """
    if isinstance(exc, PersistenceError):
        current_app.logger.error("Pfand persistence failure: %s", exc.message, exc_info=exc)
        return jsonify({"error": {"kind": exc.kind, "message": "Failed to access the Pfand ledger"}}), exc.http_status
    return jsonify({"error": exc.to_dict()}), exc.http_status


def internal_error_response(action: str):
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": {"kind": "INTERNAL_ERROR", "message": "Internal server error"}}), 500
