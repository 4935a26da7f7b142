# Overview: Flask API routes for per-account Pfand data.

from flask import Blueprint, jsonify, current_app

from ..errors import AccountNotFoundError, LedgerError
from ..decorators import ledger_error_response, internal_error_response
from ..services import balance_service
from ..services.transaction_log import SqlTransactionLog


accounts_bp = Blueprint("accounts", __name__, url_prefix="/api/accounts")


@accounts_bp.get("/<int:account_id>/pfand")
def get_account_pfand_route(account_id: int):
    """
    Pfand balance and activity for one account, activity newest first.

    Returns:
        200: {outstanding_units, outstanding_value, total_returned,
              total_deposit_paid, total_deposit_returned, activity}
        404: ACCOUNT_NOT_FOUND
    """
    try:
        log = SqlTransactionLog()
        if not log.account_exists(account_id):
            raise AccountNotFoundError(account_id)

        summary = balance_service.account_summary(
            log.entries_for(account_id),
            current_app.config["PFAND_UNIT_VALUE"],
        )
        return jsonify(summary.to_dict()), 200

    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        return internal_error_response("fetch Pfand data")
