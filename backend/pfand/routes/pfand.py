# Overview: Flask API routes for Pfand cup deposits and returns; parses input and returns JSON responses.

"""
Pfand API Routes

- POST /api/pfand/return       staff processes a cup return
- POST /api/pfand/deposit      deposit paid for cups handed out with an order
- GET  /api/pfand/outstanding  accounts that still hold cups
- GET  /api/pfand/stats        system-wide totals

Money values are two-decimal strings ("4.00").
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import LedgerError
from ..extensions import db
from ..models import Account
from ..decorators import require_json_body, ledger_error_response, internal_error_response
from ..services import balance_service
from ..services.return_service import get_return_processor
from ..services.transaction_log import SqlTransactionLog


pfand_bp = Blueprint("pfand", __name__, url_prefix="/api/pfand")


@pfand_bp.post("/return")
@require_json_body
def process_return_route():
    """
    Process a cup return and refund the deposit.

    Request body:
    {
        "account_id": 12,
        "units_requested": 2,
        "processed_by": "Anna"  (optional, default: "Staff")
    }

    Returns:
        200: {transaction, refund_amount, remaining_units}
        400: INVALID_REQUEST or INSUFFICIENT_BALANCE
        404: ACCOUNT_NOT_FOUND
        500: PERSISTENCE_ERROR
    """
    try:
        data = request.get_json()
        result = get_return_processor().process_return(
            account_id=data.get("account_id"),
            requested_units=data.get("units_requested"),
            processed_by=data.get("processed_by"),
        )
        return jsonify(result.to_dict()), 200

    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        return internal_error_response("process Pfand return")


@pfand_bp.post("/deposit")
@require_json_body
def record_deposit_route():
    """
    Record a deposit for cups handed out with an order.

    Request body:
    {
        "account_id": 12,
        "unit_count": 3,
        "order_id": "a1b2c3",  (optional)
        "note": "Paid deposit for 3 cups"  (optional)
    }

    Returns:
        201: {transaction}
        400: INVALID_REQUEST
        404: ACCOUNT_NOT_FOUND
    """
    try:
        data = request.get_json()
        entry = get_return_processor().record_deposit(
            account_id=data.get("account_id"),
            unit_count=data.get("unit_count"),
            order_id=data.get("order_id"),
            note=data.get("note"),
        )
        return jsonify({"transaction": entry.to_dict()}), 201

    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        return internal_error_response("record Pfand deposit")


@pfand_bp.get("/outstanding")
def list_outstanding_route():
    """Accounts with outstanding cups, most cups first."""
    try:
        summary = balance_service.system_summary(
            SqlTransactionLog().all_entries(),
            current_app.config["PFAND_UNIT_VALUE"],
        )

        account_ids = [b.account_id for b in summary.accounts]
        accounts = {}
        if account_ids:
            rows = db.session.query(Account).filter(Account.id.in_(account_ids)).all()
            accounts = {a.id: a for a in rows}

        items = []
        for balance in summary.accounts:
            item = balance.to_dict()
            account = accounts.get(balance.account_id)
            item["account"] = account.to_dict() if account else None
            items.append(item)

        return jsonify({"items": items}), 200

    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        return internal_error_response("fetch outstanding Pfand data")


@pfand_bp.get("/stats")
def pfand_stats_route():
    try:
        summary = balance_service.system_summary(
            SqlTransactionLog().all_entries(),
            current_app.config["PFAND_UNIT_VALUE"],
        )
        return jsonify(summary.to_dict()), 200

    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        return internal_error_response("fetch Pfand statistics")
