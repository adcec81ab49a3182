from __future__ import annotations

from decimal import Decimal
from functools import wraps
from typing import Any, Dict, Optional, Tuple

from flask import Flask, current_app, jsonify, request, session
from flask_cors import CORS
from mysql.connector import Error as DatabaseError
from werkzeug.exceptions import BadRequest

from .allocator import allocate
from .config import config
from .db import db
from .errors import AlreadyPaidError, InvalidInputError, PaymentMismatchError
from .ledger import (
    check_payment,
    find_payable_split,
    mark_paid,
    may_settle,
    summarize_pot,
)
from .models import Participant, Pot
from .money import parse_amount
from .payloads import (
    currency_to_json,
    expense_payload,
    expense_view,
    parse_policy,
    pay_payload,
    pot_view,
    split_to_json,
)
from .store import PotStore
from .weights import equal_weights, redistribute


def create_app(store: Optional[Any] = None) -> Flask:
    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.SECRET_KEY
    app.config["SESSION_COOKIE_NAME"] = config.SESSION_COOKIE_NAME
    app.config["SESSION_COOKIE_HTTPONLY"] = config.SESSION_COOKIE_HTTPONLY
    app.config["SESSION_COOKIE_SAMESITE"] = config.SESSION_COOKIE_SAMESITE
    app.logger.setLevel(config.LOG_LEVEL)

    CORS(
        app,
        supports_credentials=True,
        resources={r"/api/*": {"origins": config.CORS_ORIGINS}},
    )

    app.extensions["potsplit.store"] = store if store is not None else PotStore(db)

    register_error_handlers(app)
    register_routes(app)
    return app


def require_login(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"error": "authentication_required"}), 401
        return func(*args, **kwargs)

    return wrapper


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DatabaseError)
    def store_unavailable(exc: DatabaseError):
        app.logger.error("Store call failed: %s", exc)
        return jsonify({"error": "store_unavailable"}), 503

    @app.errorhandler(BadRequest)
    def invalid_json(exc: BadRequest):
        return jsonify({"error": "invalid_json"}), 400


def register_routes(app: Flask) -> None:
    @app.get("/api/health")
    def health_check():
        return jsonify({"status": "healthy"})

    @app.get("/api/session")
    def get_session():
        if "user_id" in session:
            return jsonify({"authenticated": True, "user": {"id": _current_user()}})
        return jsonify({"authenticated": False})

    @app.get("/api/pots")
    @require_login
    def list_pots():
        user_id = _current_user()
        result = []
        for pot in _store().list_pots(user_id):
            expenses = _store().list_expenses(pot.id)
            result.append(pot_view(pot, summarize_pot(expenses, user_id, pot.archived)))
        return jsonify(result)

    @app.post("/api/pots")
    @require_login
    def create_pot():
        payload = request.get_json(force=True) or {}
        name = (payload.get("name") or "").strip()
        currency_id = payload.get("default_currency_id")
        user_ids = payload.get("user_ids") or []

        if not name or currency_id is None:
            return jsonify({"error": "missing_fields"}), 400
        if not isinstance(user_ids, list):
            return jsonify({"error": "invalid_user_ids"}), 400
        if not _currency_exists(currency_id):
            return jsonify({"error": "invalid_currency"}), 400

        owner_id = _current_user()
        pot_id = _store().create_pot(name, owner_id, currency_id)
        # one member at a time, in request order
        for user_id in user_ids:
            _store().add_user(pot_id, str(user_id))

        app.logger.info("Pot %s created by %s with %d extra users", pot_id, owner_id, len(user_ids))
        pot = _store().get_pot(pot_id)
        return jsonify(pot_view(pot, summarize_pot([], owner_id, pot.archived))), 201

    @app.post("/api/pots/<int:pot_id>/users")
    @require_login
    def add_pot_user(pot_id: int):
        pot, error = _load_pot(pot_id)
        if error:
            return error
        if pot.owner_id != _current_user():
            return jsonify({"error": "forbidden_only_owner"}), 403

        payload = request.get_json(force=True) or {}
        user_id = payload.get("user_id")
        if user_id is None or str(user_id) == "":
            return jsonify({"error": "missing_fields"}), 400

        if not _store().add_user(pot_id, str(user_id)):
            return jsonify({"error": "already_member"}), 409
        return jsonify({"status": "added"}), 201

    @app.delete("/api/pots/<int:pot_id>/users/<user_id>")
    @require_login
    def remove_pot_user(pot_id: int, user_id: str):
        pot, error = _load_pot(pot_id)
        if error:
            return error
        if pot.owner_id != _current_user():
            return jsonify({"error": "forbidden_only_owner"}), 403
        if user_id == pot.owner_id:
            return jsonify({"error": "cannot_remove_owner"}), 409

        if not _store().remove_user(pot_id, user_id):
            return jsonify({"error": "user_not_in_pot"}), 404
        app.logger.info("User %s removed from pot %s", user_id, pot_id)
        return jsonify({"status": "removed"})

    @app.get("/api/pots/<int:pot_id>/expenses")
    @require_login
    def get_pot_expenses(pot_id: int):
        pot, error = _load_pot(pot_id)
        if error:
            return error

        user_id = _current_user()
        expenses = _store().list_expenses(pot_id)
        return jsonify(
            {
                "pot": pot_view(pot, summarize_pot(expenses, user_id, pot.archived)),
                "expenses": [expense_view(expense, user_id, pot.archived) for expense in expenses],
            }
        )

    @app.post("/api/pots/<int:pot_id>/expenses")
    @require_login
    def add_expense(pot_id: int):
        payload = request.get_json(force=True) or {}
        description = (payload.get("description") or "").strip()
        if not description or payload.get("amount") is None:
            return jsonify({"error": "missing_fields"}), 400

        pot, error = _load_pot(pot_id)
        if error:
            return error
        if pot.archived:
            return jsonify({"error": "pot_archived"}), 409

        requested = payload.get("participants") or pot.participants
        if not isinstance(requested, list):
            return jsonify({"error": "invalid_split_members"}), 400
        participant_ids = [str(user_id) for user_id in requested]
        if not all(pot.has_member(user_id) for user_id in participant_ids):
            return jsonify({"error": "invalid_split_members"}), 400

        try:
            total = parse_amount(payload["amount"])
            policy = parse_policy(payload)
            # members left out of a weighted request get nothing
            participants = [Participant(user_id, Decimal(0)) for user_id in participant_ids]
            splits = allocate(total, participants, policy, pot.owner_id)
        except InvalidInputError as exc:
            return jsonify({"error": str(exc)}), 400

        currency_id = payload.get("currency_id", pot.default_currency_id)
        if not _currency_exists(currency_id):
            return jsonify({"error": "invalid_currency"}), 400

        expense = _store().create_expense(pot_id, _current_user(), description, currency_id, splits)
        app.logger.info("Expense %s added to pot %s: %d cents over %d splits", expense.id, pot_id, total, len(splits))

        body = expense_payload(currency_id, description, expense.splits)
        body["id"] = expense.id
        return jsonify(body), 201

    @app.post("/api/expenses/<int:expense_id>/pay")
    @require_login
    def pay_expense(expense_id: int):
        expense = _store().get_expense(expense_id)
        if not expense:
            return jsonify({"error": "expense_not_found"}), 404
        pot, error = _load_pot(expense.pot_id)
        if error:
            return error
        if pot.archived:
            return jsonify({"error": "pot_archived"}), 409

        payload = request.get_json(force=True) or {}
        if payload.get("sum_paid") is None:
            return jsonify({"error": "missing_fields"}), 400

        current_user = _current_user()
        user_id = str(payload.get("user_id") or current_user)
        split = find_payable_split(expense, user_id)
        if split is None:
            return jsonify({"error": "no_split_in_expense"}), 403

        if not may_settle(current_user, split, expense.owner_id):
            return jsonify({"error": "forbidden"}), 403

        try:
            paid = mark_paid(split)
            check_payment(split, parse_amount(payload["sum_paid"]))
        except InvalidInputError as exc:
            return jsonify({"error": str(exc)}), 400
        except (AlreadyPaidError, PaymentMismatchError) as exc:
            return jsonify({"error": str(exc)}), 409

        if not _store().mark_split_paid(split.id):
            return jsonify({"error": "already_paid"}), 409

        app.logger.info("Split %s of expense %s marked paid by %s", split.id, expense_id, current_user)
        body = pay_payload(expense_id, paid)
        body["split"] = split_to_json(paid)
        return jsonify(body)

    @app.post("/api/pots/<int:pot_id>/archive")
    @require_login
    def archive_pot(pot_id: int):
        pot, error = _load_pot(pot_id)
        if error:
            return error
        if pot.archived:
            return jsonify({"error": "pot_archived"}), 409

        summary = summarize_pot(_store().list_expenses(pot_id), _current_user(), pot.archived)
        if not summary.can_archive:
            return jsonify({"error": "pot_has_open_balance"}), 409

        _store().set_archived(pot_id, True)
        app.logger.info("Pot %s archived", pot_id)
        return jsonify({"status": "archived"})

    @app.post("/api/pots/<int:pot_id>/unarchive")
    @require_login
    def unarchive_pot(pot_id: int):
        pot, error = _load_pot(pot_id)
        if error:
            return error
        if not pot.archived:
            return jsonify({"error": "pot_not_archived"}), 409

        _store().set_archived(pot_id, False)
        app.logger.info("Pot %s unarchived", pot_id)
        return jsonify({"status": "unarchived"})

    @app.delete("/api/pots/<int:pot_id>")
    @require_login
    def delete_pot(pot_id: int):
        pot, error = _load_pot(pot_id)
        if error:
            return error
        if pot.owner_id != _current_user():
            return jsonify({"error": "forbidden_only_owner"}), 403

        summary = summarize_pot(_store().list_expenses(pot_id), _current_user(), pot.archived)
        if not summary.can_delete:
            return jsonify({"error": "pot_not_deletable"}), 409

        _store().delete_pot(pot_id)
        app.logger.info("Pot %s deleted", pot_id)
        return jsonify({"status": "deleted"})

    @app.get("/api/currencies")
    @require_login
    def list_currencies():
        return jsonify([currency_to_json(currency) for currency in _store().list_currencies()])

    @app.post("/api/currencies")
    @require_login
    def create_currency():
        payload = request.get_json(force=True) or {}
        name = str(payload.get("name") or "").strip()
        symbol = str(payload.get("symbol") or "").strip()
        if not name or not symbol:
            return jsonify({"error": "missing_fields"}), 400
        if _store().get_currency_by_symbol(symbol):
            return jsonify({"error": "currency_exists"}), 409

        currency = _store().create_currency(name, symbol)
        app.logger.info("Currency %s created as %s", symbol, currency.id)
        return jsonify(currency_to_json(currency)), 201

    @app.post("/api/weights/redistribute")
    @require_login
    def redistribute_weights():
        payload = request.get_json(force=True) or {}
        weights = payload.get("weights")
        if not isinstance(weights, dict):
            participants = payload.get("participants") or []
            weights = equal_weights([str(user_id) for user_id in participants])

        changed_id = payload.get("changed_id")
        if changed_id is not None:
            weights = redistribute(weights, str(changed_id), payload.get("weight"))
        return jsonify({"weights": _weights_to_json(weights)})


def _store():
    return current_app.extensions["potsplit.store"]


def _current_user() -> str:
    return str(session["user_id"])


def _load_pot(pot_id: int) -> Tuple[Optional[Pot], Optional[Tuple[Any, int]]]:
    pot = _store().get_pot(pot_id)
    if not pot:
        return None, (jsonify({"error": "pot_not_found"}), 404)
    if not pot.has_member(_current_user()):
        return None, (jsonify({"error": "not_authorized"}), 403)
    return pot, None


def _currency_exists(value: Any) -> bool:
    # ids arrive as JSON numbers; anything else never reaches the INT column
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return _store().get_currency(value) is not None


def _weights_to_json(weights: Dict[str, Any]) -> Dict[str, float]:
    result: Dict[str, float] = {}
    for user_id, weight in weights.items():
        try:
            result[user_id] = float(weight)
        except (TypeError, ValueError):
            result[user_id] = 0.0
    return result


app = create_app()


if __name__ == "__main__":
    app.run(debug=True)
