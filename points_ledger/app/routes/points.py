"""
routes/points.py — Points ledger route handlers.

Layer rules:
  - Parse, validate, call ONE service, return the response.
  - No business logic. No DB queries. No commits: the add/spend services own
    their unit of work and commit or roll back themselves.
  - A rejected Outcome is raised as its AppError; the global handler in
    app/__init__.py renders it as a 422 problem document.

Endpoints (registered at the application root):
  POST /add      → 200  empty body
  POST /spend    → 200  [{"payer": str, "points": int}, ...]
  GET  /balance  → 200  [{"payer": str, "points": int}, ...]
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from points_ledger.app.errors import AppError, ErrorCode
from points_ledger.app.extensions import db
from points_ledger.app.schemas.points_schema import AddPointsSchema, SpendPointsSchema
from points_ledger.app.services import balance_service, deposit_service, spend_service

points_bp = Blueprint("points", __name__)


def _json_body() -> dict:
    """Returns the parsed JSON object body or raises INVALID_JSON (400)."""
    body = request.get_json(force=True, silent=True)
    if not isinstance(body, dict):
        raise AppError(
            ErrorCode.INVALID_JSON,
            "The request body must be a JSON object.",
            400,
        )
    return body


@points_bp.route("/add", methods=["POST"])
def add_points():
    """POST /add — Record a (possibly negative) deposit for a payer."""
    data = AddPointsSchema().load(_json_body())
    outcome = deposit_service.add_points(
        db.session,
        payer=data["payer"],
        points=data["points"],
        timestamp=data["timestamp"],
    )
    if not outcome.ok:
        raise outcome.error
    return "", 200


@points_bp.route("/spend", methods=["POST"])
def spend_points():
    """POST /spend — Spend points oldest-first; returns the change per payer."""
    data = SpendPointsSchema().load(_json_body())
    outcome = spend_service.spend_points(
        db.session,
        points_to_spend=data["points"],
        batch_size=current_app.config["LEDGER_REMAINDER_BATCH_SIZE"],
    )
    if not outcome.ok:
        raise outcome.error
    return jsonify(outcome.value), 200


@points_bp.route("/balance", methods=["GET"])
def get_balances():
    """GET /balance — Current balance of every payer."""
    payload = balance_service.get_balances(
        db.session,
        check_integrity=current_app.config["LEDGER_CHECK_INTEGRITY_ON_READ"],
    )
    return jsonify(payload), 200
