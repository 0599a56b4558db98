"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time, which enables:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup
           - Alembic to import the metadata without starting the server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Initialise extensions (SQLAlchemy, Marshmallow) via init_app()
  3. Register the points blueprint at the application root
  4. Register global error handlers that render every failure as an
     RFC 7807 problem document (application/problem+json)

Note on model imports:
  All model classes are imported inside create_app() so that SQLAlchemy's
  metadata is populated before Alembic or db.create_all() inspects it.
"""

from __future__ import annotations

import traceback

from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from points_ledger.config import config_by_name, validate_production_config

PROBLEM_MIMETYPE = "application/problem+json"


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".
    """
    app = Flask(__name__)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)
    app.json.sort_keys = app.config["JSON_SORT_KEYS"]

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from points_ledger.app.extensions import db, ma
    db.init_app(app)
    ma.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    with app.app_context():
        from points_ledger.app.models import (  # noqa: F401
            allocation_record,
            available_remainder,
            deposit,
            payer_balance,
            spend_record,
        )

        if app.config.get("LEDGER_CREATE_TABLES"):
            db.create_all()

    # ── Blueprints ─────────────────────────────────────────────────────────
    from points_ledger.app.routes.points import points_bp
    app.register_blueprint(points_bp)

    # ── Error handlers ─────────────────────────────────────────────────────
    _register_error_handlers(app)

    return app


def _problem(payload: dict, status: int):
    response = jsonify(payload)
    response.status_code = status
    response.mimetype = PROBLEM_MIMETYPE
    return response


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → problem document with the error's own status
                        (422 for WOULD_CORRUPT_DATA)
      ValidationError → marshmallow schema errors as a 400 problem naming the
                        first failing field
      HTTPException   → werkzeug routing errors (404, 405) as problems
      Exception       → generic INTERNAL_ERROR (500); full traceback logged

    Stack traces never leave the server. The traceback is written to the
    app logger.
    """
    from points_ledger.app.errors import AppError, ErrorCode

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle into
        a problem document. Routes never catch AppError.
        """
        if error.http_status >= 500:
            app.logger.error("Ledger error %s: %s", error.code, error.message)
        return _problem(error.to_problem(), error.http_status)

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Returns the FIRST schema error only; one error, not many.
        """
        field = None
        message = "Invalid input."
        code = ErrorCode.INVALID_FIELD

        messages = error.messages
        if isinstance(messages, dict) and messages:
            field, field_errors = next(iter(messages.items()))
            if field == "_schema":
                field = None
            if isinstance(field_errors, list):
                message = str(field_errors[0]) if field_errors else "Invalid value."
            else:
                message = str(field_errors)
        elif isinstance(messages, list) and messages:
            message = str(messages[0])

        if message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD

        return _problem(
            AppError(code, message, 400, field=field).to_problem(),
            400,
        )

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        code = {
            404: ErrorCode.NOT_FOUND,
            405: ErrorCode.METHOD_NOT_ALLOWED,
        }.get(error.code, ErrorCode.INVALID_FIELD)
        return _problem(
            AppError(code, error.description, error.code, title=error.name).to_problem(),
            error.code,
        )

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 problem.
        """
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return _problem(
            AppError(
                ErrorCode.INTERNAL_ERROR,
                "An unexpected error occurred. Please try again later.",
                500,
            ).to_problem(),
            500,
        )
