"""
extensions.py — Flask extension singletons.

Initialises SQLAlchemy and marshmallow as module-level objects so they can be
imported anywhere without creating circular dependencies.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Import `db` or `ma` from here wherever needed.

    from points_ledger.app.extensions import db, ma

Do not pass the app object directly to SQLAlchemy() or Marshmallow() at
import time. That would prevent running tests with a separate test app.

`db.Model` is a plain SQLAlchemy declarative base, so the models and the
ledger services also work on a bare `sqlalchemy.orm.Session` with no Flask
application (the unit tests rely on this).
"""

from flask_marshmallow import Marshmallow
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Marshmallow instance, available for the app factory.
#
# IMPORTANT: schema inheritance rule.
#   Validation Schema classes (in app/schemas/) inherit from
#   marshmallow.Schema directly, NOT from ma.Schema. ma.Schema requires an
#   active Flask application context and the unit tests run without one.
ma = Marshmallow()
