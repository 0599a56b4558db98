"""
wsgi.py — WSGI entry point.

    flask --app points_ledger.wsgi run

The config is chosen by FLASK_ENV (development, testing, production).
"""

import os

from points_ledger.app import create_app

app = create_app(os.getenv("FLASK_ENV", "development"))
