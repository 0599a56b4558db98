"""
schemas/points_schema.py — Marshmallow schemas for the points endpoints.

Validation responsibility:
  - This file: field presence and types, non-blank payer name, ISO-8601
    timestamp parsing.
  - services/: every rule that needs ledger state (negative balance,
    negative spend, overspend). A negative `points` value is a valid
    request shape for both endpoints and is never rejected here.

IMPORTANT: Inherits from marshmallow.Schema directly, never ma.Schema.
           See extensions.py for the full explanation.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, post_load, validates


class AddPointsSchema(Schema):
    """
    POST /add

    Field rules:
      payer     : required, non-blank string; surrounding whitespace trimmed.
      points    : required integer (floats such as 1.0 rejected). May be
                  negative.
      timestamp : required ISO-8601 datetime. Offset-less values are taken
                  as UTC by deposit_service.
    """

    payer = fields.Str(required=True)

    points = fields.Int(required=True, strict=True)

    timestamp = fields.DateTime(required=True, format="iso")

    @validates("payer")
    def validate_payer(self, value: str, **kwargs) -> None:
        if not value.strip():
            raise ValidationError("payer must not be blank.")
        if len(value.strip()) > 255:
            raise ValidationError("payer must be at most 255 characters.")

    @post_load
    def strip_payer(self, data: dict, **kwargs) -> dict:
        data["payer"] = data["payer"].strip()
        return data


class SpendPointsSchema(Schema):
    """
    POST /spend

    Field rules:
      points : required integer. Negative values pass the schema and are
               rejected by spend_service with the negative-spend detail.
    """

    points = fields.Int(required=True, strict=True)
