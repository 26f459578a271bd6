"""Marshmallow schemas for session payloads."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class RefreshRequestSchema(Schema):
    """Input payload for rotating a refresh token."""

    family_id = fields.String(required=True, validate=validate.Length(min=1, max=64))
    refresh_token = fields.String(required=True, validate=validate.Length(min=1, max=128))


class TokenPairSchema(Schema):
    """Response payload containing an access/refresh token pair."""

    access_token = fields.String(required=True)
    access_expires_at = fields.AwareDateTime(required=True)
    refresh_token = fields.String(required=True)
    refresh_expires_at = fields.AwareDateTime(required=True)
    family_id = fields.String(required=True)
    token_type = fields.String(load_default="bearer")


class SessionSchema(Schema):
    """One signed-in session as listed to its owner."""

    family_id = fields.String(required=True)
    created_at = fields.AwareDateTime(required=True)
    last_refreshed_at = fields.AwareDateTime(required=True)
    expires_at = fields.AwareDateTime(required=True)
