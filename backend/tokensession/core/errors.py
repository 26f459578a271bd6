"""Centralized JSON (RFC 7807) error handling for hosts of the session core."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from tokensession.core.logger import ensure_request_id
from tokensession.services._shared.errors import (
    NotFoundError,
    ServiceError,
    SessionEnded,
    StoreUnavailable,
    Unauthorized,
)

log = logging.getLogger(__name__)

# Seconds a client should wait before retrying after StoreUnavailable
RETRY_AFTER_SECONDS = 1


def _http_status_to_code(status_code: int) -> str:
    """Map common HTTP status codes to canonical, stable error codes."""
    mapping = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        422: "unprocessable_entity",
        500: "internal_server_error",
        503: "service_unavailable",
    }
    return mapping.get(status_code, "error")


def _as_problem(
    *,
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build an RFC 7807 Problem Details dict.

    :param status: HTTP status code.
    :param code: Stable machine-consumable error code.
    :param message: Human-readable error summary (safe for clients).
    :param details: Optional safe, structured details.
    :returns: Problem+JSON dictionary.
    :rtype: dict
    """
    problem = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": status,
        "detail": message,
        "instance": request.path,
        "code": code,
    }
    if details:
        problem["details"] = details
    problem["request_id"] = ensure_request_id()
    return problem


def _problem_response(problem: dict[str, Any]) -> Response:
    """
    Return a Flask response with ``application/problem+json`` media type.

    :param problem: Problem details payload.
    :returns: Flask JSON Response with proper MIME type.
    :rtype: flask.Response
    """
    resp = jsonify(problem)
    resp.mimetype = "application/problem+json"
    return resp


def service_error_status(err: ServiceError) -> tuple[int, str]:
    """
    Resolve the HTTP status and stable code for a domain error.

    ``SessionEnded`` is checked before ``Unauthorized``/``NotFoundError``
    because its expired and not-found variants inherit from both.
    """
    if isinstance(err, SessionEnded):
        return HTTPStatus.UNAUTHORIZED, "session_ended"
    if isinstance(err, Unauthorized):
        return HTTPStatus.UNAUTHORIZED, "unauthorized"
    if isinstance(err, NotFoundError):
        return HTTPStatus.NOT_FOUND, "not_found"
    if isinstance(err, StoreUnavailable):
        return HTTPStatus.SERVICE_UNAVAILABLE, "service_unavailable"
    return HTTPStatus.BAD_REQUEST, "bad_request"


def init_app(app: Flask) -> None:
    """
    Attach JSON error handlers to the Flask app.

    Notes
    -----
    - Guarantees RFC 7807 responses for all handled errors.
    - Session errors never echo token material; ``SessionEnded`` only exposes
      its ``reason``.
    - Emits 5xx with ``exc_info`` for traceability; 4xx as warnings.
    """

    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        status, code = service_error_status(err)
        details = {"reason": err.reason} if isinstance(err, SessionEnded) else None
        problem = _as_problem(status=status, code=code, message=str(err), details=details)
        if status >= 500:
            log.error(
                "ServiceError: code=%s status=%s request_id=%s",
                code,
                status,
                problem["request_id"],
                exc_info=True,
            )
        else:
            log.warning(
                "ServiceError: code=%s status=%s request_id=%s",
                code,
                status,
                problem["request_id"],
            )
        response = _problem_response(problem)
        if status == HTTPStatus.UNAUTHORIZED:
            response.headers["WWW-Authenticate"] = 'Bearer error="invalid_token"'
        if status == HTTPStatus.SERVICE_UNAVAILABLE:
            response.headers["Retry-After"] = str(RETRY_AFTER_SECONDS)
        return response, status

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        error_code = _http_status_to_code(status)
        message = (err.description or error_code.replace("_", " ").capitalize()).strip()
        problem = _as_problem(status=status, code=error_code, message=message)
        level = log.error if status >= 500 else log.warning
        level(
            "HTTPException: code=%s status=%s request_id=%s",
            error_code,
            status,
            problem["request_id"],
        )
        return _problem_response(problem), status

    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        problem = _as_problem(
            status=HTTPStatus.UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": err.messages},
        )
        log.warning("ValidationError: request_id=%s", problem["request_id"])
        return _problem_response(problem), HTTPStatus.UNPROCESSABLE_ENTITY

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        # Never leak internal details
        problem = _as_problem(
            status=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="internal_server_error",
            message="Unexpected error",
        )
        log.error(
            "Unhandled exception: request_id=%s",
            problem["request_id"],
            exc_info=True,
        )
        return _problem_response(problem), HTTPStatus.INTERNAL_SERVER_ERROR
