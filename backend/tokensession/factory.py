"""Application factory wiring Flask extensions and the session core."""

from __future__ import annotations

import logging

from flask import Flask, current_app

from tokensession.core.config import BaseConfig, get_config, validate_config
from tokensession.core.logger import configure_logging, init_app as init_logging
from tokensession.services._shared.ports import (
    Clock,
    PermissivePrincipalDirectory,
    PrincipalDirectory,
)
from tokensession.services.sessions import SessionFacade, build_session_facade

EXTENSION_KEY = "token_sessions"

log = logging.getLogger(__name__)


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    principal_directory: PrincipalDirectory | None = None,
    clock: Clock | None = None,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    :param config: Config object, class or import path; defaults to ``APP_ENV``.
    :param principal_directory: Host's user directory used at login.
    :param clock: Time source for the session core (tests pass a manual clock).
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)
    validate_config(app.config)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from tokensession.core import extensions

    extensions.init_app(app)

    init_logging(app)

    if principal_directory is None:
        log.warning(
            "No principal directory configured; accepting any non-empty principal id.",
            extra={"event": "config.permissive_principals"},
        )
        principal_directory = PermissivePrincipalDirectory()

    app.extensions[EXTENSION_KEY] = build_session_facade(
        app.config,
        principals=principal_directory,
        clock=clock,
        redis_client=app.extensions.get("redis_client"),
    )

    from tokensession.core import errors

    errors.init_app(app)

    from tokensession import cli as app_cli

    app_cli.init_app(app)

    return app


def get_sessions() -> SessionFacade:
    """Return the :class:`SessionFacade` bound to the current application."""
    try:
        return current_app.extensions[EXTENSION_KEY]
    except KeyError as exc:
        raise RuntimeError("Session core is not initialized. Use create_app().") from exc
