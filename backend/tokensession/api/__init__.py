"""HTTP helpers (request guard, schemas) for hosts of the session core.

The core registers no routes; hosts build their own endpoints on top of
:func:`~tokensession.api.deps.require_session` and the schemas.
"""
