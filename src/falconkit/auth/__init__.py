"""Bearer-token authentication for the Falcon API.

The package exposes a single class, :class:`TokenManager`, which performs
the OAuth2 client-credentials exchange, caches the resulting token and
refreshes it on demand or from an owner-controlled background task.

Typical usage::

    from falconkit.auth import TokenManager

    manager = TokenManager(settings, http_client)
    token = await manager.get_token()
"""

from falconkit.auth.token_manager import TokenManager

__all__ = ["TokenManager"]
