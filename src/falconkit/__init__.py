"""falconkit -- asynchronous client for the CrowdStrike Falcon REST API.

The package authenticates with OAuth2 client credentials, keeps the bearer
token cached and refreshed, and exposes resource services that page through
large result sets transparently.

Typical usage::

    from falconkit import FalconClient, load_settings
    from falconkit.services import DeviceService

    settings = load_settings()
    async with FalconClient(settings) as client:
        result = await DeviceService(client).get_all_server_devices()
        servers = result.unwrap()

Modules:
    app: Typer CLI and console-script entry point.
    auth: Token lifecycle (:class:`~falconkit.auth.TokenManager`).
    client: :class:`FalconClient` and response helpers.
    config: Settings loading and validation.
    exceptions: Exception hierarchy with exit-code mapping.
    models: Pydantic models for settings, envelopes and resources.
    output: stdout/stderr output system built on Rich.
    pagination: Cursor, offset and chunked fetch drivers.
    retry: Bounded fixed-delay retry.
    services: Device, alert and vulnerability services.
"""

__version__ = "0.1.0"

from falconkit.client import FalconClient  # noqa: E402
from falconkit.config import load_settings  # noqa: E402

__all__ = ["FalconClient", "load_settings", "__version__"]
