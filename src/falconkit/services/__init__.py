"""Resource services built on the client, token manager and pagination engine.

Each service wraps one group of Falcon endpoints and returns
:class:`~falconkit.models.RequestResult` objects:

- :class:`DeviceService` -- host inventory and hostname lookups.
- :class:`AlertService` -- alert ids and details.
- :class:`SpotlightService` -- per-host vulnerabilities.
"""

from falconkit.services.alerts import AlertService
from falconkit.services.devices import DeviceService
from falconkit.services.spotlight import SpotlightService

__all__ = ["AlertService", "DeviceService", "SpotlightService"]
