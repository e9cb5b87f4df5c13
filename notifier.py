"""Push notification delivery for Reminder Dispatcher.

Delivers one notification to one device through a Bark-style push
service: GET {base}{key}/{title}/{body}?group=..&level=..&sound=..

A device key is either a short token appended to the hosted service
URL, or a full URL of a self-hosted server already containing the key.
Delivery is best effort: every call returns a DeliveryOutcome and no
transport or HTTP error is raised to the caller.
"""

import enum
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, urlencode

import httpx

from config import Settings, settings as default_settings
from logger_config import setup_logger
from schemas import DeviceRecord

logger = setup_logger(__name__, 'push.log')

# Unreserved marks kept literal in path segments
_SAFE = "-_.!~*'()"


class EndpointKind(enum.Enum):
    """How a device key addresses the push service"""
    TOKEN = "token"
    URL = "url"


@dataclass(frozen=True)
class PushEndpoint:
    """Device key resolved once into a base URL ending in the key."""
    kind: EndpointKind
    base: str

    @classmethod
    def from_key(cls, key: str, service_url: str) -> "PushEndpoint":
        key = key.strip()
        if key.lower().startswith(("http://", "https://")):
            # Full server URL replaces the hosted service
            return cls(EndpointKind.URL, key[:-1] if key.endswith("/") else key)
        if not service_url.endswith("/"):
            service_url += "/"
        return cls(EndpointKind.TOKEN, f"{service_url}{key}")


@dataclass
class DeliveryOutcome:
    """Result of a single push attempt."""
    device_id: str
    device_name: str
    url: str
    ok: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


class Notifier:
    """Formats and sends push notifications.

    Args:
        client: Shared httpx.AsyncClient (the transport owns timeouts)
        config: Settings providing group, urgency and sound labels
    """

    def __init__(self, client: httpx.AsyncClient, config: Settings = None):
        self.client = client
        self.config = config or default_settings

    def endpoint_for(self, device: DeviceRecord) -> PushEndpoint:
        return PushEndpoint.from_key(device.bark_key, self.config.BARK_BASE_URL)

    def build_url(self, endpoint: PushEndpoint, title: str, body: str, critical: bool) -> str:
        """Compose the request URL for one notification."""
        if critical:
            level, sound = self.config.BARK_CRITICAL_LEVEL, self.config.BARK_CRITICAL_SOUND
        else:
            level, sound = self.config.BARK_NORMAL_LEVEL, self.config.BARK_NORMAL_SOUND

        query = urlencode(
            {"group": self.config.BARK_GROUP, "level": level, "sound": sound},
            quote_via=quote,
            safe=_SAFE,
        )
        return f"{endpoint.base}/{quote(title, safe=_SAFE)}/{quote(body, safe=_SAFE)}?{query}"

    async def deliver(
        self,
        device: DeviceRecord,
        title: str,
        body: str,
        critical: bool,
        endpoint: PushEndpoint = None
    ) -> DeliveryOutcome:
        """Send one notification to one device.

        Args:
            endpoint: Pre-resolved endpoint for the device (resolved here when omitted)

        Returns:
            DeliveryOutcome with ok=False on network errors or non-2xx responses
        """
        endpoint = endpoint or self.endpoint_for(device)
        url = self.build_url(endpoint, title, body, critical)
        outcome = DeliveryOutcome(device_id=device.id, device_name=device.name, url=url, ok=False)

        try:
            response = await self.client.get(url)
        except httpx.TimeoutException:
            outcome.error = "timeout"
            logger.error(f"Timeout delivering push to device {device.id} ({device.name})")
            return outcome
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            outcome.error = str(e) or e.__class__.__name__
            logger.error(f"Network error delivering push to device {device.id} ({device.name}): {outcome.error}")
            return outcome

        outcome.status_code = response.status_code
        if response.is_success:
            outcome.ok = True
        else:
            outcome.error = f"HTTP {response.status_code}"
            logger.error(
                f"Push rejected for device {device.id} ({device.name}). "
                f"Status: {response.status_code}, Response: {response.text}"
            )
        return outcome
