"""
Public Address Registration

Keeps a remote registry informed of the host's public IPv4/IPv6
addresses. Runs on the network loop but only acts every
COOLDOWN_TICKS ticks, and only sends when an address changed.
"""

from dataclasses import dataclass

import httpx

from sdr_monitor.common.exceptions import RegistrationError
from sdr_monitor.common.logging_setup import get_service_logger

logger = get_service_logger("network.registrar")

IPV4_LOOKUP_URL = "https://api.ipify.org"
IPV6_LOOKUP_URL = "https://api6.ipify.org"


@dataclass
class RegistrationState:
    """Last registered addresses and ticks until the next attempt"""
    last_ipv4: str = ""
    last_ipv6: str = ""
    cooldown_ticks: int = 1


class PublicAddressRegistrar:
    """
    Rate-limited, change-driven address registration.

    A failed registration leaves the cache untouched, so the next
    eligible tick retries with the same addresses. A failed lookup
    never blanks a registered address.
    """

    COOLDOWN_TICKS = 5
    REQUEST_TIMEOUT_SECONDS = 5.0
    MAX_REDIRECTS = 1

    def __init__(
        self,
        registry_url: str,
        ipv4_lookup_url: str = IPV4_LOOKUP_URL,
        ipv6_lookup_url: str = IPV6_LOOKUP_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.registry_url = registry_url
        self.ipv4_lookup_url = ipv4_lookup_url
        self.ipv6_lookup_url = ipv6_lookup_url
        self._transport = transport

        self.state = RegistrationState()
        self.attempt_count = 0
        self.last_error: str | None = None

    async def maybe_register(self, session_key: str) -> bool:
        """Called every network-loop tick; True if a registration was sent"""
        if not session_key:
            return False

        self.state.cooldown_ticks -= 1
        if self.state.cooldown_ticks > 0:
            return False
        self.state.cooldown_ticks = self.COOLDOWN_TICKS

        async with self._client() as client:
            # A failed lookup keeps the last registered address for that family
            ipv4 = await self._lookup(client, self.ipv4_lookup_url) or self.state.last_ipv4
            ipv6 = await self._lookup(client, self.ipv6_lookup_url) or self.state.last_ipv6

            if not ipv4 and not ipv6:
                logger.warning("Public address lookup returned nothing, skipping registration")
                return False

            if ipv4 == self.state.last_ipv4 and ipv6 == self.state.last_ipv6:
                logger.debug("Public address unchanged")
                return False

            self.attempt_count += 1
            try:
                await self._register(client, session_key, ipv4, ipv6)
            except RegistrationError as e:
                self.last_error = e.message
                logger.error(str(e), extra={"status_code": e.status_code})
                return True

        self.state.last_ipv4 = ipv4
        self.state.last_ipv6 = ipv6
        self.last_error = None
        logger.info(
            "Public address registered",
            extra={"ipv4": ipv4, "ipv6": ipv6},
        )
        return True

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.REQUEST_TIMEOUT_SECONDS,
            follow_redirects=True,
            max_redirects=self.MAX_REDIRECTS,
            transport=self._transport,
        )

    async def _lookup(self, client: httpx.AsyncClient, url: str) -> str:
        """Fetch one public address; empty string on any failure"""
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.debug(f"Address lookup failed for {url}: {e}")
            return ""
        return response.text.strip()

    async def _register(
        self,
        client: httpx.AsyncClient,
        session_key: str,
        ipv4: str,
        ipv6: str,
    ) -> None:
        try:
            response = await client.get(
                self.registry_url,
                params={"key": session_key, "ipv4": ipv4, "ipv6": ipv6},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RegistrationError(
                f"registry rejected update: {e}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise RegistrationError(f"registry request failed: {e}") from e
