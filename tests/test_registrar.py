"""Tests for public address registration."""

import asyncio
import itertools

import httpx
import pytest

from sdr_monitor.services.network.registrar import PublicAddressRegistrar

REGISTRY_URL = "https://registry.test/update"


class FakeServices:
    """Lookup and registry endpoints behind an httpx.MockTransport"""

    def __init__(self, ipv4="203.0.113.7", ipv6="2001:db8::7", registry_status=200):
        self.ipv4 = ipv4
        self.ipv6 = ipv6
        self.registry_status = registry_status
        self.registrations = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host == "api.ipify.org":
            return self._address(self.ipv4)
        if host == "api6.ipify.org":
            return self._address(self.ipv6)
        if host == "registry.test":
            self.registrations.append(dict(request.url.params))
            return httpx.Response(self.registry_status)
        return httpx.Response(404)

    @staticmethod
    def _address(value):
        if callable(value):
            value = value()
        if value is None:
            return httpx.Response(503)
        return httpx.Response(200, text=value + "\n")


@pytest.fixture
def services():
    return FakeServices()


@pytest.fixture
def registrar(services):
    return PublicAddressRegistrar(REGISTRY_URL, transport=httpx.MockTransport(services.handler))


def tick(registrar, key="session-key"):
    return asyncio.run(registrar.maybe_register(key))


class TestRegistration:

    def test_first_tick_registers(self, registrar, services):
        assert tick(registrar) is True
        assert services.registrations == [
            {"key": "session-key", "ipv4": "203.0.113.7", "ipv6": "2001:db8::7"}
        ]
        assert registrar.state.last_ipv4 == "203.0.113.7"
        assert registrar.state.last_ipv6 == "2001:db8::7"

    def test_empty_key_never_contacts_anything(self, registrar, services):
        calls = []
        registrar._transport = httpx.MockTransport(lambda r: calls.append(r) or httpx.Response(200))

        for _ in range(20):
            assert tick(registrar, key="") is False

        assert calls == []
        assert registrar.state.cooldown_ticks == 1

    def test_at_most_one_attempt_per_cooldown(self, registrar, services):
        counter = itertools.count()
        services.ipv4 = lambda: f"203.0.113.{next(counter)}"

        results = [tick(registrar) for _ in range(15)]

        assert [i for i, sent in enumerate(results) if sent] == [0, 5, 10]
        assert len(services.registrations) == 3

    def test_unchanged_addresses_are_not_resent(self, registrar, services):
        for _ in range(11):
            tick(registrar)
        assert len(services.registrations) == 1

    def test_changed_address_is_sent(self, registrar, services):
        tick(registrar)
        services.ipv4 = "198.51.100.1"
        for _ in range(5):
            tick(registrar)

        assert len(services.registrations) == 2
        assert services.registrations[-1]["ipv4"] == "198.51.100.1"

    def test_missing_ipv6_still_registers(self, registrar, services):
        services.ipv6 = None
        assert tick(registrar) is True
        assert services.registrations[0]["ipv6"] == ""

    def test_failed_lookup_keeps_registered_address(self, registrar, services):
        tick(registrar)
        services.ipv6 = None
        for _ in range(5):
            tick(registrar)

        assert len(services.registrations) == 1
        assert registrar.state.last_ipv6 == "2001:db8::7"

    def test_failed_lookup_reuses_cached_address_on_change(self, registrar, services):
        tick(registrar)
        services.ipv6 = None
        services.ipv4 = "198.51.100.1"
        for _ in range(5):
            tick(registrar)

        assert services.registrations[-1] == {
            "key": "session-key", "ipv4": "198.51.100.1", "ipv6": "2001:db8::7",
        }
        assert registrar.state.last_ipv6 == "2001:db8::7"

    def test_both_lookups_failing_skips(self, registrar, services):
        services.ipv4 = None
        services.ipv6 = None
        assert tick(registrar) is False
        assert services.registrations == []
        assert registrar.attempt_count == 0


class TestRegistrationFailure:

    def test_failure_keeps_cache_and_retries(self, registrar, services):
        services.registry_status = 500

        assert tick(registrar) is True
        assert registrar.state.last_ipv4 == ""
        assert registrar.last_error is not None

        services.registry_status = 200
        for _ in range(5):
            tick(registrar)

        assert len(services.registrations) == 2
        assert registrar.state.last_ipv4 == "203.0.113.7"
        assert registrar.last_error is None

    def test_single_redirect_is_followed(self):
        seen = []

        def handler(request):
            seen.append(request.url.path)
            if request.url.host != "registry.test":
                return httpx.Response(200, text="203.0.113.7")
            if request.url.path == "/update":
                return httpx.Response(302, headers={"Location": "https://registry.test/v2/update"})
            return httpx.Response(200)

        registrar = PublicAddressRegistrar(REGISTRY_URL, transport=httpx.MockTransport(handler))
        assert tick(registrar) is True
        assert "/v2/update" in seen
        assert registrar.state.last_ipv4 == "203.0.113.7"

    def test_redirect_chain_is_a_failure(self):
        def handler(request):
            if request.url.host != "registry.test":
                return httpx.Response(200, text="203.0.113.7")
            hop = int(request.url.params.get("hop", "0"))
            return httpx.Response(302, headers={"Location": f"https://registry.test/update?hop={hop + 1}"})

        registrar = PublicAddressRegistrar(REGISTRY_URL, transport=httpx.MockTransport(handler))
        assert tick(registrar) is True
        assert registrar.state.last_ipv4 == ""
        assert registrar.last_error is not None

    def test_transport_error_is_a_failure(self):
        def handler(request):
            if request.url.host == "registry.test":
                raise httpx.ConnectError("connection refused")
            return httpx.Response(200, text="203.0.113.7")

        registrar = PublicAddressRegistrar(REGISTRY_URL, transport=httpx.MockTransport(handler))
        assert tick(registrar) is True
        assert registrar.attempt_count == 1
        assert registrar.state.last_ipv4 == ""
