import socket
import pytest
import powgate.resolver as resolver_module
from powgate.resolver import SystemResolver, is_ip_address, normalize_ip


class TestNormalizeIp:
    """Unit tests for normalize_ip."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("66.249.66.1", "66.249.66.1"),
            ("2001:DB8:0:0::1", "2001:db8::1"),
            ("2001:0db8:0000:0000:0000:0000:0000:0001", "2001:db8::1"),
            ("::ffff:66.249.66.1", "66.249.66.1"),
            ("fe80::1%eth0", "fe80::1"),
        ],
    )
    def test_canonical_forms(self, raw, expected):
        assert normalize_ip(raw) == expected

    def test_equivalent_representations_compare_equal(self):
        assert normalize_ip("2001:db8::1") == normalize_ip("2001:0DB8::0:1")

    def test_non_address_is_returned_unchanged(self):
        assert normalize_ip("not-an-ip") == "not-an-ip"


class TestIsIpAddress:
    """Unit tests for is_ip_address."""

    @pytest.mark.parametrize("value", ["127.0.0.1", "::1", "fe80::1%eth0"])
    def test_accepts_addresses(self, value):
        assert is_ip_address(value) is True

    @pytest.mark.parametrize("value", ["", "localhost", "999.1.1.1", "testclient"])
    def test_rejects_non_addresses(self, value):
        assert is_ip_address(value) is False


class TestSystemResolver:
    """Unit tests for SystemResolver with socket calls patched out."""

    @pytest.mark.asyncio
    async def test_reverse_returns_primary_hostname(self, monkeypatch):
        monkeypatch.setattr(
            resolver_module.socket,
            "gethostbyaddr",
            lambda ip: ("crawl-66-249-66-1.googlebot.com", [], [ip]),
        )

        assert await SystemResolver().reverse("66.249.66.1") == "crawl-66-249-66-1.googlebot.com"

    @pytest.mark.asyncio
    async def test_reverse_returns_none_on_lookup_error(self, monkeypatch):
        def fail(ip):
            raise socket.herror(1, "Unknown host")

        monkeypatch.setattr(resolver_module.socket, "gethostbyaddr", fail)

        assert await SystemResolver().reverse("192.0.2.1") is None

    @pytest.mark.asyncio
    async def test_forward_collects_all_families(self, monkeypatch):
        infos = [
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("66.249.66.1", 0)),
            (socket.AF_INET6, socket.SOCK_STREAM, 6, "", ("2001:4860:4801:10::1", 0, 0, 0)),
        ]

        async def fake_getaddrinfo(self, host, port, **kwargs):
            return infos

        monkeypatch.setattr(
            "asyncio.base_events.BaseEventLoop.getaddrinfo", fake_getaddrinfo
        )

        result = await SystemResolver().forward("crawl-66-249-66-1.googlebot.com")

        assert result == ["66.249.66.1", "2001:4860:4801:10::1"]

    @pytest.mark.asyncio
    async def test_forward_returns_empty_on_lookup_error(self, monkeypatch):
        async def fake_getaddrinfo(self, host, port, **kwargs):
            raise socket.gaierror(-2, "Name or service not known")

        monkeypatch.setattr(
            "asyncio.base_events.BaseEventLoop.getaddrinfo", fake_getaddrinfo
        )

        assert await SystemResolver().forward("nowhere.invalid") == []
