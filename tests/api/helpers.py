from __future__ import annotations

from types import SimpleNamespace


class DummySession:
    async def __aenter__(self) -> object:
        return object()

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class DummySessionLocal:
    def __call__(self) -> DummySession:
        return DummySession()

    def begin(self) -> DummySession:
        return DummySession()


def internal_settings(*, allowlist: str = "127.0.0.1/32") -> SimpleNamespace:
    return SimpleNamespace(
        internal_api_token="internal-secret",
        internal_api_allowlist=allowlist,
        internal_api_trusted_proxies="",
    )
