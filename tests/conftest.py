"""
Configuration des tests pytest.
"""
import os
import sys
from typing import List, Optional

import pytest

# Ajoute src au path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from mcp_hub.core.exceptions import TransportConfigError  # noqa: E402
from mcp_hub.features.mcp.registry import ServerRegistration, build_registry  # noqa: E402
from mcp_hub.transport.config import StreamTransport, TransportConfig  # noqa: E402


def pytest_configure(config):
    """Enregistre les marqueurs du projet."""
    config.addinivalue_line("markers", "unit: test unitaire (sans réseau)")
    config.addinivalue_line("markers", "integration: test avec un vrai listener HTTP local")


class FakeServer:
    """
    ServerInstance minimal qui compte ses appels.

    `fail_start` / `fail_stop` font échouer les appels correspondants.
    """

    def __init__(self, server_id: str, fail_start: bool = False, fail_stop: bool = False):
        self.server_id = server_id
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.start_calls: List[TransportConfig] = []
        self.stop_calls = 0
        self.channel = None
        self._running = False

    async def start(self, transport_config: TransportConfig) -> None:
        self.start_calls.append(transport_config)
        if self.fail_start:
            raise RuntimeError(f"{self.server_id} start boom")
        if isinstance(transport_config, StreamTransport):
            lookup = transport_config.channel_lookup
            self.channel = lookup(self.server_id) if lookup else None
            if self.channel is None:
                raise TransportConfigError("pas de canal", server_id=self.server_id)
        self._running = True

    async def stop(self) -> None:
        self.stop_calls += 1
        if self.fail_stop:
            raise RuntimeError(f"{self.server_id} stop boom")
        self._running = False

    def is_running(self) -> bool:
        return self._running


class FakeRegistry:
    """Construit un registre de FakeServer et garde les instances créées."""

    def __init__(self):
        self.instances = {}

    def build(self, ids, failing_factories=(), server_kwargs: Optional[dict] = None) -> tuple:
        server_kwargs = server_kwargs or {}
        return build_registry(
            ServerRegistration(
                id=server_id,
                factory=self._factory(server_id, server_id in failing_factories, server_kwargs.get(server_id)),
            )
            for server_id in ids
        )

    def _factory(self, server_id: str, fails: bool, kwargs: Optional[dict]):
        def factory():
            if fails:
                raise RuntimeError(f"factory {server_id} boom")
            server = FakeServer(server_id, **(kwargs or {}))
            self.instances[server_id] = server
            return server

        return factory


@pytest.fixture
def fake_registry() -> FakeRegistry:
    return FakeRegistry()
