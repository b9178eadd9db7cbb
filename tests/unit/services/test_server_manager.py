"""
Tests unitaires du contrôleur de cycle de vie du processus.
"""
import pytest

from mcp_hub.services.mcp_manager import MultiServerManager
from mcp_hub.services.server_manager import ProcessLifecycleController
from mcp_hub.transport.config import StdioTransport


class ExplodingManager:
    """Gestionnaire dont start/stop échouent."""

    def __init__(self):
        self.start_calls = 0
        self.stop_calls = 0

    async def start(self):
        self.start_calls += 1
        raise RuntimeError("start boom")

    async def stop(self):
        self.stop_calls += 1
        raise RuntimeError("stop boom")

    def get_status(self):
        return {}


@pytest.fixture
def controller(fake_registry) -> ProcessLifecycleController:
    manager = MultiServerManager(StdioTransport(), registry=fake_registry.build(["alpha", "beta"]))
    return ProcessLifecycleController(manager)


@pytest.mark.unit
async def test_status_shape(controller):
    assert controller.get_status() == {"is_running": False, "mcp": {"alpha": False, "beta": False}}

    await controller.start()

    assert controller.get_status() == {"is_running": True, "mcp": {"alpha": True, "beta": True}}


@pytest.mark.unit
async def test_toggle_alternates(controller):
    await controller.toggle()
    assert controller.is_running

    await controller.toggle()
    assert not controller.is_running
    assert controller.get_status()["mcp"] == {"alpha": False, "beta": False}


@pytest.mark.unit
async def test_start_and_stop_are_idempotent(controller, fake_registry):
    await controller.start()
    await controller.start()
    await controller.stop()
    await controller.stop()

    assert [len(s.start_calls) for s in fake_registry.instances.values()] == [1, 1]
    assert [s.stop_calls for s in fake_registry.instances.values()] == [1, 1]


@pytest.mark.unit
async def test_start_failure_leaves_stopped_and_reraises():
    controller = ProcessLifecycleController(ExplodingManager())

    with pytest.raises(RuntimeError, match="start boom"):
        await controller.start()

    assert not controller.is_running


@pytest.mark.unit
async def test_cleanup_never_raises():
    manager = ExplodingManager()
    controller = ProcessLifecycleController(manager)
    controller.is_running = True

    await controller.cleanup()

    assert manager.stop_calls == 1
    assert not controller.is_running


@pytest.mark.unit
async def test_cleanup_when_stopped_is_noop(controller, fake_registry):
    await controller.cleanup()

    assert [s.stop_calls for s in fake_registry.instances.values()] == [0, 0]


@pytest.mark.unit
async def test_toggle_server_delegates(controller):
    await controller.start()

    await controller.toggle_server("alpha")

    assert controller.get_status()["mcp"] == {"alpha": False, "beta": True}
