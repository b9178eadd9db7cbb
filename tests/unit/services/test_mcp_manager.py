"""
Tests unitaires du gestionnaire multi-serveurs.
"""
import asyncio

import pytest

from mcp_hub.services.mcp_manager import MultiServerManager
from mcp_hub.transport.config import StdioTransport, StreamTransport


@pytest.mark.unit
def test_factory_failure_omits_only_that_server(fake_registry):
    registry = fake_registry.build(["alpha", "beta"], failing_factories={"alpha"})

    manager = MultiServerManager(StdioTransport(), registry=registry)

    assert manager.get_status() == {"beta": False}
    assert "alpha" not in manager.servers


@pytest.mark.unit
def test_stream_transport_gets_channel_lookup(fake_registry):
    transport = StreamTransport(port=0, base_path="/mcp")

    manager = MultiServerManager(transport, registry=fake_registry.build(["alpha"]))

    assert transport.channel_lookup is None
    assert manager.multiplexer is not None
    assert manager.transport_config.channel_lookup == manager.multiplexer.get_channel
    assert manager.transport_config.base_path == "/mcp"


@pytest.mark.unit
def test_stdio_transport_has_no_multiplexer(fake_registry):
    manager = MultiServerManager(StdioTransport(), registry=fake_registry.build(["alpha"]))

    assert manager.multiplexer is None


@pytest.mark.unit
async def test_status_reflects_individual_start_outcomes(fake_registry):
    registry = fake_registry.build(["alpha", "beta", "gamma"], server_kwargs={"beta": {"fail_start": True}})
    manager = MultiServerManager(StdioTransport(), registry=registry)

    await manager.start()

    assert manager.is_running
    assert manager.get_status() == {"alpha": True, "beta": False, "gamma": True}


@pytest.mark.unit
async def test_start_twice_starts_each_instance_once(fake_registry):
    manager = MultiServerManager(StdioTransport(), registry=fake_registry.build(["alpha", "beta"]))

    await manager.start()
    await manager.start()

    assert [len(s.start_calls) for s in fake_registry.instances.values()] == [1, 1]


@pytest.mark.unit
async def test_stop_when_not_running_calls_nothing(fake_registry):
    manager = MultiServerManager(StdioTransport(), registry=fake_registry.build(["alpha", "beta"]))

    await manager.stop()

    assert [s.stop_calls for s in fake_registry.instances.values()] == [0, 0]


@pytest.mark.unit
async def test_stop_failure_is_isolated(fake_registry):
    registry = fake_registry.build(["alpha", "beta"], server_kwargs={"alpha": {"fail_stop": True}})
    manager = MultiServerManager(StdioTransport(), registry=registry)
    await manager.start()

    await manager.stop()

    assert not manager.is_running
    assert fake_registry.instances["beta"].stop_calls == 1
    assert manager.get_status() == {"alpha": True, "beta": False}


@pytest.mark.unit
async def test_toggle_unknown_id_is_noop(fake_registry):
    manager = MultiServerManager(StdioTransport(), registry=fake_registry.build(["alpha"]))
    await manager.start()

    await manager.toggle_server("ghost")

    alpha = fake_registry.instances["alpha"]
    assert len(alpha.start_calls) == 1
    assert alpha.stop_calls == 0
    assert manager.get_status() == {"alpha": True}


@pytest.mark.unit
async def test_toggle_flips_only_target(fake_registry):
    manager = MultiServerManager(StdioTransport(), registry=fake_registry.build(["alpha", "beta", "gamma"]))
    await manager.start()

    await manager.toggle_server("beta")
    assert manager.get_status() == {"alpha": True, "beta": False, "gamma": True}

    await manager.toggle_server("beta")
    assert manager.get_status() == {"alpha": True, "beta": True, "gamma": True}


@pytest.mark.unit
async def test_toggle_failure_propagates(fake_registry):
    registry = fake_registry.build(["alpha"], server_kwargs={"alpha": {"fail_start": True}})
    manager = MultiServerManager(StdioTransport(), registry=registry)

    with pytest.raises(RuntimeError, match="alpha start boom"):
        await manager.toggle_server("alpha")


@pytest.mark.unit
async def test_stream_start_order_and_channel_binding(fake_registry):
    manager = MultiServerManager(StreamTransport(port=0), registry=fake_registry.build(["alpha"]))

    # Aucun canal ouvert: le démarrage de l'instance échoue, le gestionnaire démarre quand même
    await manager.start()
    try:
        assert manager.multiplexer.is_listening
        assert manager.is_running
        assert manager.get_status() == {"alpha": False}
        assert fake_registry.instances["alpha"].start_calls[0].channel_lookup is not None
    finally:
        await manager.stop()

    assert not manager.multiplexer.is_listening


@pytest.mark.unit
async def test_stop_precedes_multiplexer_teardown(fake_registry):
    manager = MultiServerManager(StreamTransport(port=0), registry=fake_registry.build(["alpha"]))
    await manager.start()
    listening_during_stop = []

    alpha = fake_registry.instances["alpha"]
    original_stop = alpha.stop

    async def stop_and_observe():
        listening_during_stop.append(manager.multiplexer.is_listening)
        await original_stop()

    alpha.stop = stop_and_observe
    await manager.stop()

    assert listening_during_stop == [True]


@pytest.mark.unit
async def test_server_details(fake_registry):
    manager = MultiServerManager(StreamTransport(port=0, base_path="mcp"), registry=fake_registry.build(["alpha"]))

    assert manager.get_server_details() == {
        "alpha": {"is_running": False, "transport": "sse", "path": "/mcp/sse/alpha"}
    }


def _rendezvous(server, method: str, arrived: asyncio.Event, partner: asyncio.Event) -> None:
    """L'appel ne se termine qu'une fois l'appel du partenaire commencé."""
    original = getattr(server, method)

    async def wrapped(*args):
        arrived.set()
        await partner.wait()
        await original(*args)

    setattr(server, method, wrapped)


def _paired_manager(fake_registry, method: str) -> MultiServerManager:
    manager = MultiServerManager(StdioTransport(), registry=fake_registry.build(["alpha", "beta"]))
    alpha_in, beta_in = asyncio.Event(), asyncio.Event()
    _rendezvous(fake_registry.instances["alpha"], method, alpha_in, beta_in)
    _rendezvous(fake_registry.instances["beta"], method, beta_in, alpha_in)
    return manager


@pytest.mark.unit
async def test_start_issues_instance_starts_concurrently(fake_registry):
    manager = _paired_manager(fake_registry, "start")

    # Un démarrage séquentiel attendrait indéfiniment le second serveur
    await asyncio.wait_for(manager.start(), timeout=1)

    assert manager.get_status() == {"alpha": True, "beta": True}


@pytest.mark.unit
async def test_stop_issues_instance_stops_concurrently(fake_registry):
    manager = _paired_manager(fake_registry, "stop")
    await manager.start()

    await asyncio.wait_for(manager.stop(), timeout=1)

    assert manager.get_status() == {"alpha": False, "beta": False}
    assert fake_registry.instances["alpha"].stop_calls == 1
    assert fake_registry.instances["beta"].stop_calls == 1
