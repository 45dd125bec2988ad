"""
tests.test_stacks

Shipped stack builders, their options and the registry.
"""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from tezedge_stacks.stacks.debug import explorer_api
from tezedge_stacks.stacks.explorer import ExplorerFeature, ExplorerNode, render_explorer_api
from tezedge_stacks.stacks.options import StackOptions
from tezedge_stacks.stacks.registry import STACKS, UnknownStackError, get_stack, list_stacks


def test_registry_lists_both_stacks() -> None:
    assert [s.name for s in list_stacks()] == ["sandbox", "debug"]
    assert get_stack("debug").compose_file == "docker-compose.debug.yml"


def test_unknown_stack() -> None:
    with pytest.raises(UnknownStackError) as exc:
        get_stack("mainnet")
    assert "known: sandbox, debug" in str(exc.value)


def test_sandbox_stack_shape() -> None:
    compose = STACKS["sandbox"].build()
    launcher = compose.services["tezedge-sandbox-launcher"]
    assert launcher.image == "tezedge/tezedge:sandbox-v3.1.1"
    assert sorted(p.host_port for p in launcher.ports) == [3030, 4927, 9732, 18732]
    explorer = compose.services["tezedge-explorer"]
    assert explorer.environment["SANDBOX"] == "http://localhost:3030"
    api = json.loads(explorer.environment["API"])
    assert api == [
        {
            "id": "sandbox",
            "name": "sandbox",
            "http": "http://localhost:18732",
            "monitoring": "",
            "debugger": "",
            "ws": "ws://localhost:4927",
            "features": ["MONITORING", "MEMPOOL_ACTION", "STORAGE_BLOCK"],
        }
    ]


def test_debug_stack_wires_syslog_to_debugger() -> None:
    compose = STACKS["debug"].build()
    node = compose.services["tezedge-node"]
    assert node.uses_host_network
    assert node.logging is not None
    assert node.logging.options["syslog-address"] == "udp://0.0.0.0:10001"
    debugger_ports = {(p.host_port, p.protocol) for p in compose.services["tezedge-debugger"].ports}
    assert (10001, "udp") in debugger_ports


def test_options_move_ports_consistently() -> None:
    o = StackOptions(rpc_port=28732, debugger_syslog_port=10011, monitoring_port=5555)
    compose = STACKS["debug"].build(o)
    node = compose.services["tezedge-node"]
    assert "--rpc-port=28732" in node.command
    assert node.logging.options["syslog-address"] == "udp://0.0.0.0:10011"
    assert "10011:10011/udp" in [p.to_short() for p in compose.services["tezedge-debugger"].ports]
    assert "tezedge:28732:/tmp/tezedge" in compose.services["monitoring"].command

    api = json.loads(explorer_api(o))
    system = next(f for f in api[0]["features"] if f["name"] == "resources/system")
    assert system["monitoringUrl"].endswith(":5555/resources/tezedge")


@pytest.mark.parametrize(
    "kwargs",
    [{"rpc_port": 0}, {"p2p_port": 70000}, {"peer_thresh_low": 50, "peer_thresh_high": 10}],
)
def test_invalid_options(kwargs) -> None:
    with pytest.raises(ValidationError):
        StackOptions(**kwargs)


def test_explorer_api_omits_unset_fields() -> None:
    text = render_explorer_api(
        [
            ExplorerNode(
                id="n",
                name="n",
                http="http://h:1",
                features=[ExplorerFeature(name="monitoring"), ExplorerFeature(name="ws", url="ws://h:2")],
            )
        ]
    )
    assert json.loads(text) == [
        {"id": "n", "name": "n", "http": "http://h:1", "features": [{"name": "monitoring"}, {"name": "ws", "url": "ws://h:2"}]}
    ]
    assert " " not in text
