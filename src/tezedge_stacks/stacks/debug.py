"""
tezedge_stacks.stacks.debug

Debug (production-mode) stack.

Responsibilities:
- Node on the host network, logging over syslog (UDP) to the debugger sidecar.
- Debugger with access to the node's data (read-only) and kernel debug interfaces.
- Monitoring sidecar polling node and debugger, republishing resource/health data.
- Explorer aggregating node, debugger and monitoring endpoints.
"""

from __future__ import annotations

from tezedge_stacks.compose.models import ComposeFile
from tezedge_stacks.stacks.explorer import ExplorerFeature, ExplorerNode, render_explorer_api
from tezedge_stacks.stacks.options import StackOptions

NODE_DATA_VOLUME = "tezedge-debug-data"
DEBUGGER_DATA_VOLUME = "debugger-debug-data"


def explorer_api(o: StackOptions) -> str:
    host = o.node_host
    return render_explorer_api(
        [
            ExplorerNode(
                id=host,
                name="tezedge",
                http=f"http://{host}:{o.rpc_port}",
                p2p_port=o.p2p_port,
                features=[
                    ExplorerFeature(name="ws", url=f"ws://{host}:{o.websocket_port}"),
                    ExplorerFeature(name="debugger", url=f"http://{host}:{o.debugger_rpc_port}"),
                    ExplorerFeature(name="monitoring"),
                    ExplorerFeature(name="resources/storage"),
                    ExplorerFeature(
                        name="resources/system",
                        monitoring_url=f"http://{host}:{o.monitoring_port}/resources/tezedge",
                    ),
                    ExplorerFeature(name="mempool"),
                    ExplorerFeature(name="storage"),
                    ExplorerFeature(name="network"),
                    ExplorerFeature(name="logs"),
                    ExplorerFeature(name="state"),
                ],
            )
        ]
    )


def node_command(o: StackOptions) -> list[str]:
    return [
        "--network", o.tezos_network,
        f"--p2p-port={o.p2p_port}",
        f"--rpc-port={o.rpc_port}",
        f"--websocket-address=0.0.0.0:{o.websocket_port}",
        "--log", "terminal", "file",
        "--log-file", o.node_log_file,
        "--peer-thresh-low", str(o.peer_thresh_low),
        "--peer-thresh-high", str(o.peer_thresh_high),
        f"--tezos-context-storage={o.context_storage}",
        "--context-stats-db-path", "context-stats-db",
        "--record-shell-automaton-state-snapshots",
        "--record-shell-automaton-actions",
    ]


def build_debug_stack(options: StackOptions | None = None) -> ComposeFile:
    o = options or StackOptions()

    return ComposeFile.model_validate(
        {
            "version": "3",
            "services": {
                "tezedge-debugger": {
                    "image": o.debugger_image,
                    "privileged": True,
                    "environment": ["RUST_BACKTRACE=1"],
                    "volumes": [
                        f"{NODE_DATA_VOLUME}:/tmp/volume/tezedge:ro",
                        f"{o.debugger_config_path}:/home/appuser/config.toml:ro",
                        "/sys/kernel/debug:/sys/kernel/debug:rw",
                        "/tmp/report:/tmp/report:rw",
                        f"{DEBUGGER_DATA_VOLUME}:/tmp/debugger_database",
                    ],
                    "ports": [
                        f"{o.debugger_rpc_port}:{o.debugger_rpc_port}",
                        f"{o.debugger_syslog_port}:{o.debugger_syslog_port}/udp",
                    ],
                },
                "tezedge-node": {
                    "image": o.node_image,
                    "pid": "host",
                    "network_mode": "host",
                    "command": node_command(o),
                    "logging": {
                        "driver": "syslog",
                        "options": {
                            "syslog-address": f"udp://0.0.0.0:{o.debugger_syslog_port}",
                            "syslog-format": "rfc5424micro",
                        },
                    },
                    "volumes": [f"{NODE_DATA_VOLUME}:/tmp/tezedge"],
                    "environment": [f"TEZOS_CONTEXT=index-log-size={o.context_index_log_size}"],
                },
                "explorer": {
                    "image": o.explorer_image,
                    "environment": [f"API={explorer_api(o)}"],
                    "ports": [f"{o.explorer_port}:80", f"{o.explorer_alt_port}:80"],
                    "logging": {"driver": "none"},
                },
                "monitoring": {
                    "privileged": True,
                    "network_mode": "host",
                    "image": o.monitoring_image,
                    "pid": "host",
                    "command": [
                        "--tezedge-nodes", f"tezedge:{o.rpc_port}:/tmp/tezedge",
                        "--wait-for-nodes",
                        "--debugger-path", "/tmp/debugger",
                        "--rpc-port", str(o.monitoring_port),
                    ],
                    "volumes": [
                        f"{NODE_DATA_VOLUME}:/tmp/tezedge",
                        f"{DEBUGGER_DATA_VOLUME}:/tmp/debugger",
                    ],
                },
            },
            "volumes": {
                NODE_DATA_VOLUME: {"external": False},
                DEBUGGER_DATA_VOLUME: {"external": False},
            },
        }
    )


# --- Module Notes -----------------------------------------------------------
# The node's syslog target port and the debugger's published UDP port are both
# derived from `debugger_syslog_port`; validation still checks the pairing because
# loaded descriptors can be edited by hand.
