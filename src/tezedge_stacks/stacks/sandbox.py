"""
tezedge_stacks.stacks.sandbox

Sandbox stack: a sandbox-mode launcher exposing node RPC/P2P/WebSocket ports and
its own control port, plus an explorer UI pointed at those ports.
"""

from __future__ import annotations

from tezedge_stacks.compose.models import ComposeFile
from tezedge_stacks.stacks.explorer import ExplorerNode, render_explorer_api
from tezedge_stacks.stacks.options import StackOptions

SHARED_VOLUME = "tezedge-shared-data"


def build_sandbox_stack(options: StackOptions | None = None) -> ComposeFile:
    o = options or StackOptions()
    host = o.sandbox_host

    api = render_explorer_api(
        [
            ExplorerNode(
                id="sandbox",
                name="sandbox",
                http=f"http://{host}:{o.rpc_port}",
                monitoring="",
                debugger="",
                ws=f"ws://{host}:{o.websocket_port}",
                features=["MONITORING", "MEMPOOL_ACTION", "STORAGE_BLOCK"],
            )
        ]
    )

    return ComposeFile.model_validate(
        {
            "version": "3",
            "services": {
                "tezedge-sandbox-launcher": {
                    "image": o.sandbox_image,
                    "command": [f"--sandbox-rpc-port={o.sandbox_rpc_port}"],
                    "volumes": [f"{SHARED_VOLUME}:/tmp/tezedge"],
                    "ports": [
                        f"{o.websocket_port}:{o.websocket_port}",
                        f"{o.p2p_port}:{o.p2p_port}",
                        f"{o.rpc_port}:{o.rpc_port}",
                        f"{o.sandbox_rpc_port}:{o.sandbox_rpc_port}",
                    ],
                    "networks": ["default"],
                    "tty": True,
                },
                "tezedge-explorer": {
                    "image": o.sandbox_explorer_image,
                    "environment": [
                        f"SANDBOX=http://{host}:{o.sandbox_rpc_port}",
                        f"API={api}",
                    ],
                    "ports": [
                        f"{o.explorer_port}:80",
                        f"{o.explorer_alt_port}:8080",
                    ],
                    "networks": ["default"],
                    "tty": True,
                },
            },
            "volumes": {SHARED_VOLUME: {"external": False}},
        }
    )
