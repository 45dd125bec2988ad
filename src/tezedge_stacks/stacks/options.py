"""
tezedge_stacks.stacks.options

Tunables for the shipped stacks. Defaults reproduce the published descriptors
unchanged; overriding them is how operators move a port or bump an image tag.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class StackOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Images (pulled, never built)
    node_image: str = "tezedge/tezedge:v3.1.1"
    sandbox_image: str = "tezedge/tezedge:sandbox-v3.1.1"
    debugger_image: str = "tezedge/tezedge-debugger:v1.6.9"
    monitoring_image: str = "tezedge/node-monitoring:v3.1.1"
    explorer_image: str = "tezedge/tezedge-explorer:v2.2.3"
    sandbox_explorer_image: str = "tezedge/tezedge-explorer:v2.2.2"

    # Left as interpolation expressions so `docker compose` resolves them at launch.
    tezos_network: str = "${TEZOS_NETWORK-mainnet}"
    context_storage: str = "${TEZOS_CONTEXT_STORAGE:-irmin}"
    node_host: str = "${NODE_HOSTNAME_OR_IP:-localhost}"
    sandbox_host: str = "localhost"

    p2p_port: int = Field(default=9732, ge=1, le=65535)
    rpc_port: int = Field(default=18732, ge=1, le=65535)
    websocket_port: int = Field(default=4927, ge=1, le=65535)
    sandbox_rpc_port: int = Field(default=3030, ge=1, le=65535)
    debugger_rpc_port: int = Field(default=17732, ge=1, le=65535)
    debugger_syslog_port: int = Field(default=10001, ge=1, le=65535)
    monitoring_port: int = Field(default=4444, ge=1, le=65535)
    explorer_port: int = Field(default=80, ge=1, le=65535)
    explorer_alt_port: int = Field(default=8080, ge=1, le=65535)

    peer_thresh_low: int = Field(default=30, ge=0)
    peer_thresh_high: int = Field(default=45, ge=0)

    context_index_log_size: str = "2_500_000"
    node_log_file: str = "/tmp/tezedge/tezedge.log"
    debugger_config_path: str = "./docker/debug.debugger-config.toml"

    @model_validator(mode="after")
    def _check_thresholds(self) -> StackOptions:
        if self.peer_thresh_low > self.peer_thresh_high:
            raise ValueError("peer_thresh_low must not exceed peer_thresh_high")
        return self
