"""
tezedge_stacks.stacks.explorer

Builder for the explorer's `API` environment value: a JSON list describing the
nodes the UI should display and which of their endpoints (WebSocket, debugger,
monitoring) it may call.
"""

from __future__ import annotations

import json

from pydantic import BaseModel, ConfigDict, Field


class ExplorerFeature(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    url: str | None = None
    monitoring_url: str | None = Field(default=None, alias="monitoringUrl")


class ExplorerNode(BaseModel):
    # Field order is the JSON key order the explorer images were configured with.
    id: str
    name: str
    http: str
    monitoring: str | None = None
    debugger: str | None = None
    ws: str | None = None
    p2p_port: int | None = None
    features: list[ExplorerFeature | str] = Field(default_factory=list)


def render_explorer_api(nodes: list[ExplorerNode]) -> str:
    payload = [n.model_dump(by_alias=True, exclude_none=True) for n in nodes]
    return json.dumps(payload, separators=(",", ":"))
