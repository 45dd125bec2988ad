"""
tezedge_stacks.services

Service-layer package.

Responsibilities:
- Own transaction boundaries for the deployment event log.
- Orchestrate render -> validate -> compose -> probe across the lower layers.
"""

# Package marker.
