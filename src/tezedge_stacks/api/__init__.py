"""
tezedge_stacks.api

HTTP API for the stacks toolkit.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring and request/response models.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Routers stay thin: request validation + auth + delegation to DeploymentService.
