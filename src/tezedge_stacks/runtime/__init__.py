"""
tezedge_stacks.runtime

Container runtime boundary.

Responsibilities:
- Drive `docker compose` for a rendered stack (config/pull/up/down/ps).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Everything that spawns processes lives here so services stay testable with fakes.
