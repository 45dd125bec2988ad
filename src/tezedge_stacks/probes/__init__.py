"""
tezedge_stacks.probes

Readiness probing for started stacks.
"""

# Package marker.
