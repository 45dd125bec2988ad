"""
tezedge_stacks.validation

Configuration-validity checks for compose descriptors.

Responsibilities:
- Findings/report types.
- Individual checks (ports, volumes, interpolation, wiring between sidecars).
- A single entrypoint that interpolates, parses and runs every check.
"""

# Package marker.
