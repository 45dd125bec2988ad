"""
tezedge_stacks.compose

Compose file package.

Responsibilities:
- Typed compose models, variable interpolation and YAML I/O.
"""

# Package marker; import from submodules.
