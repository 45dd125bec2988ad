"""
tezedge_stacks.api.routers

Router modules; each exposes a module-level `router`.
"""
