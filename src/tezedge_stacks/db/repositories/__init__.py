"""
tezedge_stacks.db.repositories

Repository package; repositories are imported directly from submodules.
"""
