"""
tezedge_stacks.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Deployment event log: ORM model, engine/session setup, repository.
"""

# Package marker.
