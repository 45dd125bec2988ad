"""
tezedge_stacks.stacks

The shipped deployment descriptors.

Responsibilities:
- Build the sandbox and debug (production) stacks as typed compose models.
- Expose a registry used by the CLI, API and deployment service.
"""

# Package marker; the registry lives in `tezedge_stacks.stacks.registry`.
