"""
tezedge_stacks.auth

Authentication/authorization for the operator API.

Responsibilities:
- JWT issuing/validation.
- FastAPI dependencies turning bearer tokens into a `Principal` and enforcing roles.
"""

# Package marker.
