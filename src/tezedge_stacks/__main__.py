"""
tezedge_stacks.__main__

`python -m tezedge_stacks` entrypoint.
"""

from __future__ import annotations

import sys

from tezedge_stacks.cli import main

if __name__ == "__main__":
    sys.exit(main())
