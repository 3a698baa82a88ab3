# SPDX-License-Identifier: AGPL-3.0-only
"""Enable `python -m wcagshield` invocation."""
from wcagshield_cli.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
