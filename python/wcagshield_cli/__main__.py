# SPDX-License-Identifier: AGPL-3.0-only
"""Enable `python -m wcagshield_cli` invocation."""
from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
