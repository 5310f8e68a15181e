"""Allow ``python -m macfilter``; see :mod:`macfilter.cli` for the options."""

from __future__ import annotations

import sys

from macfilter.cli import main as cli_main


def main() -> None:
    """Console-script entry point."""
    cli_main(sys.argv[1:])


if __name__ == "__main__":
    main()
