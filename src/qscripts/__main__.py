"""Entry point for ``python -m qscripts``."""

import sys

from qscripts.cli import run_cli


def main() -> None:
    sys.exit(run_cli(sys.argv[1:]))


if __name__ == "__main__":
    main()
