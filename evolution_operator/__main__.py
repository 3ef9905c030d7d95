"""Allow ``python -m evolution_operator``; with no arguments the usage is shown."""
from __future__ import annotations

import sys

from .cli import build_parser, main as cli_main

PROG = "python -m evolution_operator"


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if args:
        return cli_main(args)

    build_parser(prog=PROG).print_help()
    return 2


if __name__ == "__main__":  # pragma: no cover - module entry point
    sys.exit(main())
