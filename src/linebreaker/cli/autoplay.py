# src/linebreaker/cli/autoplay.py
from __future__ import annotations

from linebreaker.apps.autoplay.entrypoint import parse_args, run_autoplay


def main() -> int:
    return run_autoplay(parse_args())


if __name__ == "__main__":
    raise SystemExit(main())
