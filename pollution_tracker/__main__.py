"""Module entry point: python -m pollution_tracker ..."""

from __future__ import annotations

from pollution_tracker.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
