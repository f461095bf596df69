"""Punto de entrada: ``python -m glucose_watch``."""

from __future__ import annotations

from glucose_watch.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
