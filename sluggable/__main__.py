"""Module entrypoint for running sluggable as ``python -m sluggable``."""

from __future__ import annotations

from sluggable.cli import main


if __name__ == "__main__":
    main()
