"""Module entrypoint for launching the MPRIS bridge."""
from __future__ import annotations

import app


def main() -> None:
    raise SystemExit(app.launch())


if __name__ == "__main__":
    main()
