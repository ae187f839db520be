"""Allow ``python -m autocdn`` to launch the control CLI."""

from __future__ import annotations

from autocdn import run

if __name__ == "__main__":
    run()
