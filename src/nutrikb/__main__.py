from __future__ import annotations

from nutrikb.ui.cli import run

if __name__ == "__main__":
    run()
