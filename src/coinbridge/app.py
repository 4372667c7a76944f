from __future__ import annotations

import logging
import sys
from pathlib import Path

from .logging import configure_logging

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Console entry point: configure logging, then hand argv to the Typer app.

    - `coinbridge exchanges`: list supported exchanges
    - `coinbridge ticker gemini BTC/USD`: query one exchange
    """
    if argv is None:
        argv = sys.argv[1:]

    try:
        configure_logging(Path("logs"))

        # Import CLI app here so logging is configured first
        from .cli import run_cli
        run_cli(argv)
        return 0
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else (0 if e.code is None else 1)
    except Exception as e:
        logger.error("CLI error: %s", e, exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
