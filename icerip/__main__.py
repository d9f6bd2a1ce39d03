"""
Entry point for `icerip` and `python -m icerip`.
"""

import logging
import os
import sys

from rich.console import Console

from icerip.cli.app import app
from icerip.cli.formatters import format_error_with_suggestions
from icerip.exceptions import IceRipError


def _use_utf8_stdio() -> None:
    # Status lines use ✓, », ● and • glyphs that legacy Windows code pages lack.
    if os.name != "nt":
        return
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.reconfigure(encoding="utf-8")
        except (TypeError, AttributeError):
            pass


def main() -> None:
    _use_utf8_stdio()
    console = Console()

    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠️  Recording interrupted by user.[/yellow]")
        sys.exit(0)
    except IceRipError as e:
        console.print(f"\n{format_error_with_suggestions(e)}")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n{format_error_with_suggestions(e, {'type': 'Unexpected'})}")
        logging.getLogger("icerip").debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
