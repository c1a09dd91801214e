import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

BANNER_WIDTH = 72

_console = None


def get_console():
    """Shared console for log records and cut-flow tables."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def log_banner(text):
    """
    Section header for the run log, as Rich markup.
    """
    rule = "-" * BANNER_WIDTH
    return f"[bold cyan]{rule}\n{escape(text.upper()).center(BANNER_WIDTH)}\n{rule}[/bold cyan]"


def setup_logging(level="INFO"):
    log = logging.getLogger()
    if log.handlers:
        return

    handler = RichHandler(console=get_console(), markup=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    log.addHandler(handler)
    log.setLevel(level)
