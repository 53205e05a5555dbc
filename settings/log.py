"""Logging setup shared by the CLI and the HTTP service."""
import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Route all log records through a single rich handler on the root logger."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(console=console or Console(stderr=True), show_path=verbose, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Keep HTTP client chatter out of normal runs
    for noisy in ("httpx", "httpcore", "openai", "urllib3", "pdfminer"):
        logging.getLogger(noisy).setLevel(logging.DEBUG if verbose else logging.WARNING)
