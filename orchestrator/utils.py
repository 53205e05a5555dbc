"""Utility functions for the orchestrator."""
from pathlib import Path

from rich.console import Console

from syllabus_server.text_extract import SUPPORTED_SUFFIXES

console = Console()
err_console = Console(stderr=True)


def expand_syllabus_paths(paths: tuple[str, ...]) -> list[str]:
    """Expand paths to include all PDF/DOCX files in directories.

    Args:
        paths: Tuple of file paths and/or directory paths

    Returns:
        List of syllabus file paths with directories expanded

    Raises:
        SystemExit: If a directory contains no syllabus files or a path does not exist
    """
    syllabus_files: list[str] = []

    for path_str in paths:
        path = Path(path_str)

        if path.is_file():
            syllabus_files.append(path_str)
        elif path.is_dir():
            found = sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES)

            if not found:
                err_console.print(
                    f"[red]Error:[/red] Directory '{path_str}' contains no PDF or DOCX files.",
                )
                raise SystemExit(1)

            syllabus_files.extend(str(p) for p in found)
        else:
            err_console.print(
                f"[red]Error:[/red] Path '{path_str}' does not exist.",
            )
            raise SystemExit(1)

    return syllabus_files
