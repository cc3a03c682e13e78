"""Rich console wrapper used for every user-facing message.

Sanitizes glyphs on non-UTF-8 terminals and adds the small set of message
helpers (warn/error/success) shared by the pipeline and the CLI.
"""
from typing import Any

from rich.console import Console
from rich.markup import escape

from .logger import sanitize_for_terminal, is_utf8_capable


class SafeConsole(Console):
    """Console that replaces Unicode glyphs with ASCII on legacy terminals."""

    def __init__(self, *args, **kwargs):
        self._needs_sanitization = not is_utf8_capable()
        if self._needs_sanitization:
            kwargs['legacy_windows'] = True
        super().__init__(*args, **kwargs)

    def print(self, *objects: Any, **kwargs) -> None:
        if self._needs_sanitization:
            objects = tuple(
                sanitize_for_terminal(obj) if isinstance(obj, str) else obj
                for obj in objects
            )
        super().print(*objects, **kwargs)

    def success(self, message: str) -> None:
        self.print(f"[green]✓ {escape(message)}[/green]")

    def warn(self, message: str) -> None:
        self.print(f"[yellow]⚠ {escape(message)}[/yellow]")

    def error(self, message: str) -> None:
        self.print(f"[bold red]Error:[/bold red] {escape(message)}")


def quiet_console() -> SafeConsole:
    """Console that swallows output; the default for library callers."""
    return SafeConsole(quiet=True)
