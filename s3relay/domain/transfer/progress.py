"""
Progress sink implementations
"""
from typing import Optional

from rich.console import Console

from ...core.interfaces import ProgressSink
from ...core.logging import get_stdout_console
from ...core.utils import format_percent, format_rate, format_size


class ConsoleProgressSink(ProgressSink):
    """Prints one line per notification (default sink)"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or get_stdout_console()

    def transfer_progress(self, total_transferred: int, content_length: Optional[int]) -> None:
        line = f"> Transferred data count: {format_size(total_transferred)}"
        if content_length is not None and content_length > 0:
            line += f" - Overall progress: {format_percent(total_transferred, content_length)}"
        self.console.print(line, markup=False, highlight=False)

    def transfer_rate_update(self, bytes_transferred: int, elapsed_ms: int) -> None:
        self.console.print(
            f"> Transfer rate: {format_rate(bytes_transferred, elapsed_ms)}",
            markup=False,
            highlight=False,
        )


class SilentProgressSink(ProgressSink):
    """Discards notifications"""

    def transfer_progress(self, total_transferred: int, content_length: Optional[int]) -> None:
        pass

    def transfer_rate_update(self, bytes_transferred: int, elapsed_ms: int) -> None:
        pass
