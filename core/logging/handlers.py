"""Logging handlers that split project logs into per-module files.

ModuleDispatchHandler writes each record to the file named by
module_to_log_name(record.name); ThirdPartyHandler collects library
output (langchain, anthropic, httpx, ...) in a single run-3p.log.

Both rotate <name>.log to <name>.previous.log the first time they write
during a run (see core.logging.run_manager.start_run).
"""

import logging
from pathlib import Path
from typing import TextIO


def _rotate_log_file(log_dir: Path, log_name: str, stream: TextIO | None) -> TextIO:
    """Move <name>.log to <name>.previous.log and open a fresh <name>.log.

    Args:
        log_dir: Directory containing log files
        log_name: Base name of the log file (without .log extension)
        stream: Currently open stream for this log, closed before renaming

    Returns:
        Newly opened append-mode handle.
    """
    current = log_dir / f"{log_name}.log"
    previous = log_dir / f"{log_name}.previous.log"

    if stream:
        stream.close()

    if previous.exists():
        previous.unlink()
    if current.exists():
        current.rename(previous)

    return current.open("a", encoding="utf-8")


class ModuleDispatchHandler(logging.Handler):
    """One handler, many files: routes records by logger name.

    Open file handles are cached per log name and opened lazily, so the
    number of handles is bounded by the size of MODULE_TO_LOG.

    Usage:
        handler = ModuleDispatchHandler(Path("logs"))
        handler.setFormatter(logging.Formatter("%(asctime)s - %(message)s"))
        logging.getLogger().addHandler(handler)
    """

    def __init__(self, log_dir: Path):
        super().__init__()
        self.log_dir = log_dir
        self._file_cache: dict[str, TextIO] = {}

    def emit(self, record: logging.LogRecord) -> None:
        try:
            # Import here to avoid circular imports
            from core.logging.run_manager import module_to_log_name, should_rotate

            log_name = module_to_log_name(record.name)

            if should_rotate(log_name):
                self._rotate_file(log_name)

            file = self._get_or_open_file(log_name)
            file.write(self.format(record) + "\n")
            file.flush()

        except Exception:
            self.handleError(record)

    def _rotate_file(self, log_name: str) -> None:
        existing_stream = self._file_cache.pop(log_name, None)
        self._file_cache[log_name] = _rotate_log_file(
            self.log_dir, log_name, existing_stream
        )

    def _get_or_open_file(self, log_name: str) -> TextIO:
        if log_name not in self._file_cache:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            path = self.log_dir / f"{log_name}.log"
            self._file_cache[log_name] = path.open("a", encoding="utf-8")
        return self._file_cache[log_name]

    def close(self) -> None:
        """Close every cached file handle."""
        self.acquire()
        try:
            for file in self._file_cache.values():
                try:
                    file.close()
                except OSError:
                    pass
            self._file_cache.clear()
        finally:
            self.release()
        super().close()


class ThirdPartyHandler(logging.FileHandler):
    """Single run-3p.log for every non-project logger, rotated per run."""

    LOG_NAME = "run-3p"

    def __init__(self, log_dir: Path, **kwargs):
        self.log_dir = log_dir
        log_file = log_dir / f"{self.LOG_NAME}.log"
        super().__init__(log_file, mode="a", encoding="utf-8", delay=True, **kwargs)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            from core.logging.run_manager import should_rotate

            if should_rotate(self.LOG_NAME):
                self.stream = _rotate_log_file(self.log_dir, self.LOG_NAME, self.stream)

            super().emit(record)

        except Exception:
            self.handleError(record)
