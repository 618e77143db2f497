"""
Append-only error log kept on each database handle.

Messages are kept in memory until cleared and, when enabled, mirrored to a
text file as ``[YYYY-mm-dd HH:MM:SS] message`` lines through a
`logging.FileHandler`.
"""
import logging
import pathlib

logger = logging.getLogger(__name__)

LOG_FORMAT = '[%(asctime)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ErrorLog:
    """In-memory error messages with an optional file mirror.
    """

    def __init__(self, enabled: bool = True, log_file: str | None = None) -> None:
        self.errors: list[str] = []
        self.enabled = enabled
        self.log_file = log_file
        self._handler: logging.FileHandler | None = None

    def __len__(self) -> int:
        return len(self.errors)

    def __iter__(self):
        return iter(self.errors)

    @property
    def last(self) -> str | None:
        return self.errors[-1] if self.errors else None

    def _file_handler(self) -> logging.FileHandler:
        if self._handler is None:
            path = pathlib.Path(self.log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            self._handler = logging.FileHandler(path, mode='a', encoding='utf-8', delay=True)
            self._handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        return self._handler

    def record(self, message: str) -> None:
        """Append a message and mirror it to the log file when enabled.
        """
        self.errors.append(message)
        logger.error(message)

        if not (self.enabled and self.log_file):
            return

        record = logger.makeRecord(logger.name, logging.ERROR, __file__, 0, message, None, None)
        handler = self._file_handler()
        handler.handle(record)
        handler.flush()

    def clear(self) -> None:
        self.errors.clear()

    def configure(self, enabled: bool, log_file: str | None = None) -> None:
        """Toggle mirroring and optionally switch destination file.
        """
        self.enabled = enabled
        if log_file and log_file != self.log_file:
            self.close()
            self.log_file = log_file

    def close(self) -> None:
        """Release the file handle; the next record reopens it."""
        if self._handler is not None:
            self._handler.close()
            self._handler = None
