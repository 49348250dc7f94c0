"""
Per-process output streams.

Every pool worker in a process appends through the same sink; a single lock
serializes the write and the flush so rows never interleave.
"""

import csv
import threading
from pathlib import Path
from typing import Union

from deerpop.config import get_logger
from deerpop.exceptions import OutputStreamError
from deerpop.output.records import HEADER, ResultRecord

logger = get_logger(__name__)


class ResultSink:
    """Base class: open on construction, ``append`` under a lock, ``close``."""
    
    mode = "w"
    newline = None
    
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()
        self.count = 0
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = open(self.path, self.mode, newline=self.newline)
        except OSError as e:
            raise OutputStreamError(f"cannot open output stream {self.path}: {e}") from e
        self._on_open()
        logger.info(f"Writing records to {self.path}")
    
    def _on_open(self) -> None:
        pass
    
    def _write(self, record: ResultRecord) -> None:
        raise NotImplementedError
    
    def append(self, record: ResultRecord) -> None:
        """Write one record and flush it."""
        with self._lock:
            self._write(record)
            self._fh.flush()
            self.count += 1
    
    def close(self) -> None:
        with self._lock:
            if not self._fh.closed:
                self._fh.close()
    
    def __enter__(self):
        return self
    
    def __exit__(self, exc_type, exc, tb):
        self.close()


class CsvResultSink(ResultSink):
    """Comma-separated rows with the header written once at open."""
    
    newline = ""
    
    def _on_open(self) -> None:
        self._writer = csv.writer(self._fh, lineterminator="\n")
        self._writer.writerow(HEADER)
        self._fh.flush()
    
    def _write(self, record: ResultRecord) -> None:
        self._writer.writerow(record)


class BinaryResultSink(ResultSink):
    """Fixed-layout little-endian records, see ``RECORD_DTYPE``."""
    
    mode = "wb"
    
    def _write(self, record: ResultRecord) -> None:
        self._fh.write(record.to_array().tobytes())


SINKS = {
    "csv": CsvResultSink,
    "binary": BinaryResultSink,
}


def open_sink(path: Union[str, Path], fmt: str = "csv") -> ResultSink:
    """Open the sink for ``fmt`` ("csv" or "binary")."""
    if fmt not in SINKS:
        raise ValueError(f"unknown output format: {fmt!r}")
    return SINKS[fmt](path)
