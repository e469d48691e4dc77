"""Console logging helpers and redirection of output to a log file."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timezone
from pathlib import Path


def info(message: str) -> None:
    """Write an informational line to standard output."""
    print(message, flush=True)


def error(message: str) -> None:
    """Write an error line, prefixed with ``Error:``, to standard error."""
    print(f"Error: {message}", file=sys.stderr, flush=True)


def log_to_file(directory: str | os.PathLike, name: str) -> Path:
    """Redirect standard output and standard error to a new log file.

    The directory is created when missing. The file is named after the
    current UTC time followed by ``name`` and ``.log``. Returns its path.
    """
    path = Path(directory)
    if not path.exists():
        try:
            os.mkdir(path, 0o777)
        except OSError as exc:
            error(f"Failed to make log directory: {exc.strerror or exc}")
            raise

    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    filepath = path / f"{stamp}{name}.log"

    try:
        fd = os.open(filepath, os.O_RDWR | os.O_CREAT, 0o600)
    except OSError as exc:
        error(f"Failed to open file: {filepath}: {exc.strerror or exc}")
        raise

    try:
        for stream, target, label in (
            (sys.stdout, 1, "standard output"),
            (sys.stderr, 2, "standard error"),
        ):
            if stream is not None:
                stream.flush()
            try:
                os.dup2(fd, target)
            except OSError:
                error(f"Failed to redirect {label} to log file")
                raise
    finally:
        os.close(fd)
    return filepath