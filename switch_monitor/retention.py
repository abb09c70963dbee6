# -*- coding: utf-8 -*-
"""
Log retention
Every line of the log file starts with a 20 character RFC3339 UTC timestamp.
The file is compacted in place on a fixed interval, dropping lines older than
the retention window and lines without a parseable timestamp.

Appends and compaction share the handler lock, and the compacted file is
swapped in with an atomic rename, so no append is lost while compacting.
"""

import logging
import os
import sys
import tempfile
import threading
import time
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
TIMESTAMP_WIDTH = 20

FILE_LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
CONSOLE_LOG_FORMAT = '[%(asctime)s] %(message)s'
CONSOLE_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

DEFAULT_RETENTION = timedelta(hours=24)
DEFAULT_CLEANUP_INTERVAL = 3600


# ==================== LINE FORMAT ====================

class UTCFormatter(logging.Formatter):
    """Formatter stamping every output line with an RFC3339 UTC timestamp"""

    converter = time.gmtime

    def __init__(self, fmt=FILE_LOG_FORMAT):
        super().__init__(fmt, datefmt=TIMESTAMP_FORMAT)

    def format(self, record):
        text = super().format(record)
        first, *rest = text.split('\n')
        if not rest:
            return text
        # Tracebacks span several lines; each one needs its own timestamp
        # or compaction would drop it
        stamp = first[:TIMESTAMP_WIDTH]
        return '\n'.join([first] + [f"{stamp}   {line}" for line in rest])


def parse_line_time(line):
    """Return the UTC timestamp a log line starts with, or None"""
    if len(line) < TIMESTAMP_WIDTH:
        return None
    try:
        parsed = datetime.strptime(line[:TIMESTAMP_WIDTH], TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc)


def filter_lines(lines, cutoff):
    """Keep non-empty lines whose timestamp is after cutoff"""
    kept = []
    for line in lines:
        if not line:
            continue
        logged_at = parse_line_time(line)
        if logged_at is not None and logged_at > cutoff:
            kept.append(line)
    return kept


# ==================== FILE HANDLER ====================

class RetentionFileHandler(logging.FileHandler):
    """Append-only log file that can compact itself to a retention window"""

    def __init__(self, filename, retention=DEFAULT_RETENTION, encoding='utf-8'):
        directory = os.path.dirname(os.path.abspath(filename))
        os.makedirs(directory, exist_ok=True)
        super().__init__(filename, mode='a', encoding=encoding)
        self.retention = retention

    def append(self, line):
        """Write one raw line to the store"""
        self.acquire()
        try:
            if self.stream is None:
                self.stream = self._open()
            self.stream.write(line.rstrip('\n') + self.terminator)
            self.flush()
        finally:
            self.release()

    def compact(self, now=None):
        """
        Drop lines older than the retention window.
        Returns the number of lines kept, or None when the cycle was skipped.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        cutoff = now - self.retention

        error = None
        self.acquire()
        try:
            try:
                kept = self._rewrite(cutoff)
            except OSError as e:
                error = e
        finally:
            self.release()

        # Logging goes through this handler, so only once the lock is free
        if error is not None:
            logger.error(f"Failed to compact log file {self.baseFilename}: {error}")
            return None
        return kept

    def _rewrite(self, cutoff):
        if self.stream is not None:
            self.stream.flush()

        with open(self.baseFilename, 'r', encoding=self.encoding, errors='replace') as f:
            content = f.read()
        kept = filter_lines(content.split('\n'), cutoff)

        directory, name = os.path.split(self.baseFilename)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding=self.encoding) as f:
                f.write(''.join(line + '\n' for line in kept))
            os.replace(tmp_path, self.baseFilename)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        # The old stream still points at the replaced inode
        if self.stream is not None:
            stream, self.stream = self.stream, None
            stream.close()
            self.stream = self._open()

        return len(kept)


# ==================== BACKGROUND COMPACTION ====================

class Compactor(threading.Thread):
    """Compacts the log store every interval until stop_event is set"""

    def __init__(self, handler, interval, stop_event):
        super().__init__(name="log-compactor", daemon=True)
        self.handler = handler
        self.interval = interval
        self.stop_event = stop_event

    def run(self):
        logger.info(f"Log compaction every {self.interval}s, keeping {self.handler.retention}")
        while not self.stop_event.wait(self.interval):
            kept = self.handler.compact()
            if kept is not None:
                logger.info(f"✓ Log compacted, {kept} lines kept")
        logger.info("Log compaction stopped")


# ==================== LOGGING SETUP ====================

def setup_logging(config):
    """Setup logging to the retention file and console"""
    log_config = config.logging

    handler = RetentionFileHandler(
        log_config.path,
        retention=timedelta(hours=log_config.retention_hours),
    )
    level = logging.getLevelName(log_config.level.upper())
    handler.setLevel(level)
    handler.setFormatter(UTCFormatter())

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_LOG_FORMAT, datefmt=CONSOLE_DATE_FORMAT))

    package_logger = logging.getLogger('switch_monitor')
    package_logger.setLevel(level)
    for old in list(package_logger.handlers):
        package_logger.removeHandler(old)
        old.close()
    package_logger.addHandler(handler)
    package_logger.addHandler(console_handler)

    # HTTP access log goes to the same store
    werkzeug_logger = logging.getLogger('werkzeug')
    werkzeug_logger.setLevel(logging.INFO)
    for old in list(werkzeug_logger.handlers):
        if isinstance(old, RetentionFileHandler):
            werkzeug_logger.removeHandler(old)
    werkzeug_logger.addHandler(handler)

    return handler
