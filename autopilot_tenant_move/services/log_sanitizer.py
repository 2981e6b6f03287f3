import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class LogSanitizer:
    """
    Strips lines containing a secret marker from a log file.

    The Intune Management Extension logs the scripts it runs, so the client
    secret can end up in its log. Kept lines are written back byte-for-byte,
    line endings included. Failures are logged and never raised.
    """

    def __init__(self, log_path: Path, marker: str, dry_run: bool = False):
        if not marker:
            raise ValueError("Sanitize marker must not be empty")
        self.log_path = Path(log_path)
        self.marker = marker
        self.dry_run = dry_run

    def sanitize(self) -> int:
        """Rewrite the log without marker lines. Returns the number of lines removed."""
        if not self.log_path.is_file():
            logger.info(f"No log to sanitize at {self.log_path}")
            return 0

        try:
            with open(self.log_path, encoding="utf-8", errors="surrogateescape", newline="") as f:
                lines = f.readlines()
        except OSError as e:
            logger.warning(f"Could not read {self.log_path} for sanitizing: {e}")
            return 0

        kept = [line for line in lines if self.marker not in line]
        removed = len(lines) - len(kept)
        if removed == 0:
            logger.info(f"No secret-bearing lines found in {self.log_path}")
            return 0

        if self.dry_run:
            logger.info(f"[dry-run] Would remove {removed} line(s) from {self.log_path}")
            return removed

        # The log is only replaced once every kept line is on disk
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                errors="surrogateescape",
                newline="",
                dir=self.log_path.parent,
                prefix=f".{self.log_path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_path = f.name
                f.writelines(kept)
            os.replace(tmp_path, self.log_path)
        except OSError as e:
            logger.warning(f"Could not rewrite {self.log_path}: {e}")
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError as cleanup_error:
                    logger.warning(f"Could not remove {tmp_path}: {cleanup_error}")
            return 0

        logger.info(f"Removed {removed} secret-bearing line(s) from {self.log_path}")
        return removed
