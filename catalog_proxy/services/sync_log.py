import logging
from typing import List


class SyncLog:
    """Human-readable trail of one sync run, mirrored to a logger."""

    def __init__(self, logger: logging.Logger = None):
        self.lines: List[str] = []
        self.logger = logger or logging.getLogger(__name__)

    def info(self, message: str):
        self.lines.append(message)
        self.logger.info(message)

    def warning(self, message: str):
        self.lines.append(f"WARNING: {message}")
        self.logger.warning(message)

    def error(self, message: str):
        self.lines.append(f"ERROR: {message}")
        self.logger.error(message)

    def errors(self) -> List[str]:
        return [line for line in self.lines if line.startswith("ERROR: ")]

    def __iter__(self):
        return iter(self.lines)

    def __len__(self):
        return len(self.lines)
