"""
Error side channel for the search pipeline.

Workers never raise across thread boundaries. They report problems here
instead, classified as fatal (the whole run is aborted) or recoverable
(the offending unit of work is skipped and siblings carry on).
"""

import logging
import threading
from dataclasses import dataclass
from typing import List


logger = logging.getLogger(__name__)


class FatalSearchError(Exception):
    """Raised to the caller when a run was aborted by a fatal error."""
    pass


@dataclass(frozen=True)
class ReportedError:
    """
    One error reported by a pipeline worker.

    Attributes:
        message: Human-readable description, usually including the path
        fatal: Whether the error aborted the run
    """
    message: str
    fatal: bool


class ErrorChannel:
    """
    Thread-safe collector for errors reported during a run.

    The first fatal report sets the abort flag that producers poll before
    emitting; the run still drains and closes its streams normally.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._errors: List[ReportedError] = []
        self._aborted = threading.Event()

    def report(self, message: str, fatal: bool = False) -> None:
        """
        Record an error and write it to the log.

        Args:
            message: Description of the failure
            fatal: True to abort the whole run
        """
        if fatal:
            logger.error(message)
        else:
            logger.warning(message)

        with self._lock:
            self._errors.append(ReportedError(message=message, fatal=fatal))

        if fatal:
            self._aborted.set()

    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    def get_errors(self) -> List[ReportedError]:
        with self._lock:
            return list(self._errors)

    def get_fatal(self) -> List[ReportedError]:
        return [error for error in self.get_errors() if error.fatal]

    def get_recoverable(self) -> List[ReportedError]:
        return [error for error in self.get_errors() if not error.fatal]

    def raise_if_fatal(self) -> None:
        """Raise FatalSearchError carrying the first fatal message, if any."""
        fatal = self.get_fatal()
        if fatal:
            raise FatalSearchError(fatal[0].message)
