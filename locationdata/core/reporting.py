"""
Structured error reporting injected into the collector by the host
"""
import logging
from collections import Counter
from typing import Optional, Protocol

from locationdata.core.exceptions import ErrorKind

logger = logging.getLogger(__name__)

# Best-effort paths: logged as warnings
_WARNING_KINDS = {ErrorKind.PROVIDER_UNAVAILABLE}


class ErrorReporter(Protocol):
    def report(
        self,
        kind: ErrorKind,
        message: str,
        exc: Optional[BaseException] = None,
        **context
    ) -> None:
        ...


class LoggingErrorReporter:
    """Reporter that writes one log record per error and keeps counts per kind"""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger
        self.counts: Counter = Counter()

    def report(
        self,
        kind: ErrorKind,
        message: str,
        exc: Optional[BaseException] = None,
        **context
    ) -> None:
        self.counts[kind] += 1
        level = logging.WARNING if kind in _WARNING_KINDS else logging.ERROR
        detail = f"{message}: {exc}" if exc is not None else message
        self.log.log(
            level,
            f"[{kind.value}] {detail}",
            extra={"error_kind": kind.value, "error_context": context}
        )

    def snapshot(self) -> dict:
        return {kind.value: count for kind, count in self.counts.items()}
