"""
Diagnostics sinks for the pure normalization functions.

Formatters never log through a process-wide logger. They receive a sink,
any object with a structlog-style ``warning(event, **kw)`` method. A bound
structlog logger qualifies, as does CollectingDiagnostics in tests.
"""

from typing import Any, Protocol


class DiagnosticsSink(Protocol):
    """Receives non-fatal normalization warnings."""

    def warning(self, event: str, **kw: Any) -> Any: ...


class NullDiagnostics:
    """Discards every warning."""

    def warning(self, event: str, **kw: Any) -> None:
        return None


class CollectingDiagnostics:
    """Keeps warnings in memory so callers can return them alongside results."""

    def __init__(self):
        self.records: list[tuple[str, dict[str, Any]]] = []

    def warning(self, event: str, **kw: Any) -> None:
        self.records.append((event, kw))

    @property
    def events(self) -> list[str]:
        return [event for event, _ in self.records]

    def clear(self) -> None:
        self.records.clear()


NULL_DIAGNOSTICS = NullDiagnostics()
