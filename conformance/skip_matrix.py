"""Capability/skip matrix.

A declarative table of (provider, operation) pairs a backend is known to
be structurally incapable of, plus providers excluded from the matrix
altogether. The driver turns a listed pair into a negative test instead
of dropping it, so a backend that later gains the capability fails
loudly until the table is updated.
"""

from dataclasses import dataclass
from typing import Iterable, Union

from config.models import SkipMatrixConfig
from core.operations import Operation


@dataclass(frozen=True)
class SkipEntry:
    """A provider's known permanent incapability."""

    provider: str
    operation: Operation


class SkipMatrix:
    """Read-only lookup of unsupported operations and excluded providers."""

    def __init__(
        self,
        entries: Iterable[SkipEntry] = (),
        excluded_providers: Iterable[str] = ()
    ):
        self._entries = frozenset(entries)
        self._excluded = frozenset(excluded_providers)

    @classmethod
    def from_config(cls, config: SkipMatrixConfig) -> "SkipMatrix":
        return cls(
            entries=(SkipEntry(entry.provider, entry.operation) for entry in config.unsupported),
            excluded_providers=config.excluded_providers,
        )

    @property
    def entries(self) -> frozenset[SkipEntry]:
        return self._entries

    @property
    def excluded_providers(self) -> frozenset[str]:
        return self._excluded

    def is_excluded(self, provider: str) -> bool:
        """Check if a provider is administratively left out of the matrix."""
        return provider in self._excluded

    def is_unsupported(self, provider: str, operation: Union[Operation, str]) -> bool:
        """Check if a provider is known not to support an operation."""
        return SkipEntry(provider, Operation(operation)) in self._entries

    def unsupported_for(self, provider: str) -> list[Operation]:
        """Operations a provider is known not to support."""
        return sorted(
            (entry.operation for entry in self._entries if entry.provider == provider),
            key=lambda operation: operation.value,
        )
