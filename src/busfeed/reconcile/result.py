"""Outcome of a reconciliation pass."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class MutationKind(StrEnum):
    CREATE = "create"
    AVAILABILITY = "availability"
    DEPARTURE = "departure"
    LOCATION = "location"


@dataclass(frozen=True, slots=True)
class Mutation:
    """A remote mutation decided during a pass.

    ``dry_run`` is ``True`` when the request was computed but not sent.
    """

    kind: MutationKind
    name: str
    bus_id: str
    method: str
    url: str
    dry_run: bool = False


@dataclass(slots=True)
class PassResult:
    """What one reconciliation pass saw and changed.

    ``any_mutation_applied`` is set whenever local cache state changed and
    is what the caller passes to ``BusCache.save(force=...)``.
    """

    seen: list[str] = field(default_factory=list)
    mutations: list[Mutation] = field(default_factory=list)
    swept: list[str] = field(default_factory=list)
    any_mutation_applied: bool = False

    @property
    def sent(self) -> list[Mutation]:
        """Mutations that were actually transmitted."""
        return [mutation for mutation in self.mutations if not mutation.dry_run]
