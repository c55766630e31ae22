# lambda_layer/python/peering_common/outcomes.py
"""
Result values for best-effort cleanup and per-route-table batches.
Failures are recorded here instead of being raised, so teardown can continue
while the log still shows exactly what went wrong.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class CleanupOutcome(Enum):
    REMOVED = "Removed"
    ALREADY_ABSENT = "AlreadyAbsent"
    FAILED = "Failed"


@dataclass(frozen=True)
class CleanupResult:
    target: str
    outcome: CleanupOutcome
    reason: Optional[str] = None

    @classmethod
    def removed(cls, target: str) -> "CleanupResult":
        return cls(target, CleanupOutcome.REMOVED)

    @classmethod
    def already_absent(cls, target: str, reason: Optional[str] = None) -> "CleanupResult":
        return cls(target, CleanupOutcome.ALREADY_ABSENT, reason)

    @classmethod
    def failed(cls, target: str, reason: str) -> "CleanupResult":
        return cls(target, CleanupOutcome.FAILED, reason)

    @property
    def ok(self) -> bool:
        return self.outcome is not CleanupOutcome.FAILED

    def log(self) -> None:
        if self.outcome is CleanupOutcome.REMOVED:
            print(f" -> ✅ Removed {self.target}")
        elif self.outcome is CleanupOutcome.ALREADY_ABSENT:
            suffix = f" ({self.reason})" if self.reason else ""
            print(f" -> {self.target} already absent{suffix}")
        else:
            print(f" -> ⚠️ Cleanup of {self.target} failed (ignoring): {self.reason}")


class RouteOutcome(Enum):
    CREATED = "Created"
    ALREADY_EXISTS = "AlreadyExists"
    REPLACED = "Replaced"
    FAILED = "Failed"


@dataclass(frozen=True)
class RouteResult:
    route_table_id: str
    outcome: RouteOutcome
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is not RouteOutcome.FAILED

    def log(self) -> None:
        if self.outcome is RouteOutcome.CREATED:
            print(f" -> ✅ Added route to {self.route_table_id}")
        elif self.outcome is RouteOutcome.ALREADY_EXISTS:
            print(f" -> Route already exists in {self.route_table_id}")
        elif self.outcome is RouteOutcome.REPLACED:
            print(f" -> ✅ Repointed route in {self.route_table_id}: {self.reason}")
        else:
            print(f" -> ❌ Error adding route to {self.route_table_id}: {self.reason}")


@dataclass
class RoutePropagationReport:
    """Outcome of one pass over the peer VPC's route tables."""
    results: List[RouteResult] = field(default_factory=list)

    def record(self, result: RouteResult) -> None:
        result.log()
        self.results.append(result)

    @property
    def updated_count(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    def failed_tables(self) -> List[str]:
        return [r.route_table_id for r in self.results if not r.ok]

    def summary(self) -> str:
        return (f"{self.updated_count}/{len(self.results)} route tables updated, "
                f"{self.failed_count} failed")
