"""
Discovery strategy plumbing.

A strategy is a named plain function `discover(conn, ctx) -> list[TableDescriptor]`.
Strategies are values, not subclasses: a chain is just an ordered list of
DiscoveryStrategy entries, so entries can be added, reordered or disabled
without touching the code that runs them.

ProbeContext is the per-run state a strategy may use: the shared probe
budget and the list of swallowed failures.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

from ..errors import NetworkError, ServiceError
from ..gateway import Connection, select_rows
from ..logging_config import get_logger
from ..models import ProbeFailure, TableDescriptor


logger = get_logger(__name__)


@dataclass
class ProbeContext:
    budget: Optional[int] = None           # None = unbounded
    probes_used: int = 0
    budget_exhausted: bool = False
    unreachable: bool = False
    failures: list[ProbeFailure] = field(default_factory=list)

    def record_failure(self, strategy: str, target: str, reason: str) -> None:
        logger.debug("[%s] %s skipped: %s", strategy, target, reason)
        self.failures.append(ProbeFailure(strategy=strategy, target=target, reason=reason))

    def _take_probe(self) -> bool:
        if self.budget is not None and self.probes_used >= self.budget:
            if not self.budget_exhausted:
                logger.warning("Probe budget of %d requests exhausted; skipping remaining probes", self.budget)
                self.budget_exhausted = True
            return False
        self.probes_used += 1
        return True

    def probe_table(self, conn: Connection, name: str, strategy: str) -> bool:
        """
        Limit-1 read against `name`. True iff the gateway answered without error.

        Any error (missing relation, permission denied, transport failure)
        counts as "not there" and is recorded, never raised.
        """
        if not self._take_probe():
            return False
        try:
            select_rows(conn, name, limit=1)
        except (ServiceError, NetworkError) as e:
            self.record_failure(strategy, name, e.message)
            return False
        return True


DiscoverFn = Callable[[Connection, ProbeContext], list[TableDescriptor]]


@dataclass(frozen=True)
class DiscoveryStrategy:
    name: str
    discover: DiscoverFn
    enabled: bool = True

    def disabled(self) -> "DiscoveryStrategy":
        return DiscoveryStrategy(self.name, self.discover, enabled=False)
