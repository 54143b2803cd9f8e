"""
Table discovery.

run_discovery() walks a chain of strategies in order and stops at the first
one that finds at least one table. Results are never merged across
strategies. Individual probe failures are swallowed and recorded on the
DiscoveryResult.
"""

from typing import Optional, Sequence

from ..config import Settings, get_settings
from ..errors import NetworkError
from ..gateway import Connection
from ..logging_config import get_logger
from ..models import DiscoveryResult, TableDescriptor
from .base import DiscoveryStrategy, ProbeContext
from .strategies import (
    discover_by_brute_force,
    discover_from_api_document,
    discover_from_dictionary,
    discover_from_introspection,
    tables_from_api_document,
)


logger = get_logger(__name__)

DEFAULT_STRATEGIES: tuple[DiscoveryStrategy, ...] = (
    DiscoveryStrategy("openapi", discover_from_api_document),
    DiscoveryStrategy("dictionary", discover_from_dictionary),
    DiscoveryStrategy("introspection", discover_from_introspection),
    DiscoveryStrategy("brute_force", discover_by_brute_force),
)


def dedupe_tables(tables: Sequence[TableDescriptor]) -> list[TableDescriptor]:
    """Keep the first descriptor for each table name."""
    seen: set[str] = set()
    unique = []
    for table in tables:
        if table.name not in seen:
            seen.add(table.name)
            unique.append(table)
    return unique


def run_discovery(
    conn: Connection,
    *,
    strategies: Optional[Sequence[DiscoveryStrategy]] = None,
    settings: Optional[Settings] = None,
) -> DiscoveryResult:
    """Run the strategy chain and report what was found and what was skipped."""
    settings = settings or get_settings()
    chain = DEFAULT_STRATEGIES if strategies is None else strategies
    ctx = ProbeContext(budget=settings.probe_budget)
    result = DiscoveryResult()

    for strategy in chain:
        if not strategy.enabled:
            logger.debug("Strategy %s disabled, skipping", strategy.name)
            continue

        logger.info("Discovering tables via %s", strategy.name)
        found = dedupe_tables(strategy.discover(conn, ctx))
        if found:
            result.tables = found
            result.strategy = strategy.name
            break

    result.failures = ctx.failures
    result.probes_used = ctx.probes_used
    result.budget_exhausted = ctx.budget_exhausted
    result.unreachable = ctx.unreachable
    logger.info(
        "Discovered %d table(s) via %s (%d probe(s), %d skipped)",
        len(result.tables), result.strategy or "no strategy",
        result.probes_used, len(result.failures),
    )
    return result


def discover_tables(
    conn: Connection,
    *,
    strategies: Optional[Sequence[DiscoveryStrategy]] = None,
    settings: Optional[Settings] = None,
    raise_if_unreachable: bool = False,
) -> list[TableDescriptor]:
    """
    Best-available list of accessible tables. Empty on total failure.

    With raise_if_unreachable=True an empty result caused by an unreachable
    gateway raises NetworkError instead.
    """
    result = run_discovery(conn, strategies=strategies, settings=settings)
    if raise_if_unreachable and not result.tables and result.unreachable:
        raise NetworkError(f"Failed to load tables: {conn.endpoint} is unreachable")
    return result.tables


