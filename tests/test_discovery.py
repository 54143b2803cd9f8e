"""
Table discovery: strategy chain order, short-circuit, dedup, brute force
exhaustiveness and the probe budget.
"""

from mock_gateway import MockGateway

from tablescope import DiscoveryStrategy, NetworkError, TableDescriptor, discover_tables, run_discovery
from tablescope.discovery import DEFAULT_STRATEGIES, dedupe_tables, tables_from_api_document
from tablescope.discovery.strategies import (
    BRUTE_FORCE_PREFIXES, BRUTE_FORCE_SUFFIXES, BRUTE_FORCE_WORDS,
    TABLE_DICTIONARY, brute_force_candidates,
)


EMPTY_DOCUMENT = {"swagger": "2.0", "paths": {"/": {}, "/rpc/do_thing": {}}}


def _counting(name, tables=()):
    calls = []

    def discover(conn, ctx):
        calls.append(name)
        return [TableDescriptor(t) for t in tables]

    return DiscoveryStrategy(name, discover), calls


# ─────────────────────────────────────────────
# API document parsing
# ─────────────────────────────────────────────

def test_api_document_paths():
    """only /identifier paths become tables; /rpc, nested and root paths do not"""
    document = {"paths": {
        "/": {}, "/users": {}, "/rpc": {}, "/rpc/login": {},
        "/_private": {}, "/2fa": {}, "/order-items": {}, "/orders": {},
    }}
    names = [t.name for t in tables_from_api_document(document)]
    assert names == ["users", "_private", "orders"]


def test_api_document_without_paths():
    """malformed documents yield nothing"""
    assert tables_from_api_document({"swagger": "2.0"}) == []
    assert tables_from_api_document(["not", "a", "dict"]) == []


def test_descriptor_defaults():
    """descriptors carry the public schema and BASE TABLE kind"""
    d = TableDescriptor("users").to_dict()
    assert d == {"table_name": "users", "table_schema": "public", "table_type": "BASE TABLE"}


# ─────────────────────────────────────────────
# Cascade
# ─────────────────────────────────────────────

def test_api_document_short_circuits_cascade():
    """a non-empty API document means no probe requests at all"""
    document = {"paths": {"/": {}, "/users": {}, "/orders": {}, "/rpc/x": {}}}
    with MockGateway(api_document=document, tables={"users": [], "orders": []}) as gw:
        result = run_discovery(gw.connection(), settings=gw.settings())
        assert result.table_names == ["users", "orders"]
        assert result.strategy == "openapi"
        assert gw.table_probes() == []
        assert len(gw.calls()) == 1


def test_later_strategies_not_invoked_after_hit():
    """call counts: strategies after the first hit never run"""
    first, first_calls = _counting("first", ["a"])
    second, second_calls = _counting("second", ["b"])
    with MockGateway() as gw:
        tables = discover_tables(gw.connection(), strategies=[first, second], settings=gw.settings())
    assert [t.name for t in tables] == ["a"]
    assert first_calls == ["first"]
    assert second_calls == []


def test_results_are_not_merged():
    """an empty strategy falls through; only the first non-empty one counts"""
    empty, empty_calls = _counting("empty")
    hit, _ = _counting("hit", ["x"])
    other, other_calls = _counting("other", ["y"])
    with MockGateway() as gw:
        result = run_discovery(gw.connection(), strategies=[empty, hit, other], settings=gw.settings())
    assert result.table_names == ["x"]
    assert result.strategy == "hit"
    assert empty_calls == ["empty"]
    assert other_calls == []


def test_disabled_strategy_is_skipped():
    """disabled entries in the chain are never called"""
    skipped, skipped_calls = _counting("skipped", ["a"])
    used, _ = _counting("used", ["b"])
    with MockGateway() as gw:
        result = run_discovery(gw.connection(), strategies=[skipped.disabled(), used], settings=gw.settings())
    assert result.table_names == ["b"]
    assert skipped_calls == []


def test_default_chain_order():
    """default chain: openapi, dictionary, introspection, brute_force"""
    assert [s.name for s in DEFAULT_STRATEGIES] == ["openapi", "dictionary", "introspection", "brute_force"]


def test_dictionary_fallback():
    """empty API document → dictionary probes find readable tables only"""
    tables = {"users": [{"id": 1}], "orders": [], "invoices": []}
    with MockGateway(api_document=EMPTY_DOCUMENT, tables=tables, forbidden={"invoices"}) as gw:
        result = run_discovery(gw.connection(), settings=gw.settings())
        assert result.strategy == "dictionary"
        assert result.table_names == ["users", "orders"]
        assert len(gw.table_probes()) == len(TABLE_DICTIONARY)
        assert all(p.query.get("limit") == "1" for p in gw.table_probes())
        assert [c.query for c in gw.calls("GET", "")] == [{}]


def test_probe_failures_are_recorded_not_raised():
    """missing/forbidden tables show up as ProbeFailure entries"""
    with MockGateway(api_document=EMPTY_DOCUMENT, tables={"users": []}, forbidden={"posts"}) as gw:
        result = run_discovery(gw.connection(), settings=gw.settings())
    reasons = {f.target: f.reason for f in result.failures if f.strategy == "dictionary"}
    assert "permission denied" in reasons["posts"]
    assert "does not exist" in reasons["orders"]
    assert "users" not in reasons


def test_introspection_fallback_dedupes():
    """introspection rows are accepted defensively and deduplicated"""
    introspection = [{"table_name": "alpha"}, {"table_name": "alpha"}, {"oops": 1}, "junk", {"table_name": "beta"}]
    introspection_only = [s for s in DEFAULT_STRATEGIES if s.name == "introspection"]
    with MockGateway(introspection=introspection) as gw:
        result = run_discovery(gw.connection(), strategies=introspection_only, settings=gw.settings())
    assert result.table_names == ["alpha", "beta"]


def test_dedupe_keeps_first_occurrence():
    """dedupe is by name, first wins"""
    first = TableDescriptor("a", schema_name="first")
    tables = dedupe_tables([first, TableDescriptor("b"), TableDescriptor("a", schema_name="second")])
    assert [t.name for t in tables] == ["a", "b"]
    assert tables[0] is first


# ─────────────────────────────────────────────
# Brute force
# ─────────────────────────────────────────────

def test_brute_force_candidates_cover_cross_product():
    """candidates = every prefix×word×suffix name of length 1..20, in product order"""
    expected = []
    for p in BRUTE_FORCE_PREFIXES:
        for w in BRUTE_FORCE_WORDS:
            for s in BRUTE_FORCE_SUFFIXES:
                name = p + w + s
                if 0 < len(name) <= 20:
                    expected.append(name)
    candidates = brute_force_candidates()
    assert candidates == expected
    assert len(BRUTE_FORCE_PREFIXES) == 6 and len(BRUTE_FORCE_SUFFIXES) == 6
    assert len(BRUTE_FORCE_WORDS) == 40
    assert "public_record_details" not in candidates     # 21 characters
    # data_+info and data+_info both spell data_info
    assert candidates.count("data_info") == 2
    assert len(candidates) == 1434


def test_brute_force_probes_whole_pass_after_hit():
    """a hit mid-pass does not stop the pass; every combination is probed, repeats included"""
    tables = {"app_items": [{"id": 1}], "data_log": []}
    with MockGateway(api_document=EMPTY_DOCUMENT, tables=tables) as gw:
        result = run_discovery(gw.connection(), settings=gw.settings(probe_budget=None))
        assert result.strategy == "brute_force"
        assert result.table_names == ["app_items", "data_log"]

        candidates = brute_force_candidates()
        probed = [p.path for p in gw.table_probes()]
        dictionary_probes, brute_probes = probed[:len(TABLE_DICTIONARY)], probed[len(TABLE_DICTIONARY):]
        assert dictionary_probes == list(TABLE_DICTIONARY)
        assert brute_probes == candidates
        assert result.probes_used == len(TABLE_DICTIONARY) + len(candidates)
        assert not result.budget_exhausted


def test_brute_force_repeated_spelling_probed_twice_reported_once():
    """data_info is requested for both spellings but listed once"""
    with MockGateway(api_document=EMPTY_DOCUMENT, tables={"data_info": []}) as gw:
        result = run_discovery(gw.connection(), settings=gw.settings(probe_budget=None))
        assert result.table_names == ["data_info"]
        assert [p.path for p in gw.table_probes()].count("data_info") == 2


# ─────────────────────────────────────────────
# Budget and reachability
# ─────────────────────────────────────────────

def test_probe_budget_caps_requests():
    """once the budget is spent no more probes are sent"""
    with MockGateway(api_document=EMPTY_DOCUMENT) as gw:
        result = run_discovery(gw.connection(), settings=gw.settings(probe_budget=10))
        assert result.tables == []
        assert result.budget_exhausted
        assert result.probes_used == 10
        assert len(gw.table_probes()) == 10


def test_unreachable_gateway_returns_empty():
    """no server: discovery returns nothing and flags the gateway as unreachable"""
    gw = MockGateway().start()
    conn, settings = gw.connection(), gw.settings(probe_budget=3)
    gw.stop()
    result = run_discovery(conn, settings=settings)
    assert result.tables == []
    assert result.unreachable
    assert discover_tables(conn, settings=settings) == []


def test_unreachable_gateway_can_raise():
    """raise_if_unreachable turns an empty, unreachable result into NetworkError"""
    gw = MockGateway().start()
    conn, settings = gw.connection(), gw.settings(probe_budget=3)
    gw.stop()
    try:
        discover_tables(conn, settings=settings, raise_if_unreachable=True)
    except NetworkError as e:
        assert "unreachable" in e.message
    else:
        raise AssertionError("expected NetworkError")
