"""
Configuration via environment variables.

Values come from the process environment, optionally seeded from a .env
file in the working directory. Every public entry point also accepts an
explicit Settings instance, which is what the tests use.
"""
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


DEFAULT_ALLOWED_DOMAINS = ("supabase.co",)


@dataclass(frozen=True)
class Settings:
    """
    Attributes:
        allowed_domains:  Hostnames (or parent domains) an endpoint may point at.
        request_timeout:  Per-request transport timeout in seconds.
        page_size:        Default rows per page for paged reads.
        probe_budget:     Max probe requests per discovery run; None = unbounded.
        sql_rpc_function: Gateway RPC used to run raw SQL statements, if the
                          deployment defines one.
        log_level:        Console logging level for the CLI.
    """
    allowed_domains: tuple[str, ...] = DEFAULT_ALLOWED_DOMAINS
    request_timeout: float = 30.0
    page_size: int = 50
    probe_budget: Optional[int] = 2000
    sql_rpc_function: Optional[str] = None
    log_level: str = "WARNING"


def _parse_budget(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw.strip() == "":
        return Settings.probe_budget
    if raw.strip().lower() in ("none", "unlimited"):
        return None
    return int(raw)


def _parse_domains(raw: Optional[str]) -> tuple[str, ...]:
    if not raw:
        return DEFAULT_ALLOWED_DOMAINS
    domains = tuple(d.strip().lower() for d in raw.split(",") if d.strip())
    return domains or DEFAULT_ALLOWED_DOMAINS


def load_settings(environ: Optional[dict] = None) -> Settings:
    """Build Settings from an environment mapping (os.environ by default)."""
    env = os.environ if environ is None else environ
    return Settings(
        allowed_domains=_parse_domains(env.get("TABLESCOPE_ALLOWED_DOMAINS")),
        request_timeout=float(env.get("TABLESCOPE_REQUEST_TIMEOUT", "30")),
        page_size=int(env.get("TABLESCOPE_PAGE_SIZE", "50")),
        probe_budget=_parse_budget(env.get("TABLESCOPE_PROBE_BUDGET")),
        sql_rpc_function=env.get("TABLESCOPE_SQL_RPC") or None,
        log_level=env.get("TABLESCOPE_LOG_LEVEL", "WARNING").upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv()
    return load_settings()
