import os
import warnings
from typing import cast

from src.api.routers.runtime_utils import env_float
from src.core.governance.repository import GovernanceRepository
from src.core.identity.provider import IdentityProvider
from src.infrastructure.governance import InMemoryGovernanceRepository, PostgresGovernanceRepository
from src.infrastructure.identity import StaticTokenIdentityProvider, SupabaseIdentityProvider


def governance_store_backend_name() -> str:
    backend = os.getenv("GOVERNANCE_STORE_BACKEND", "IN_MEMORY").strip().upper()
    if backend == "POSTGRES":
        return "POSTGRES"
    warnings.warn(
        "GOVERNANCE_STORE_BACKEND legacy runtime backend (IN_MEMORY) is deprecated; use POSTGRES.",
        DeprecationWarning,
        stacklevel=2,
    )
    return "IN_MEMORY"


def governance_postgres_dsn() -> str:
    return os.getenv("GOVERNANCE_POSTGRES_DSN", "").strip()


def identity_provider_backend_name() -> str:
    backend = os.getenv("AUTH_PROVIDER_BACKEND", "SUPABASE").strip().upper()
    return "STATIC" if backend == "STATIC" else "SUPABASE"


def access_token_cookie_name() -> str:
    return os.getenv("AUTH_ACCESS_TOKEN_COOKIE", "access_token").strip() or "access_token"


def _postgres_connection_exception_types() -> tuple[type[BaseException], ...]:
    types: list[type[BaseException]] = [
        ConnectionError,
        OSError,
        TimeoutError,
        TypeError,
        ValueError,
    ]
    try:
        import psycopg
    except ImportError:
        pass
    else:
        types.append(psycopg.Error)
    return tuple(types)


def build_repository() -> GovernanceRepository:
    backend = governance_store_backend_name()
    if backend == "POSTGRES":
        dsn = governance_postgres_dsn()
        if not dsn:
            raise RuntimeError("GOVERNANCE_POSTGRES_DSN_REQUIRED")
        try:
            return cast(GovernanceRepository, PostgresGovernanceRepository(dsn=dsn))
        except RuntimeError:
            raise
        except _postgres_connection_exception_types() as exc:
            raise RuntimeError("GOVERNANCE_POSTGRES_CONNECTION_FAILED") from exc
    return cast(GovernanceRepository, InMemoryGovernanceRepository())


def build_identity_provider() -> IdentityProvider:
    if identity_provider_backend_name() == "STATIC":
        return StaticTokenIdentityProvider.from_json(os.getenv("AUTH_STATIC_TOKENS_JSON"))
    return SupabaseIdentityProvider(
        base_url=os.getenv("AUTH_PROVIDER_URL", "").strip(),
        api_key=os.getenv("AUTH_PROVIDER_API_KEY", "").strip(),
        timeout_seconds=env_float("AUTH_PROVIDER_TIMEOUT_SECONDS", 5.0),
    )
