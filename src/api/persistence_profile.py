from __future__ import annotations

import os

from src.api.routers.governance_config import (
    governance_postgres_dsn,
    governance_store_backend_name,
    identity_provider_backend_name,
)

_PRODUCTION_PROFILE = "PRODUCTION"
_LOCAL_PROFILE = "LOCAL"


def app_persistence_profile_name() -> str:
    profile = os.getenv("APP_PERSISTENCE_PROFILE", _LOCAL_PROFILE).strip().upper()
    return _PRODUCTION_PROFILE if profile == _PRODUCTION_PROFILE else _LOCAL_PROFILE


def validate_persistence_profile_guardrails() -> None:
    if app_persistence_profile_name() != _PRODUCTION_PROFILE:
        return
    if governance_store_backend_name() != "POSTGRES":
        raise RuntimeError("PERSISTENCE_PROFILE_REQUIRES_GOVERNANCE_POSTGRES")
    if not governance_postgres_dsn():
        raise RuntimeError("PERSISTENCE_PROFILE_REQUIRES_GOVERNANCE_POSTGRES_DSN")
    if identity_provider_backend_name() == "STATIC":
        raise RuntimeError("PERSISTENCE_PROFILE_FORBIDS_STATIC_IDENTITY_PROVIDER")
