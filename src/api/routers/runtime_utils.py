import os


def env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


def normalize_backend_init_error(
    *, detail: str, passthrough_details: set[str], fallback_detail: str
) -> str:
    if detail in passthrough_details:
        return detail
    return fallback_detail
