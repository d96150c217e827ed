"""Environment variable readers shared by the dataclass configs."""

import os
from typing import Optional


def get_env_str(key: str, default: str) -> str:
    return os.environ.get(key, default)


def get_env_optional(key: str) -> Optional[str]:
    return os.environ.get(key) or None


def get_env_int(key: str, default: int) -> int:
    return int(os.environ.get(key, default))


def get_env_float(key: str, default: float) -> float:
    return float(os.environ.get(key, default))


def get_env_bool(key: str, default: bool) -> bool:
    value = os.environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}
