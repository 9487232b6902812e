"""
buddy_client/config.py

Environment-driven configuration for the prediction client.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Callable, TypeVar

ABSOLUTE_MAX_FILES = 10

T = TypeVar("T")


@dataclass(frozen=True)
class DeploymentVariant:
    """
    Preset describing one deployment of the prediction service.
    """

    name: str
    endpoint_url: str
    max_files: int
    max_wait_seconds: float
    collect_entry_size: bool
    batched_reports: bool


CLASSIC_VARIANT = DeploymentVariant(
    name="classic",
    endpoint_url="https://mldpbs-api.onrender.com/predict",
    max_files=10,
    max_wait_seconds=1800.0,
    collect_entry_size=True,
    batched_reports=False,
)

BATCH_VARIANT = DeploymentVariant(
    name="batch",
    endpoint_url="http://localhost:5000/predict",
    max_files=5,
    max_wait_seconds=300.0,
    collect_entry_size=True,
    batched_reports=True,
)

VARIANTS: dict[str, DeploymentVariant] = {
    CLASSIC_VARIANT.name: CLASSIC_VARIANT,
    BATCH_VARIANT.name: BATCH_VARIANT,
}


def load_env_files(project_root: Path | None = None) -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    root = project_root or Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _env_flag(raw_value: str) -> bool:
    return raw_value.lower() in {"1", "true", "yes", "on"}


def _read_env(name: str, default: T, cast: Callable[[str], T]) -> T:
    """
    Read ``name`` through ``cast``; unset, blank or unparsable values give ``default``.
    """

    _load_env_once()
    raw_value = (os.getenv(name) or "").strip()
    if not raw_value:
        return default
    try:
        return cast(raw_value)
    except ValueError:
        return default


@dataclass(frozen=True)
class PredictionServiceSettings:
    """
    Outbound call settings for the remote prediction service.
    """

    endpoint_url: str = CLASSIC_VARIANT.endpoint_url
    max_wait_seconds: float = CLASSIC_VARIANT.max_wait_seconds
    connect_timeout_seconds: float = 10.0


@dataclass(frozen=True)
class IngestionSettings:
    """
    Upload form limits for dataset ingestion.
    """

    max_files: int = CLASSIC_VARIANT.max_files
    collect_entry_size: bool = CLASSIC_VARIANT.collect_entry_size


@dataclass(frozen=True)
class ClientSettings:
    """
    Everything the submission workflow needs, resolved once at startup.
    """

    variant: DeploymentVariant
    service: PredictionServiceSettings
    ingestion: IngestionSettings


def resolve_variant(name: str | None) -> DeploymentVariant:
    """
    Return the deployment preset for a variant name, defaulting to classic.
    """

    if not name:
        return CLASSIC_VARIANT
    variant = VARIANTS.get(name.strip().lower())
    if variant is None:
        raise RuntimeError(
            f"BUDDY_VARIANT '{name.strip()}' is not valid. "
            f"Allowed values: {sorted(VARIANTS)}."
        )
    return variant


@lru_cache(maxsize=1)
def get_client_settings() -> ClientSettings:
    """
    Return cached client settings from environment variables.

    Raises RuntimeError if BUDDY_VARIANT names an unknown deployment.
    """

    variant = resolve_variant(_read_env("BUDDY_VARIANT", CLASSIC_VARIANT.name, str))
    max_files = _read_env("BUDDY_MAX_FILES", variant.max_files, int)

    return ClientSettings(
        variant=variant,
        service=PredictionServiceSettings(
            endpoint_url=_read_env("BUDDY_API_URL", variant.endpoint_url, str),
            max_wait_seconds=max(1.0, _read_env("BUDDY_MAX_WAIT_SECONDS", variant.max_wait_seconds, float)),
            connect_timeout_seconds=max(0.5, _read_env("BUDDY_CONNECT_TIMEOUT_SECONDS", 10.0, float)),
        ),
        ingestion=IngestionSettings(
            max_files=min(ABSOLUTE_MAX_FILES, max(1, max_files)),
            collect_entry_size=_read_env("BUDDY_COLLECT_ENTRY_SIZE", variant.collect_entry_size, _env_flag),
        ),
    )
