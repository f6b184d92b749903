"""Configuration helpers for the pantry service.

Every tunable is read once into a frozen :class:`PantryConfig` so the Flask
module, the store factory and the tests all agree on the same values. Values
come from ``<base_dir>/.env`` (via python-dotenv) layered under the process
environment, or from an explicit mapping when tests want full control.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping
import logging
import os

from dotenv import load_dotenv

DEFAULT_COLLECTION = "inventory"
DEFAULT_ORIGINS = (
    "https://localhost",
    "https://127.0.0.1",
    "http://localhost",
    "http://127.0.0.1",
)


@dataclass(frozen=True)
class PantryConfig:
    """Strongly typed configuration for the pantry service."""

    base_dir: Path
    collection: str
    local_store_path: Path
    store_backups: int
    allowed_origins: tuple[str, ...]
    force_tls: bool
    trust_proxy_headers: bool
    api_host: str
    api_port: int
    log_level: str
    tls_cert_file: str = ""
    tls_key_file: str = ""

    @property
    def ssl_context(self):
        if self.tls_cert_file and self.tls_key_file:
            return (self.tls_cert_file, self.tls_key_file)
        return "adhoc" if self.force_tls else None


def env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _coerce_origins(raw: str | Iterable[str]) -> tuple[str, ...]:
    if isinstance(raw, str):
        items = [piece.strip() for piece in raw.split(",")]
    else:
        items = [piece.strip() for piece in raw]
    return tuple(filter(None, items)) or DEFAULT_ORIGINS


def _coerce_log_level(raw: str) -> str:
    level = (raw or "").strip().upper()
    if isinstance(logging.getLevelName(level), int):
        return level
    if level:
        print(f"WARNING: unknown LOG_LEVEL {raw!r}; using INFO")
    return "INFO"


def load_pantry_config(base_dir: Path, env: Mapping[str, str] | None = None) -> PantryConfig:
    """Load pantry configuration from the given base directory and env mapping."""

    base_dir = Path(base_dir)
    load_dotenv(base_dir / ".env")
    env_map = dict(os.environ if env is None else env)

    store_file = env_map.get("INVENTORY_FILE", "").strip()
    local_store_path = Path(store_file) if store_file else base_dir / "inventory.json"

    return PantryConfig(
        base_dir=base_dir,
        collection=env_map.get("INVENTORY_COLLECTION", "").strip() or DEFAULT_COLLECTION,
        local_store_path=local_store_path,
        store_backups=int(env_map.get("STORE_BACKUPS", "2")),
        allowed_origins=_coerce_origins(env_map.get("ALLOWED_ORIGINS", "")),
        force_tls=env_bool(env_map, "FORCE_TLS", False),
        trust_proxy_headers=env_bool(env_map, "TRUST_PROXY_HEADERS", True),
        api_host=env_map.get("API_HOST", "0.0.0.0"),
        api_port=int(env_map.get("API_PORT", "7890")),
        log_level=_coerce_log_level(env_map.get("LOG_LEVEL", "")),
        tls_cert_file=env_map.get("TLS_CERT_FILE", "").strip(),
        tls_key_file=env_map.get("TLS_KEY_FILE", "").strip(),
    )
