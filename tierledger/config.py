from __future__ import annotations
"""
tierledger.config — engine configuration

Covers:
- The bootstrap authority allowed to register collections
- The engine's own custody identifier (holds deposited units)
- The reserved native asset reference used for renewal payments
- Snapshot database location and logging level
- Default renewal terms used by tooling when seeding collections

Environment overrides (all optional; sensible defaults provided):

  TIERLEDGER_BOOTSTRAP_AUTHORITY=factory
  TIERLEDGER_CUSTODY_ADDRESS=tierledger:custody
  TIERLEDGER_NATIVE_ASSET=native
  TIERLEDGER_DB=tierledger.db
  TIERLEDGER_LOG_LEVEL=INFO
  TIERLEDGER_DEFAULT_RENEWAL_LENGTH=2592000
  TIERLEDGER_DEFAULT_RENEWAL_PRICE=0

You can also load from a JSON or YAML file via
`TIERLEDGER_CONFIG_FILE=/path/to/config.(json|yaml|yml)`.
File values override defaults; environment overrides the file.
"""


from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Optional
import json
import logging
import os
from pathlib import Path

try:
    import yaml  # type: ignore
except Exception:  # pragma: no cover - yaml is optional
    yaml = None  # type: ignore


THIRTY_DAYS = 30 * 24 * 60 * 60

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


# -------------------------- Data classes --------------------------


@dataclass
class RenewalDefaults:
    """Renewal terms suggested to tooling when a collection is seeded."""
    length: int = THIRTY_DAYS
    price: int = 0

    def validate(self) -> None:
        if self.length < 0 or self.price < 0:
            raise ValueError("Renewal defaults must be non-negative.")


@dataclass
class EngineConfig:
    """Top-level configuration container."""
    bootstrap_authority: str = "factory"
    custody_address: str = "tierledger:custody"
    native_asset: str = "native"
    db_path: str = "tierledger.db"
    log_level: str = "INFO"
    renewal: RenewalDefaults = field(default_factory=RenewalDefaults)

    def validate(self) -> None:
        if not self.bootstrap_authority:
            raise ValueError("bootstrap_authority must be set.")
        if not self.custody_address:
            raise ValueError("custody_address must be set.")
        if self.custody_address == self.bootstrap_authority:
            raise ValueError("custody_address must differ from bootstrap_authority.")
        if not self.native_asset:
            raise ValueError("native_asset must be set.")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {_LOG_LEVELS} (got {self.log_level!r}).")
        self.renewal.validate()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -------------------------- Loaders --------------------------


def _getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(str(v).replace("_", ""))
    except ValueError as e:
        raise ValueError(f"Invalid int for {name}: {v!r}") from e


def _getenv_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None or v == "" else v


def from_env(base: Optional[EngineConfig] = None, prefix: str = "TIERLEDGER_") -> EngineConfig:
    """
    Build an EngineConfig from environment variables, optionally layering on top of `base`.
    """
    cfg = base or EngineConfig()

    new_cfg = replace(
        cfg,
        bootstrap_authority=_getenv_str(f"{prefix}BOOTSTRAP_AUTHORITY", cfg.bootstrap_authority),
        custody_address=_getenv_str(f"{prefix}CUSTODY_ADDRESS", cfg.custody_address),
        native_asset=_getenv_str(f"{prefix}NATIVE_ASSET", cfg.native_asset),
        db_path=_getenv_str(f"{prefix}DB", cfg.db_path),
        log_level=_getenv_str(f"{prefix}LOG_LEVEL", cfg.log_level).upper(),
        renewal=RenewalDefaults(
            length=_getenv_int(f"{prefix}DEFAULT_RENEWAL_LENGTH", cfg.renewal.length),
            price=_getenv_int(f"{prefix}DEFAULT_RENEWAL_PRICE", cfg.renewal.price),
        ),
    )
    new_cfg.validate()
    return new_cfg


def from_file(path: str | os.PathLike[str]) -> EngineConfig:
    """
    Load configuration from a JSON or YAML file.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in (".yaml", ".yml"):
        if yaml is None:
            raise RuntimeError("YAML config requested but PyYAML is not installed.")
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text or "{}")

    defaults = EngineConfig()
    renewal = data.get("renewal", {})
    cfg = EngineConfig(
        bootstrap_authority=data.get("bootstrap_authority", defaults.bootstrap_authority),
        custody_address=data.get("custody_address", defaults.custody_address),
        native_asset=data.get("native_asset", defaults.native_asset),
        db_path=data.get("db_path", defaults.db_path),
        log_level=str(data.get("log_level", defaults.log_level)).upper(),
        renewal=RenewalDefaults(
            length=int(renewal.get("length", defaults.renewal.length)),
            price=int(renewal.get("price", defaults.renewal.price)),
        ),
    )
    cfg.validate()
    return cfg


def load() -> EngineConfig:
    """
    Load configuration using the following precedence:
      1) File at $TIERLEDGER_CONFIG_FILE (JSON/YAML)
      2) Environment variables (TIERLEDGER_*), applied on top of defaults or file values
    """
    file_path = os.getenv("TIERLEDGER_CONFIG_FILE")
    base = from_file(file_path) if file_path else EngineConfig()
    return from_env(base=base)


# -------------------------- Utilities --------------------------


def configure_logging(cfg: EngineConfig) -> None:
    """Apply `cfg.log_level` to the package logger tree."""
    logging.getLogger("tierledger").setLevel(cfg.log_level.upper())


def pretty(cfg: Optional[EngineConfig] = None) -> str:
    """Return a human-readable JSON string of the current config."""
    obj = (cfg or load()).to_dict()
    return json.dumps(obj, indent=2, sort_keys=True)


__all__ = [
    "THIRTY_DAYS",
    "RenewalDefaults",
    "EngineConfig",
    "from_env",
    "from_file",
    "load",
    "configure_logging",
    "pretty",
]
