"""
Kernel settings (``cashflow_kernel.config``).

Responsibility
--------------
Loads runtime settings for the cash-flow kernel from three layers, later
layers winning: built-in defaults, an optional YAML file, and environment
variables.  The result is a frozen ``KernelSettings`` dataclass consumed by
``db.engine.init_engine_from_settings()`` and the scripts.

Architecture position
---------------------
**Kernel > infrastructure.**  No dependency on models, services or
selectors.

Invariants enforced
-------------------
* Unknown keys in the YAML file raise ``ValueError``; a typo never falls
  back silently to a default.
* Settings are immutable once loaded.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Non-mapping YAML document or bad value type  -> ``ValueError``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

DEFAULT_DATABASE_URL = "sqlite:///cashflow.db"

# Environment variable -> settings field.  Earlier names win.
ENV_OVERRIDES: tuple[tuple[str, str], ...] = (
    ("CASHFLOW_DATABASE_URL", "database_url"),
    ("DATABASE_URL", "database_url"),
    ("CASHFLOW_LOG_LEVEL", "log_level"),
)


@dataclass(frozen=True)
class KernelSettings:
    """Runtime settings for the kernel."""

    database_url: str = DEFAULT_DATABASE_URL
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    log_level: str = "INFO"
    # Amounts are stored at full precision; this only drives report output.
    display_decimal_places: int = 2


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML settings file and return its top-level mapping.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping, got {type(data).__name__}")
    return data


def _coerce(name: str, value: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("1", "true", "yes", "on"):
            return True
        if isinstance(value, str) and value.lower() in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"Setting {name!r} must be a boolean, got {value!r}")
    if isinstance(default, int):
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(f"Setting {name!r} must be an integer, got {value!r}") from None
    return str(value)


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> KernelSettings:
    """
    Build ``KernelSettings`` from defaults, an optional YAML file and the
    environment.

    Args:
        path: Optional YAML file with top-level keys named after the
            ``KernelSettings`` fields.
        environ: Environment mapping; defaults to ``os.environ``.
    """
    settings = KernelSettings()
    known = {f.name: getattr(settings, f.name) for f in fields(KernelSettings)}

    overrides: dict[str, Any] = {}
    if path is not None:
        data = load_yaml_file(Path(path))
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ValueError(f"Unknown settings in {path}: {', '.join(unknown)}")
        for name, value in data.items():
            overrides[name] = _coerce(name, value, known[name])

    env = os.environ if environ is None else environ
    applied: set[str] = set()
    for var, name in ENV_OVERRIDES:
        if name in applied:
            continue
        value = env.get(var)
        if value:
            overrides[name] = _coerce(name, value, known[name])
            applied.add(name)

    return replace(settings, **overrides)
