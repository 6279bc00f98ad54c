from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from platformdirs import user_config_dir

from .models import Settings

APP_NAME = "ctxdecay"

logger = logging.getLogger(__name__)


def _candidate_paths(cwd: Path) -> list[Path]:
    # project-level (higher priority)
    return [
        cwd / ".ctxdecay.json",
        cwd / "ctxdecay.json",
        cwd / ".ctxdecay.yaml",
        cwd / "ctxdecay.yaml",
    ]


def _global_candidate_paths() -> list[Path]:
    cfg_dir = Path(user_config_dir(APP_NAME))
    return [
        cfg_dir / "ctxdecay.json",
        cfg_dir / "ctxdecay.yaml",
        cfg_dir / "ctxdecay.yml",
    ]


def _load_obj(p: Path) -> dict[str, Any] | None:
    try:
        text = p.read_text(encoding="utf-8")
        if p.suffix in {".yaml", ".yml"}:
            obj = yaml.safe_load(text)
        else:
            obj = json.loads(text)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable config %s: %s", p, e)
        return None
    if isinstance(obj, dict):
        return obj
    logger.warning("Ignoring config %s: top level is not a mapping", p)
    return None


def _merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge_dicts(out[k], v)
        else:
            out[k] = v
    return out


def load_settings(*, cwd: Path, explicit_path: Path | None = None) -> Settings:
    """Load settings.

    Merge order: global < project < explicit_path.
    """
    merged: dict[str, Any] = {}
    loaded_from: Path | None = None

    for p in _global_candidate_paths():
        if p.exists() and p.is_file():
            obj = _load_obj(p)
            if obj is not None:
                merged = _merge_dicts(merged, obj)
                loaded_from = p

    for p in _candidate_paths(cwd):
        if p.exists() and p.is_file():
            obj = _load_obj(p)
            if obj is not None:
                merged = _merge_dicts(merged, obj)
                loaded_from = p
                break  # first match wins for project-level

    if explicit_path is not None:
        p = explicit_path.expanduser().resolve()
        if not p.is_file():
            raise FileNotFoundError(f"Config not found: {p}")
        obj = _load_obj(p)
        if obj is not None:
            merged = _merge_dicts(merged, obj)
            loaded_from = p

    cfg = Settings.from_obj(merged)
    cfg.loaded_from = loaded_from
    return cfg
