from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

DEFAULT_LANG = "en"
DEFAULT_WORKERS = 5
DEFAULT_RATE = 10.0
DEFAULT_BURST = 1
DEFAULT_TIMEOUT = 30.0
DEFAULT_OUT_DIR = "./output"
DEFAULT_RANDOM = 1
DEFAULT_USER_AGENT = "wiki2docx/1.0 (https://github.com/w0ikid/wiki2docx)"

# config key -> environment variable
_ENV_KEYS = {
    "lang": "W2D_LANG",
    "workers": "W2D_WORKERS",
    "rate": "W2D_RATE",
    "burst": "W2D_BURST",
    "timeout": "W2D_TIMEOUT",
    "out": "W2D_OUT",
    "user_agent": "W2D_USER_AGENT",
}


def load_config_file(path: Optional[str | Path]) -> Dict[str, Any]:
    """Load a YAML or JSON config file into a dict; a missing file yields ``{}``."""
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        return {}

    with p.open("r", encoding="utf-8") as f:
        if p.suffix.lower() in (".yml", ".yaml"):
            data = yaml.safe_load(f) or {}
        else:
            data = json.load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"config file {p} must contain a mapping")
    return data


def load_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    env = os.environ if environ is None else environ
    out: Dict[str, Any] = {}
    for key, var in _ENV_KEYS.items():
        v = env.get(var)
        if v is not None and str(v).strip() != "":
            out[key] = str(v).strip()
    return out


def merge_config(*layers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Merge layers left to right; a later layer wins unless its value is ``None``."""
    merged: Dict[str, Any] = {}
    for layer in layers:
        if not layer:
            continue
        for k, v in layer.items():
            if v is not None:
                merged[k] = v
    return merged


@dataclass
class Settings:
    lang: str = DEFAULT_LANG
    workers: int = DEFAULT_WORKERS
    rate: float = DEFAULT_RATE
    burst: int = DEFAULT_BURST
    timeout: float = DEFAULT_TIMEOUT
    out: str = DEFAULT_OUT_DIR
    user_agent: str = DEFAULT_USER_AGENT
    input: Optional[str] = None
    random: int = DEFAULT_RANDOM


def _as_int(conf: Mapping[str, Any], key: str, default: int) -> int:
    v = conf.get(key)
    if v is None:
        return default
    try:
        return int(v)
    except (TypeError, ValueError) as e:
        raise ValueError(f"invalid integer for '{key}': {v!r}") from e


def _as_float(conf: Mapping[str, Any], key: str, default: float) -> float:
    v = conf.get(key)
    if v is None:
        return default
    try:
        return float(v)
    except (TypeError, ValueError) as e:
        raise ValueError(f"invalid number for '{key}': {v!r}") from e


def settings_from_config(conf: Mapping[str, Any]) -> Settings:
    lang = str(conf.get("lang") or DEFAULT_LANG).strip().lower()
    if not lang:
        raise ValueError("language prefix must not be empty")
    timeout = _as_float(conf, "timeout", DEFAULT_TIMEOUT)
    if timeout <= 0:
        raise ValueError(f"timeout must be > 0, got {timeout:g}")
    return Settings(
        lang=lang,
        workers=_as_int(conf, "workers", DEFAULT_WORKERS),
        rate=_as_float(conf, "rate", DEFAULT_RATE),
        burst=_as_int(conf, "burst", DEFAULT_BURST),
        timeout=timeout,
        out=str(conf.get("out") or DEFAULT_OUT_DIR),
        user_agent=str(conf.get("user_agent") or DEFAULT_USER_AGENT),
        input=(str(conf["input"]) if conf.get("input") else None),
        random=_as_int(conf, "random", DEFAULT_RANDOM),
    )
