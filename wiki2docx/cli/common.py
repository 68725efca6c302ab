from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from wiki2docx.core.config import Settings, load_config_file, load_env, merge_config, settings_from_config
from wiki2docx.wiki.client import WikiClient, WikiConfig
from wiki2docx.wiki.ratelimit import RateLimiter


def load_settings(config: Optional[Path], overrides: Dict[str, Any]) -> Settings:
    """Config file, then W2D_* environment, then command-line options."""
    return settings_from_config(merge_config(load_config_file(config), load_env(), overrides))


def build_client(settings: Settings) -> WikiClient:
    cfg = WikiConfig(
        lang=settings.lang,
        timeout=settings.timeout,
        workers=max(1, settings.workers),
        user_agent=settings.user_agent,
    )
    return WikiClient(cfg, RateLimiter(settings.rate, settings.burst))
