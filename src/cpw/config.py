"""Configuration management for CPW."""

import copy
import os
from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG = {
    "claude_model": "claude-sonnet-4-20250514",
    "catalog_path": None,
    "max_file_size": 50 * 1024 * 1024,
    "chat": {"max_tokens": 8000, "timeout": 120.0, "max_attempts": 3},
    "webpage": {
        "timeout": 30.0,
        "connect_timeout": 10.0,
        "max_redirects": 5,
        "user_agent": "Mozilla/5.0 (compatible; ContentPrepWizard/1.0)",
    },
    "converters": {
        "executables": "",
        "pandoc_path": "pandoc",
        "pdftotext_path": "pdftotext",
        "pdfinfo_path": "pdfinfo",
        "timeout": 120,
        "metadata_timeout": 30,
    },
    "assembler": {
        "document_chars": 30000,
        "webpage_chars": 15000,
        "total_document_chars": 60000,
        "total_webpage_chars": 30000,
    },
    "refinement": {"enabled": True, "max_iterations": 5, "preview_chars": 300},
    "mapper": {"component_prefix": "canvas", "child_slot": "content", "mappings": {}},
}


def _find_config_file() -> Path | None:
    """Look for config.yaml in standard locations."""
    candidates = [
        Path.cwd() / "config" / "config.yaml",
        Path.cwd() / "config.yaml",
        Path.home() / ".cpw" / "config.yaml",
    ]
    for p in candidates:
        if p.exists():
            return p
    return None


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load configuration, merging defaults with file and env vars."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path) if config_path else _find_config_file()
    if path and path.exists():
        with open(path) as f:
            file_cfg = yaml.safe_load(f) or {}
        _deep_merge(cfg, file_cfg)

    # Env overrides
    if api_key := os.environ.get("ANTHROPIC_API_KEY"):
        cfg["claude_api_key"] = api_key
    if model := os.environ.get("CPW_MODEL"):
        cfg["claude_model"] = model

    if cfg.get("catalog_path"):
        cfg["catalog_path"] = str(Path(cfg["catalog_path"]).expanduser().resolve())

    return cfg


def get_section(config: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a config section with defaults filled in for missing keys."""
    section = dict(DEFAULT_CONFIG.get(name, {}))
    section.update(config.get(name) or {})
    return section


def _deep_merge(base: dict, override: dict) -> None:
    """Merge override into base in-place."""
    for k, v in override.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
