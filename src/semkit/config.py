"""Centralized settings: YAML config + env var overrides.

Priority: env var > YAML file > default.
Env vars use SEMKIT_{FIELD_NAME} convention (e.g. SEMKIT_TOP_K=5).
YAML file default: ~/.semkit/config.yaml

Example config.yaml:
    model_name: all-MiniLM-L6-v2
    batch_size: 64
    top_k: 5
    threshold: 0.3
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

_DEFAULT_PATH = Path("~/.semkit/config.yaml").expanduser()


def _coerce(raw: Any, kind: type, source: str) -> Any:
    """Convert a raw env/YAML value to the field's type with a helpful error."""
    if isinstance(raw, kind) and not (kind is int and isinstance(raw, bool)):
        return raw
    try:
        return kind(raw)
    except (TypeError, ValueError) as err:
        raise ValueError(f"{source}={raw!r} is not a valid {kind.__name__}") from err


@dataclass
class SemkitConfig:
    # Embedding model
    model_name: str = "all-MiniLM-L6-v2"
    backend: str = "sentence-transformers"  # "sentence-transformers" | "ollama"
    max_length: int = 512
    batch_size: int = 32
    ollama_base_url: str = "http://localhost:11434"

    # Search defaults
    top_k: int = 10
    threshold: float = 0.0

    @classmethod
    def load(cls, path: Path | None = None) -> SemkitConfig:
        """Load settings from YAML file, then override with env vars."""
        file_path = path or _DEFAULT_PATH
        file_values: dict[str, Any] = {}

        if file_path.exists():
            raw = yaml.safe_load(file_path.read_text()) or {}
            if isinstance(raw, dict):
                file_values = raw

        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            kind = type(getattr(cls, f.name))
            env_key = f"SEMKIT_{f.name.upper()}"

            if env_key in os.environ:
                kwargs[f.name] = _coerce(os.environ[env_key], kind, env_key)
            elif f.name in file_values:
                kwargs[f.name] = _coerce(
                    file_values[f.name], kind, f"{file_path}:{f.name}"
                )
            # else: use dataclass default

        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# Singleton
_config: SemkitConfig | None = None


def get_config(path: Path | None = None) -> SemkitConfig:
    """Get the singleton SemkitConfig instance."""
    global _config
    if _config is None:
        _config = SemkitConfig.load(path)
    return _config


def reset_config() -> None:
    """Reset for testing."""
    global _config
    _config = None
