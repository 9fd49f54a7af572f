"""Configuration models for Hookline.

HooklineConfig holds per-session settings read once at session start.
Values come from ``HOOKLINE_*`` environment variables, optionally backed by
a ``.env`` file in the base directory; the process environment wins.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values
from pydantic import BaseModel, Field, ValidationError, field_validator

from hookline.exceptions import ConfigError
from hookline.models.hooks import DEFAULT_TIMEOUT_MS

DEFAULT_BASE_DIR = "~/.hookline"
DEFAULT_ERROR_MARKER = "HOOK_ERROR:"

# env var -> field name
_ENV_FIELDS: dict[str, str] = {
    "HOOKLINE_BASE_DIR": "base_dir",
    "HOOKLINE_LOG_DIR": "log_dir",
    "HOOKLINE_SESSION_ID": "session_id",
    "HOOKLINE_ASSISTANT_NAME": "assistant_name",
    "HOOKLINE_HOOKS_FILE": "hooks_file",
    "HOOKLINE_SKILLS_DIR": "skills_dir",
    "HOOKLINE_DEFAULT_TIMEOUT_MS": "default_timeout_ms",
    "HOOKLINE_MAX_WORKERS": "max_workers",
    "HOOKLINE_TOKENIZER": "tokenizer_encoding",
}


def _new_session_id() -> str:
    return uuid.uuid4().hex


class HooklineConfig(BaseModel):
    """Per-session configuration.  Immutable once built."""

    model_config = {"frozen": True}

    base_dir: Path = Path(DEFAULT_BASE_DIR).expanduser()
    log_dir: Optional[Path] = None
    session_id: str = Field(default_factory=_new_session_id)
    assistant_name: Optional[str] = None
    hooks_file: Optional[Path] = None  # None = <base_dir>/hooks.yaml
    skills_dir: Optional[Path] = None  # None = <base_dir>/skills
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_workers: int = 8
    tokenizer_encoding: Optional[str] = "o200k_base"  # None = no token counting
    error_marker: str = DEFAULT_ERROR_MARKER

    @field_validator("base_dir", "log_dir", "hooks_file", "skills_dir", mode="after")
    @classmethod
    def _expand(cls, value: Optional[Path]) -> Optional[Path]:
        return value.expanduser() if value is not None else None

    @field_validator("default_timeout_ms", "max_workers")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @field_validator("tokenizer_encoding", mode="before")
    @classmethod
    def _tokenizer(cls, value: object) -> object:
        if isinstance(value, str) and value.strip().lower() in ("", "none", "off"):
            return None
        return value

    @property
    def resolved_hooks_file(self) -> Path:
        if self.hooks_file is not None:
            return self.hooks_file
        for name in ("hooks.yaml", "hooks.yml", "hooks.json"):
            candidate = self.base_dir / name
            if candidate.exists():
                return candidate
        return self.base_dir / "hooks.yaml"

    @property
    def resolved_skills_dir(self) -> Path:
        return self.skills_dir if self.skills_dir is not None else self.base_dir / "skills"

    def hook_environment(self) -> dict[str, str]:
        """Environment variables exported to every hook invocation."""
        env = {
            "HOOKLINE_BASE_DIR": str(self.base_dir),
            "HOOKLINE_SESSION_ID": self.session_id,
        }
        if self.log_dir is not None:
            env["HOOKLINE_LOG_DIR"] = str(self.log_dir)
        if self.assistant_name:
            env["HOOKLINE_ASSISTANT_NAME"] = self.assistant_name
        return env

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: object,
    ) -> HooklineConfig:
        """Build a config from ``HOOKLINE_*`` variables.

        Reads ``<base_dir>/.env`` when present.  Explicit *overrides*
        (keyword arguments that are not None) beat both sources.

        Raises:
            ConfigError: If a value fails validation.
        """
        env = dict(os.environ if environ is None else environ)
        base_dir = overrides.get("base_dir") or env.get("HOOKLINE_BASE_DIR") or DEFAULT_BASE_DIR
        dotenv_path = Path(str(base_dir)).expanduser() / ".env"
        merged: dict[str, str] = {}
        if dotenv_path.is_file():
            merged.update(
                {k: v for k, v in dotenv_values(dotenv_path).items() if v is not None}
            )
        merged.update(env)

        data: dict[str, object] = {}
        for var, field_name in _ENV_FIELDS.items():
            if merged.get(var):
                data[field_name] = merged[var]
        data["base_dir"] = base_dir
        data.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls(**data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid Hookline configuration: {exc}") from exc
