"""Parsing of hook and skill declarations into typed registry entities.

Hook declarations live in one YAML or JSON document mapping lifecycle event
kinds to hook entries.  Both a flat shape and the host runtime's grouped
shape are accepted::

    hooks:
      SessionStart:
        - id: load-context
          command: ${HOOKLINE_BASE_DIR}/hooks/load-context.py --quiet
          timeout_ms: 5000
      PreToolUse:
        - hooks:
            - type: command
              command: ${HOOKLINE_BASE_DIR}/hooks/guard.py
              timeout: 10          # seconds

Skill declarations are directories holding a ``SKILL.md`` whose YAML
frontmatter carries the descriptor and triggers and whose body is Tier 1.

Everything is validated up front; a malformed declaration raises
DeclarationError and the session never starts.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shlex
from collections.abc import Mapping
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ValidationError, field_validator, model_validator

from hookline.exceptions import DeclarationError, UnknownEventKindError
from hookline.matching import REGEX_TRIGGER_PREFIX
from hookline.models.event import LifecycleEventKind
from hookline.models.hooks import DEFAULT_TIMEOUT_MS, HookRegistration
from hookline.models.skill import (
    COMPONENTS_TIER,
    DESCRIPTOR_TIER,
    INSTRUCTIONS_TIER,
    METHODOLOGY_TIER,
    ContentRef,
    Skill,
    SkillTier,
    TierKind,
)

logger = logging.getLogger(__name__)

SKILL_FILE = "SKILL.md"

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_VAR_RE = re.compile(r"\$\{(\w+)\}|\$(\w+)")


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def split_frontmatter(text: str) -> tuple[str | None, str]:
    """Split a markdown document into (frontmatter, body).

    Frontmatter is None when the document has no leading ``---`` block.
    """
    m = _FRONTMATTER_RE.match(text)
    if m is None:
        return None, text
    return m.group(1), text[m.end():]


def expand_vars(value: str, variables: Mapping[str, str]) -> str:
    """Expand ``${VAR}`` / ``$VAR`` from *variables*; unknown names stay as-is."""

    def _sub(m: re.Match[str]) -> str:
        name = m.group(1) or m.group(2)
        return variables.get(name, m.group(0))

    return os.path.expanduser(_VAR_RE.sub(_sub, value))


def _read_document(path: Path) -> object:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DeclarationError(str(path), f"cannot read: {exc}") from exc
    try:
        if path.suffix == ".json":
            return json.loads(text) if text.strip() else {}
        return yaml.safe_load(text) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise DeclarationError(str(path), f"cannot parse: {exc}") from exc


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err.get('msg')}" if loc else str(err.get("msg"))


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------


class HookEntry(BaseModel):
    """One hook as written in a declaration document."""

    model_config = {"extra": "forbid"}

    type: Literal["command"] = "command"
    id: Optional[str] = None
    command: Optional[str] = None
    argv: Optional[list[str]] = None
    order: Optional[int] = None
    timeout_ms: Optional[int] = None
    timeout: Optional[float] = None  # seconds, host runtime convention

    @model_validator(mode="after")
    def _one_invocation(self) -> HookEntry:
        if (self.command is None) == (self.argv is None):
            raise ValueError("exactly one of 'command' or 'argv' is required")
        if self.argv is not None and not self.argv:
            raise ValueError("'argv' must not be empty")
        if self.timeout_ms is not None and self.timeout is not None:
            raise ValueError("use either 'timeout_ms' or 'timeout', not both")
        if self.timeout_ms is not None and self.timeout_ms <= 0:
            raise ValueError("'timeout_ms' must be positive")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("'timeout' must be positive")
        return self

    def to_argv(self, variables: Mapping[str, str]) -> tuple[str, ...]:
        """Discrete arguments.  ``command`` is tokenized, never given to a shell."""
        raw = self.argv if self.argv is not None else shlex.split(self.command or "")
        if not raw:
            raise ValueError("'command' is empty")
        return tuple(expand_vars(arg, variables) for arg in raw)

    def resolved_timeout_ms(self, default_ms: int) -> int:
        if self.timeout_ms is not None:
            return self.timeout_ms
        if self.timeout is not None:
            return max(1, int(self.timeout * 1000))
        return default_ms


class HookGroup(BaseModel):
    """Host-runtime style group: ``{matcher?, hooks: [...]}``."""

    model_config = {"extra": "forbid"}

    matcher: Optional[str] = None
    hooks: list[HookEntry]


def parse_hooks(
    data: object,
    *,
    source: str = "<hooks>",
    variables: Mapping[str, str] | None = None,
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> list[HookRegistration]:
    """Turn a hook declaration document into HookRegistrations.

    Registrations are returned in declaration order; the registry assigns
    declaration indices from that order.

    Raises:
        DeclarationError: If the document is malformed.
    """
    variables = dict(variables or {})
    if isinstance(data, Mapping) and "hooks" in data:
        data = data["hooks"]
    if data is None:
        return []
    if not isinstance(data, Mapping):
        raise DeclarationError(source, "expected a mapping of event kind to hook list")

    registrations: list[HookRegistration] = []
    for kind_name, entries in data.items():
        try:
            kind = LifecycleEventKind.parse(str(kind_name))
        except UnknownEventKindError as exc:
            raise DeclarationError(source, str(exc)) from exc
        if entries is None:
            continue
        if not isinstance(entries, list):
            raise DeclarationError(source, f"{kind.value}: expected a list of hooks")

        for position, raw in enumerate(entries):
            where = f"{kind.value}[{position}]"
            for entry in _flatten_entry(raw, source, where):
                try:
                    argv = entry.to_argv(variables)
                except ValueError as exc:
                    raise DeclarationError(source, f"{where}: {exc}") from exc
                hook_id = entry.id or Path(argv[0]).stem
                registrations.append(
                    HookRegistration(
                        id=hook_id,
                        event_kind=kind,
                        argv=argv,
                        order=entry.order,
                        timeout_ms=entry.resolved_timeout_ms(default_timeout_ms),
                    )
                )
    return registrations


def _flatten_entry(raw: object, source: str, where: str) -> list[HookEntry]:
    if not isinstance(raw, Mapping):
        raise DeclarationError(source, f"{where}: expected a mapping")
    try:
        if "hooks" in raw:
            group = HookGroup.model_validate(raw)
            if group.matcher not in (None, "", "*"):
                logger.warning(
                    "%s %s: matcher %r ignored; hooks run for every event of their kind",
                    source, where, group.matcher,
                )
            return group.hooks
        return [HookEntry.model_validate(raw)]
    except ValidationError as exc:
        raise DeclarationError(source, f"{where}: {_first_error(exc)}") from exc


def load_hooks_file(
    path: Path,
    *,
    variables: Mapping[str, str] | None = None,
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> list[HookRegistration]:
    """Parse a hooks YAML/JSON file.  A missing file declares no hooks."""
    if not path.exists():
        logger.debug("No hooks file at %s", path)
        return []
    return parse_hooks(
        _read_document(path),
        source=str(path),
        variables=variables,
        default_timeout_ms=default_timeout_ms,
    )


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------


class SkillFrontmatter(BaseModel):
    """YAML frontmatter of a SKILL.md document."""

    model_config = {"extra": "ignore"}

    name: str
    description: str
    triggers: list[str] = []
    methodology: Optional[str] = None
    components: dict[str, str] = {}

    @field_validator("name")
    @classmethod
    def _name(cls, value: str) -> str:
        value = value.strip()
        if not value or any(c.isspace() for c in value):
            raise ValueError("must be a non-empty identifier without whitespace")
        return value

    @field_validator("description")
    @classmethod
    def _description(cls, value: str) -> str:
        value = " ".join(value.split())
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("triggers")
    @classmethod
    def _triggers(cls, value: list[str]) -> list[str]:
        cleaned = []
        for trigger in value:
            trigger = trigger.strip()
            if not trigger:
                raise ValueError("triggers must not be empty strings")
            if trigger.startswith(REGEX_TRIGGER_PREFIX):
                try:
                    re.compile(trigger[len(REGEX_TRIGGER_PREFIX):])
                except re.error as exc:
                    raise ValueError(f"invalid pattern {trigger!r}: {exc}") from exc
            cleaned.append(trigger)
        return cleaned


def _resolve_inside(base: Path, relative: str, source: str, label: str) -> Path:
    candidate = (base / relative).resolve()
    if Path(relative).is_absolute() or not candidate.is_relative_to(base.resolve()):
        raise DeclarationError(source, f"{label} path {relative!r} escapes the skill directory")
    return base / relative


def parse_skill(text: str, *, skill_file: Path) -> Skill:
    """Build a Skill from the text of its SKILL.md.

    Raises:
        DeclarationError: On missing/invalid frontmatter or bad paths.
    """
    source = str(skill_file)
    raw_frontmatter, body = split_frontmatter(text)
    if raw_frontmatter is None:
        raise DeclarationError(source, "missing YAML frontmatter")
    try:
        data = yaml.safe_load(raw_frontmatter)
    except yaml.YAMLError as exc:
        raise DeclarationError(source, f"cannot parse frontmatter: {exc}") from exc
    if not isinstance(data, Mapping):
        raise DeclarationError(source, "frontmatter must be a mapping")
    try:
        fm = SkillFrontmatter.model_validate(data)
    except ValidationError as exc:
        raise DeclarationError(source, _first_error(exc)) from exc

    base = skill_file.parent
    tiers = [SkillTier(DESCRIPTOR_TIER, TierKind.DESCRIPTOR, ContentRef.inline(fm.description))]
    if body.strip():
        tiers.append(SkillTier(INSTRUCTIONS_TIER, TierKind.INSTRUCTIONS, ContentRef.file(skill_file)))
    if fm.methodology is not None:
        path = _resolve_inside(base, fm.methodology, source, "methodology")
        tiers.append(SkillTier(METHODOLOGY_TIER, TierKind.METHODOLOGY, ContentRef.file(path)))
    components = {
        cid: ContentRef.file(_resolve_inside(base, rel, source, f"component '{cid}'"))
        for cid, rel in fm.components.items()
    }
    if components:
        tiers.append(SkillTier(COMPONENTS_TIER, TierKind.COMPONENTS))

    return Skill(
        id=fm.name,
        descriptor=fm.description,
        triggers=tuple(fm.triggers),
        tiers=tuple(tiers),
        components=components,
        source_path=skill_file,
    )


def load_skills_dir(root: Path) -> list[Skill]:
    """Parse every ``<root>/<name>/SKILL.md``, in directory-name order.

    A missing root declares no skills.
    """
    if not root.is_dir():
        logger.debug("No skills directory at %s", root)
        return []
    skills = []
    for skill_dir in sorted(p for p in root.iterdir() if p.is_dir()):
        skill_file = skill_dir / SKILL_FILE
        if not skill_file.is_file():
            continue
        try:
            text = skill_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise DeclarationError(str(skill_file), f"cannot read: {exc}") from exc
        skills.append(parse_skill(text, skill_file=skill_file))
    return skills
