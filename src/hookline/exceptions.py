"""Hookline exception hierarchy.

All Hookline-specific exceptions inherit from HooklineError.

Registration errors abort startup.  Disclosure errors are scoped to a single
skill/tier.  Per-hook failures are never raised: they are reported as
ExecutionResult values by the dispatcher.
"""

from __future__ import annotations


class HooklineError(Exception):
    """Base exception for all Hookline errors."""


class ConfigError(HooklineError):
    """Raised when session configuration is invalid."""


# ---------------------------------------------------------------------------
# Registration (fatal to startup)
# ---------------------------------------------------------------------------


class RegistrationError(HooklineError):
    """Base exception for errors raised while building the registry."""


class DuplicateHookError(RegistrationError):
    """Raised when a hook id is registered twice for the same event kind."""

    def __init__(self, hook_id: str, event_kind: str) -> None:
        self.hook_id = hook_id
        self.event_kind = event_kind
        super().__init__(f"Hook '{hook_id}' is already registered for {event_kind}")


class DuplicateSkillError(RegistrationError):
    """Raised when a skill id is registered twice."""

    def __init__(self, skill_id: str) -> None:
        self.skill_id = skill_id
        super().__init__(f"Skill already registered: {skill_id}")


class InvalidTierOrderError(RegistrationError):
    """Raised when a skill's disclosure tiers are not contiguous from 0."""

    def __init__(self, skill_id: str, levels: list[int]) -> None:
        self.skill_id = skill_id
        self.levels = levels
        super().__init__(
            f"Skill '{skill_id}' has non-contiguous tiers {levels}; "
            f"tiers must be numbered 0..N without gaps"
        )


class DeclarationError(RegistrationError):
    """Raised when a hook or skill declaration document is malformed."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid declaration in {source}: {reason}")


class RegistryFrozenError(RegistrationError):
    """Raised when registering after the registry was frozen for the session."""

    def __init__(self) -> None:
        super().__init__(
            "Registry is frozen; hooks and skills are read-only once a session starts"
        )


class UnknownEventKindError(HooklineError):
    """Raised when an event kind name is not one of the lifecycle kinds."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown lifecycle event kind: {name}")


# ---------------------------------------------------------------------------
# Skill disclosure (scoped to one skill/tier)
# ---------------------------------------------------------------------------


class SkillNotFoundError(HooklineError):
    """Raised when a skill id lookup fails."""

    def __init__(self, skill_id: str) -> None:
        self.skill_id = skill_id
        super().__init__(f"Skill not found: {skill_id}")


class DisclosureError(HooklineError):
    """Base exception for skill content loading errors."""


class ContentLoadError(DisclosureError):
    """Raised when a tier's content blob is missing or malformed."""

    def __init__(self, skill_id: str, tier: int, reason: str) -> None:
        self.skill_id = skill_id
        self.tier = tier
        self.reason = reason
        super().__init__(f"Cannot load tier {tier} of skill '{skill_id}': {reason}")


class TierOrderError(DisclosureError):
    """Raised when a tier is requested before the tier below it is loaded."""

    def __init__(self, skill_id: str, requested: int, loaded: int) -> None:
        self.skill_id = skill_id
        self.requested = requested
        self.loaded = loaded
        super().__init__(
            f"Skill '{skill_id}': tier {requested} requested but only "
            f"tier {loaded} is loaded"
        )


class UnknownComponentError(DisclosureError):
    """Raised when a component id is not declared by the skill."""

    def __init__(self, skill_id: str, component_id: str) -> None:
        self.skill_id = skill_id
        self.component_id = component_id
        super().__init__(f"Skill '{skill_id}' has no component '{component_id}'")


class SessionClosedError(HooklineError):
    """Raised when mutating a session context after the session ended."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' has ended")
