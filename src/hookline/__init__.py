"""Hookline: lifecycle hook dispatch and skill activation for assistant sessions.

Hooks are external executables bound to lifecycle events of an assistant
session.  Skills are tiered content packages activated from user prompts
and disclosed to the assistant one tier at a time.
"""

from hookline._version import __version__

# Core entry point
from hookline.hookline import EventOutcome, Hookline, build_registry

# Events
from hookline.models.event import Event, LifecycleEventKind

# Hooks
from hookline.models.hooks import (
    ExecutionResult,
    ExecutionStatus,
    HookErrorKind,
    HookRegistration,
)

# Skills
from hookline.models.skill import (
    ActivationRecord,
    ContentRef,
    Skill,
    SkillTier,
    TierContent,
    TierKind,
)

# Configuration
from hookline.models.config import HooklineConfig

# Components
from hookline.registry import Registry
from hookline.matching import ActivationPlan, HookPlan, Matcher, SkillMatch
from hookline.dispatch import Dispatcher
from hookline.invoker import SubprocessInvoker
from hookline.disclosure import (
    ActivationOutcome,
    DisclosureLoader,
    FileContentReader,
    SkillActivation,
    SkillState,
)
from hookline.session import DispatchRecord, SessionContext, SessionSnapshot

# Declarations
from hookline.declarations import (
    load_hooks_file,
    load_skills_dir,
    parse_hooks,
    parse_skill,
)

# Protocols
from hookline.protocols import ContentReader, InvocationOutcome, Invoker, TokenCounter
from hookline.engine.tokens import NullTokenCounter, TiktokenCounter

# Exceptions
from hookline.exceptions import (
    ConfigError,
    ContentLoadError,
    DeclarationError,
    DisclosureError,
    DuplicateHookError,
    DuplicateSkillError,
    HooklineError,
    InvalidTierOrderError,
    RegistrationError,
    RegistryFrozenError,
    SessionClosedError,
    SkillNotFoundError,
    TierOrderError,
    UnknownComponentError,
    UnknownEventKindError,
)

__all__ = [
    "__version__",
    # Core
    "Hookline",
    "EventOutcome",
    "build_registry",
    # Events
    "Event",
    "LifecycleEventKind",
    # Hooks
    "HookRegistration",
    "ExecutionResult",
    "ExecutionStatus",
    "HookErrorKind",
    # Skills
    "Skill",
    "SkillTier",
    "TierKind",
    "ContentRef",
    "TierContent",
    "ActivationRecord",
    # Configuration
    "HooklineConfig",
    # Components
    "Registry",
    "Matcher",
    "HookPlan",
    "ActivationPlan",
    "SkillMatch",
    "Dispatcher",
    "SubprocessInvoker",
    "DisclosureLoader",
    "FileContentReader",
    "SkillActivation",
    "SkillState",
    "ActivationOutcome",
    "SessionContext",
    "SessionSnapshot",
    "DispatchRecord",
    # Declarations
    "load_hooks_file",
    "load_skills_dir",
    "parse_hooks",
    "parse_skill",
    # Protocols
    "TokenCounter",
    "Invoker",
    "InvocationOutcome",
    "ContentReader",
    "TiktokenCounter",
    "NullTokenCounter",
    # Exceptions
    "HooklineError",
    "ConfigError",
    "RegistrationError",
    "DuplicateHookError",
    "DuplicateSkillError",
    "InvalidTierOrderError",
    "DeclarationError",
    "RegistryFrozenError",
    "UnknownEventKindError",
    "SkillNotFoundError",
    "DisclosureError",
    "ContentLoadError",
    "TierOrderError",
    "UnknownComponentError",
    "SessionClosedError",
]
