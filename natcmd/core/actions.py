"""
natcmd.core.actions

Typed action requests produced by the resolver and consumed by the dispatcher.

ActionRequest is a closed set: every concrete subclass below is a variant the
dispatcher has a handler for. Instances are frozen so a resolved action can be
shared with a catalog snapshot without being aliased into mutable state.

RULES:
- Every variant except RunBundle is a leaf.
- A RunBundle never contains another RunBundle (checked on construction).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class ActionRequest:
    """Base class for all action variants."""

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for logging/debugging."""
        data: Dict[str, Any] = {"type": self.kind}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, tuple):
                value = [v.to_dict() if isinstance(v, ActionRequest) else v for v in value]
            data[f.name] = value
        return data


@dataclass(frozen=True)
class MoveWindow(ActionRequest):
    target: str = "active"
    monitor: str = "current"
    position: Optional[str] = None
    width_pct: Optional[int] = None
    height_pct: Optional[int] = None


@dataclass(frozen=True)
class FocusWindow(ActionRequest):
    title_substring: str


@dataclass(frozen=True)
class LaunchApp(ActionRequest):
    exe_or_uri: str


@dataclass(frozen=True)
class SendKeys(ActionRequest):
    keys: str


@dataclass(frozen=True)
class OpenFolder(ActionRequest):
    known_folder: str


@dataclass(frozen=True)
class OpenWebsite(ActionRequest):
    url: str


@dataclass(frozen=True)
class CloseTab(ActionRequest):
    pass


@dataclass(frozen=True)
class ExecuteHostCommand(ActionRequest):
    canonical_name: str
    args: Optional[str] = None


@dataclass(frozen=True)
class SymbolInsert(ActionRequest):
    symbol: str
    name: Optional[str] = None


@dataclass(frozen=True)
class SetSymbol(ActionRequest):
    """Set (or unset, when symbol is None) a name -> symbol mapping."""
    name: str
    symbol: Optional[str] = None


@dataclass(frozen=True)
class ReloadCatalog(ActionRequest):
    pass


@dataclass(frozen=True)
class ShowHelp(ActionRequest):
    scope: Optional[str] = None


@dataclass(frozen=True)
class Noop(ActionRequest):
    """Explicit "do nothing". Distinct from a failed match."""
    reason: str = ""


@dataclass(frozen=True)
class RunBundle(ActionRequest):
    """
    Named, ordered sequence of leaf actions executed as one command.

    Fields:
        name: Bundle name as configured (used in result text)
        steps: Leaf actions, run strictly in order
        continue_on_error: Keep going after a failed step
        inter_step_delay_ms: Cooperative wait between consecutive steps
    """
    name: str
    steps: Tuple[ActionRequest, ...] = ()
    continue_on_error: bool = True
    inter_step_delay_ms: int = 250

    def __post_init__(self) -> None:
        # Accept lists from loaders but store an immutable tuple
        if not isinstance(self.steps, tuple):
            object.__setattr__(self, "steps", tuple(self.steps))
        for step in self.steps:
            if isinstance(step, RunBundle):
                raise ValueError(f"Bundle '{self.name}' cannot contain bundle '{step.name}'")
            if not isinstance(step, ActionRequest):
                raise TypeError(f"Bundle '{self.name}' has a non-action step: {step!r}")
        if self.inter_step_delay_ms < 0:
            object.__setattr__(self, "inter_step_delay_ms", 0)


# Every concrete variant, in declaration order. The dispatcher's handler table
# is checked against this tuple.
ACTION_VARIANTS: Tuple[type, ...] = (
    MoveWindow,
    FocusWindow,
    LaunchApp,
    SendKeys,
    OpenFolder,
    OpenWebsite,
    CloseTab,
    ExecuteHostCommand,
    SymbolInsert,
    SetSymbol,
    ReloadCatalog,
    ShowHelp,
    Noop,
    RunBundle,
)


@dataclass(frozen=True)
class Unresolved:
    """No cascade stage matched. Not an error: triggers the AI fallback."""
    text: str


@dataclass(frozen=True)
class MatchCandidate:
    strategy_name: str
    confidence: float
    action: ActionRequest


class BundleState(enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    ABORTED = "aborted"
    COMPLETED_WITH_ERRORS = "completed_with_errors"

    @property
    def terminal(self) -> bool:
        return self in (BundleState.SUCCEEDED, BundleState.ABORTED, BundleState.COMPLETED_WITH_ERRORS)


@dataclass(frozen=True)
class StepOutcome:
    index: int
    action: ActionRequest
    ok: bool
    text: str


@dataclass(frozen=True)
class ExecutionResult:
    """
    Outcome of dispatching one action.

    state and steps are only set for RunBundle.
    """
    text: str
    ok: bool
    state: Optional[BundleState] = None
    steps: Tuple[StepOutcome, ...] = field(default_factory=tuple)

    def with_prefix(self, prefix: str) -> "ExecutionResult":
        return ExecutionResult(f"{prefix}{self.text}", self.ok, self.state, self.steps)
