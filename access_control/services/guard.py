"""Guards: evaluate an access requirement against the current role state.

A guard never shows protected content while the role is still loading or
could not be loaded, and never reports "denied" for either of those states.
Once the state is resolved, a missing role is denied like any failed check.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Union

from access_control.core.config import settings
from access_control.core.levels import AccessLevel, parse_level
from access_control.services.evaluator import PairLike, PermissionPair, RoleContext, as_pair

logger = logging.getLogger("access_control.guard")


class LoadStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class RoleState:
    """What the caller currently knows about its role."""
    status: LoadStatus
    context: Optional[RoleContext] = None
    error: Optional[BaseException] = None

    @classmethod
    def loading(cls) -> "RoleState":
        return cls(LoadStatus.LOADING)

    @classmethod
    def ready(cls, context: Optional[RoleContext]) -> "RoleState":
        return cls(LoadStatus.READY, context=context)

    @classmethod
    def failed(cls, error: BaseException) -> "RoleState":
        return cls(LoadStatus.ERROR, error=error)


class GuardOutcome(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    DENIED = "denied"
    ALLOWED = "allowed"


class LevelRequirement:
    """Require at least ``required_level`` on a page.

    Without an explicit ``page_url`` the current location is used.
    """

    def __init__(self, required_level: Union[str, AccessLevel], page_url: Optional[str] = None):
        self.required_level = parse_level(required_level)
        self.page_url = page_url

    def unmet(self, ctx: RoleContext, location: Optional[str] = None) -> List[str]:
        page = self.page_url or location
        if page is None:
            return [f"page access '{self.required_level.value}' (no page resolved)"]
        if ctx.can(page, self.required_level):
            return []
        return [f"{page}: {self.required_level.value}"]


class PermissionRequirement:
    """Require all (or any) of a set of resource-action pairs."""

    def __init__(self, pairs: Sequence[PairLike], require_all: bool = True):
        self.pairs: List[PermissionPair] = [as_pair(p) for p in pairs]
        self.require_all = require_all

    def unmet(self, ctx: RoleContext, location: Optional[str] = None) -> List[str]:
        if not self.pairs:
            return []
        if self.require_all:
            return [str(p) for p in ctx.missing(self.pairs)]
        if ctx.has_any(self.pairs):
            return []
        return [str(p) for p in self.pairs]


Requirement = Union[LevelRequirement, PermissionRequirement]


@dataclass(frozen=True)
class GuardDecision:
    outcome: GuardOutcome
    reason: Optional[str] = None
    unmet: List[str] = field(default_factory=list)

    @property
    def allowed(self) -> bool:
        return self.outcome == GuardOutcome.ALLOWED

    @property
    def denied(self) -> bool:
        return self.outcome == GuardOutcome.DENIED


@dataclass(frozen=True)
class LoadingPlaceholder:
    message: str = "Checking access..."


@dataclass(frozen=True)
class ErrorNotice:
    message: str = "Access could not be verified. Please try again."


@dataclass(frozen=True)
class DenialNotice:
    reason: str
    unmet: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.reason == "unauthenticated":
            return "You do not have access to this page. Please sign in first."
        return "You do not have access to this page."


def _produce(value: Any) -> Any:
    return value() if callable(value) else value


class Guard:
    def __init__(self, requirement: Requirement):
        self.requirement = requirement

    def evaluate(self, state: RoleState, location: Optional[str] = None) -> GuardDecision:
        if state.status == LoadStatus.LOADING:
            return GuardDecision(GuardOutcome.LOADING)
        if state.status == LoadStatus.ERROR:
            return GuardDecision(GuardOutcome.ERROR, reason="error")

        ctx = state.context
        if ctx is None or not ctx.is_active:
            return GuardDecision(GuardOutcome.DENIED, reason="unauthenticated")

        unmet = self.requirement.unmet(ctx, location)
        if unmet:
            return GuardDecision(GuardOutcome.DENIED, reason="forbidden", unmet=unmet)
        return GuardDecision(GuardOutcome.ALLOWED)

    def render_decision(self, decision: GuardDecision, children: Any, fallback: Any = None) -> Any:
        """Map a decision to what the caller should show.

        ``children`` and ``fallback`` may be callables; they are only called
        when selected.
        """
        if decision.outcome == GuardOutcome.LOADING:
            return LoadingPlaceholder()
        if decision.outcome == GuardOutcome.ERROR:
            return ErrorNotice()
        if decision.outcome == GuardOutcome.DENIED:
            if fallback is not None:
                return _produce(fallback)
            return DenialNotice(decision.reason or "forbidden", list(decision.unmet))
        return _produce(children)

    def render(
        self,
        state: RoleState,
        children: Any,
        fallback: Any = None,
        location: Optional[str] = None,
    ) -> Any:
        return self.render_decision(self.evaluate(state, location), children, fallback)

    @classmethod
    def level(cls, required_level, page_url: Optional[str] = None) -> "Guard":
        return cls(LevelRequirement(required_level, page_url))

    @classmethod
    def permissions(cls, pairs: Sequence[PairLike], require_all: bool = True) -> "Guard":
        return cls(PermissionRequirement(pairs, require_all))


class RouteGuard:
    """Guard for route entry that also redirects on denial.

    ``navigate`` is called at most once per distinct denied state: repeated
    renders with the same location and outcome do not redirect again.
    """

    def __init__(
        self,
        guard: Guard,
        navigate: Callable[[str], None],
        login_url: Optional[str] = None,
        unauthorized_url: Optional[str] = None,
    ):
        self.guard = guard
        self.navigate = navigate
        self.login_url = login_url or settings.LOGIN_URL
        self.unauthorized_url = unauthorized_url or settings.UNAUTHORIZED_URL
        self._last_redirect = None

    def redirect_target(self, decision: GuardDecision) -> Optional[str]:
        if not decision.denied:
            return None
        if decision.reason == "unauthenticated":
            return self.login_url
        return self.unauthorized_url

    def render(
        self,
        state: RoleState,
        children: Any,
        fallback: Any = None,
        location: Optional[str] = None,
    ) -> Any:
        decision = self.guard.evaluate(state, location)
        target = self.redirect_target(decision)
        if target is not None:
            key = (location, decision.reason, target)
            if key != self._last_redirect:
                self._last_redirect = key
                logger.info("Redirecting %s to %s (%s)", location, target, decision.reason)
                self.navigate(target)
        elif decision.allowed:
            self._last_redirect = None
        return self.guard.render_decision(decision, children, fallback)
