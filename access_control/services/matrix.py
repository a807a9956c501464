"""Permission matrix editing session: baseline, working copy, diff, commit.

The editor loads a baseline once and edits a separate working copy. Commit
sends only the changed cells, as one batch, through a caller-supplied
``submit`` callable (the HTTP client or ``PageAccessService.bulk_update``).
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from access_control.core.config import settings
from access_control.core.exceptions import BatchCommitError
from access_control.core.levels import AccessLevel, coerce_level, parse_level

logger = logging.getLogger("access_control.matrix")

# page_url -> role_id -> level
Matrix = Dict[str, Dict[int, AccessLevel]]


@dataclass(frozen=True)
class AccessChange:
    page_url: str
    role_id: int
    access_level: AccessLevel

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page_url": self.page_url,
            "role_id": self.role_id,
            "access_level": self.access_level.value,
        }


@dataclass
class CommitResult:
    status: str  # "no_changes" | "committed"
    changes: List[AccessChange] = field(default_factory=list)
    response: Any = None

    @property
    def committed(self) -> bool:
        return self.status == "committed"


def _get(obj: Any, name: str):
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name)


def build_matrix(pages: Iterable[Any], roles: Iterable[Any], rules: Iterable[Any]) -> Matrix:
    """Matrix covering every (page, role) pair, missing cells filled with ``none``.

    Accepts ORM rows, schema objects or plain dicts for each argument.
    """
    role_ids = [int(_get(r, "id")) for r in roles]
    stored = {
        (_get(rule, "page_url"), int(_get(rule, "role_id"))): coerce_level(_get(rule, "access_level"))
        for rule in rules
    }
    matrix: Matrix = {}
    for page in pages:
        url = _get(page, "url")
        matrix[url] = {rid: stored.get((url, rid), AccessLevel.NONE) for rid in role_ids}
    return matrix


def diff_matrices(baseline: Matrix, working: Matrix) -> List[AccessChange]:
    """Cells whose level differs between the two matrices.

    A cell absent on either side counts as ``none``. Output is ordered by
    page then role so the batch is deterministic.
    """
    pages = list(baseline)
    pages.extend(p for p in working if p not in baseline)

    changes: List[AccessChange] = []
    for page_url in pages:
        base_row = baseline.get(page_url, {})
        work_row = working.get(page_url, {})
        role_ids = list(base_row)
        role_ids.extend(r for r in work_row if r not in base_row)
        for role_id in role_ids:
            before = base_row.get(role_id) or AccessLevel.NONE
            after = work_row.get(role_id) or AccessLevel.NONE
            if before != after:
                changes.append(AccessChange(page_url, role_id, after))
    return changes


class MatrixEditor:
    """One administrator's editing session over the matrix."""

    def __init__(self, baseline: Matrix):
        self._baseline: Matrix = copy.deepcopy(baseline)
        self._working: Matrix = copy.deepcopy(baseline)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "MatrixEditor":
        """Build from a ``{roles, pages, current_access}`` payload."""
        return cls(build_matrix(config["pages"], config["roles"], config["current_access"]))

    @property
    def has_changes(self) -> bool:
        """True while the working copy differs from the baseline."""
        return bool(self.diff())

    @property
    def baseline(self) -> Matrix:
        return copy.deepcopy(self._baseline)

    @property
    def working(self) -> Matrix:
        return copy.deepcopy(self._working)

    def level(self, page_url: str, role_id: int) -> AccessLevel:
        return self._working.get(page_url, {}).get(role_id, AccessLevel.NONE)

    def set_level(self, page_url: str, role_id: int, level) -> None:
        self._working.setdefault(page_url, {})[role_id] = parse_level(level)

    def diff(self) -> List[AccessChange]:
        return diff_matrices(self._baseline, self._working)

    def revert(self) -> None:
        self._working = copy.deepcopy(self._baseline)

    def reload(self, config: Mapping[str, Any]) -> None:
        self._baseline = build_matrix(config["pages"], config["roles"], config["current_access"])
        self.revert()

    def commit(self, submit: Callable[[List[AccessChange]], Any]) -> CommitResult:
        """Submit the diff as one batch.

        On failure the exception propagates and the session keeps its
        unsaved changes; the baseline only moves after ``submit`` returns.
        """
        changes = self.diff()
        if not changes:
            return CommitResult(status="no_changes")

        response = submit(changes)

        self._baseline = copy.deepcopy(self._working)
        logger.info("Committed %d matrix changes", len(changes))
        return CommitResult(status="committed", changes=changes, response=response)

    def commit_with_retry(
        self, submit: Callable[[List[AccessChange]], Any], attempts: Optional[int] = None,
    ) -> CommitResult:
        """Like ``commit`` but resubmits the whole batch on ``BatchCommitError``."""
        if attempts is None:
            attempts = settings.BULK_COMMIT_RETRIES
        last_error: Optional[BatchCommitError] = None
        for attempt in range(1, max(attempts, 1) + 1):
            try:
                return self.commit(submit)
            except BatchCommitError as e:
                last_error = e
                logger.warning("Matrix commit attempt %d/%d failed: %s", attempt, attempts, e.message)
        raise last_error
