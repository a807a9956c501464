"""Access level hierarchy: none < read < edit < create.

Every component compares levels through ``rank``/``satisfies`` so there is a
single definition of the ordering. ``create`` is the owner tier and also
covers deletion, which has no level of its own.
"""

import logging
from enum import Enum
from typing import Optional, Union

from access_control.core.exceptions import UnknownAccessLevelError

logger = logging.getLogger("access_control.levels")


class AccessLevel(str, Enum):
    NONE = "none"
    READ = "read"
    EDIT = "edit"
    CREATE = "create"


_RANK = {
    AccessLevel.NONE: 0,
    AccessLevel.READ: 1,
    AccessLevel.EDIT: 2,
    AccessLevel.CREATE: 3,
}


def rank(level: AccessLevel) -> int:
    return _RANK[level]


def satisfies(have: AccessLevel, need: AccessLevel) -> bool:
    """True when ``have`` is at least as high as ``need``."""
    return _RANK[have] >= _RANK[need]


def max_level() -> AccessLevel:
    return AccessLevel.CREATE


def parse_level(value: Union[str, AccessLevel, None]) -> AccessLevel:
    """Strict conversion used on write paths.

    Raises:
        UnknownAccessLevelError: for anything but the four literal values.
    """
    if isinstance(value, AccessLevel):
        return value
    if isinstance(value, str):
        try:
            return AccessLevel(value)
        except ValueError:
            pass
    raise UnknownAccessLevelError(value)


def coerce_level(value: Optional[Union[str, AccessLevel]]) -> AccessLevel:
    """Lenient conversion used on read paths: unknown values fail closed to ``none``."""
    if value is None:
        return AccessLevel.NONE
    try:
        return parse_level(value)
    except UnknownAccessLevelError:
        logger.warning("Stored access level %r is not recognised, treating as 'none'", value)
        return AccessLevel.NONE
