"""Role access context: one evaluator for page levels and permission grants.

A ``RoleContext`` is an immutable snapshot of everything stored for one role.
Every check is a pure function of the context and the request, so callers
pass the current role explicitly instead of looking it up from globals.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from sqlalchemy.orm import Session

from access_control.core.levels import AccessLevel, coerce_level, max_level, satisfies
from access_control.models.access_rule import AccessRule
from access_control.models.permission import Permission, RolePermission
from access_control.models.role import Role


class PermissionPair(NamedTuple):
    resource: str
    action: str

    def __str__(self) -> str:
        return f"{self.resource}.{self.action}"


PairLike = Union[PermissionPair, Tuple[str, str], Mapping[str, str]]


def as_pair(value: PairLike) -> PermissionPair:
    """Normalize a tuple or a ``{"resource", "action"}`` mapping."""
    if isinstance(value, PermissionPair):
        return value
    if isinstance(value, Mapping):
        return PermissionPair(value["resource"], value["action"])
    resource, action = value
    return PermissionPair(resource, action)


@dataclass(frozen=True)
class RoleContext:
    role_id: int
    name: str
    is_superuser: bool = False
    is_active: bool = True
    rules: Mapping[str, AccessLevel] = field(default_factory=dict)
    grants: FrozenSet[PermissionPair] = frozenset()

    @property
    def bypass(self) -> bool:
        return self.is_superuser and self.is_active

    # ---- page levels ----

    def access_level(self, page_url: str) -> AccessLevel:
        if self.bypass:
            return max_level()
        if not self.is_active:
            return AccessLevel.NONE
        return self.rules.get(page_url, AccessLevel.NONE)

    def can(self, page_url: str, need: AccessLevel) -> bool:
        return satisfies(self.access_level(page_url), need)

    def can_view(self, page_url: str) -> bool:
        return self.can(page_url, AccessLevel.READ)

    def can_edit(self, page_url: str) -> bool:
        return self.can(page_url, AccessLevel.EDIT)

    def can_create(self, page_url: str) -> bool:
        return self.can(page_url, AccessLevel.CREATE)

    def can_delete(self, page_url: str) -> bool:
        # No dedicated delete tier: deletion is gated with creation.
        return self.can(page_url, AccessLevel.CREATE)

    def page_permissions(self, page_url: str) -> Dict[str, Any]:
        level = self.access_level(page_url)
        return {
            "access_level": level.value,
            "can_view": satisfies(level, AccessLevel.READ),
            "can_edit": satisfies(level, AccessLevel.EDIT),
            "can_create": satisfies(level, AccessLevel.CREATE),
            "can_delete": satisfies(level, AccessLevel.CREATE),
        }

    # ---- resource-action grants ----

    def has_permission(self, resource: str, action: str) -> bool:
        if self.bypass:
            return True
        if not self.is_active:
            return False
        return PermissionPair(resource, action) in self.grants

    def has_any(self, pairs: Iterable[PairLike]) -> bool:
        return any(self.has_permission(*as_pair(p)) for p in pairs)

    def has_all(self, pairs: Iterable[PairLike]) -> bool:
        return all(self.has_permission(*as_pair(p)) for p in pairs)

    def missing(self, pairs: Sequence[PairLike]) -> list:
        return [as_pair(p) for p in pairs if not self.has_permission(*as_pair(p))]

    # ---- cache serialization ----

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role_id": self.role_id,
            "name": self.name,
            "is_superuser": self.is_superuser,
            "is_active": self.is_active,
            "rules": {url: level.value for url, level in self.rules.items()},
            "grants": sorted([p.resource, p.action] for p in self.grants),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RoleContext":
        return cls(
            role_id=data["role_id"],
            name=data["name"],
            is_superuser=data.get("is_superuser", False),
            is_active=data.get("is_active", True),
            rules={url: coerce_level(level) for url, level in data.get("rules", {}).items()},
            grants=frozenset(PermissionPair(r, a) for r, a in data.get("grants", [])),
        )


def build_context(
    role: Role,
    rules: Iterable[AccessRule],
    permissions: Iterable[Permission],
) -> RoleContext:
    """Assemble a context from stored rows. Inactive permissions are not grants."""
    return RoleContext(
        role_id=role.id,
        name=role.name,
        is_superuser=bool(role.is_superuser),
        is_active=bool(role.is_active),
        rules={r.page_url: coerce_level(r.access_level) for r in rules},
        grants=frozenset(
            PermissionPair(p.resource, p.action) for p in permissions if p.is_active
        ),
    )


def load_context(db: Session, role_id: int) -> Optional[RoleContext]:
    """Read a role's context straight from the store. ``None`` if the role is unknown."""
    role = db.query(Role).filter(Role.id == role_id).first()
    if role is None:
        return None
    rules = db.query(AccessRule).filter(AccessRule.role_id == role_id).all()
    permissions = (
        db.query(Permission)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .filter(RolePermission.role_id == role_id)
        .all()
    )
    return build_context(role, rules, permissions)
