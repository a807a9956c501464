"""Page access matrix: hierarchical (role, page) -> level rules."""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from access_control.core.exceptions import BatchCommitError, ResourceNotFoundError
from access_control.core.levels import AccessLevel, parse_level, satisfies
from access_control.core.pages import Page, PageCatalog, default_catalog
from access_control.models.access_rule import AccessRule
from access_control.models.role import Role
from access_control.services.audit_service import audit_service
from access_control.services.cache_service import cache_service
from access_control.services.evaluator import load_context

logger = logging.getLogger("access_control.page_access")

ChangeLike = Union[Mapping[str, Any], Any]


def _field(change: ChangeLike, name: str):
    if isinstance(change, Mapping):
        return change.get(name)
    return getattr(change, name, None)


class PageAccessService:
    """Reads and mutates the page access matrix."""

    @staticmethod
    def access_level(db: Session, role_id: int, page_url: str) -> AccessLevel:
        ctx = load_context(db, role_id)
        if ctx is None:
            return AccessLevel.NONE
        return ctx.access_level(page_url)

    @staticmethod
    def can_view(db: Session, role_id: int, page_url: str) -> bool:
        return satisfies(PageAccessService.access_level(db, role_id, page_url), AccessLevel.READ)

    @staticmethod
    def can_edit(db: Session, role_id: int, page_url: str) -> bool:
        return satisfies(PageAccessService.access_level(db, role_id, page_url), AccessLevel.EDIT)

    @staticmethod
    def can_create(db: Session, role_id: int, page_url: str) -> bool:
        return satisfies(PageAccessService.access_level(db, role_id, page_url), AccessLevel.CREATE)

    @staticmethod
    def can_delete(db: Session, role_id: int, page_url: str) -> bool:
        return satisfies(PageAccessService.access_level(db, role_id, page_url), AccessLevel.CREATE)

    @staticmethod
    def list_rules(db: Session, role_id: int) -> List[AccessRule]:
        if not db.query(Role.id).filter(Role.id == role_id).first():
            raise ResourceNotFoundError(f"Role {role_id} not found")
        return (
            db.query(AccessRule)
            .filter(AccessRule.role_id == role_id)
            .order_by(AccessRule.page_url)
            .all()
        )

    @staticmethod
    def get_config(db: Session, catalog: PageCatalog = default_catalog) -> Dict[str, Any]:
        """Payload for the matrix editor: roles, pages and every stored rule."""
        roles = db.query(Role).order_by(Role.id).all()
        rules = db.query(AccessRule).order_by(AccessRule.page_url, AccessRule.role_id).all()
        return {
            "roles": roles,
            "pages": list(catalog),
            "current_access": rules,
        }

    @staticmethod
    def bulk_update(
        db: Session,
        changes: Iterable[ChangeLike],
        catalog: PageCatalog = default_catalog,
        actor_role_id: Optional[int] = None,
        audit_meta: Optional[dict] = None,
    ) -> Dict[str, int]:
        """Apply a list of ``{page_url, role_id, access_level}`` changes atomically.

        Every level is validated before anything is written. Repeated cells
        collapse to the last entry in submission order.

        Raises:
            UnknownAccessLevelError: if any level is invalid (nothing written).
            ResourceNotFoundError: if any role id is unknown (nothing written).
            BatchCommitError: if the store rejected the batch (rolled back).
        """
        changes = list(changes)
        wanted: Dict[Tuple[str, int], AccessLevel] = {}
        for change in changes:
            level = parse_level(_field(change, "access_level"))
            key = (_field(change, "page_url"), int(_field(change, "role_id")))
            wanted[key] = level

        if not wanted:
            return {"submitted": 0, "created": 0, "updated": 0}

        role_ids = {role_id for _, role_id in wanted}
        known = {r for (r,) in db.query(Role.id).filter(Role.id.in_(role_ids)).all()}
        unknown = sorted(role_ids - known)
        if unknown:
            raise ResourceNotFoundError(f"Unknown role ids in batch: {unknown}")

        page_urls = {url for url, _ in wanted}
        existing = {
            (r.page_url, r.role_id): r
            for r in db.query(AccessRule).filter(
                AccessRule.role_id.in_(role_ids), AccessRule.page_url.in_(page_urls),
            ).all()
        }

        created = updated = 0
        old_values = {}
        try:
            for (page_url, role_id), level in wanted.items():
                rule = existing.get((page_url, role_id))
                if rule is None:
                    page = catalog.get(page_url)
                    db.add(AccessRule(
                        role_id=role_id,
                        page_url=page_url,
                        page_name=page.name if page else None,
                        access_level=level.value,
                    ))
                    created += 1
                elif rule.access_level != level.value:
                    old_values[f"{page_url}|{role_id}"] = rule.access_level
                    rule.access_level = level.value
                    updated += 1
            audit_service.record(
                db, actor_role_id, "page_access.bulk_updated", "page_access",
                old_value=old_values or None,
                new_value=[
                    {"page_url": url, "role_id": rid, "access_level": lvl.value}
                    for (url, rid), lvl in wanted.items()
                ],
                **(audit_meta or {}),
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Bulk update of %d changes rolled back: %s", len(wanted), e)
            raise BatchCommitError(changes=len(wanted)) from e

        cache_service.invalidate_roles(role_ids)
        logger.info(
            "Bulk update applied: %d submitted, %d created, %d updated",
            len(changes), created, updated,
        )
        return {"submitted": len(changes), "created": created, "updated": updated}

    @staticmethod
    def materialize_all(
        db: Session,
        roles: Optional[Iterable[Role]] = None,
        pages: Optional[Iterable[Page]] = None,
        default_level: Union[str, AccessLevel] = AccessLevel.NONE,
        actor_role_id: Optional[int] = None,
    ) -> int:
        """Insert a rule at ``default_level`` for every (role, page) pair lacking one.

        Existing rules are never modified. Returns the number of rows inserted.
        """
        level = parse_level(default_level)
        roles = list(roles) if roles is not None else db.query(Role).order_by(Role.id).all()
        pages = list(pages) if pages is not None else list(default_catalog)

        present = {(r.role_id, r.page_url) for r in db.query(AccessRule.role_id, AccessRule.page_url).all()}
        created = 0
        touched = set()
        try:
            for role in roles:
                for page in pages:
                    if (role.id, page.url) in present:
                        continue
                    db.add(AccessRule(
                        role_id=role.id,
                        page_url=page.url,
                        page_name=page.name,
                        access_level=level.value,
                    ))
                    present.add((role.id, page.url))
                    touched.add(role.id)
                    created += 1
            if created:
                audit_service.record(
                    db, actor_role_id, "page_access.materialized", "page_access",
                    new_value={"created": created, "access_level": level.value},
                )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise BatchCommitError("Create-all failed and was rolled back", changes=created) from e

        cache_service.invalidate_roles(touched)
        logger.info("Materialized %d page access rules at '%s'", created, level.value)
        return created


page_access_service = PageAccessService()
