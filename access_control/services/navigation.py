"""Navigation filter: the part of the page catalog a role may see."""

from dataclasses import dataclass
from typing import List

from access_control.core.levels import AccessLevel
from access_control.core.pages import PageCatalog, default_catalog
from access_control.services.evaluator import RoleContext


@dataclass(frozen=True)
class NavItem:
    url: str
    name: str
    category: str
    access_level: AccessLevel


@dataclass(frozen=True)
class NavGroup:
    category: str
    pages: List[NavItem]


class NavigationFilter:
    """Filters a catalog by ``can_view`` for one role context."""

    def __init__(self, catalog: PageCatalog = default_catalog):
        self.catalog = catalog

    def accessible_pages(self, ctx: RoleContext) -> List[NavItem]:
        return [
            NavItem(p.url, p.name, p.category, ctx.access_level(p.url))
            for p in self.catalog
            if ctx.can_view(p.url)
        ]

    def pages_by_category(self, ctx: RoleContext, category: str) -> List[NavItem]:
        return [item for item in self.accessible_pages(ctx) if item.category == category]

    def category_has_any_access(self, ctx: RoleContext, category: str) -> bool:
        return len(self.pages_by_category(ctx, category)) > 0

    def menu(self, ctx: RoleContext) -> List[NavGroup]:
        """Groups in catalog order; categories with no visible page are omitted."""
        accessible = self.accessible_pages(ctx)
        groups = []
        for category in self.catalog.categories():
            pages = [item for item in accessible if item.category == category]
            if pages:
                groups.append(NavGroup(category, pages))
        return groups


navigation_filter = NavigationFilter()
