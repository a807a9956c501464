"""Page catalog: the application's route table as seen by the engine."""

from dataclasses import dataclass
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class Page:
    url: str
    name: str
    category: str = "general"


class PageCatalog:
    """Ordered, url-keyed collection of pages."""

    def __init__(self, pages: Iterable[Page]):
        self._pages: List[Page] = []
        self._by_url = {}
        for page in pages:
            if page.url in self._by_url:
                raise ValueError(f"Duplicate page url in catalog: {page.url}")
            self._pages.append(page)
            self._by_url[page.url] = page

    def __iter__(self):
        return iter(self._pages)

    def __len__(self) -> int:
        return len(self._pages)

    def __contains__(self, url: str) -> bool:
        return url in self._by_url

    def get(self, url: str) -> Optional[Page]:
        return self._by_url.get(url)

    def urls(self) -> List[str]:
        return [p.url for p in self._pages]

    def categories(self) -> List[str]:
        """Distinct categories in first-seen order."""
        seen: List[str] = []
        for page in self._pages:
            if page.category not in seen:
                seen.append(page.category)
        return seen

    def in_category(self, category: str) -> List[Page]:
        return [p for p in self._pages if p.category == category]


DEFAULT_PAGES = [
    Page("/", "Dashboard", "main"),
    Page("/sales/quotations", "Quotations", "sales"),
    Page("/sales/invoices", "Invoices", "sales"),
    Page("/sales/tax-invoices", "Tax Invoices", "sales"),
    Page("/sales/receipts", "Receipts", "sales"),
    Page("/production/calendar", "Production Calendar", "production"),
    Page("/production/organization", "Organization", "production"),
    Page("/production/work-queue-planning", "Work Queue Planning", "production"),
    Page("/production/work-orders", "Work Orders", "production"),
    Page("/production/daily-work-log", "Daily Work Log", "production"),
    Page("/accounting", "Accounting", "accounting"),
    Page("/inventory", "Inventory", "inventory"),
    Page("/customers", "Customers", "customers"),
    Page("/master-data", "Master Data", "master_data"),
    Page("/reports/production", "Production Reports", "reports"),
    Page("/users", "User Management", "users"),
    Page("/page-access-management", "Page Access Management", "users"),
]

default_catalog = PageCatalog(DEFAULT_PAGES)
