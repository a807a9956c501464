"""Async loading of role access contexts with a short-lived cache."""

import asyncio
import logging
from typing import Callable, Dict, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from access_control.core.config import settings
from access_control.core.exceptions import ContextLoadError
from access_control.services.cache_service import CacheService, cache_service, context_key
from access_control.services.evaluator import RoleContext, load_context
from access_control.services.guard import RoleState

logger = logging.getLogger("access_control.context")


class ContextLoader:
    """Fetches ``RoleContext`` snapshots off the event loop.

    The cache round trips and the store query both run in worker threads.
    Each store query opens its own session, so loads for independent roles
    can run concurrently.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        cache: Optional[CacheService] = None,
        ttl_seconds: Optional[int] = None,
    ):
        if session_factory is None:
            from access_control.db.session import SessionLocal
            session_factory = SessionLocal
        self.session_factory = session_factory
        self.cache = cache if cache is not None else cache_service
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.ACCESS_CACHE_TTL_SECONDS

    def _fetch(self, role_id: int) -> Optional[RoleContext]:
        db = self.session_factory()
        try:
            return load_context(db, role_id)
        finally:
            db.close()

    async def load(self, role_id: int) -> Optional[RoleContext]:
        """Context for ``role_id``; ``None`` if the role does not exist.

        Raises:
            ContextLoadError: when the store could not be read.
        """
        cached = await asyncio.to_thread(self.cache.get_json, context_key(role_id))
        if cached:
            return RoleContext.from_dict(cached)

        try:
            ctx = await asyncio.to_thread(self._fetch, role_id)
        except SQLAlchemyError as e:
            logger.error("Loading access context for role %s failed: %s", role_id, e)
            raise ContextLoadError(role_id) from e

        if ctx is not None:
            await asyncio.to_thread(
                self.cache.set_json, context_key(role_id), ctx.to_dict(), self.ttl_seconds,
            )
        return ctx

    async def load_many(self, role_ids: Iterable[int]) -> Dict[int, Optional[RoleContext]]:
        role_ids = list(dict.fromkeys(role_ids))
        results = await asyncio.gather(*(self.load(r) for r in role_ids))
        return dict(zip(role_ids, results))

    async def state(self, role_id: Optional[int]) -> RoleState:
        """Resolved state for a guard: ready (possibly unauthenticated) or error."""
        if role_id is None:
            return RoleState.ready(None)
        try:
            return RoleState.ready(await self.load(role_id))
        except ContextLoadError as e:
            return RoleState.failed(e)

    def invalidate(self, role_id: int) -> None:
        self.cache.invalidate_roles([role_id])


_default_loader: Optional[ContextLoader] = None


def get_context_loader() -> ContextLoader:
    """FastAPI dependency returning the process-wide loader."""
    global _default_loader
    if _default_loader is None:
        _default_loader = ContextLoader()
    return _default_loader
