"""
Per-server introspection cache with selection-driven cancellation.

A front end calls select() whenever the highlighted server changes. The
first selection of a name starts a background query and caches Pending;
moving the selection elsewhere marks that query's token as cancelled so
its eventual result is dropped instead of cached.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from mcp_reconcile.introspection.client import query_server
from mcp_reconcile.introspection.models import IntrospectionResult, Pending
from mcp_reconcile.utils.logging import get_logger

logger = get_logger(__name__)

QueryFunc = Callable[[Any], Awaitable[IntrospectionResult]]


class QueryToken:
    """Cooperative "this query was superseded" flag."""

    def __init__(self, name: str):
        self.name = name
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class IntrospectionCache:
    """Caches introspection results by server name for the session."""

    def __init__(self, query: QueryFunc = query_server):
        self._query = query
        self._results: Dict[str, IntrospectionResult] = {}
        self._inflight: Dict[str, Tuple[QueryToken, "asyncio.Task[Optional[IntrospectionResult]]"]] = {}
        self._selected: Optional[str] = None

    @property
    def selected(self) -> Optional[str]:
        return self._selected

    def get(self, name: str) -> Optional[IntrospectionResult]:
        return self._results.get(name)

    def is_inflight(self, name: str) -> bool:
        return name in self._inflight

    def select(self, name: str, definition: Any) -> IntrospectionResult:
        """
        Make ``name`` the current selection and return what is known about it.

        Must be called from a running event loop. Starts a query when the
        name has no cached result; a query still running for the same name
        is reused rather than duplicated.
        """
        if self._selected is not None and self._selected != name:
            previous = self._inflight.get(self._selected)
            if previous is not None:
                previous[0].cancel()
                logger.debug(f"Selection moved away from '{self._selected}', dropping its query")
        self._selected = name

        inflight = self._inflight.get(name)
        if inflight is not None:
            # Back on a name whose query never settled: let it count again
            inflight[0].cancelled = False
            return Pending()

        cached = self._results.get(name)
        if cached is not None:
            return cached

        token = QueryToken(name)
        self._results[name] = Pending()
        task = asyncio.get_running_loop().create_task(self._run(name, definition, token))
        self._inflight[name] = (token, task)
        return Pending()

    async def _run(self, name: str, definition: Any, token: QueryToken) -> Optional[IntrospectionResult]:
        try:
            result = await self._query(definition)
        finally:
            current = self._inflight.get(name)
            if current is not None and current[0] is token:
                del self._inflight[name]

        if token.cancelled:
            if name not in self._inflight and isinstance(self._results.get(name), Pending):
                del self._results[name]
            logger.debug(f"Discarded stale introspection result for '{name}'")
            return None

        self._results[name] = result
        return result

    async def wait(self, name: str) -> Optional[IntrospectionResult]:
        """Wait for the in-flight query of ``name`` and return the cached result."""
        inflight = self._inflight.get(name)
        if inflight is not None:
            await asyncio.wait({inflight[1]})
        return self._results.get(name)

    def invalidate(self, name: str) -> None:
        """Forget ``name`` so the next selection queries it again (reconnect)."""
        inflight = self._inflight.pop(name, None)
        if inflight is not None:
            inflight[0].cancel()
        self._results.pop(name, None)

    def clear(self) -> None:
        """Forget everything, e.g. after a full data refresh."""
        for token, _ in self._inflight.values():
            token.cancel()
        self._inflight.clear()
        self._results.clear()
        self._selected = None

    async def aclose(self) -> None:
        """Cancel and await every query still running."""
        tasks = [task for _, task in self._inflight.values()]
        self.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)
