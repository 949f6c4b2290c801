"""Background vector indexing for snippet mutations.

Every create/update/delete of a snippet submits one task here after the
authoritative write has committed. Tasks run on a private thread pool,
detached from the request that triggered them: the caller never waits for
them and their failures are logged, never raised. The vector index is
therefore eventually consistent with the record store.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures

from marginalia.providers.base import Embedder, VectorIndex
from marginalia.providers.vector_index import TEXT_PREVIEW_CHARS

logger = logging.getLogger(__name__)


class SnippetIndexer:
    """Fire-and-forget upserts and deletes against the vector index.

    Args:
        embedder: Produces the vector stored for a snippet.
        index: Derived vector index to write to.
        max_workers: Size of the background pool.
    """

    def __init__(self, embedder: Embedder, index: VectorIndex, max_workers: int = 2) -> None:
        self._embedder = embedder
        self._index = index
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="marginalia-index"
        )
        self._pending: set[Future] = set()
        self._lock = threading.Lock()
        self.failures = 0

    def schedule_upsert(self, owner_id: str, snippet_id: str, text: str) -> Future:
        """Queue embedding *text* and upserting it under *snippet_id*."""
        return self._submit("upsert", snippet_id, self._upsert, owner_id, snippet_id, text)

    def schedule_delete(self, snippet_id: str) -> Future:
        """Queue removal of *snippet_id*'s vector entry."""
        return self._submit("delete", snippet_id, self._index.delete, snippet_id)

    def pending(self) -> int:
        """Return the number of tasks not yet finished."""
        with self._lock:
            return len(self._pending)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every task submitted so far has finished.

        Returns False if *timeout* elapsed first.
        """
        with self._lock:
            outstanding = set(self._pending)
        if not outstanding:
            return True
        _, not_done = wait_futures(outstanding, timeout=timeout)
        return not not_done

    def close(self) -> None:
        """Finish outstanding tasks and stop the pool."""
        self._executor.shutdown(wait=True)

    # ------------------------------------------------------------------
    # Task bodies
    # ------------------------------------------------------------------

    def _upsert(self, owner_id: str, snippet_id: str, text: str) -> None:
        vector = self._embedder.embed(text)
        self._index.upsert(
            snippet_id,
            vector,
            {"owner_id": owner_id, "text_preview": text[:TEXT_PREVIEW_CHARS]},
        )

    def _submit(self, action: str, snippet_id: str, fn: Callable, *args) -> Future:
        future = self._executor.submit(self._run, action, snippet_id, fn, *args)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _run(self, action: str, snippet_id: str, fn: Callable, *args) -> bool:
        try:
            fn(*args)
        except Exception:
            with self._lock:
                self.failures += 1
            logger.warning(
                "Vector index %s failed for snippet %s; entry may be stale until reindexed",
                action,
                snippet_id,
                exc_info=True,
            )
            return False
        logger.debug("Vector index %s done for snippet %s", action, snippet_id)
        return True

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
