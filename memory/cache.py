"""
Conversation Cache
------------------
Bounded in-memory index over the ConversationStore.

Rules:
- Memory updates are synchronous, disk writes run in the background
- Fixed capacity, oldest conversation (by created_at) evicted first
- Eviction never touches disk
- Background work holds the store only, never the cache
"""

from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging
import threading

from .conversation import ConversationContext
from .store import ConversationId, ConversationStore, conversation_key

DEFAULT_MEMORY_CAPACITY = 5


class ConversationCache:
    """
    Read/write-through accelerator over a ConversationStore.

    Eviction is by conversation age, not by last access. Among entries
    with the same created_at the one inserted first is evicted.
    """

    def __init__(
        self,
        store: ConversationStore,
        capacity: int = DEFAULT_MEMORY_CAPACITY,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")

        self._store = store
        self._capacity = capacity
        self._memory: Dict[str, ConversationContext] = {}
        self._lock = threading.Lock()
        self._logger = logging.getLogger("freewrite.memory.cache")

        # Single worker keeps background writes in submission order
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="conversation-cache"
        )
        self._pending: List[Future] = []

        # Ids with a delete in flight, and a counter bumped on every removal
        self._removing: Dict[str, int] = {}
        self._generations: Dict[str, int] = {}

        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def store(self) -> ConversationStore:
        return self._store

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, conversation_id: ConversationId) -> Optional[ConversationContext]:
        """Get a conversation from memory, lazily loading from disk on a miss."""
        key = conversation_key(conversation_id)

        with self._lock:
            cached = self._memory.get(key)
            if cached is not None:
                self._hits += 1
                return cached
            self._misses += 1
            if key in self._removing:
                return None
            generation = self._generations.get(key, 0)

        context = self._store.load(key)
        if context is None:
            self._logger.debug(f"Cache miss (memory and disk): {key}")
            return None

        with self._lock:
            # A put() may have landed while we were reading from disk
            current = self._memory.get(key)
            if current is not None:
                return current
            # ...or a remove(), in which case the record we read is gone
            if key in self._removing or self._generations.get(key, 0) != generation:
                return None
            self._insert(key, context)

        self._logger.debug(f"Loaded conversation {key} from disk")
        return context

    def put(self, conversation_id: ConversationId, context: ConversationContext) -> Future:
        """
        Store a conversation.

        Memory is updated before returning; the disk write is scheduled
        in the background. The returned future only exists so callers
        that need to (tests, shutdown) can wait for the write.
        """
        key = conversation_key(conversation_id)

        with self._lock:
            self._insert(key, context)

        return self._submit(self._store.save, key, context)

    def remove(self, conversation_id: ConversationId) -> None:
        """
        Remove a conversation from memory and disk.

        The delete is queued behind earlier background writes, so a save
        still pending for this id cannot bring the record back. Returns
        once the record is gone. Store failures are logged, not raised.
        """
        key = conversation_key(conversation_id)

        with self._lock:
            self._memory.pop(key, None)
            self._removing[key] = self._removing.get(key, 0) + 1
            self._generations[key] = self._generations.get(key, 0) + 1

        try:
            self._submit(self._store.delete, key).result()
        except Exception as e:
            self._logger.warning(f"Failed to remove conversation {key}: {e}")
        finally:
            with self._lock:
                remaining = self._removing[key] - 1
                if remaining:
                    self._removing[key] = remaining
                else:
                    del self._removing[key]

        self._logger.info(f"Removed conversation {key}")

    def cleanup(self, cutoff: datetime) -> Future:
        """Sweep disk records created before cutoff in the background."""
        return self._submit(self._store.sweep, cutoff)

    def _insert(self, key: str, context: ConversationContext) -> None:
        """Insert into the memory table and enforce capacity. Caller holds the lock."""
        self._memory[key] = context

        if len(self._memory) > self._capacity:
            # min() keeps the first of equal keys, i.e. insertion order
            oldest_key = min(self._memory, key=lambda k: self._memory[k].created_at)
            del self._memory[oldest_key]
            self._evictions += 1
            self._logger.debug(f"Evicted conversation {oldest_key} from memory")

    def _submit(self, fn, *args: Any) -> Future:
        future = self._executor.submit(fn, *args)
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(future)
        future.add_done_callback(self._log_background_failure)
        return future

    def _log_background_failure(self, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self._logger.warning(f"Background cache task failed: {error}")

    def flush(self, timeout: Optional[float] = None) -> None:
        """Wait for background writes and sweeps submitted so far."""
        with self._lock:
            pending = list(self._pending)
        for future in pending:
            try:
                future.result(timeout=timeout)
            except Exception as e:
                self._logger.warning(f"Background cache task failed: {e}")
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()]

    def close(self) -> None:
        """Finish pending background work and release the worker thread."""
        self.flush()
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def contains(self, conversation_id: ConversationId) -> bool:
        """Check whether a conversation is currently held in memory."""
        with self._lock:
            return conversation_key(conversation_id) in self._memory

    def cached_ids(self) -> List[str]:
        """Ids held in memory, in insertion order."""
        with self._lock:
            return list(self._memory)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "entries": len(self._memory),
                "capacity": self._capacity,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._memory)
