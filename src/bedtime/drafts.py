"""
Recently generated stories that have not been saved yet.

Drafts live in an injected key/value store keyed by owner. Each owner keeps
at most ``max_entries`` drafts; saving one more evicts the oldest.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 10


class DraftStore(ABC):
    """Interface shared by the draft backends."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries

    def _count(self, limit: Optional[int]) -> int:
        """Number of drafts to return; ``limit`` is clamped to 1..max_entries."""
        if limit is None:
            return self.max_entries
        return max(1, min(limit, self.max_entries))

    @abstractmethod
    def save(self, owner: str, draft: Dict[str, Any]) -> None:
        """Store ``draft`` (must carry an ``id``) as the owner's newest draft."""

    @abstractmethod
    def get(self, owner: str, draft_id: str) -> Optional[Dict[str, Any]]:
        """One draft, or None if unknown or evicted."""

    @abstractmethod
    def recent(self, owner: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """The owner's drafts, newest first."""


class MemoryDraftStore(DraftStore):
    """Process-local draft store."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        super().__init__(max_entries)
        self._drafts: Dict[str, "OrderedDict[str, Dict[str, Any]]"] = {}
        self._lock = threading.Lock()

    def save(self, owner: str, draft: Dict[str, Any]) -> None:
        draft_id = draft["id"]
        with self._lock:
            entries = self._drafts.setdefault(owner, OrderedDict())
            entries[draft_id] = dict(draft)
            entries.move_to_end(draft_id)
            while len(entries) > self.max_entries:
                evicted_id, _ = entries.popitem(last=False)
                logger.debug(f"Evicted draft {evicted_id} for {owner}")

    def get(self, owner: str, draft_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            draft = self._drafts.get(owner, {}).get(draft_id)
            return dict(draft) if draft is not None else None

    def recent(self, owner: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        with self._lock:
            drafts = [dict(draft) for draft in reversed(self._drafts.get(owner, {}).values())]
        return drafts[:self._count(limit)]


class RedisDraftStore(DraftStore):
    """
    Redis-backed draft store.

    Layout: ``{prefix}:{owner}`` is a list of draft ids, newest first, and
    ``{prefix}:{owner}:{draft_id}`` holds the JSON body with a TTL.
    """

    def __init__(
        self,
        client,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_seconds: Optional[int] = None,
        prefix: str = "drafts",
    ):
        super().__init__(max_entries)
        self._client = client
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix

    def _index_key(self, owner: str) -> str:
        return f"{self.prefix}:{owner}"

    def _draft_key(self, owner: str, draft_id: str) -> str:
        return f"{self.prefix}:{owner}:{draft_id}"

    def save(self, owner: str, draft: Dict[str, Any]) -> None:
        draft_id = draft["id"]
        index_key = self._index_key(owner)

        pipe = self._client.pipeline()
        pipe.lrem(index_key, 0, draft_id)
        pipe.lpush(index_key, draft_id)
        pipe.set(self._draft_key(owner, draft_id), json.dumps(draft), ex=self.ttl_seconds)
        pipe.execute()

        evicted = self._client.lrange(index_key, self.max_entries, -1)
        if evicted:
            self._client.delete(*[self._draft_key(owner, _decode(draft_id)) for draft_id in evicted])
            self._client.ltrim(index_key, 0, self.max_entries - 1)
            logger.debug(f"Evicted {len(evicted)} drafts for {owner}")

    def get(self, owner: str, draft_id: str) -> Optional[Dict[str, Any]]:
        raw = self._client.get(self._draft_key(owner, draft_id))
        return json.loads(raw) if raw else None

    def recent(self, owner: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        draft_ids = self._client.lrange(self._index_key(owner), 0, self._count(limit) - 1)
        if not draft_ids:
            return []
        bodies = self._client.mget([self._draft_key(owner, _decode(draft_id)) for draft_id in draft_ids])
        # Bodies whose TTL ran out are skipped
        return [json.loads(body) for body in bodies if body]


def _decode(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


def create_draft_store(
    backend: str = "memory",
    max_entries: int = DEFAULT_MAX_ENTRIES,
    redis_url: Optional[str] = None,
    ttl_seconds: Optional[int] = None,
) -> DraftStore:
    """
    Create the configured draft store.

    Args:
        backend: 'memory' or 'redis'
        max_entries: Drafts kept per owner
        redis_url: Connection URL for the redis backend
        ttl_seconds: Expiry of draft bodies in redis

    Raises:
        ValueError: For an unknown backend or a redis backend without URL
    """
    if backend == "memory":
        return MemoryDraftStore(max_entries=max_entries)
    if backend == "redis":
        if not redis_url:
            raise ValueError("REDIS_URL is required for the redis draft store")
        import redis

        client = redis.from_url(redis_url, decode_responses=True)
        logger.info("Redis draft store enabled")
        return RedisDraftStore(client, max_entries=max_entries, ttl_seconds=ttl_seconds)
    raise ValueError(f"Unknown draft store backend: {backend}. Supported: memory, redis")
