"""In-memory response cache keyed by provider, messages, and options.

Entries live for the lifetime of the process. By default there is no
eviction and no expiry, so the store grows with every distinct request; pass
``max_entries`` to bound it with least-recently-used eviction.
"""

from __future__ import annotations

__all__ = ["ResponseCache"]

import hashlib
import json
from collections import OrderedDict
from collections.abc import Sequence

from polyglot.core.types import ChatMessage, GenerateOptions, LLMResponse


class ResponseCache:
    """Exact-match store of ``LLMResponse`` objects."""

    def __init__(self, *, max_entries: int | None = None) -> None:
        """Initialise the cache.

        Args:
            max_entries: Optional capacity. ``None`` means unbounded.
        """
        if max_entries is not None and max_entries < 1:
            msg = f"max_entries must be at least 1, got {max_entries}"
            raise ValueError(msg)
        self.max_entries = max_entries
        self._store: OrderedDict[str, LLMResponse] = OrderedDict()

    @staticmethod
    def make_key(
        provider_name: str,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | None,
    ) -> str:
        """Build a deterministic key from the request fields.

        Messages and options are serialised to canonical JSON (sorted keys,
        unset options dropped) so equal requests always share a key.
        """
        payload = json.dumps(
            {
                "messages": [message.model_dump(mode="json") for message in messages],
                "options": options.to_payload() if options is not None else None,
            },
            sort_keys=True,
            separators=(",", ":"),
        )
        digest = hashlib.sha256(payload.encode()).hexdigest()
        return f"{provider_name}:{digest}"

    def get(self, key: str) -> LLMResponse | None:
        """Return the cached response for *key*, or ``None`` on a miss."""
        response = self._store.get(key)
        if response is not None and self.max_entries is not None:
            self._store.move_to_end(key)
        return response

    def set(self, key: str, response: LLMResponse) -> None:
        """Insert or overwrite the entry for *key*."""
        if key in self._store:
            self._store.move_to_end(key)
        elif self.max_entries is not None and len(self._store) >= self.max_entries:
            self._store.popitem(last=False)
        self._store[key] = response

    @property
    def size(self) -> int:
        """Return the current number of cached entries."""
        return len(self._store)

    def clear(self) -> None:
        """Remove all cached entries."""
        self._store.clear()
