"""Per-conversation mutual exclusion."""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class ConversationLocks:
    """
    Lock registry keyed by conversation id.

    Work on the same conversation is serialized while work on different
    conversations never contends. Entries are dropped once nothing holds or
    waits on them.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: Dict[str, list] = {}  # id -> [lock, holders]

    @contextmanager
    def hold(self, conversation_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(conversation_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[conversation_id]

    def active(self) -> int:
        """Number of conversations currently held or awaited."""
        with self._guard:
            return len(self._entries)
