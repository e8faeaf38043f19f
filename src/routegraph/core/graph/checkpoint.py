"""Checkpoint collaborators.

A checkpointer persists one RunState per thread id. The executor loads it
at the start of a run and saves it when the run reaches END (or is
cancelled), so a follow-up run on the same thread continues the
conversation.

Any object with these two methods works:

    load(thread_id) -> Optional[RunState]
    save(thread_id, state) -> None

Failures should be raised as StorageError.
"""

import threading
from typing import Dict, List, Optional, Protocol, runtime_checkable

from routegraph.core.errors import StorageError
from routegraph.core.graph.state import RunState
from routegraph.core.logging import LogComponent, get_logger

logger = get_logger(LogComponent.CHECKPOINT)


@runtime_checkable
class Checkpointer(Protocol):
    """Contract for thread-keyed state persistence."""

    def load(self, thread_id: str) -> Optional[RunState]:
        ...

    def save(self, thread_id: str, state: RunState) -> None:
        ...


class MemorySaver:
    """In-process checkpointer.

    Stores a deep copy per thread so later mutation of a returned state
    never leaks into the saved one. Safe to share between concurrent runs.

    Example:
        ```python
        memory = MemorySaver()
        app = graph.compile(checkpointer=memory)
        await app.invoke({"messages": [human("Hi, I'm Bob")]}, thread_id="abc123")
        state = await app.invoke({"messages": [human("What's my name?")]}, thread_id="abc123")
        ```
    """

    def __init__(self):
        self._threads: Dict[str, RunState] = {}
        self._lock = threading.Lock()

    def load(self, thread_id: str) -> Optional[RunState]:
        with self._lock:
            state = self._threads.get(thread_id)
            if state is None:
                return None
            try:
                return state.model_copy(deep=True)
            except Exception as e:
                raise StorageError(f"Could not load thread {thread_id}: {e}") from e

    def save(self, thread_id: str, state: RunState) -> None:
        if not isinstance(state, RunState):
            raise StorageError(f"Cannot save {type(state).__name__} for thread {thread_id}")
        try:
            snapshot = state.model_copy(deep=True)
        except Exception as e:
            raise StorageError(f"Could not save thread {thread_id}: {e}") from e
        with self._lock:
            self._threads[thread_id] = snapshot
        logger.debug(f"Checkpointed thread {thread_id} ({len(snapshot.messages)} message(s))")

    def delete(self, thread_id: str) -> bool:
        """Forget a thread. Returns True if it existed."""
        with self._lock:
            return self._threads.pop(thread_id, None) is not None

    def list_threads(self) -> List[str]:
        with self._lock:
            return list(self._threads)
