import copy
import threading
from collections.abc import Callable, MutableMapping
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class InMemoryKeyValueDatabase(Generic[K, V]):
    """
    Simple in-memory key/value database.

    Keys are namespaced strings ("meeting:<id>", "volunteer:<id>", ...).
    """

    def __init__(self) -> None:
        self._store: MutableMapping[K, V] = {}
        self._lock = threading.RLock()

    def put(self, key: K, value: V) -> None:
        with self._lock:
            self._store[key] = value

    def get(self, key: K) -> V | None:
        return self._store.get(key)

    def list_by_prefix(
        self, prefix: str, predicate: Callable[[V], bool] | None = None
    ) -> list[V]:
        return [
            v
            for k, v in list(self._store.items())
            if str(k).startswith(prefix) and (predicate is None or predicate(v))
        ]

    def __len__(self) -> int:
        return len(self._store)

    def update(self, key: K, mutate: Callable[[V], V | None]) -> V | None:
        """
        Atomic read-modify-write of a single entity.

        `mutate` receives a deep copy of the stored value and may change it in
        place (or return a replacement). The copy is written back only if
        `mutate` returns normally; if it raises, the stored value is untouched
        and the exception propagates. Returns None if the key is absent.
        """
        with self._lock:
            current = self._store.get(key)
            if current is None:
                return None
            working = copy.deepcopy(current)
            result = mutate(working)
            if result is None:
                result = working
            self._store[key] = result
            return result
