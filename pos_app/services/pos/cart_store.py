from __future__ import annotations

import io
import os
import re
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Optional

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


class CartStore(ABC):
    """
    Durable key-value slot holding one serialized cart.
    Writers overwrite the whole record; there are no partial updates.
    """

    @abstractmethod
    def load(self) -> Optional[str]:
        ...

    @abstractmethod
    def save(self, data: str) -> None:
        ...

    @abstractmethod
    def delete(self) -> None:
        ...


class MemoryCartStore(CartStore):

    def __init__(self, data: Optional[str] = None) -> None:
        self.data = data

    def load(self) -> Optional[str]:
        return self.data

    def save(self, data: str) -> None:
        self.data = data

    def delete(self) -> None:
        self.data = None


class FileCartStore(CartStore):
    """
    One JSON file per storage key, replaced atomically on every save.
    """

    def __init__(self, directory: str, key: str) -> None:
        safe_key = _UNSAFE_KEY_CHARS.sub("_", key).strip("._") or "cart"
        self.directory = directory
        self.path = os.path.join(directory, f"{safe_key}.json")
        self._lock = threading.Lock()

    def load(self) -> Optional[str]:
        with self._lock:
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    return f.read()
            except FileNotFoundError:
                return None

    def save(self, data: str) -> None:
        with self._lock:
            os.makedirs(self.directory, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=".tmp-", dir=self.directory)
            try:
                with io.open(fd, "w", encoding="utf-8", newline="") as f:
                    f.write(data)
                os.replace(tmp, self.path)
            finally:
                if os.path.exists(tmp):
                    os.remove(tmp)

    def delete(self) -> None:
        with self._lock:
            try:
                os.remove(self.path)
            except FileNotFoundError:
                pass


def storage_key(prefix: str, register_id: str) -> str:
    return f"{prefix}.{register_id}"
