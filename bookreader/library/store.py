import os
import re
from typing import Dict, Optional, Protocol


class KeyValueStore(Protocol):
    """
    持久化底座：文本值与二进制值分开存放。
    """

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def get_bytes(self, key: str) -> Optional[bytes]: ...

    def set_bytes(self, key: str, value: bytes) -> None: ...


class MemoryStore:
    """进程内存储，主要用于测试。"""

    def __init__(self):
        self.values: Dict[str, str] = {}
        self.blobs: Dict[str, bytes] = {}

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def delete(self, key: str) -> None:
        self.values.pop(key, None)
        self.blobs.pop(key, None)

    def get_bytes(self, key: str) -> Optional[bytes]:
        return self.blobs.get(key)

    def set_bytes(self, key: str, value: bytes) -> None:
        self.blobs[key] = value


class JsonDirectoryStore:
    """
    以目录为底座的存储：文本值写入 <key>.json，二进制值写入 <key>.bin。
    """

    def __init__(self, root: str):
        self.root = root

    def _path(self, key: str, suffix: str) -> str:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return os.path.join(self.root, f"{safe}{suffix}")

    def _ensure_root(self) -> None:
        if not os.path.exists(self.root):
            os.makedirs(self.root)

    def get(self, key: str) -> Optional[str]:
        path = self._path(key, ".json")
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def set(self, key: str, value: str) -> None:
        self._ensure_root()
        with open(self._path(key, ".json"), "w", encoding="utf-8") as f:
            f.write(value)

    def delete(self, key: str) -> None:
        for suffix in (".json", ".bin"):
            path = self._path(key, suffix)
            if os.path.exists(path):
                os.remove(path)

    def get_bytes(self, key: str) -> Optional[bytes]:
        path = self._path(key, ".bin")
        if not os.path.exists(path):
            return None
        with open(path, "rb") as f:
            return f.read()

    def set_bytes(self, key: str, value: bytes) -> None:
        self._ensure_root()
        with open(self._path(key, ".bin"), "wb") as f:
            f.write(value)
