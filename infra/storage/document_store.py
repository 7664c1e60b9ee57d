import os
import uuid
from typing import Optional


class DocumentStore:
    """Raw CV bytes on the local filesystem, addressed by an opaque handle."""

    def __init__(self, root: str):
        self.root = root

    def _path(self, handle: str) -> str:
        name = os.path.basename(handle)
        if not name or name != handle:
            raise KeyError(f"invalid document handle: {handle!r}")
        return os.path.join(self.root, name)

    def write(self, data: bytes, extension: str = "") -> str:
        os.makedirs(self.root, exist_ok=True)
        handle = f"{uuid.uuid4().hex}{extension}"
        with open(self._path(handle), "wb") as out:
            out.write(data)
        return handle

    def read(self, handle: str) -> bytes:
        path = self._path(handle)
        if not os.path.isfile(path):
            raise KeyError("document not found")
        with open(path, "rb") as f:
            return f.read()

    def exists(self, handle: Optional[str]) -> bool:
        if not handle:
            return False
        try:
            return os.path.isfile(self._path(handle))
        except KeyError:
            return False

    def delete(self, handle: str) -> bool:
        try:
            os.remove(self._path(handle))
        except (FileNotFoundError, KeyError):
            return False
        return True
