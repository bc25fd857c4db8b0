from pathlib import Path

from app.processor.exceptions import StorageError


class LocalDisk:
    """A storage area rooted at a local directory, addressed by relative keys.

    Keys use forward slashes, e.g. ``uploads/<uuid>.pdf`` or
    ``exam_images/<uuid>_scan.png``.
    """

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def path(self, key: str) -> Path:
        """Resolve a key to an absolute path inside the disk root.

        Raises:
            StorageError: if the key escapes the disk root.
        """
        root = self._root.resolve()
        resolved = (root / key).resolve()
        if not resolved.is_relative_to(root):
            raise StorageError(f"Storage key '{key}' points outside {root}")
        return resolved

    def exists(self, key: str) -> bool:
        return self.path(key).is_file()

    def read_bytes(self, key: str) -> bytes:
        """Read a stored file.

        Raises:
            StorageError: if the file does not exist.
        """
        path = self.path(key)
        if not path.is_file():
            raise StorageError(f"File not found: {path}")
        return path.read_bytes()

    def write_bytes(self, key: str, data: bytes) -> None:
        path = self.path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def copy(self, source_key: str, target_key: str) -> None:
        self.write_bytes(target_key, self.read_bytes(source_key))

    def delete(self, key: str) -> bool:
        """Delete a stored file. Returns False when there was nothing to delete."""
        path = self.path(key)
        if not path.is_file():
            return False
        path.unlink()
        return True

    def glob(self, pattern: str) -> list[str]:
        """Keys of stored files matching a glob pattern relative to the root."""
        root = self._root.resolve()
        if not root.is_dir():
            return []
        return sorted(
            path.relative_to(root).as_posix() for path in root.glob(pattern) if path.is_file()
        )
