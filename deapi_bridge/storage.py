import uuid
from pathlib import Path
from typing import Iterator


class FileBinaryStore:
    """Keeps binary content on disk under generated ids."""

    def __init__(self, root: str | Path):
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    def put(self, content: bytes) -> str:
        binary_id = uuid.uuid4().hex
        path = self._build_path(binary_id)
        tmp_path = path.with_suffix(".tmp")
        try:
            tmp_path.write_bytes(content)
            tmp_path.rename(path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise OSError(f"Binary {binary_id}: error writing file {path}: {e}") from e
        return binary_id

    def stream(self, binary_id: str, chunk_size: int) -> Iterator[bytes]:
        with open(self._build_path(binary_id), "rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                yield chunk

    def read(self, binary_id: str) -> bytes:
        return self._build_path(binary_id).read_bytes()

    def exists(self, binary_id: str) -> bool:
        return self._build_path(binary_id).is_file()

    def _build_path(self, binary_id: str) -> Path:
        # Path(...).name keeps ids from escaping the root directory
        return self._root / f"{Path(binary_id).name}.bin"
