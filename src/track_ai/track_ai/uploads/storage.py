from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Optional

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..common.files import file_name

logger = logging.getLogger(__name__)


class LocalFileStorage:
    """Durable staging area for raw upload bytes.

    Files live at `<root>/<project>/<upload_id>/<filename>`. A staged file is
    kept after a failed remote sync so that retry and preview work without the
    client sending the bytes again.
    """

    def __init__(self, root: str | Path):
        self._root = Path(root)

    def stage(self, *, project_external_id: str, upload_id: int, file: FileStorage) -> str:
        folder = self._root / secure_filename(project_external_id or "unassigned") / str(upload_id)
        folder.mkdir(parents=True, exist_ok=True)
        target = folder / (secure_filename(file_name(file)) or "upload.bin")

        file.stream.seek(0)
        file.save(str(target))
        file.stream.seek(0)
        logger.debug("Staged upload %s at %s", upload_id, target)
        return str(target)

    def open_staged(self, local_path: str, *, mime_type: Optional[str] = None) -> Optional[FileStorage]:
        """Rebuild a FileStorage from a staged file, for retrying the remote sync."""
        path = Path(local_path)
        if not path.is_file():
            return None
        return FileStorage(stream=io.BytesIO(path.read_bytes()), filename=path.name, content_type=mime_type)

    def exists(self, local_path: Optional[str]) -> bool:
        return bool(local_path) and Path(local_path).is_file()
