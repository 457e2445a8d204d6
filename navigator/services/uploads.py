"""
Upload persistence: store a file sent with a chat request so the file_analyst tool can read it.

Responsibility: Sanitize the filename, write the bytes under data/uploads/ and return the
absolute path that goes into the run-state. Called by the API layer; no HTTP here.
"""

import logging
import re
import uuid
from pathlib import Path

from navigator.core.config import MAX_UPLOAD_BYTES, UPLOAD_DIR_NAME
from navigator.core.errors import InvalidUploadError

logger = logging.getLogger(__name__)


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent.parent


def _upload_root() -> Path:
    root = Path(UPLOAD_DIR_NAME)
    return root if root.is_absolute() else _project_root() / root


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent path traversal (../). Returns safe basename."""
    if not filename or not filename.strip():
        return "unnamed"
    base = Path(filename.replace("\\", "/")).name
    safe = base.replace("..", "").replace("/", "")
    safe = re.sub(r"[^\w.\-]", "_", safe)
    return safe.strip() or "unnamed"


def save_upload(filename: str, content: bytes) -> Path:
    """
    Persist one uploaded file and return its absolute path.
    A random prefix keeps concurrent uploads with the same name apart.
    Raises InvalidUploadError for empty or oversized files, OSError if the write fails.
    """
    safe = sanitize_filename(filename)
    if not content:
        raise InvalidUploadError(safe, "file is empty")
    if len(content) > MAX_UPLOAD_BYTES:
        raise InvalidUploadError(safe, f"file exceeds {MAX_UPLOAD_BYTES} bytes")
    root = _upload_root()
    root.mkdir(parents=True, exist_ok=True)
    path = (root / f"{uuid.uuid4().hex[:12]}_{safe}").resolve()
    path.write_bytes(content)
    logger.info("[uploads] saved %s (%d bytes)", path, len(content))
    return path


def is_upload_path(path: str | Path) -> bool:
    """True when `path` resolves to a location inside the upload directory."""
    root = _upload_root().resolve()
    try:
        Path(path).resolve().relative_to(root)
    except ValueError:
        return False
    return True
