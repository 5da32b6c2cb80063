"""Screenshot loading.

Images are stored inline as data URLs so an entry stays a single JSON
document; large files are refused up front to keep the cache small.
"""

import base64
import mimetypes
import uuid
from pathlib import Path

from weekjournal.errors import FormatError, StorageQuotaError
from weekjournal.models import Screenshot

MAX_SCREENSHOT_BYTES = 2 * 1024 * 1024


def load_screenshot(path: Path) -> Screenshot:
    """Read one image file into a Screenshot.

    Raises:
        FormatError: If the file is not an image or cannot be read.
        StorageQuotaError: If the file exceeds MAX_SCREENSHOT_BYTES.
    """
    path = Path(path)
    mime_type, _ = mimetypes.guess_type(path.name)
    if not mime_type or not mime_type.startswith("image/"):
        raise FormatError(f"{path.name} is not an image")

    try:
        size = path.stat().st_size
        if size > MAX_SCREENSHOT_BYTES:
            raise StorageQuotaError(f"{path.name} is larger than 2MB, skipped")
        raw = path.read_bytes()
    except OSError as e:
        raise FormatError(f"Could not read {path.name}: {e.strerror or e}") from e

    encoded = base64.b64encode(raw).decode("ascii")
    return Screenshot(
        id=uuid.uuid4().hex,
        name=path.name,
        image_data=f"data:{mime_type};base64,{encoded}",
    )


def load_screenshots(paths: list[Path]) -> tuple[list[Screenshot], list[str]]:
    """Load several images, skipping the ones that cannot be stored.

    Returns:
        Tuple of (loaded screenshots, one notice per skipped file).
    """
    loaded: list[Screenshot] = []
    notices: list[str] = []
    for path in paths:
        try:
            loaded.append(load_screenshot(path))
        except (FormatError, StorageQuotaError) as e:
            notices.append(str(e))
    return loaded, notices
