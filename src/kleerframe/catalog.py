"""
Filesystem photo catalog.

Enumerates image files under a directory and describes each one as a Photo.
Capture time comes from EXIF (DateTimeOriginal, then DateTime) when present,
otherwise from the file's modification time.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional

from PIL import Image

from .dedup.model import Photo
from .logging import get_logger

logger = get_logger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".gif", ".tif", ".tiff", ".webp"}

EXIF_DATETIME_ORIGINAL = 36867
EXIF_DATETIME = 306
EXIF_IFD = 0x8769
EXIF_FORMAT = "%Y:%m:%d %H:%M:%S"


def _parse_exif_datetime(value) -> Optional[datetime]:
    text = str(value).strip().rstrip("\x00")
    try:
        return datetime.strptime(text[:19], EXIF_FORMAT)
    except ValueError:
        return None


def read_capture_time(img: Image.Image) -> Optional[datetime]:
    """Capture time from EXIF, or None when the image carries none."""
    exif = img.getexif()
    if not exif:
        return None

    value = exif.get_ifd(EXIF_IFD).get(EXIF_DATETIME_ORIGINAL) or exif.get(EXIF_DATETIME_ORIGINAL)
    if value is None:
        value = exif.get(EXIF_DATETIME)
    if value is None:
        return None
    return _parse_exif_datetime(value)


def describe_photo(path: Path, root: Path) -> Photo:
    """
    Build a Photo for one image file.

    Raises:
        OSError: If the file cannot be opened as an image
    """
    with Image.open(path) as img:
        width, height = img.size
        captured = read_capture_time(img)

    if captured is not None:
        creation_time = int(captured.timestamp() * 1000)
    else:
        creation_time = int(path.stat().st_mtime * 1000)

    return Photo(
        id=path.relative_to(root).as_posix(),
        uri=path.resolve().as_uri(),
        filename=path.name,
        creation_time=creation_time,
        width=width,
        height=height,
    )


def scan_directory(root: Path, recursive: bool = True) -> List[Photo]:
    """
    Describe every readable image under ``root``.

    Unreadable files are logged and skipped.

    Returns:
        Photos ordered by path
    """
    root = Path(root)
    pattern = "**/*" if recursive else "*"
    paths = sorted(p for p in root.glob(pattern) if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS)

    photos = []
    for path in paths:
        try:
            photos.append(describe_photo(path, root))
        except (OSError, ValueError) as exc:
            logger.warning(f"Skipping unreadable image {path}: {exc}")

    logger.info(f"Catalogued {len(photos)} photos under {root}")
    return photos
