"""Capture timestamp extraction from EXIF metadata."""

import logging
from datetime import datetime
from typing import BinaryIO

import exifread

from .errors import MetadataError

logger = logging.getLogger(__name__)

# Checked in order; the first parseable tag wins
DATE_TAGS = ('EXIF DateTimeOriginal', 'EXIF DateTimeDigitized', 'Image DateTime')
EXIF_DATE_FORMAT = '%Y:%m:%d %H:%M:%S'


def read_capture_time(handle: BinaryIO) -> datetime:
    """
    Read the capture time of a photo from an open binary handle.

    The handle is rewound before parsing. The returned datetime is naive
    and interpreted as local time, matching how cameras record it.

    Raises:
        MetadataError: If EXIF cannot be decoded or holds no usable date
    """
    name = getattr(handle, 'name', '<stream>')
    try:
        handle.seek(0)
        tags = exifread.process_file(handle, details=False)
    except Exception as e:
        raise MetadataError(f"Failed to decode EXIF in {name}: {e}") from e

    if not tags:
        raise MetadataError(f"No EXIF metadata in {name}")

    for tag_name in DATE_TAGS:
        tag = tags.get(tag_name)
        if not tag:
            continue
        # Format: "2020:07:28 11:49:03", sometimes NUL padded
        date_str = str(tag).strip().strip('\x00')
        try:
            return datetime.strptime(date_str[:19], EXIF_DATE_FORMAT)
        except ValueError:
            logger.debug(f"Unparseable {tag_name} in {name}: {date_str!r}")

    raise MetadataError(f"Failed to extract date taken in {name}")
