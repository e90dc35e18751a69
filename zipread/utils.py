"""
Copyright 2025 DNAi inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

"""
Utility functions for zipread.

This module provides CRC32 calculation, DOS date/time decoding, name
decoding and exact positioned reads against a byte source.
"""

import logging
import zlib
from datetime import datetime

from .errors import ZipCrcError, ZipFormatError

logger = logging.getLogger(__name__)


def crc32(data: bytes, value: int = 0) -> int:
    """Calculate CRC32 checksum for data.

    Args:
        data: Bytes to calculate CRC32 for.
        value: Running checksum to continue from.

    Returns:
        CRC32 value as unsigned 32-bit integer.
    """
    return zlib.crc32(data, value) & 0xFFFFFFFF


class Crc32:
    """Incremental CRC32 accumulator.

    Feed it every chunk of decompressed data, then call verify() once the
    stream is exhausted.
    """

    def __init__(self) -> None:
        self.value = 0
        self.length = 0

    def update(self, data: bytes) -> None:
        self.value = crc32(data, self.value)
        self.length += len(data)

    def verify(self, expected: int, name: str = "") -> None:
        """Compare the accumulated checksum against the expected one.

        Args:
            expected: CRC32 stored in the archive.
            name: Entry name used in the error message.

        Raises:
            ZipCrcError: If the checksums differ.
        """
        if self.value != expected:
            where = f" for entry '{name}'" if name else ""
            raise ZipCrcError(
                f"CRC32 mismatch{where}: expected 0x{expected:08X}, got 0x{self.value:08X}"
            )


def dos_date_to_tuple(dos_date: int) -> tuple[int, int, int]:
    """Decode a packed DOS date into (year, month, day).

    DOS date format (16 bits):
        Bits 0-4: Day (1-31)
        Bits 5-8: Month (1-12)
        Bits 9-15: Year - 1980 (0-127, so 1980-2107)
    """
    day = dos_date & 0x1F
    month = (dos_date >> 5) & 0x0F
    year = ((dos_date >> 9) & 0x7F) + 1980
    return (year, month, day)


def dos_time_to_tuple(dos_time: int) -> tuple[int, int, int]:
    """Decode a packed DOS time into (hour, minute, second).

    DOS time format (16 bits):
        Bits 0-4: Second / 2 (0-29, so 0-58 seconds in 2-second increments)
        Bits 5-10: Minute (0-59)
        Bits 11-15: Hour (0-23)

    Odd seconds cannot be represented, so the result is always even.
    """
    second = (dos_time & 0x1F) * 2
    minute = (dos_time >> 5) & 0x3F
    hour = (dos_time >> 11) & 0x1F
    return (hour, minute, second)


def dos_datetime_to_timestamp(dos_date: int, dos_time: int) -> datetime:
    """Convert DOS date and time to Python datetime.

    Args:
        dos_date: DOS date value (16-bit unsigned integer).
        dos_time: DOS time value (16-bit unsigned integer).

    Returns:
        datetime object representing the DOS date/time, or 1980-01-01
        00:00:00 when the packed fields do not form a valid date.
    """
    try:
        return datetime(*dos_date_to_tuple(dos_date), *dos_time_to_tuple(dos_time))
    except ValueError:
        return datetime(1980, 1, 1, 0, 0, 0)


def decode_name(raw: bytes, utf8_flag: bool) -> str:
    """Decode an entry name or comment.

    Names flagged as UTF-8 must decode strictly. Unflagged names are tried
    as UTF-8 first, since most modern tools write UTF-8 without setting the
    flag, and fall back to CP437, the encoding the ZIP format defines.

    Raises:
        ZipFormatError: If a name flagged as UTF-8 is not valid UTF-8.
    """
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        if utf8_flag:
            raise ZipFormatError(
                f"Entry name {raw!r} is flagged as UTF-8 but is not valid UTF-8"
            ) from None
        logger.debug("Name %r is not UTF-8, decoding as CP437", raw)
        return raw.decode("cp437")


def read_exact_at(source, offset: int, size: int) -> bytes:
    """Read exactly 'size' bytes at 'offset', raising ZipFormatError on short read.

    Args:
        source: ByteSource to read from.
        offset: Absolute offset of the first byte.
        size: Number of bytes to read.

    Returns:
        Exactly 'size' bytes of data.

    Raises:
        ZipFormatError: If fewer than 'size' bytes are available or the
            request is invalid.
    """
    if size < 0 or offset < 0:
        raise ZipFormatError(f"Invalid read: offset {offset}, size {size}")

    data = source.read_at(offset, size)
    if len(data) != size:
        raise ZipFormatError(
            f"Unexpected end of file at offset {offset}: expected {size} bytes, got {len(data)}"
        )
    return data
