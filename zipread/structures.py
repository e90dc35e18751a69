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
ZIP structure definitions and parsing functions.

This module defines dataclasses for the ZIP records the reader consumes
(local file headers, central directory headers, the end of central
directory record and data descriptors) and the ZipEntry exposed to callers.
Parsers work on byte buffers already read from the archive.
"""

import struct
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .constants import (
    CENTRAL_DIR_HEADER,
    CENTRAL_DIR_HEADER_SIZE,
    DATA_DESCRIPTOR,
    DATA_DESCRIPTOR_SIZE,
    END_OF_CENTRAL_DIR,
    END_OF_CENTRAL_DIR_SIZE,
    FLAG_DATA_DESCRIPTOR,
    FLAG_ENCRYPTED,
    FLAG_UTF8,
    LOCAL_FILE_HEADER,
    LOCAL_FILE_HEADER_SIZE,
    METHOD_TO_NAME,
    UNIX_DIR_MODE,
    CompressionMethod,
)
from .errors import ZipFormatError
from .utils import dos_date_to_tuple, dos_datetime_to_timestamp, dos_time_to_tuple

# signature, version, flags, method, time, date, crc32, csize, usize, name_len, extra_len
_LOCAL_FILE_HEADER = struct.Struct("<IHHHHHIIIHH")
# signature, made_by, version, flags, method, time, date, crc32, csize, usize,
# name_len, extra_len, comment_len, disk, internal, external, offset
_CENTRAL_DIR_HEADER = struct.Struct("<IHHHHHHIIIHHHHHII")
# signature, disk, cd_disk, records_on_disk, records_total, cd_size, cd_offset, comment_len
_END_OF_CENTRAL_DIR = struct.Struct("<IHHHHIIH")
# signature, crc32, csize, usize
_DATA_DESCRIPTOR = struct.Struct("<IIII")


@dataclass
class LocalFileHeader:
    """Local file header structure.

    This header appears before each file's compressed data in the ZIP archive.
    """

    signature: int
    version: int
    flags: int
    compression_method: int
    mod_time: int
    mod_date: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    filename_len: int
    extra_len: int
    filename: bytes = b""
    extra: bytes = b""

    @property
    def total_size(self) -> int:
        """Size of the header including its name and extra field."""
        return LOCAL_FILE_HEADER_SIZE + self.filename_len + self.extra_len


@dataclass
class CentralDirectoryHeader:
    """Central directory header structure.

    This header appears in the central directory and contains information
    about a file entry, including a pointer to the local file header.
    """

    signature: int
    version_made_by: int
    version: int
    flags: int
    compression_method: int
    mod_time: int
    mod_date: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    filename_len: int
    extra_len: int
    comment_len: int
    disk_num: int
    internal_attrs: int
    external_attrs: int
    local_header_offset: int
    filename: bytes
    extra: bytes
    comment: bytes

    @property
    def total_size(self) -> int:
        return CENTRAL_DIR_HEADER_SIZE + self.filename_len + self.extra_len + self.comment_len


@dataclass
class EndOfCentralDirectory:
    """End of Central Directory record.

    This record marks the end of the central directory and contains
    information needed to locate the central directory.
    """

    signature: int
    disk_num: int
    cd_disk: int
    cd_records_on_disk: int
    cd_records_total: int
    cd_size: int
    cd_offset: int
    comment_len: int
    comment: bytes
    offset: int = 0


@dataclass
class DataDescriptor:
    """Data descriptor structure.

    Written after the compressed data when general purpose bit 3 is set.
    Only the signed form is recognized.
    """

    signature: int
    crc32: int
    compressed_size: int
    uncompressed_size: int


@dataclass(frozen=True)
class ZipEntry:
    """ZIP entry metadata.

    One ZipEntry is built per central directory record and never changes
    afterwards. Sizes and CRC32 are the central directory's values, which
    are authoritative when the entry uses a data descriptor.
    """

    name: str
    raw_name: bytes
    index: int
    compression_method: int
    compressed_size: int
    uncompressed_size: int
    crc32: int
    flags: int
    mod_date: int
    mod_time: int
    local_header_offset: int
    version_made_by: int = 0
    version_needed: int = 0
    internal_attrs: int = 0
    external_attrs: int = 0
    extra: bytes = b""
    comment: bytes = b""

    @property
    def method(self) -> Optional[CompressionMethod]:
        """Compression method, or None when the method is not supported."""
        try:
            return CompressionMethod(self.compression_method)
        except ValueError:
            return None

    @property
    def compression_name(self) -> str:
        return METHOD_TO_NAME.get(
            self.compression_method, f"unknown({self.compression_method})"
        )

    @property
    def is_encrypted(self) -> bool:
        return bool(self.flags & FLAG_ENCRYPTED)

    @property
    def has_data_descriptor(self) -> bool:
        return bool(self.flags & FLAG_DATA_DESCRIPTOR)

    @property
    def is_utf8(self) -> bool:
        return bool(self.flags & FLAG_UTF8)

    @property
    def is_dir(self) -> bool:
        """True for a trailing slash or a Unix directory mode."""
        if self.name.endswith("/"):
            return True
        return bool((self.external_attrs >> 16) & UNIX_DIR_MODE)

    @property
    def date(self) -> tuple[int, int, int]:
        """Modification date as (year, month, day)."""
        return dos_date_to_tuple(self.mod_date)

    @property
    def time(self) -> tuple[int, int, int]:
        """Modification time as (hour, minute, second); seconds are always even."""
        return dos_time_to_tuple(self.mod_time)

    @property
    def date_time(self) -> datetime:
        """Get modification date/time as datetime object."""
        return dos_datetime_to_timestamp(self.mod_date, self.mod_time)


def parse_local_file_header(data: bytes) -> LocalFileHeader:
    """Parse the fixed part of a local file header.

    Args:
        data: At least 30 bytes starting at the local file header.

    Returns:
        LocalFileHeader object without name and extra field; the caller
        reads those using filename_len and extra_len.

    Raises:
        ZipFormatError: If the signature is invalid or data is truncated.
    """
    if len(data) < LOCAL_FILE_HEADER_SIZE:
        raise ZipFormatError(
            f"Truncated local file header: {len(data)} bytes, expected {LOCAL_FILE_HEADER_SIZE}"
        )
    fields = _LOCAL_FILE_HEADER.unpack_from(data)
    if fields[0] != LOCAL_FILE_HEADER:
        raise ZipFormatError(
            f"Invalid local file header signature: 0x{fields[0]:08X}, "
            f"expected 0x{LOCAL_FILE_HEADER:08X}"
        )
    return LocalFileHeader(*fields)


def parse_central_directory_header(data: bytes, pos: int = 0) -> CentralDirectoryHeader:
    """Parse a central directory header from a buffer.

    Args:
        data: Buffer holding the central directory.
        pos: Offset of the header within 'data'.

    Returns:
        CentralDirectoryHeader object; its total_size gives the offset of
        the next header.

    Raises:
        ZipFormatError: If the signature is invalid or the record runs past
            the end of 'data'.
    """
    if pos + CENTRAL_DIR_HEADER_SIZE > len(data):
        raise ZipFormatError(
            f"Central directory truncated: header at {pos} needs {CENTRAL_DIR_HEADER_SIZE} "
            f"bytes, {len(data) - pos} left"
        )

    (
        signature,
        version_made_by,
        version,
        flags,
        compression_method,
        mod_time,
        mod_date,
        crc32,
        compressed_size,
        uncompressed_size,
        filename_len,
        extra_len,
        comment_len,
        disk_num,
        internal_attrs,
        external_attrs,
        local_header_offset,
    ) = _CENTRAL_DIR_HEADER.unpack_from(data, pos)

    if signature != CENTRAL_DIR_HEADER:
        raise ZipFormatError(
            f"Invalid central directory header signature: 0x{signature:08X}, "
            f"expected 0x{CENTRAL_DIR_HEADER:08X}"
        )

    start = pos + CENTRAL_DIR_HEADER_SIZE
    end = start + filename_len + extra_len + comment_len
    if end > len(data):
        raise ZipFormatError(
            f"Central directory truncated: record at {pos} needs {end - pos} bytes, "
            f"{len(data) - pos} left"
        )

    filename = bytes(data[start : start + filename_len])
    start += filename_len
    extra = bytes(data[start : start + extra_len])
    start += extra_len
    comment = bytes(data[start : start + comment_len])

    return CentralDirectoryHeader(
        signature=signature,
        version_made_by=version_made_by,
        version=version,
        flags=flags,
        compression_method=compression_method,
        mod_time=mod_time,
        mod_date=mod_date,
        crc32=crc32,
        compressed_size=compressed_size,
        uncompressed_size=uncompressed_size,
        filename_len=filename_len,
        extra_len=extra_len,
        comment_len=comment_len,
        disk_num=disk_num,
        internal_attrs=internal_attrs,
        external_attrs=external_attrs,
        local_header_offset=local_header_offset,
        filename=filename,
        extra=extra,
        comment=comment,
    )


def parse_eocd(data: bytes, pos: int = 0) -> EndOfCentralDirectory:
    """Parse an End of Central Directory record from a buffer.

    Args:
        data: Buffer holding the record and its comment.
        pos: Offset of the record within 'data'.

    Returns:
        EndOfCentralDirectory object. Its offset field is left at 0 for the
        caller to fill in.

    Raises:
        ZipFormatError: If the signature is invalid or the record is truncated.
    """
    if pos + END_OF_CENTRAL_DIR_SIZE > len(data):
        raise ZipFormatError("Truncated End of Central Directory record")

    (
        signature,
        disk_num,
        cd_disk,
        cd_records_on_disk,
        cd_records_total,
        cd_size,
        cd_offset,
        comment_len,
    ) = _END_OF_CENTRAL_DIR.unpack_from(data, pos)

    if signature != END_OF_CENTRAL_DIR:
        raise ZipFormatError(
            f"Invalid EOCD signature: 0x{signature:08X}, "
            f"expected 0x{END_OF_CENTRAL_DIR:08X}"
        )

    start = pos + END_OF_CENTRAL_DIR_SIZE
    comment = bytes(data[start : start + comment_len])
    if len(comment) != comment_len:
        raise ZipFormatError(
            f"Truncated EOCD comment: expected {comment_len} bytes, got {len(comment)}"
        )

    return EndOfCentralDirectory(
        signature=signature,
        disk_num=disk_num,
        cd_disk=cd_disk,
        cd_records_on_disk=cd_records_on_disk,
        cd_records_total=cd_records_total,
        cd_size=cd_size,
        cd_offset=cd_offset,
        comment_len=comment_len,
        comment=comment,
    )


def parse_data_descriptor(data: bytes) -> Optional[DataDescriptor]:
    """Parse a signed data descriptor.

    Args:
        data: Bytes following the entry's compressed data.

    Returns:
        DataDescriptor, or None when 'data' is too short or does not start
        with the descriptor signature (the signature is optional in the
        format, and unsigned descriptors cannot be told apart from other
        data).
    """
    if len(data) < DATA_DESCRIPTOR_SIZE:
        return None
    fields = _DATA_DESCRIPTOR.unpack_from(data)
    if fields[0] != DATA_DESCRIPTOR:
        return None
    return DataDescriptor(*fields)


def build_entry(header: CentralDirectoryHeader, index: int, name: str) -> ZipEntry:
    """Build the public ZipEntry for a parsed central directory header."""
    return ZipEntry(
        name=name,
        raw_name=header.filename,
        index=index,
        compression_method=header.compression_method,
        compressed_size=header.compressed_size,
        uncompressed_size=header.uncompressed_size,
        crc32=header.crc32,
        flags=header.flags,
        mod_date=header.mod_date,
        mod_time=header.mod_time,
        local_header_offset=header.local_header_offset,
        version_made_by=header.version_made_by,
        version_needed=header.version,
        internal_attrs=header.internal_attrs,
        external_attrs=header.external_attrs,
        extra=header.extra,
        comment=header.comment,
    )
