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
Debugging utilities for zipread.

This module provides tools for inspecting ZIP archive structure and for
testing every entry of an archive without writing anything out.
"""

from typing import Optional

from .errors import ZipError
from .reader import ZipReader, validate_local_header
from .source import as_byte_source


def hex_dump(data: bytes, offset: int = 0, length: Optional[int] = None) -> str:
    """Create a hex dump of binary data.

    Args:
        data: Binary data to dump.
        offset: Offset of data[0] within the archive, used for the address column.
        length: Maximum length to dump (None for all).

    Returns:
        Formatted hex dump string, 16 bytes per line.
    """
    if length is not None:
        data = data[:length]

    lines = []
    for i in range(0, len(data), 16):
        chunk = data[i : i + 16]
        hex_part = " ".join(f"{b:02X}" for b in chunk)
        ascii_part = "".join(chr(b) if 32 <= b < 127 else "." for b in chunk)
        lines.append(f"{offset + i:08X}  {hex_part:<47}  {ascii_part}")

    return "\n".join(lines)


def dump_source(source, offset: int, length: int) -> str:
    """Hex dump 'length' bytes of an archive starting at 'offset'."""
    return hex_dump(as_byte_source(source).read_at(offset, length), offset)


def dump_zip_structure(source) -> str:
    """Describe the records of a ZIP archive.

    Lists the End of Central Directory record and, for every entry, its
    central directory fields and where its data starts. Entries whose local
    header fails validation are reported inline instead of aborting the dump.

    Args:
        source: Anything ZipReader accepts.

    Returns:
        Formatted string describing the ZIP structure.
    """
    source = as_byte_source(source)
    output = []
    output.append("ZIP File Structure")
    output.append("=" * 80)
    output.append(f"File size: {source.total_length()} bytes")

    with ZipReader(source) as z:
        eocd = z.end_record
        output.append(f"\nEnd of Central Directory: 0x{eocd.offset:08X}")
        output.append(f"  Entries: {eocd.cd_records_total}")
        output.append(f"  Central directory: 0x{eocd.cd_offset:08X}, {eocd.cd_size} bytes")
        if eocd.comment:
            output.append(f"  Comment: {eocd.comment!r}")

        output.append(f"\nEntries: {len(z.entries())}")
        for entry in z.entries():
            output.append(
                f"  [{entry.index}] {entry.name}  {entry.compression_name}  "
                f"{entry.compressed_size} -> {entry.uncompressed_size} bytes  "
                f"CRC32 0x{entry.crc32:08X}  flags 0x{entry.flags:04X}"
            )
            try:
                data_offset = validate_local_header(source, entry, eocd.cd_offset)
            except ZipError as e:
                output.append(f"      local header 0x{entry.local_header_offset:08X}: {e}")
            else:
                output.append(
                    f"      local header 0x{entry.local_header_offset:08X}, "
                    f"data 0x{data_offset:08X}"
                )

    return "\n".join(output)


def verify_zip_structure(source) -> tuple[bool, list[str]]:
    """Verify that every entry of an archive decompresses and passes its CRC32 check.

    Args:
        source: Anything ZipReader accepts.

    Returns:
        Tuple of (is_valid, list_of_errors).
    """
    errors = []

    try:
        with ZipReader(source) as z:
            for entry in z.entries():
                try:
                    z.extract(entry, lambda chunk: None)
                except ZipError as e:
                    errors.append(f"Error reading {entry.name}: {e}")
    except ZipError as e:
        errors.append(f"Error opening ZIP file: {e}")

    return len(errors) == 0, errors
