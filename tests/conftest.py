"""Shared fixtures and a small ZIP builder for crafting edge-case archives."""

import struct
import zipfile
import zlib
from dataclasses import dataclass, field

import pytest

from zipread.source import BytesSource

# 2024-05-17
DEFAULT_DATE = ((2024 - 1980) << 9) | (5 << 5) | 17
# 13:45:30
DEFAULT_TIME = (13 << 11) | (45 << 5) | (30 // 2)


@dataclass
class Member:
    """One entry for build_zip().

    local and central map header field names (signature, flags, method,
    crc32, compressed_size, uncompressed_size, name, local_header_offset)
    to values that replace the computed ones in that header only.
    """

    name: bytes
    data: bytes = b""
    method: int = 0
    flags: int = 0
    descriptor: bool = False
    external_attrs: int = 0
    comment: bytes = b""
    local: dict = field(default_factory=dict)
    central: dict = field(default_factory=dict)


def deflate(data: bytes, level: int = 9) -> bytes:
    compressor = zlib.compressobj(level, zlib.DEFLATED, -zlib.MAX_WBITS)
    return compressor.compress(data) + compressor.flush()


def build_zip(members, comment: bytes = b"", eocd: dict = None) -> bytes:
    """Assemble a ZIP archive from Members, field by field."""
    out = bytearray()
    central = bytearray()

    for member in members:
        payload = deflate(member.data) if member.method == 8 else member.data
        crc = zlib.crc32(member.data) & 0xFFFFFFFF
        flags = member.flags | (0x0008 if member.descriptor else 0)

        values = {
            "signature": 0x04034B50,
            "flags": flags,
            "method": member.method,
            "crc32": 0 if member.descriptor else crc,
            "compressed_size": 0 if member.descriptor else len(payload),
            "uncompressed_size": 0 if member.descriptor else len(member.data),
            "name": member.name,
        }
        values.update(member.local)
        offset = len(out)
        out += struct.pack(
            "<IHHHHHIIIHH",
            values["signature"],
            20,
            values["flags"],
            values["method"],
            DEFAULT_TIME,
            DEFAULT_DATE,
            values["crc32"],
            values["compressed_size"],
            values["uncompressed_size"],
            len(values["name"]),
            0,
        )
        out += values["name"]
        out += payload
        if member.descriptor:
            out += struct.pack("<IIII", 0x08074B50, crc, len(payload), len(member.data))

        values = {
            "signature": 0x02014B50,
            "flags": flags,
            "method": member.method,
            "crc32": crc,
            "compressed_size": len(payload),
            "uncompressed_size": len(member.data),
            "name": member.name,
            "local_header_offset": offset,
        }
        values.update(member.central)
        central += struct.pack(
            "<IHHHHHHIIIHHHHHII",
            values["signature"],
            20,
            20,
            values["flags"],
            values["method"],
            DEFAULT_TIME,
            DEFAULT_DATE,
            values["crc32"],
            values["compressed_size"],
            values["uncompressed_size"],
            len(values["name"]),
            0,
            len(member.comment),
            0,
            0,
            member.external_attrs,
            values["local_header_offset"],
        )
        central += values["name"]
        central += member.comment

    values = {
        "disk": 0,
        "cd_disk": 0,
        "on_disk": len(members),
        "total": len(members),
        "cd_size": len(central),
        "cd_offset": len(out),
    }
    values.update(eocd or {})
    out += central
    out += struct.pack(
        "<IHHHHIIH",
        0x06054B50,
        values["disk"],
        values["cd_disk"],
        values["on_disk"],
        values["total"],
        values["cd_size"],
        values["cd_offset"],
        len(comment),
    )
    out += comment
    return bytes(out)


def data_offset(archive: bytes, name: bytes) -> int:
    """Offset of an entry's data in an archive built by build_zip()."""
    pos = archive.index(b"PK\x03\x04")
    while True:
        (name_len,) = struct.unpack_from("<H", archive, pos + 26)
        if archive[pos + 30 : pos + 30 + name_len] == name:
            return pos + 30 + name_len
        pos = archive.index(b"PK\x03\x04", pos + 4)


class CountingSource(BytesSource):
    """BytesSource that records every read."""

    def __init__(self, data):
        super().__init__(data)
        self.reads = []

    def read_at(self, offset: int, length: int) -> bytes:
        self.reads.append((offset, length))
        return super().read_at(offset, length)


B_TXT = b"The quick brown fox jumps over the lazy dog.\n" * 40


@pytest.fixture
def two_entries():
    """Two entries: stored 'a.txt' and deflated 'b.txt'."""
    return build_zip(
        [
            Member(b"a.txt", b"abcd", method=0),
            Member(b"b.txt", B_TXT, method=8),
        ]
    )


@pytest.fixture
def stdlib_zip(tmp_path):
    """Create a ZIP archive with the standard library zipfile module."""
    zip_path = tmp_path / "stdlib.zip"
    contents = {
        "file1.txt": b"Content of file 1",
        "file2.txt": b"Content of file 2" * 100,
        "dir/": b"",
        "dir/file3.bin": bytes(range(256)) * 64,
        "empty.txt": b"",
    }
    with zipfile.ZipFile(zip_path, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in contents.items():
            info = zipfile.ZipInfo(name, date_time=(2020, 1, 2, 3, 4, 5))
            if name.endswith("/"):
                info.compress_type = zipfile.ZIP_STORED
                info.external_attr = (0o40755 << 16) | 0x10
            elif name.startswith("file1"):
                info.compress_type = zipfile.ZIP_STORED
            else:
                info.compress_type = zipfile.ZIP_DEFLATED
            zf.writestr(info, data)
        zf.comment = b"archive comment"
    return zip_path, contents
