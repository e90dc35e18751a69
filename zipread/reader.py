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
ZIP archive reader implementation.

This module provides the ZipReader class together with the three parsing
stages it runs: locating the End of Central Directory record, parsing the
central directory into an entry index, and validating an entry's local
file header before its data is decompressed.
"""

import io
import logging
import struct
from typing import BinaryIO, Callable, Iterator, Optional, Union

from .compression import decompressor_for
from .constants import (
    CENTRAL_DIR_HEADER_SIZE,
    DATA_DESCRIPTOR_SIZE,
    END_OF_CENTRAL_DIR_MAGIC,
    END_OF_CENTRAL_DIR_SIZE,
    FLAG_DATA_DESCRIPTOR,
    FLAG_UTF8,
    LOCAL_FILE_HEADER_SIZE,
    MAX_EOCD_COMMENT,
    READ_CHUNK_SIZE,
    UNSUPPORTED_FLAGS,
    ZIP64_COUNT_SENTINEL,
    ZIP64_SIZE_SENTINEL,
)
from .errors import (
    ZipEntryNotFound,
    ZipFormatError,
    ZipInconsistencyError,
    ZipUnsupportedFeature,
)
from .source import ByteSource, as_byte_source
from .structures import (
    EndOfCentralDirectory,
    ZipEntry,
    build_entry,
    parse_central_directory_header,
    parse_data_descriptor,
    parse_eocd,
    parse_local_file_header,
)
from .utils import Crc32, decode_name, read_exact_at

logger = logging.getLogger(__name__)

Sink = Union[BinaryIO, Callable[[bytes], object]]


def find_eocd(source: ByteSource) -> EndOfCentralDirectory:
    """Find and parse the End of Central Directory record.

    Scans backward from the end of the source. The EOCD is 22 bytes followed
    by a comment of up to 65535 bytes, so only that tail is searched. A
    signature match is accepted only if its comment length reaches exactly
    to the end of the source, which rules out signature bytes that happen
    to appear inside the comment. The last valid record wins.

    Args:
        source: Byte source holding the archive.

    Returns:
        EndOfCentralDirectory object with its absolute offset filled in.

    Raises:
        ZipFormatError: If no valid EOCD record is found.
    """
    file_size = source.total_length()
    if file_size < END_OF_CENTRAL_DIR_SIZE:
        raise ZipFormatError(
            f"File too small to be a ZIP archive: {file_size} bytes"
        )

    window_start = max(0, file_size - END_OF_CENTRAL_DIR_SIZE - MAX_EOCD_COMMENT)
    tail = read_exact_at(source, window_start, file_size - window_start)

    pos = len(tail) - END_OF_CENTRAL_DIR_SIZE
    while pos >= 0:
        pos = tail.rfind(END_OF_CENTRAL_DIR_MAGIC, 0, pos + len(END_OF_CENTRAL_DIR_MAGIC))
        if pos < 0:
            break
        (comment_len,) = struct.unpack_from("<H", tail, pos + END_OF_CENTRAL_DIR_SIZE - 2)
        if pos + END_OF_CENTRAL_DIR_SIZE + comment_len == len(tail):
            eocd = parse_eocd(tail, pos)
            eocd.offset = window_start + pos
            logger.debug(
                "EOCD at offset %d: %d entries, central directory %d bytes at %d",
                eocd.offset,
                eocd.cd_records_total,
                eocd.cd_size,
                eocd.cd_offset,
            )
            return eocd
        pos -= 1

    raise ZipFormatError("End of Central Directory record not found")


def _check_eocd(eocd: EndOfCentralDirectory) -> None:
    """Reject ZIP64 and multi-disk archives and a misplaced central directory."""
    if (
        eocd.cd_records_total == ZIP64_COUNT_SENTINEL
        or eocd.cd_records_on_disk == ZIP64_COUNT_SENTINEL
        or eocd.cd_size == ZIP64_SIZE_SENTINEL
        or eocd.cd_offset == ZIP64_SIZE_SENTINEL
    ):
        raise ZipUnsupportedFeature("ZIP64 archives are not supported")

    if (
        eocd.disk_num != 0
        or eocd.cd_disk != 0
        or eocd.cd_records_on_disk != eocd.cd_records_total
    ):
        raise ZipUnsupportedFeature("Multi-disk archives are not supported")

    if eocd.cd_offset + eocd.cd_size > eocd.offset:
        raise ZipFormatError(
            f"Central directory extends beyond its end record: offset {eocd.cd_offset}, "
            f"size {eocd.cd_size} (EOCD at {eocd.offset})"
        )

    if eocd.cd_records_total * CENTRAL_DIR_HEADER_SIZE > eocd.cd_size:
        raise ZipFormatError(
            f"Central directory too small for {eocd.cd_records_total} entries: "
            f"{eocd.cd_size} bytes"
        )


def parse_central_directory(source: ByteSource, eocd: EndOfCentralDirectory) -> list[ZipEntry]:
    """Parse the central directory and build ZipEntry objects.

    Args:
        source: Byte source holding the archive.
        eocd: The archive's End of Central Directory record.

    Returns:
        List of ZipEntry objects in directory order.

    Raises:
        ZipFormatError: If the central directory is truncated, a record has
            a bad signature, or an entry points past the directory.
        ZipUnsupportedFeature: If ZIP64 or multi-disk values are present.
    """
    _check_eocd(eocd)

    cd_offset = eocd.cd_offset
    num_entries = eocd.cd_records_total
    region = read_exact_at(source, cd_offset, eocd.cd_size)

    entries = []
    pos = 0
    for index in range(num_entries):
        header = parse_central_directory_header(region, pos)
        pos += header.total_size

        if ZIP64_SIZE_SENTINEL in (
            header.compressed_size,
            header.uncompressed_size,
            header.local_header_offset,
        ):
            raise ZipUnsupportedFeature(
                f"Entry {index} uses ZIP64 sizes or offsets (not supported)"
            )

        if header.local_header_offset >= cd_offset:
            raise ZipFormatError(
                f"Local header offset {header.local_header_offset} of entry {index} "
                f"is not before the central directory at {cd_offset}"
            )

        name = decode_name(header.filename, bool(header.flags & FLAG_UTF8))
        # Normalize path separators (use forward slash for consistency)
        if "\\" in name:
            name = name.replace("\\", "/")

        entries.append(build_entry(header, index, name))

    if pos < len(region):
        logger.warning(
            "%d unused bytes after the last central directory record", len(region) - pos
        )

    if len(entries) != num_entries:
        raise ZipFormatError(
            f"Entry count mismatch: expected {num_entries} entries, parsed {len(entries)} entries"
        )

    return entries


def validate_local_header(source: ByteSource, entry: ZipEntry, cd_offset: int) -> int:
    """Read an entry's local file header and check it against the central record.

    When general purpose bit 3 is set the local CRC32 and sizes are
    placeholders, so only the central directory values are used. A signed
    data descriptor after the data, if present, must agree with them.

    Args:
        source: Byte source holding the archive.
        entry: Entry from the central directory.
        cd_offset: Offset of the central directory; entry data must end
            before it.

    Returns:
        Absolute offset of the entry's compressed data.

    Raises:
        ZipFormatError: If the local header cannot be read or its data runs
            into the central directory.
        ZipInconsistencyError: If the local header disagrees with the
            central directory record.
    """
    offset = entry.local_header_offset
    header = parse_local_file_header(read_exact_at(source, offset, LOCAL_FILE_HEADER_SIZE))
    header.filename = read_exact_at(source, offset + LOCAL_FILE_HEADER_SIZE, header.filename_len)

    if header.compression_method != entry.compression_method:
        raise ZipInconsistencyError(
            f"Compression method for entry '{entry.name}' differs: "
            f"local {header.compression_method}, central {entry.compression_method}"
        )
    if header.filename != entry.raw_name:
        raise ZipInconsistencyError(
            f"File name in local header {header.filename!r} differs from "
            f"central directory {entry.raw_name!r}"
        )

    deferred = (header.flags | entry.flags) & FLAG_DATA_DESCRIPTOR
    if not deferred:
        for field in ("crc32", "compressed_size", "uncompressed_size"):
            local, central = getattr(header, field), getattr(entry, field)
            if local != central:
                raise ZipInconsistencyError(
                    f"{field} for entry '{entry.name}' differs: local {local}, central {central}"
                )

    data_offset = offset + header.total_size
    data_end = data_offset + entry.compressed_size
    if data_end > cd_offset:
        raise ZipFormatError(
            f"Data for entry '{entry.name}' extends into the central directory: "
            f"ends at {data_end}, directory at {cd_offset}"
        )

    if deferred:
        descriptor = parse_data_descriptor(source.read_at(data_end, DATA_DESCRIPTOR_SIZE))
        if descriptor is not None and (
            descriptor.crc32 != entry.crc32
            or descriptor.compressed_size != entry.compressed_size
            or descriptor.uncompressed_size != entry.uncompressed_size
        ):
            raise ZipInconsistencyError(
                f"Data descriptor for entry '{entry.name}' differs from central directory"
            )

    return data_offset


class EntryStream(io.RawIOBase):
    """Read-only, non-seekable file object over an entry's decompressed data.

    The CRC32 is verified when the last chunk has been read, so a corrupt
    entry raises from read() at the end of the stream.
    """

    def __init__(self, chunks: Iterator[bytes], entry: ZipEntry):
        super().__init__()
        self.entry = entry
        self._chunks = chunks
        self._buffer = b""
        self._pos = 0

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        while self._pos >= len(self._buffer):
            if self._chunks is None:
                return 0
            try:
                self._buffer = next(self._chunks)
            except StopIteration:
                self._chunks = None
                return 0
            self._pos = 0

        n = min(len(b), len(self._buffer) - self._pos)
        b[:n] = self._buffer[self._pos : self._pos + n]
        self._pos += n
        return n

    def close(self) -> None:
        if self._chunks is not None:
            self._chunks.close()
            self._chunks = None
        super().close()


class ZipReader:
    """Reader for ZIP archives.

    The end record and central directory are parsed once, when the reader
    is created; the resulting index never changes. Entry data is read and
    decompressed on demand and never cached.

    Example:
        with open("archive.zip", "rb") as f, ZipReader(f) as z:
            for entry in z.entries():
                print(entry.name, entry.uncompressed_size)
            data = z.read("file.txt")
    """

    def __init__(self, source, chunk_size: int = READ_CHUNK_SIZE):
        """Initialize ZipReader over a byte source.

        Args:
            source: ByteSource, bytes-like object or seekable binary file
                object. File objects are not closed by the reader.
            chunk_size: Compressed bytes read from the source per step.

        Raises:
            ZipFormatError: If the source is not a valid ZIP archive.
            ZipUnsupportedFeature: If the archive is ZIP64 or multi-disk.
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        self._owns_source = not isinstance(source, ByteSource)
        self._source: Optional[ByteSource] = as_byte_source(source)
        self._chunk_size = chunk_size
        self._eocd: Optional[EndOfCentralDirectory] = None
        self._entries: tuple[ZipEntry, ...] = ()
        self._index: dict[str, ZipEntry] = {}
        self._closed: bool = False

        try:
            self._parse_archive()
        except Exception:
            self.close()
            raise

    def _parse_archive(self) -> None:
        """Parse the entire archive structure."""
        self._eocd = find_eocd(self._source)
        entries = parse_central_directory(self._source, self._eocd)

        index: dict[str, ZipEntry] = {}
        for entry in entries:
            if entry.name in index:
                logger.warning(
                    "Duplicate entry name '%s' at position %d; keeping the first occurrence",
                    entry.name,
                    entry.index,
                )
                continue
            index[entry.name] = entry

        self._entries = tuple(entries)
        self._index = index

    def _check_open(self) -> None:
        if self._closed:
            raise ZipFormatError("Archive is closed")

    def _resolve(self, entry: Union[ZipEntry, str, bytes]) -> ZipEntry:
        if isinstance(entry, ZipEntry):
            if entry.index < len(self._entries) and self._entries[entry.index] == entry:
                return entry
            raise ZipEntryNotFound(f"Entry does not belong to this archive: {entry.name}")
        return self.lookup(entry)

    @property
    def end_record(self) -> EndOfCentralDirectory:
        """The parsed End of Central Directory record."""
        self._check_open()
        return self._eocd

    @property
    def comment(self) -> bytes:
        """Archive comment from the End of Central Directory record."""
        return self.end_record.comment

    def entries(self) -> tuple[ZipEntry, ...]:
        """Return every entry in central directory order, duplicates included."""
        self._check_open()
        return self._entries

    def list(self) -> list[str]:
        """List all entry names in the archive.

        Returns:
            List of entry names (files and directories) in directory order.
        """
        self._check_open()
        return [entry.name for entry in self._entries]

    def lookup(self, name: Union[str, bytes]) -> ZipEntry:
        """Get an entry by exact name.

        When the archive holds several entries with the same name, the
        first one in directory order is returned.

        Args:
            name: Decoded entry name, or the raw name as stored.

        Returns:
            ZipEntry for the name.

        Raises:
            ZipEntryNotFound: If no entry has this name.
        """
        self._check_open()
        if isinstance(name, bytes):
            for entry in self._entries:
                if entry.raw_name == name:
                    return entry
        else:
            # Normalize path separators to match stored entry names
            if "\\" in name:
                name = name.replace("\\", "/")
            entry = self._index.get(name)
            if entry is not None:
                return entry
        raise ZipEntryNotFound(f"Entry not found: {name!r}")

    def get_info(self, name: Union[str, bytes]) -> Optional[ZipEntry]:
        """Get metadata for a specific entry.

        Returns:
            ZipEntry object if found, None otherwise.
        """
        try:
            return self.lookup(name)
        except ZipEntryNotFound:
            return None

    def _open_chunks(self, entry: ZipEntry) -> Iterator[bytes]:
        """Run every check that can fail before data is produced and return the raw chunks."""
        for flag, feature in UNSUPPORTED_FLAGS.items():
            if entry.flags & flag:
                raise ZipUnsupportedFeature(
                    f"Entry '{entry.name}' uses {feature} (not supported)"
                )

        decompress = decompressor_for(entry.compression_method, entry.name)
        data_offset = validate_local_header(self._source, entry, self._eocd.cd_offset)
        logger.debug(
            "Extracting '%s': %s, %d bytes at offset %d",
            entry.name,
            entry.compression_name,
            entry.compressed_size,
            data_offset,
        )
        return decompress(
            self._source,
            data_offset,
            entry.compressed_size,
            entry.uncompressed_size,
            self._chunk_size,
        )

    @staticmethod
    def _verified(entry: ZipEntry, chunks: Iterator[bytes]) -> Iterator[bytes]:
        crc = Crc32()
        for chunk in chunks:
            crc.update(chunk)
            yield chunk
        crc.verify(entry.crc32, entry.name)

    def iter_content(self, entry: Union[ZipEntry, str, bytes]) -> Iterator[bytes]:
        """Return an iterator over an entry's decompressed data.

        Encryption, the compression method and the local header are checked
        before this returns, so an entry that cannot be decoded fails here
        rather than part way through. The CRC32 is checked after the last
        chunk.

        Args:
            entry: ZipEntry or entry name.

        Returns:
            Iterator of bytes chunks.

        Raises:
            ZipEntryNotFound: If the entry is not in the archive.
            ZipUnsupportedFeature: If the entry is encrypted or uses an
                unsupported compression method.
            ZipFormatError: If the local header cannot be read.
            ZipInconsistencyError: If the local header disagrees with the
                central directory.
        """
        self._check_open()
        entry = self._resolve(entry)
        return self._verified(entry, self._open_chunks(entry))

    def extract(self, entry: Union[ZipEntry, str, bytes], sink: Sink) -> int:
        """Stream an entry's decompressed data into a sink.

        Data is written as it is decompressed. If extraction fails the sink
        may already hold part of the data; the caller must treat it as
        invalid and clean it up.

        Args:
            entry: ZipEntry or entry name.
            sink: Binary file-like object with a write() method, or a
                callable taking bytes.

        Returns:
            Number of bytes written.

        Raises:
            ZipError: Any error from iter_content(), plus
                ZipCompressionError and ZipCrcError while streaming.
        """
        write = getattr(sink, "write", sink)
        if not callable(write):
            raise TypeError("sink must have a write() method or be callable")

        written = 0
        for chunk in self.iter_content(entry):
            write(chunk)
            written += len(chunk)
        return written

    def read(self, entry: Union[ZipEntry, str, bytes]) -> bytes:
        """Return an entry's full decompressed content after CRC32 validation."""
        return b"".join(self.iter_content(entry))

    def open(self, entry: Union[ZipEntry, str, bytes]) -> BinaryIO:
        """Open an entry for reading decompressed data.

        Args:
            entry: ZipEntry or entry name.

        Returns:
            Buffered, read-only file object streaming the entry's data.

        Raises:
            The same errors as iter_content().
        """
        self._check_open()
        entry = self._resolve(entry)
        stream = EntryStream(self._verified(entry, self._open_chunks(entry)), entry)
        return io.BufferedReader(stream, buffer_size=self._chunk_size)

    def peek(self, entry: Union[ZipEntry, str, bytes], length: int) -> bytes:
        """Return up to 'length' bytes from the start of an entry.

        Only part of the stream is decompressed, so the CRC32 cannot be
        checked; decompression errors in that part are still raised.
        """
        self._check_open()
        entry = self._resolve(entry)
        if length <= 0:
            return b""
        chunks = self._open_chunks(entry)
        data = bytearray()
        try:
            for chunk in chunks:
                data += chunk
                if len(data) >= length:
                    break
        finally:
            if hasattr(chunks, "close"):
                chunks.close()
        return bytes(data[:length])

    def close(self) -> None:
        """Close the archive and drop its index."""
        if self._closed:
            return

        if self._owns_source and self._source is not None:
            self._source.close()
        self._source = None
        self._entries = ()
        self._index = {}
        self._closed = True

    def __enter__(self) -> "ZipReader":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
