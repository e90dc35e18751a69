"""Tests for locating the End of Central Directory record."""

import pytest

import zipread
from zipread.errors import ZipFormatError
from zipread.reader import find_eocd
from zipread.source import BytesSource

from conftest import Member, build_zip


class TestFindEocd:
    """Backward scan for the EOCD record."""

    def test_record_without_comment(self, two_entries):
        """The record sits in the last 22 bytes when there is no comment."""
        eocd = find_eocd(BytesSource(two_entries))

        assert eocd.offset == len(two_entries) - 22
        assert eocd.cd_records_total == 2
        assert eocd.comment == b""

    def test_record_with_comment(self):
        """A trailing comment is skipped and returned."""
        archive = build_zip([Member(b"a.txt", b"abcd")], comment=b"hello world")
        eocd = find_eocd(BytesSource(archive))

        assert eocd.offset == len(archive) - 22 - len(b"hello world")
        assert eocd.comment == b"hello world"

    def test_signature_inside_comment_is_ignored(self):
        """A fake record in the comment does not reach the end of the file and is rejected."""
        comment = b"PK\x05\x06" + bytes(18) + b"tail"
        archive = build_zip([Member(b"a.txt", b"abcd")], comment=comment)
        eocd = find_eocd(BytesSource(archive))

        assert eocd.offset == len(archive) - 22 - len(comment)
        assert eocd.comment == comment
        assert eocd.cd_records_total == 1

    def test_maximum_comment_length(self):
        """A 65535 byte comment is still inside the search window."""
        comment = b"c" * 0xFFFF
        archive = build_zip([Member(b"a.txt", b"abcd")], comment=comment)
        eocd = find_eocd(BytesSource(archive))

        assert eocd.comment_len == 0xFFFF

    def test_idempotent(self, two_entries):
        """Repeated scans of the same source return the same offset."""
        source = BytesSource(two_entries)

        assert find_eocd(source).offset == find_eocd(source).offset

    def test_empty_archive(self):
        """An archive with no entries is just an EOCD record."""
        archive = build_zip([])
        eocd = find_eocd(BytesSource(archive))

        assert eocd.offset == 0
        assert eocd.cd_records_total == 0

    def test_too_small(self):
        """Fewer than 22 bytes cannot hold an EOCD record."""
        with pytest.raises(ZipFormatError, match="too small"):
            find_eocd(BytesSource(b"PK\x05\x06"))

    def test_not_a_zip(self):
        """Data without the signature is rejected."""
        with pytest.raises(ZipFormatError, match="not found"):
            find_eocd(BytesSource(b"hello world " * 100))

    def test_trailing_garbage(self, two_entries):
        """Bytes after the record break the comment length check."""
        with pytest.raises(ZipFormatError):
            find_eocd(BytesSource(two_entries + b"garbage"))


class TestTruncatedArchive:
    """Cutting bytes off the end makes the archive unopenable."""

    def test_truncated_by_ten_bytes(self, two_entries):
        with pytest.raises(ZipFormatError):
            zipread.open(two_entries[:-10])

    @pytest.mark.parametrize("cut", [1, 2, 21, 22])
    def test_truncated_end_record(self, two_entries, cut):
        with pytest.raises(ZipFormatError):
            zipread.open(two_entries[:-cut])
