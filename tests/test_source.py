"""Tests for byte sources."""

import io

import pytest

from zipread.errors import ZipFormatError
from zipread.source import ByteSource, BytesSource, FileSource, as_byte_source

DATA = bytes(range(256)) * 4


class TestBytesSource:
    def test_read_at(self):
        source = BytesSource(DATA)

        assert source.total_length() == len(DATA)
        assert source.read_at(0, 4) == DATA[:4]
        assert source.read_at(100, 10) == DATA[100:110]

    def test_short_read_at_end(self):
        source = BytesSource(DATA)

        assert source.read_at(len(DATA) - 3, 10) == DATA[-3:]
        assert source.read_at(len(DATA) + 5, 10) == b""

    def test_returns_bytes(self):
        assert isinstance(BytesSource(bytearray(DATA)).read_at(0, 8), bytes)


class TestFileSource:
    @pytest.fixture
    def disk_file(self, tmp_path):
        path = tmp_path / "data.bin"
        path.write_bytes(DATA)
        with open(path, "rb") as f:
            yield f

    def test_disk_file(self, disk_file):
        source = FileSource(disk_file)

        assert source.total_length() == len(DATA)
        assert source.read_at(250, 12) == DATA[250:262]
        assert source.read_at(len(DATA) - 2, 10) == DATA[-2:]
        assert source.read_at(len(DATA), 10) == b""

    def test_position_preserved(self, disk_file):
        disk_file.seek(17)
        source = FileSource(disk_file)
        source.read_at(500, 20)

        assert disk_file.tell() == 17

    def test_file_object(self):
        source = FileSource(io.BytesIO(DATA))

        assert source.total_length() == len(DATA)
        assert source.read_at(1000, 100) == DATA[1000:]

    def test_zero_length(self):
        assert FileSource(io.BytesIO(DATA)).read_at(10, 0) == b""

    def test_close_leaves_file_open(self):
        f = io.BytesIO(DATA)
        FileSource(f).close()

        assert not f.closed

    @pytest.mark.parametrize("missing", ["read", "seek", "tell"])
    def test_missing_method(self, missing):
        attrs = {name: lambda *args: b"" for name in ("read", "seek", "tell") if name != missing}
        obj = type("Partial", (), attrs)()

        with pytest.raises(ZipFormatError, match=missing):
            FileSource(obj)


class TestAsByteSource:
    def test_passthrough(self):
        source = BytesSource(DATA)

        assert as_byte_source(source) is source

    @pytest.mark.parametrize("data", [DATA, bytearray(DATA), memoryview(DATA)])
    def test_bytes_like(self, data):
        assert isinstance(as_byte_source(data), BytesSource)

    def test_file_object(self):
        assert isinstance(as_byte_source(io.BytesIO(DATA)), FileSource)

    def test_path_rejected(self, tmp_path):
        with pytest.raises(ZipFormatError):
            as_byte_source(tmp_path / "archive.zip")

    def test_custom_source(self):
        class Constant(ByteSource):
            def read_at(self, offset, length):
                return b"\0" * length

            def total_length(self):
                return 1 << 20

        source = Constant()

        assert as_byte_source(source) is source
