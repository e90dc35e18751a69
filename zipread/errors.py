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
Custom exception classes for zipread.

Every error raised by the library derives from ZipError, so callers that
only care about "the archive or this entry is unusable" can catch that.
"""

from .constants import METHOD_TO_NAME


class ZipError(Exception):
    """Base exception class for all ZIP-related errors."""

    pass


class ZipFormatError(ZipError):
    """Raised when a ZIP file has an invalid format or structure.

    This exception is raised when:
    - The End of Central Directory record cannot be found
    - Required signatures are missing or incorrect
    - The central directory is truncated or points outside the archive
    """

    pass


class ZipUnsupportedFeature(ZipError):
    """Raised when encountering a ZIP feature this library does not handle.

    This exception is raised when:
    - ZIP64 sentinel values are present
    - The archive spans multiple disks
    - An entry is encrypted
    """

    pass


class ZipUnsupportedCompressionMethod(ZipUnsupportedFeature):
    """Raised when an entry uses a compression method other than stored or deflate.

    The method code is available as the ``method`` attribute. It is raised
    before any of the entry's data is read.
    """

    def __init__(self, method: int, name: str = ""):
        self.method = method
        self.name = name
        label = METHOD_TO_NAME.get(method, "unknown")
        where = f" for entry '{name}'" if name else ""
        super().__init__(f"Unsupported compression method {method} ({label}){where}")


class ZipInconsistencyError(ZipError):
    """Raised when a local file header disagrees with its central directory record.

    This usually means the archive is corrupted or was edited by hand, as
    opposed to a ZipFormatError where a record cannot be parsed at all.
    """

    pass


class ZipCrcError(ZipError):
    """Raised when CRC32 checksum validation fails.

    This exception is raised when the computed CRC32 of decompressed data
    does not match the expected CRC32 stored in the archive.
    """

    pass


class ZipCompressionError(ZipError):
    """Raised when decompression fails.

    This exception is raised when:
    - The deflate bitstream is malformed or ends early
    - Data follows the end of the deflate stream
    - The decompressed length differs from the declared size
    """

    pass


class ZipSizeMismatchError(ZipCompressionError):
    """Raised when a stored entry's data length differs from its declared size."""

    pass


class ZipEntryNotFound(ZipError, KeyError):
    """Raised when looking up a name that is not in the archive."""

    def __str__(self) -> str:
        # KeyError would repr() the message
        return Exception.__str__(self)
