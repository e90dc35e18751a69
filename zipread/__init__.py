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
ZIPREAD - Pure Python ZIP archive reader.

This library locates and parses the central directory of a ZIP archive,
exposes its entries, and extracts stored and deflated entries with CRC32
verification, using only Python standard library modules.
"""

from .constants import CompressionMethod
from .errors import (
    ZipCompressionError,
    ZipCrcError,
    ZipEntryNotFound,
    ZipError,
    ZipFormatError,
    ZipInconsistencyError,
    ZipSizeMismatchError,
    ZipUnsupportedCompressionMethod,
    ZipUnsupportedFeature,
)
from .reader import ZipReader
from .source import ByteSource, BytesSource, FileSource
from .structures import ZipEntry

__all__ = [
    "open",
    "ZipReader",
    "ZipEntry",
    "CompressionMethod",
    "ByteSource",
    "BytesSource",
    "FileSource",
    "ZipError",
    "ZipFormatError",
    "ZipUnsupportedFeature",
    "ZipUnsupportedCompressionMethod",
    "ZipInconsistencyError",
    "ZipCompressionError",
    "ZipSizeMismatchError",
    "ZipCrcError",
    "ZipEntryNotFound",
]

__version__ = "0.1.0"


def open(source, **kwargs) -> ZipReader:
    """Open a ZIP archive from a byte source, bytes-like object or binary file object.

    Equivalent to ZipReader(source, **kwargs).
    """
    return ZipReader(source, **kwargs)
