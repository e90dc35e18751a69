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
ZIP format constants: record signatures, fixed record sizes, compression
method codes, general purpose flag bits and reader defaults.
"""

from enum import IntEnum

# ZIP record signatures (magic numbers)
LOCAL_FILE_HEADER = 0x04034B50  # "PK\x03\x04"
CENTRAL_DIR_HEADER = 0x02014B50  # "PK\x01\x02"
END_OF_CENTRAL_DIR = 0x06054B50  # "PK\x05\x06"
DATA_DESCRIPTOR = 0x08074B50  # "PK\x07\x08"

END_OF_CENTRAL_DIR_MAGIC = b"PK\x05\x06"


class CompressionMethod(IntEnum):
    """Compression methods this library can decode.

    Any other method code found in an archive is reported as unsupported.
    """

    STORED = 0
    DEFLATED = 8


# Raw method codes
COMP_STORED = CompressionMethod.STORED
COMP_DEFLATE = CompressionMethod.DEFLATED
COMP_BZIP2 = 12
COMP_LZMA = 14

# Compression method names (for display and error messages)
COMPRESSION_STORED = "stored"
COMPRESSION_DEFLATE = "deflate"
COMPRESSION_BZIP2 = "bzip2"
COMPRESSION_LZMA = "lzma"

METHOD_TO_NAME = {
    COMP_STORED: COMPRESSION_STORED,
    COMP_DEFLATE: COMPRESSION_DEFLATE,
    COMP_BZIP2: COMPRESSION_BZIP2,
    COMP_LZMA: COMPRESSION_LZMA,
}

# General purpose bit flags
FLAG_ENCRYPTED = 0x0001  # File is encrypted
FLAG_DATA_DESCRIPTOR = 0x0008  # Sizes and CRC follow the file data
FLAG_PATCHED_DATA = 0x0020  # Compressed patched data
FLAG_STRONG_ENCRYPTION = 0x0040  # Strong encryption used
FLAG_UTF8 = 0x0800  # UTF-8 encoding for filename/comment
FLAG_MASKED_HEADERS = 0x2000  # Local header values are masked

# Flags that make an entry impossible to extract
UNSUPPORTED_FLAGS = {
    FLAG_ENCRYPTED: "encrypted",
    FLAG_PATCHED_DATA: "compressed patched data",
    FLAG_STRONG_ENCRYPTION: "strong encryption",
    FLAG_MASKED_HEADERS: "masked local headers",
}

# ZIP64 sentinels in classic 16/32-bit fields
ZIP64_COUNT_SENTINEL = 0xFFFF
ZIP64_SIZE_SENTINEL = 0xFFFFFFFF

# Fixed record sizes
LOCAL_FILE_HEADER_SIZE = 30
CENTRAL_DIR_HEADER_SIZE = 46
END_OF_CENTRAL_DIR_SIZE = 22
DATA_DESCRIPTOR_SIZE = 16  # including the optional signature

# EOCD comment length is a 16-bit field
MAX_EOCD_COMMENT = 0xFFFF

# Compressed bytes read from the source per decompression step
READ_CHUNK_SIZE = 64 * 1024

# Unix directory bit in the high word of external attributes
UNIX_DIR_MODE = 0o040000
