"""
Log line checksum.

The producer embeds this checksum in every line it writes; the validator
recomputes it over the message portion. Both sides must use this exact
function.

Algorithm:
- CRC-32 (IEEE polynomial) over the message bytes
- Encoded as an unsigned LEB128 varint into a 5-byte zero-padded buffer
- Output: unpadded URL-safe base64 (always 7 characters)
"""

import base64
import zlib
from typing import Union

# Widest varint a 32-bit value can need
MAX_VARINT_LEN32 = 5


def _put_uvarint(buf: bytearray, value: int) -> int:
    """Write value as an unsigned varint into buf. Returns bytes written."""
    i = 0
    while value >= 0x80:
        buf[i] = (value & 0x7F) | 0x80
        value >>= 7
        i += 1
    buf[i] = value
    return i + 1


def to_bytes(data: Union[bytes, str]) -> bytes:
    """Encode text to the raw bytes it was read from."""
    if isinstance(data, str):
        # surrogateescape restores bytes that were not valid UTF-8
        return data.encode("utf-8", "surrogateescape")
    return data


def log_line_checksum(message: Union[bytes, str]) -> str:
    """
    Compute the checksum of a log message.

    Args:
        message: The message portion of a log line

    Returns:
        7-character URL-safe base64 string
    """
    crc = zlib.crc32(to_bytes(message)) & 0xFFFFFFFF
    buf = bytearray(MAX_VARINT_LEN32)
    _put_uvarint(buf, crc)
    return base64.urlsafe_b64encode(bytes(buf)).rstrip(b"=").decode("ascii")
