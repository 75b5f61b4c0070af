"""
RLP (Recursive Length Prefix) encoding and strict decoding.

An RLP item is either a byte string (``bytes``) or a list of RLP items, the same
representation pyrlp uses. Encoding is delegated to ``rlp.encode``; decoding reads
one item with pyrlp's prefix reader and then checks that nothing it claimed lies
past the end of the buffer, so truncated input is never returned as a shorter value.
"""
from typing import List, Tuple, Union

import rlp
from eth_utils import big_endian_to_int
from rlp.codec import consume_item
from rlp.exceptions import DecodingError, RLPException

from .exceptions import EncodingTypeMismatch, MalformedInput

RLPItem = Union[bytes, List['RLPItem']]

# --- Prefix boundaries (Yellow Paper, appendix B) ---
SINGLE_BYTE_MAX = 0x7f  # bytes 0x00-0x7f are their own encoding
SHORT_STRING_PREFIX = 0x80  # 0x80 + len for strings of 0-55 bytes
LONG_STRING_BASE = 0xb7  # 0xb7 + len(len) for longer strings
SHORT_LIST_PREFIX = 0xc0  # 0xc0 + len for list payloads of 0-55 bytes
LONG_LIST_BASE = 0xf7  # 0xf7 + len(len) for longer list payloads
SHORT_MAX_LEN = 55


def encode(item) -> bytes:
    """
    RLP-encodes a byte string, a non-negative integer or a (nested) list of them.

    Integers are written as their minimal big-endian byte string, so ``0`` becomes the
    empty string (``0x80``) and ``1024`` becomes ``0x820400``.

    Args:
        item: ``bytes``, ``int`` >= 0, or a list/tuple of such items.

    Returns:
        bytes: The canonical RLP encoding.

    Raises:
        EncodingTypeMismatch: If the item (or a nested element) is not encodable.
    """
    try:
        return rlp.encode(item)
    except (RLPException, TypeError) as exc:
        raise EncodingTypeMismatch(f'cannot RLP-encode {type(item).__name__}: {exc}') from exc


def decode(data: bytes) -> Tuple[RLPItem, int]:
    """
    Decodes the RLP item at the start of ``data``.

    Args:
        data (bytes): The encoded buffer. Bytes after the first item are ignored.

    Returns:
        tuple: ``(item, consumed)`` where ``consumed`` is the number of bytes read.

    Raises:
        MalformedInput: On empty input, a length prefix that overruns the buffer, or a
            non-canonical encoding (a prefixed single byte, a long form for a short
            payload, a length with leading zero bytes).
    """
    if not isinstance(data, (bytes, bytearray)):
        raise MalformedInput(f'RLP input must be bytes, got {type(data).__name__}')
    data = bytes(data)
    if not data:
        raise MalformedInput('RLP input is empty')
    try:
        item, _, end = consume_item(data, 0)
    except IndexError as exc:
        raise MalformedInput('RLP input is truncated') from exc
    except DecodingError as exc:
        raise MalformedInput(str(exc)) from exc
    # pyrlp slices the payload without checking the buffer size
    if end > len(data):
        raise MalformedInput(f'RLP length prefix claims {end} bytes, buffer has {len(data)}')
    return item, end


def decode_all(data: bytes) -> RLPItem:
    """
    Decodes ``data`` as exactly one RLP item.

    Raises:
        MalformedInput: If the item is malformed or trailing bytes follow it.
    """
    item, consumed = decode(data)
    if consumed != len(data):
        raise MalformedInput(f'RLP input has {len(data) - consumed} trailing bytes')
    return item


def decode_int(raw: RLPItem) -> int:
    """
    Reads a scalar field (nonce, gas, value, v, r, s...) out of a decoded item.

    Raises:
        MalformedInput: If the item is a list or carries leading zero bytes.
    """
    if not isinstance(raw, bytes):
        raise MalformedInput('expected an RLP byte string for an integer field, got a list')
    if raw[:1] == b'\x00':
        raise MalformedInput('RLP integer has leading zero bytes')
    return big_endian_to_int(raw)
