"""Binary header carrying a Huffman code table.

Layout, big-endian::

    [2 bytes: length of the entries that follow]
    entry*: [1 byte symbol][1 byte code bit-length][ceil(bit-length / 8) bytes code]

Code bits are packed most significant bit first and the last code byte is
zero-padded in its low bits. Entries are written in ascending symbol order.
"""
import logging
import struct

from bitstream import pack_bits, unpack_bits
from codec_errors import MalformedHeaderError, UnsupportedCodeLengthError

logger = logging.getLogger(__name__)

HEADER_LENGTH_FIELD_SIZE = 2
MAX_CODE_LENGTH = 255


def serialize_header(codes):
    """Serialize a {symbol: bit string} code table into header bytes"""
    entries = bytearray()

    for symbol in sorted(codes):
        code = codes[symbol]
        if not 0 <= symbol <= 0xFF:
            raise ValueError(f"symbol {symbol!r} is not a byte value")
        if not code or len(code) > MAX_CODE_LENGTH:
            raise UnsupportedCodeLengthError(
                f"code for symbol {symbol} has {len(code)} bits, "
                f"expected 1 to {MAX_CODE_LENGTH}"
            )

        entries.append(symbol)
        entries.append(len(code))
        entries.extend(pack_bits(code))

    logger.debug("serialized %d header entries into %d bytes", len(codes), len(entries))
    return struct.pack('>H', len(entries)) + bytes(entries)


def deserialize_header(data, offset=0):
    """Parse a header starting at ``offset``.

    Returns ``(codes, consumed)`` where ``consumed`` counts the length field
    and every entry byte.
    """
    if len(data) - offset < HEADER_LENGTH_FIELD_SIZE:
        raise MalformedHeaderError("header length field is truncated")

    (length,) = struct.unpack_from('>H', data, offset)
    pos = offset + HEADER_LENGTH_FIELD_SIZE
    end = pos + length
    if end > len(data):
        raise MalformedHeaderError(
            f"header declares {length} entry bytes but only {len(data) - pos} remain"
        )

    codes = {}
    while pos < end:
        if end - pos < 2:
            raise MalformedHeaderError(f"entry at offset {pos} crosses the header end")

        symbol = data[pos]
        bit_length = data[pos + 1]
        pos += 2

        if bit_length == 0:
            raise MalformedHeaderError(f"symbol {symbol} has a zero-length code")
        code_size = (bit_length + 7) // 8
        if pos + code_size > end:
            raise MalformedHeaderError(f"code for symbol {symbol} crosses the header end")
        if symbol in codes:
            raise MalformedHeaderError(f"symbol {symbol} appears twice in the header")

        codes[symbol] = unpack_bits(data[pos:pos + code_size], bit_length)
        pos += code_size

    return codes, end - offset
