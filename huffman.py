"""Huffman coding of byte sequences.

A compressed container is laid out as::

    [4 bytes original length, big-endian][header][body]

where the header is the serialized code table (see ``huffman_header``) and
the body is every input byte's code, concatenated and packed MSB first.
Decoding is driven by the original length, so padding bits in the last body
byte are never read as symbols.
"""
import heapq
import logging
import struct
from collections import namedtuple

import numpy as np

from bitstream import BitWriter, pack_bits, unpack_bits
from codec_errors import (
    CompressionError,
    EmptyInputError,
    InputTooLargeError,
    MalformedContainerError,
    MalformedHeaderError,
    TruncatedBodyError,
)
from huffman_header import HEADER_LENGTH_FIELD_SIZE, deserialize_header, serialize_header

logger = logging.getLogger(__name__)

LENGTH_FIELD_SIZE = 4
MAX_ORIGINAL_LENGTH = 0xFFFFFFFF
STREAM_CHUNK_SIZE = 64 * 1024

HuffmanContainer = namedtuple("HuffmanContainer", ["original_length", "codes", "header_size", "body"])


class HuffmanNode:
    """Leaf when ``symbol`` is set, otherwise an internal node.

    Encode trees are strict (every internal node has two children). Trees
    rebuilt from a header may have missing children where no code leads.
    """
    __slots__ = ("weight", "symbol", "left", "right")

    def __init__(self, weight, symbol=None, left=None, right=None):
        self.weight = weight
        self.symbol = symbol
        self.left = left
        self.right = right

    @property
    def is_leaf(self):
        return self.symbol is not None

    def child(self, bit):
        return self.left if bit == '0' else self.right

    def attach(self, bit, node):
        if bit == '0':
            self.left = node
        else:
            self.right = node


def _histogram(data):
    return np.bincount(np.frombuffer(data, dtype=np.uint8), minlength=256).astype(np.uint64)


def _frequencies_from_histogram(histogram):
    return {int(symbol): int(histogram[symbol]) for symbol in np.flatnonzero(histogram)}


def byte_frequencies(data):
    """Count occurrences of every byte value present in data"""
    return _frequencies_from_histogram(_histogram(data))


def build_tree(frequencies):
    """Greedily merge the two lightest nodes until a single root remains.

    Ties on weight go to the node inserted first: leaves in ascending byte
    order, then merged nodes in the order they were created. The first node
    popped becomes the left child.
    """
    if not frequencies:
        raise EmptyInputError("cannot build a Huffman tree from an empty frequency table")

    heap = [
        (weight, order, HuffmanNode(weight, symbol))
        for order, (symbol, weight) in enumerate(sorted(frequencies.items()))
    ]
    heapq.heapify(heap)
    order = len(heap)

    while len(heap) > 1:
        left_weight, _, left = heapq.heappop(heap)
        right_weight, _, right = heapq.heappop(heap)
        weight = left_weight + right_weight
        heapq.heappush(heap, (weight, order, HuffmanNode(weight, left=left, right=right)))
        order += 1

    return heap[0][2]


def build_codes(root):
    """Map each leaf symbol to its root-to-leaf path, '0' for left and '1' for right.

    A lone leaf root gets the one-bit code '0'.
    """
    codes = {}
    if root.is_leaf:
        codes[root.symbol] = '0'
        return codes

    _collect_codes(root, [], codes)
    return codes


def _collect_codes(node, path, codes):
    if node.is_leaf:
        codes[node.symbol] = ''.join(path)
        return

    path.append('0')
    _collect_codes(node.left, path, codes)
    path.pop()

    path.append('1')
    _collect_codes(node.right, path, codes)
    path.pop()


def build_decode_tree(codes):
    """Rebuild a tree from a code table by walking each code from the root."""
    root = HuffmanNode(0)

    for symbol, code in sorted(codes.items()):
        if not code:
            raise MalformedHeaderError(f"symbol {symbol} has an empty code")

        node = root
        for bit in code[:-1]:
            child = node.child(bit)
            if child is None:
                child = HuffmanNode(0)
                node.attach(bit, child)
            elif child.is_leaf:
                raise MalformedHeaderError(
                    f"code for symbol {symbol} extends the code for symbol {child.symbol}"
                )
            node = child

        if node.child(code[-1]) is not None:
            raise MalformedHeaderError(f"code for symbol {symbol} collides with another code")
        node.attach(code[-1], HuffmanNode(0, symbol))

    return root


def encoded_bit_length(frequencies, codes):
    """Number of body bits produced for the given frequencies"""
    return sum(count * len(codes[symbol]) for symbol, count in frequencies.items())


def _check_length(length):
    if length > MAX_ORIGINAL_LENGTH:
        raise InputTooLargeError(
            f"input of {length} bytes does not fit a {LENGTH_FIELD_SIZE}-byte length field"
        )


def _check_alphabet(original_length, codes):
    if original_length == 0 and codes:
        raise MalformedHeaderError("container for empty input carries a code table")
    if original_length and not codes:
        raise MalformedHeaderError(f"header has no entries for {original_length} bytes of input")


def huffman_encoding(data):
    """Compress bytes into a container: [original length][header][body]"""
    _check_length(len(data))
    if not data:
        return struct.pack('>I', 0) + serialize_header({})

    frequencies = byte_frequencies(data)
    codes = build_codes(build_tree(frequencies))
    header = serialize_header(codes)
    body = pack_bits(''.join(codes[byte] for byte in data))

    logger.debug(
        "huffman encoded %d bytes (%d symbols) into %d header + %d body bytes",
        len(data), len(codes), len(header), len(body),
    )
    return struct.pack('>I', len(data)) + header + body


def read_container(container):
    """Parse the length and header of a container without decoding its body"""
    if len(container) < LENGTH_FIELD_SIZE + HEADER_LENGTH_FIELD_SIZE:
        raise MalformedContainerError("container is shorter than its fixed fields")

    (original_length,) = struct.unpack_from('>I', container, 0)
    codes, header_size = deserialize_header(container, LENGTH_FIELD_SIZE)
    _check_alphabet(original_length, codes)
    body = bytes(container[LENGTH_FIELD_SIZE + header_size:])

    return HuffmanContainer(original_length, codes, header_size, body)


def _walk(root, node, bits, remaining, out):
    # Stops as soon as `remaining` symbols are emitted; trailing bits are padding.
    for bit in bits:
        node = node.child(bit)
        if node is None:
            raise MalformedContainerError("bit path falls off the decode tree")
        if node.is_leaf:
            out.append(node.symbol)
            node = root
            remaining -= 1
            if remaining == 0:
                break
    return node, remaining


def huffman_decoding(container):
    """Restore the original bytes from a container produced by huffman_encoding"""
    parsed = read_container(container)
    if parsed.original_length == 0:
        return b''

    root = build_decode_tree(parsed.codes)
    out = bytearray()
    _, remaining = _walk(root, root, unpack_bits(parsed.body), parsed.original_length, out)
    if remaining:
        raise TruncatedBodyError(
            f"body ended after {len(out)} of {parsed.original_length} symbols"
        )

    logger.debug("huffman decoded %d body bytes into %d bytes", len(parsed.body), len(out))
    return bytes(out)


def _read_chunks(reader, chunk_size):
    while True:
        chunk = reader.read(chunk_size)
        if not chunk:
            return
        yield chunk


def huffman_encode_stream(reader, writer, chunk_size=STREAM_CHUNK_SIZE):
    """Compress a seekable binary stream into ``writer`` using two passes.

    The first pass only builds the histogram; the reader is then rewound to
    where it started and the body is written as whole bytes fill up.
    Returns the number of bytes written.
    """
    start = reader.tell()
    histogram = np.zeros(256, dtype=np.uint64)
    total = 0
    for chunk in _read_chunks(reader, chunk_size):
        histogram += _histogram(chunk)
        total += len(chunk)
    _check_length(total)

    frequencies = _frequencies_from_histogram(histogram)
    codes = build_codes(build_tree(frequencies)) if frequencies else {}
    header = serialize_header(codes)
    writer.write(struct.pack('>I', total))
    writer.write(header)

    reader.seek(start)
    bit_writer = BitWriter(writer)
    second_total = 0
    for chunk in _read_chunks(reader, chunk_size):
        try:
            bit_writer.write(''.join(codes[byte] for byte in chunk))
        except KeyError as exc:
            raise CompressionError(f"byte {exc.args[0]} was not seen by the histogram pass") from exc
        second_total += len(chunk)
    body_size = bit_writer.close()

    if second_total != total:
        raise CompressionError(f"stream yielded {total} bytes, then {second_total} after rewinding")

    logger.debug(
        "huffman stream encoded %d bytes into %d header + %d body bytes",
        total, len(header), body_size,
    )
    return LENGTH_FIELD_SIZE + len(header) + body_size


def huffman_decode_stream(reader, writer, chunk_size=STREAM_CHUNK_SIZE):
    """Decompress a container read from ``reader`` into ``writer``.

    Returns the number of bytes written.
    """
    fixed = reader.read(LENGTH_FIELD_SIZE + HEADER_LENGTH_FIELD_SIZE)
    if len(fixed) < LENGTH_FIELD_SIZE + HEADER_LENGTH_FIELD_SIZE:
        raise MalformedContainerError("container is shorter than its fixed fields")

    original_length, header_length = struct.unpack('>IH', fixed)
    entries = reader.read(header_length)
    if len(entries) < header_length:
        raise MalformedHeaderError(
            f"header declares {header_length} entry bytes but only {len(entries)} remain"
        )
    codes, _ = deserialize_header(fixed[LENGTH_FIELD_SIZE:] + entries)
    _check_alphabet(original_length, codes)
    if original_length == 0:
        return 0

    root = build_decode_tree(codes)
    node, remaining = root, original_length
    for chunk in _read_chunks(reader, chunk_size):
        out = bytearray()
        node, remaining = _walk(root, node, unpack_bits(chunk), remaining, out)
        writer.write(bytes(out))
        if remaining == 0:
            break

    if remaining:
        raise TruncatedBodyError(
            f"body ended after {original_length - remaining} of {original_length} symbols"
        )
    return original_length


encode = huffman_encoding
decode = huffman_decoding
