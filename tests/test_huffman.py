import io
import random
import struct
from itertools import combinations

import pytest

import huffman
from codec_errors import (
    CompressionError,
    EmptyInputError,
    InputTooLargeError,
    MalformedContainerError,
    MalformedHeaderError,
    TruncatedBodyError,
)
from huffman import (
    build_codes,
    build_decode_tree,
    build_tree,
    byte_frequencies,
    decode,
    encode,
    encoded_bit_length,
    huffman_decode_stream,
    huffman_decoding,
    huffman_encode_stream,
    huffman_encoding,
    read_container,
)
from huffman_header import serialize_header

LITERAL = b"AAABBCCCC"


def random_bytes(n, seed=0, alphabet=256):
    rng = random.Random(seed)
    return bytes(rng.randrange(alphabet) for _ in range(n))


def skewed_bytes(n, seed=0):
    rng = random.Random(seed)
    return bytes(rng.choices(range(12), weights=[2 ** i for i in range(12)], k=n))


def test_byte_frequencies():
    assert byte_frequencies(LITERAL) == {65: 3, 66: 2, 67: 4}
    assert byte_frequencies(b"") == {}


def test_build_tree_rejects_empty_table():
    with pytest.raises(EmptyInputError):
        build_tree({})


def test_literal_scenario_codes():
    frequencies = byte_frequencies(LITERAL)
    root = build_tree(frequencies)
    codes = build_codes(root)

    assert root.weight == 9
    assert codes == {67: "0", 66: "10", 65: "11"}
    assert encoded_bit_length(frequencies, codes) == 3 * 2 + 2 * 2 + 4 * 1 == 14
    assert encoded_bit_length(frequencies, codes) <= 72


def test_literal_scenario_container():
    container = huffman_encoding(LITERAL)

    assert container == (
        b"\x00\x00\x00\x09"
        + b"\x00\x09" + bytes([65, 2, 0xC0, 66, 2, 0x80, 67, 1, 0x00])
        + b"\xfe\x80"
    )
    assert huffman_decoding(container) == LITERAL


def test_ties_go_to_lowest_byte_first():
    codes = build_codes(build_tree({10: 1, 20: 1, 30: 1, 40: 1}))
    assert codes == {10: "00", 20: "01", 30: "10", 40: "11"}


def test_tree_is_strict_binary():
    def check(node):
        if node.is_leaf:
            assert node.left is None and node.right is None
            return node.weight
        assert node.left is not None and node.right is not None
        assert node.weight == check(node.left) + check(node.right)
        return node.weight

    data = skewed_bytes(2000)
    assert check(build_tree(byte_frequencies(data))) == len(data)


@pytest.mark.parametrize("data", [
    b"a",
    b"ab",
    b"hello world",
    bytes(range(256)),
    bytes(range(256)) * 3 + b"\x00" * 100,
    random_bytes(10 * 1024),
    skewed_bytes(5000),
])
def test_round_trip(data):
    assert huffman_decoding(huffman_encoding(data)) == data


def test_buffer_api_aliases():
    assert decode(encode(LITERAL)) == LITERAL


def test_accepts_bytearray_and_memoryview():
    assert huffman_decoding(huffman_encoding(bytearray(LITERAL))) == LITERAL
    assert huffman_decoding(memoryview(huffman_encoding(memoryview(LITERAL)))) == LITERAL


def test_single_symbol_alphabet():
    data = b"\x41" * 1000
    container = huffman_encoding(data)
    parsed = read_container(container)

    assert parsed.codes == {0x41: "0"}
    assert parsed.body == b"\x00" * 125
    assert len(container) == 4 + 2 + 3 + 125
    assert huffman_decoding(container) == data


def test_empty_input_container():
    container = huffman_encoding(b"")

    assert container == b"\x00" * 6
    assert huffman_decoding(container) == b""


@pytest.mark.parametrize("seed", range(5))
def test_codes_are_prefix_free(seed):
    codes = build_codes(build_tree(byte_frequencies(random_bytes(3000, seed, alphabet=40))))

    for a, b in combinations(codes.values(), 2):
        assert not a.startswith(b)
        assert not b.startswith(a)


@pytest.mark.parametrize("seed", range(5))
def test_more_frequent_bytes_get_shorter_codes(seed):
    frequencies = byte_frequencies(skewed_bytes(4000, seed))
    codes = build_codes(build_tree(frequencies))

    for x, y in combinations(frequencies, 2):
        if frequencies[x] > frequencies[y]:
            assert len(codes[x]) <= len(codes[y])
        elif frequencies[y] > frequencies[x]:
            assert len(codes[y]) <= len(codes[x])


def test_decode_tree_matches_code_table():
    codes = build_codes(build_tree(byte_frequencies(skewed_bytes(1000))))
    root = build_decode_tree(codes)

    for symbol, code in codes.items():
        node = root
        for bit in code:
            node = node.child(bit)
        assert node.is_leaf and node.symbol == symbol


@pytest.mark.parametrize("codes", [
    {65: "0", 66: "01"},
    {65: "01", 66: "0"},
    {65: "10", 66: "10"},
    {65: ""},
])
def test_decode_tree_rejects_non_prefix_codes(codes):
    with pytest.raises(MalformedHeaderError):
        build_decode_tree(codes)


def test_read_container():
    container = huffman_encoding(LITERAL)
    parsed = read_container(container)

    assert parsed.original_length == 9
    assert parsed.codes == {67: "0", 66: "10", 65: "11"}
    assert parsed.header_size == 11
    assert parsed.body == b"\xfe\x80"


def test_truncated_body():
    compressed = huffman_encoding(b"This is a test" * 100)

    with pytest.raises(TruncatedBodyError):
        huffman_decoding(compressed[:-3])


def test_corrupted_length_field():
    compressed = bytearray(huffman_encoding(b"Hello World" * 50))
    compressed[0] ^= 0xFF

    with pytest.raises(CompressionError):
        huffman_decoding(bytes(compressed))


@pytest.mark.parametrize("container", [b"\x00\x00", b"\x00\x00\x00\x01", b"\x00\x00\x00\x01\x00"])
def test_container_shorter_than_fixed_fields(container):
    with pytest.raises(MalformedContainerError):
        huffman_decoding(container)


def test_bit_path_falls_off_tree():
    codes = {65: "00", 66: "01", 67: "10"}
    container = struct.pack(">I", 1) + serialize_header(codes) + b"\xc0"

    with pytest.raises(MalformedContainerError) as excinfo:
        huffman_decoding(container)
    assert not isinstance(excinfo.value, TruncatedBodyError)


@pytest.mark.parametrize("container", [
    struct.pack(">I", 5) + b"\x00\x00",
    struct.pack(">I", 0) + serialize_header({65: "0"}),
])
def test_length_and_alphabet_disagree(container):
    with pytest.raises(MalformedHeaderError):
        huffman_decoding(container)


def test_input_too_large(monkeypatch):
    monkeypatch.setattr(huffman, "MAX_ORIGINAL_LENGTH", 4)

    with pytest.raises(InputTooLargeError):
        huffman_encoding(b"hello")
    with pytest.raises(InputTooLargeError):
        huffman_encode_stream(io.BytesIO(b"hello"), io.BytesIO())


@pytest.mark.parametrize("data", [b"", b"z", LITERAL, random_bytes(5000, seed=3), skewed_bytes(3000)])
def test_stream_encode_matches_buffer_encode(data):
    out = io.BytesIO()
    written = huffman_encode_stream(io.BytesIO(data), out, chunk_size=7)

    assert out.getvalue() == huffman_encoding(data)
    assert written == len(out.getvalue())


def test_stream_encode_rewinds_to_starting_position():
    reader = io.BytesIO(b"skip" + LITERAL)
    reader.seek(4)
    out = io.BytesIO()
    huffman_encode_stream(reader, out)

    assert out.getvalue() == huffman_encoding(LITERAL)


@pytest.mark.parametrize("data", [b"", b"q" * 300, LITERAL, random_bytes(4096, seed=7)])
def test_stream_decode(data):
    out = io.BytesIO()
    written = huffman_decode_stream(io.BytesIO(huffman_encoding(data)), out, chunk_size=5)

    assert out.getvalue() == data
    assert written == len(data)


def test_stream_decode_truncated_body():
    compressed = huffman_encoding(b"This is a test" * 100)

    with pytest.raises(TruncatedBodyError):
        huffman_decode_stream(io.BytesIO(compressed[:-3]), io.BytesIO())


@pytest.mark.parametrize("data", [b"\x00\x00\x00", b"\x00\x00\x00\x01", b"\x00\x00\x00\x01\x00"])
def test_stream_decode_container_shorter_than_fixed_fields(data):
    with pytest.raises(MalformedContainerError):
        huffman_decode_stream(io.BytesIO(data), io.BytesIO())


def test_stream_decode_truncated_header():
    with pytest.raises(MalformedHeaderError):
        huffman_decode_stream(io.BytesIO(b"\x00\x00\x00\x01\x00\x05\x41"), io.BytesIO())


class ChangingReader:
    """Serves different content once rewound."""

    def __init__(self, first, second):
        self.stream = io.BytesIO(first)
        self.second = second

    def tell(self):
        return self.stream.tell()

    def read(self, size=-1):
        return self.stream.read(size)

    def seek(self, offset):
        self.stream = io.BytesIO(self.second)
        return self.stream.seek(offset)


@pytest.mark.parametrize("second", [b"AAABBCCCX", b"AAABBCCCCC"])
def test_stream_encode_rejects_input_changed_between_passes(second):
    with pytest.raises(CompressionError):
        huffman_encode_stream(ChangingReader(LITERAL, second), io.BytesIO())
