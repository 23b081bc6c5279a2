import math
import time

import pandas as pd

from huffman import build_codes, build_tree, byte_frequencies, huffman_decoding, huffman_encoding
from rle import run_length_decoding, run_length_encoding

CODE_TABLE_COLUMNS = ["Byte", "Symbol", "Frequency", "Code", "Length"]

CODECS = [
    ("RLE", run_length_encoding, run_length_decoding),
    ("Huffman", huffman_encoding, huffman_decoding),
]


def calculate_entropy(data):
    """Calculate Shannon entropy in bits per byte"""
    if not data:
        return 0.0

    total = len(data)
    entropy = 0.0
    for count in byte_frequencies(data).values():
        probability = count / total
        entropy -= probability * math.log2(probability)

    return entropy


def calculate_compression_ratio(original_size, compressed_size):
    """Original size / compressed size, 0 when either side is empty"""
    if not original_size or not compressed_size:
        return 0.0
    return original_size / compressed_size


def huffman_code_table(data):
    """One row per byte present in data, most frequent first"""
    if not data:
        return pd.DataFrame(columns=CODE_TABLE_COLUMNS)

    frequencies = byte_frequencies(data)
    codes = build_codes(build_tree(frequencies))

    rows = []
    for byte, count in frequencies.items():
        rows.append({
            "Byte": byte,
            "Symbol": repr(chr(byte))[1:-1],
            "Frequency": count,
            "Code": codes[byte],
            "Length": len(codes[byte]),
        })

    df = pd.DataFrame(rows, columns=CODE_TABLE_COLUMNS)
    return df.sort_values(["Frequency", "Byte"], ascending=[False, True]).reset_index(drop=True)


def compare_codecs(data):
    """Compress data with every codec and report size, ratio, time and round-trip result"""
    results = []

    for name, encode, decode in CODECS:
        start_time = time.time()
        compressed = encode(data)
        compression_time = time.time() - start_time

        results.append({
            "Algorithm": name,
            "Size (bytes)": len(compressed),
            "Ratio": round(calculate_compression_ratio(len(data), len(compressed)), 2),
            "Time (s)": round(compression_time, 3),
            "Verified": decode(compressed) == bytes(data),
        })

    return pd.DataFrame(results)
