import numpy as np

# Bits buffered by BitWriter before whole bytes are flushed to the stream
FLUSH_THRESHOLD_BITS = 8 * 64 * 1024


def pack_bits(bits):
    """Pack a string of '0'/'1' characters into bytes, most significant bit first.

    Unused low bits of the final byte are zero.
    """
    if not bits:
        return b''

    bit_array = np.frombuffer(bits.encode('ascii'), dtype=np.uint8) - ord('0')
    if bit_array.max() > 1:
        raise ValueError("bit string may only contain '0' and '1'")

    return np.packbits(bit_array).tobytes()


def unpack_bits(data, count=None):
    """Unpack bytes into a '0'/'1' string, most significant bit first.

    ``count`` limits the result to the first ``count`` bits so padding from
    the packer is never returned. Defaults to every bit in ``data``.
    """
    available = len(data) * 8
    if count is None:
        count = available
    if count < 0 or count > available:
        raise ValueError(f"cannot unpack {count} bits from {len(data)} bytes")
    if count == 0:
        return ''

    bit_array = np.unpackbits(np.frombuffer(data, dtype=np.uint8), count=count)
    return (bit_array + ord('0')).tobytes().decode('ascii')


class BitWriter:
    """Accumulates code bits and writes whole bytes to a binary stream.

    Call ``close`` once all bits are written to flush the zero-padded tail.
    """

    def __init__(self, stream, flush_threshold=FLUSH_THRESHOLD_BITS):
        self.stream = stream
        self.flush_threshold = flush_threshold
        self.bits_written = 0
        self.bytes_written = 0
        self._pending = []
        self._pending_len = 0

    def write(self, bits):
        if not bits:
            return
        self._pending.append(bits)
        self._pending_len += len(bits)
        self.bits_written += len(bits)

        if self._pending_len >= self.flush_threshold:
            self._flush_whole_bytes()

    def close(self):
        """Flush everything, padding the last byte. Returns total bytes written."""
        self._flush_whole_bytes()
        if self._pending:
            self._emit(pack_bits(''.join(self._pending)))
            self._pending = []
            self._pending_len = 0
        return self.bytes_written

    def _flush_whole_bytes(self):
        bits = ''.join(self._pending)
        whole = len(bits) - len(bits) % 8
        if whole:
            self._emit(pack_bits(bits[:whole]))

        rest = bits[whole:]
        self._pending = [rest] if rest else []
        self._pending_len = len(rest)

    def _emit(self, data):
        self.stream.write(data)
        self.bytes_written += len(data)
