import logging

from codec_errors import MalformedContainerError, RunLengthOverflowError

logger = logging.getLogger(__name__)

MAX_RUN_LENGTH = 255


def _append_run(output, count, byte):
    if not 1 <= count <= MAX_RUN_LENGTH:
        raise RunLengthOverflowError(f"run of {count} does not fit a one-byte counter")
    output.append(count)
    output.append(byte)


def run_length_encoding(data: bytes) -> bytes:
    """Encode every maximal run as a (count, byte) pair.

    Runs longer than MAX_RUN_LENGTH are split into several pairs.
    """
    if not data:
        return b""

    output = bytearray()
    count = 1

    for i in range(1, len(data)):
        if data[i] == data[i - 1] and count < MAX_RUN_LENGTH:
            count += 1
        else:
            _append_run(output, count, data[i - 1])
            count = 1

    # last run
    _append_run(output, count, data[-1])

    logger.debug("rle encoded %d bytes into %d pairs", len(data), len(output) // 2)
    return bytes(output)


def run_length_decoding(data: bytes) -> bytes:
    if len(data) % 2:
        raise MalformedContainerError("run-length data ends with a count but no byte")

    output = bytearray()
    for i in range(0, len(data), 2):
        count = data[i]        # repetition count
        byte = data[i + 1]
        output.extend(bytes([byte]) * count)

    return bytes(output)


rle_encode = run_length_encoding
rle_decode = run_length_decoding
