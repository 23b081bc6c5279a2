class CompressionError(ValueError):
    pass


class EmptyInputError(CompressionError):
    pass


class MalformedHeaderError(CompressionError):
    pass


class MalformedContainerError(CompressionError):
    pass


class TruncatedBodyError(MalformedContainerError):
    pass


class UnsupportedCodeLengthError(CompressionError):
    pass


class RunLengthOverflowError(CompressionError):
    pass


class InputTooLargeError(CompressionError):
    pass
