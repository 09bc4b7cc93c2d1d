# errors.py
"""Exceptions raised while decoding QRC lyric files.

Every error carries the pipeline ``stage`` it was raised from (``read``,
``hex``, ``decrypt`` or ``decompress``) so callers can tell a bad input file
apart from a broken invariant inside the cipher.
"""


class QRCDecodeError(Exception):
    """Base class for all decoding errors."""

    stage = None

    def __init__(self, message, stage=None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class InvalidBlockLength(QRCDecodeError):
    """A cipher call received a block that is not exactly 8 bytes."""

    stage = 'decrypt'

    def __init__(self, length, block_index=None):
        self.length = length
        self.block_index = block_index
        super().__init__(self._describe())

    def _describe(self):
        message = f'cipher block must be 8 bytes, got {self.length}'
        if self.block_index is not None:
            message += f' (block {self.block_index})'
        return message

    def at_block(self, block_index):
        self.block_index = block_index
        self.args = (self._describe(),)
        return self


class InvalidKeyLength(QRCDecodeError):
    """Key material of the wrong length was given to a key setup."""

    stage = 'decrypt'

    def __init__(self, length, expected):
        self.length = length
        self.expected = expected
        super().__init__(f'key must be {expected} bytes, got {length}')


class InvalidCompressedStream(QRCDecodeError):
    """The decrypted bytes are not a valid zlib stream.

    Usually means a wrong key, a corrupted file or a file that is not QRC.
    """

    stage = 'decompress'


class DecompressedSizeExceeded(InvalidCompressedStream):
    """The inflated output grew past the configured cap."""

    def __init__(self, limit):
        self.limit = limit
        super().__init__(f'decompressed data exceeds {limit} bytes')


class InvalidHexPayload(QRCDecodeError):
    """Text handed to the hex decoder is not valid hexadecimal."""

    stage = 'hex'


class IOFailure(QRCDecodeError):
    """The QRC source could not be read."""

    stage = 'read'

    def __init__(self, path, reason):
        self.path = path
        super().__init__(f'failed to read {path}: {reason}')
