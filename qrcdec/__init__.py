"""Decoder for QQ Music QRC lyric files."""

__version__ = '1.0.0'

from .errors import (  # noqa: E402
    DecompressedSizeExceeded,
    InvalidBlockLength,
    InvalidCompressedStream,
    InvalidHexPayload,
    InvalidKeyLength,
    IOFailure,
    QRCDecodeError,
)
from .qrc import QRC_KEY, decode_file, decode_hex, decode_qrc, decode_text  # noqa: E402
