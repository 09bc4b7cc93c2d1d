# qrc.py
"""Decoding of QQ Music QRC lyric payloads.

A QRC payload is a zlib stream encrypted with triple DES under a fixed key.
Local ``.qrc`` files may start with an ``[offset:0]`` tag line; lyrics served
online come as a hex string of the same ciphertext.
"""
import logging
import zlib
from functools import lru_cache

from .des_decrypt import BLOCK_SIZE, TripleDES
from .errors import (
    DecompressedSizeExceeded,
    InvalidBlockLength,
    InvalidCompressedStream,
    InvalidHexPayload,
    IOFailure,
)

log = logging.getLogger(__name__)

QRC_KEY = b'!@#)(*$%123ZXC!@!@#)(NHL'
QRC_HEADER_TAG = b'[offset:0]\n'
UTF8_BOM = b'\xef\xbb\xbf'


@lru_cache(maxsize=None)
def qrc_cipher() -> TripleDES:
    """The shared cipher for the QRC key, built on first use."""
    return TripleDES(QRC_KEY)


def strip_header_tag(data: bytes) -> bytes:
    if len(data) > len(QRC_HEADER_TAG) and data.startswith(QRC_HEADER_TAG):
        return data[len(QRC_HEADER_TAG):]
    return data


def decrypt_payload(payload: bytes) -> bytes:
    """Decrypt ``payload`` block by block.

    A short final block is zero padded before decryption and only as many
    bytes as it really had are kept.
    """
    cipher = qrc_cipher()
    output = bytearray()
    for block_index, offset in enumerate(range(0, len(payload), BLOCK_SIZE)):
        block = bytes(payload[offset:offset + BLOCK_SIZE])
        real_length = len(block)
        if real_length < BLOCK_SIZE:
            block = block.ljust(BLOCK_SIZE, b'\x00')
        try:
            output += cipher.decrypt_block(block)[:real_length]
        except InvalidBlockLength as e:
            raise e.at_block(block_index)
    log.debug('decrypted %d bytes in %d blocks', len(output),
              (len(payload) + BLOCK_SIZE - 1) // BLOCK_SIZE)
    return bytes(output)


def inflate(data: bytes, max_output_size=None) -> bytes:
    """Inflate a zlib stream, refusing to produce more than ``max_output_size`` bytes.

    Bytes after the end of the stream are ignored.
    """
    decompressor = zlib.decompressobj()
    try:
        if max_output_size:
            result = decompressor.decompress(data, max_output_size + 1)
        else:
            result = decompressor.decompress(data)
    except zlib.error as e:
        log.info('rejected compressed stream: %s', e)
        raise InvalidCompressedStream(f'invalid zlib data: {e}') from e

    if max_output_size and len(result) > max_output_size:
        raise DecompressedSizeExceeded(max_output_size)
    if not decompressor.eof:
        log.info('compressed stream ended early after %d bytes', len(data))
        raise InvalidCompressedStream('decompression failed: incomplete or truncated stream')
    if decompressor.unused_data:
        log.debug('ignoring %d bytes after the zlib stream', len(decompressor.unused_data))
    return result


def strip_bom(text: bytes) -> bytes:
    if text.startswith(UTF8_BOM):
        return text[len(UTF8_BOM):]
    return text


def decode_qrc(data: bytes, max_output_size=None) -> bytes:
    """Decrypt and decompress QRC data, returning UTF-8 bytes without a BOM."""
    payload = strip_header_tag(bytes(data))
    plain = decrypt_payload(payload)
    return strip_bom(inflate(plain, max_output_size))


def decode_text(data: bytes, max_output_size=None) -> str:
    return decode_qrc(data, max_output_size).decode('utf-8', errors='replace')


def decode_hex(encrypted_hex, max_output_size=None) -> bytes:
    """Decode the hex encoded QRC payload returned by the online lyric API."""
    if isinstance(encrypted_hex, (bytes, bytearray)):
        encrypted_hex = encrypted_hex.decode('ascii', errors='replace')
    try:
        encrypted_bytes = bytes.fromhex(encrypted_hex.strip())
    except ValueError as e:
        raise InvalidHexPayload(f'invalid hex payload: {e}') from e
    return decode_qrc(encrypted_bytes, max_output_size)


def decode_file(path, max_output_size=None) -> bytes:
    """Read and decode a QRC file from disk."""
    try:
        with open(path, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise IOFailure(path, e.strerror or e) from e
    log.debug('read %d bytes from %s', len(data), path)
    return decode_qrc(data, max_output_size)
