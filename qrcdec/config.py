# config.py
import os

ENV_PREFIX = 'QRCDEC'


class Config:
    # cap on inflated lyric size, 0 disables it
    MAX_OUTPUT_SIZE = 16 * 1024 * 1024
    # Flask rejects larger request bodies with 413
    MAX_CONTENT_LENGTH = 4 * 1024 * 1024
    JSON_ENSURE_ASCII = False


def max_output_size_from_env(environ=None):
    """The decompression cap from ``QRCDEC_MAX_OUTPUT_SIZE``, or the default.

    Returns None when the cap is disabled.
    """
    if environ is None:
        environ = os.environ
    raw = environ.get(f'{ENV_PREFIX}_MAX_OUTPUT_SIZE')
    if raw is None or raw.strip() == '':
        value = Config.MAX_OUTPUT_SIZE
    else:
        try:
            value = int(raw)
        except ValueError:
            raise ValueError(f'{ENV_PREFIX}_MAX_OUTPUT_SIZE must be an integer, got {raw!r}') from None
    return value if value > 0 else None
