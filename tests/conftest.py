import zlib

import pytest

from qrcdec.des_decrypt import BLOCK_SIZE
from qrcdec.qrc import QRC_HEADER_TAG, UTF8_BOM, qrc_cipher

SAMPLE_LYRIC = (
    '[ti:晴天]\n'
    '[ar:周杰伦]\n'
    '[0,1200]故(0,300)事(300,300)的(600,300)小(900,300)\n'
    '[1200,900]黄(1200,450)色(1650,450)'
)

SAMPLE_XML = (
    '<?xml version="1.0" encoding="utf-8"?>\n'
    '<QrcInfos>\n'
    '<QrcHeadInfo SaveTime="1700000000" Version="100"/>\n'
    '<LyricInfo LyricCount="1">\n'
    '<Lyric_1 LyricType="1" LyricContent="' + SAMPLE_LYRIC + '\n"/>\n'
    '</LyricInfo>\n'
    '</QrcInfos>\n'
)


def encrypt_payload(plain):
    """Encrypt block-aligned bytes so that decode_qrc can read them back."""
    assert len(plain) % BLOCK_SIZE == 0
    cipher = qrc_cipher()
    return b''.join(cipher.encrypt_block(plain[i:i + BLOCK_SIZE])
                    for i in range(0, len(plain), BLOCK_SIZE))


def make_qrc(text, tag=True, bom=True, trailer=b''):
    """Build a QRC file for ``text`` the way QQ Music writes them."""
    if isinstance(text, str):
        text = text.encode('utf-8')
    compressed = zlib.compress((UTF8_BOM if bom else b'') + text) + trailer
    compressed += b'\x00' * (-len(compressed) % BLOCK_SIZE)
    return (QRC_HEADER_TAG if tag else b'') + encrypt_payload(compressed)


@pytest.fixture
def qrc_file(tmp_path):
    path = tmp_path / 'song.qrc'
    path.write_bytes(make_qrc(SAMPLE_XML))
    return path
