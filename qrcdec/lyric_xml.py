# lyric_xml.py
"""Lyric extraction from QRC XML documents and lyric download responses.

Decoded QRC data usually looks like::

    <?xml version="1.0" encoding="utf-8"?>
    <QrcInfos>
    <QrcHeadInfo SaveTime="..." Version="100"/>
    <LyricInfo LyricCount="1">
    <Lyric_1 LyricType="1" LyricContent="[ti:...]
    [0,1200]Hello(0,600)world(600,600)
    "/>
    </LyricInfo>
    </QrcInfos>

The attribute value spans several lines, which ElementTree would normalise
to spaces, so a regex is tried first.
"""
import logging
import re
import xml.etree.ElementTree as ET

from .errors import QRCDecodeError
from .qrc import decode_hex

log = logging.getLogger(__name__)

LYRIC_CONTENT_RE = re.compile(r'LyricContent=(["\'])(.*?)\1', re.DOTALL)

XML_ENTITIES = (
    ('&quot;', '"'),
    ('&apos;', "'"),
    ('&lt;', '<'),
    ('&gt;', '>'),
    ('&amp;', '&'),
)


def is_lyric_xml(text: str) -> bool:
    return text.lstrip().startswith('<?xml')


def remove_illegal_xml_content(content: str) -> str:
    """Drop ``<name=value/>`` fragments that are not valid XML elements."""
    i = 0
    left = None
    while i < len(content):
        if content[i] == '<':
            left = i
        if left is not None and i > 0 and content[i] == '>' and content[i - 1] == '/':
            part = content[left:i + 1]
            if '=' in part and part.find('=') == part.rfind('='):
                part1 = content[left:left + part.find('=')]
                if ' ' not in part1.strip():
                    content = content[:left] + content[i + 1:]
                    i = 0
                    left = None
                    continue
        i += 1
    return content.strip()


def extract_lyric_content(xml_string: str) -> str:
    """Return the ``LyricContent`` attribute, or ``xml_string`` if there is none."""
    match = LYRIC_CONTENT_RE.search(xml_string)
    if match:
        lyric_content = match.group(2)
        for entity, char in XML_ENTITIES:
            lyric_content = lyric_content.replace(entity, char)
        return lyric_content

    try:
        root = ET.fromstring(remove_illegal_xml_content(xml_string))
    except ET.ParseError as e:
        log.debug('lyric XML did not parse: %s', e)
        return xml_string

    lyric_node = root if root.tag == 'Lyric_1' else root.find('.//Lyric_1')
    if lyric_node is not None:
        lyric_content = lyric_node.get('LyricContent')
        if lyric_content is not None:
            return lyric_content
    return xml_string


# (tag in the download response, key in the result)
LYRIC_TAGS = (
    ('content', 'lyrics'),
    ('contentts', 'trans'),
    ('contentroma', 'roma'),
)

BARE_AMPERSAND_RE = re.compile(r'&(?![a-zA-Z]{2,6};|#[0-9]{2,4};)')


def _find_encrypted(xml_content):
    """Hex payloads per response tag, via ElementTree or, failing that, regexes."""
    try:
        root = ET.fromstring(BARE_AMPERSAND_RE.sub('&amp;', xml_content))
    except ET.ParseError as e:
        log.info('lyric response did not parse (%s), falling back to regex', e)
        return {
            tag: re.findall(rf'<{tag}>(.*?)</{tag}>', xml_content, re.DOTALL)
            for tag, _ in LYRIC_TAGS
        }
    return {
        tag: [node.text for node in root.iter(tag) if node.text]
        for tag, _ in LYRIC_TAGS
    }


def decode_lyric_response(xml_content: str, max_output_size=None) -> dict:
    """Decrypt the lyrics in an XML response of the QQ Music lyric download API.

    The response carries hex encoded QRC payloads in ``<content>`` (lyrics),
    ``<contentts>`` (translation) and ``<contentroma>`` (romanisation). The
    first payload of each kind that decrypts to non-empty text wins; the
    others are logged and skipped. Missing kinds map to ``''``.
    """
    xml_content = xml_content.replace('<!--', '').replace('-->', '')
    xml_content = remove_illegal_xml_content(xml_content)
    candidates = _find_encrypted(xml_content)

    result = {}
    for tag, key in LYRIC_TAGS:
        result[key] = ''
        for encrypted in candidates[tag]:
            encrypted = encrypted.strip()
            if not encrypted:
                continue
            try:
                decrypted = decode_hex(encrypted, max_output_size).decode('utf-8', errors='replace')
            except QRCDecodeError as e:
                log.warning('failed to decrypt <%s>: %s', tag, e)
                continue
            if is_lyric_xml(decrypted):
                decrypted = extract_lyric_content(decrypted)
            result[key] = decrypted
            if decrypted:
                break
    return result
