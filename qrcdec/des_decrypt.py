# des_decrypt.py
"""DES and triple DES as used by QQ Music for QRC lyrics.

This is not interoperable with textbook DES: key and data bytes are read in
reversed order within each 32-bit word, S-boxes 2 and 4 each carry a modified
entry and the key compression reads the D half one bit off. Files in the wild were
encrypted with exactly this variant, so every table here must stay as is.
"""
import logging
from enum import Enum

from .errors import InvalidBlockLength, InvalidKeyLength

log = logging.getLogger(__name__)

BLOCK_SIZE = 8


class DESMode(Enum):
    DES_ENCRYPT = 'DES_ENCRYPT'
    DES_DECRYPT = 'DES_DECRYPT'


def bit_num(a: bytes, b: int, c: int) -> int:
    """Bit ``b`` of an 8 byte buffer, shifted to position ``c``.

    Bytes are addressed in reverse order inside each 32-bit word.
    """
    byte_index = (b // 32) * 4 + 3 - (b % 32) // 8
    bit_position = 7 - (b % 8)
    extracted_bit = (a[byte_index] >> bit_position) & 0x01
    return extracted_bit << c


def bit_num_int_r(a: int, b: int, c: int) -> int:
    """Bit ``b`` (0 is the MSB) of a 32-bit word, shifted left by ``c``."""
    extracted_bit = (a >> (31 - b)) & 0x00000001
    return extracted_bit << c


def bit_num_int_l(a: int, b: int, c: int) -> int:
    """Bit ``b`` of a 32-bit word moved to bit ``c``, both counted from the MSB."""
    extracted_bit = (a << b) & 0x80000000
    return extracted_bit >> c


def s_box_bit(a: int) -> int:
    # row bits (5 and 0) to the top, column bits below
    part1 = (a & 0x20)
    part2 = ((a & 0x1f) >> 1)
    part3 = ((a & 0x01) << 4)
    return part1 | part2 | part3


# Initial permutation, as source bit for each bit of the left/right half.
IP_LEFT = (
    57, 49, 41, 33, 25, 17, 9, 1, 59, 51, 43, 35, 27, 19, 11, 3,
    61, 53, 45, 37, 29, 21, 13, 5, 63, 55, 47, 39, 31, 23, 15, 7,
)

IP_RIGHT = (
    56, 48, 40, 32, 24, 16, 8, 0, 58, 50, 42, 34, 26, 18, 10, 2,
    60, 52, 44, 36, 28, 20, 12, 4, 62, 54, 46, 38, 30, 22, 14, 6,
)

KEY_RND_SHIFT = (1, 1, 2, 2, 2, 2, 2, 2, 1, 2, 2, 2, 2, 2, 2, 1)

KEY_PERM_C = (
    56, 48, 40, 32, 24, 16, 8, 0, 57, 49, 41, 33, 25, 17,
    9, 1, 58, 50, 42, 34, 26, 18, 10, 2, 59, 51, 43, 35,
)

KEY_PERM_D = (
    62, 54, 46, 38, 30, 22, 14, 6, 61, 53, 45, 37, 29, 21,
    13, 5, 60, 52, 44, 36, 28, 20, 12, 4, 27, 19, 11, 3,
)

# Entries 24..47 address the D half with an offset of 27, not 28.
KEY_COMPRESSION = (
    13, 16, 10, 23, 0, 4, 2, 27, 14, 5, 20, 9,
    22, 18, 11, 3, 25, 7, 15, 6, 26, 19, 12, 1,
    40, 51, 30, 36, 46, 54, 29, 39, 50, 44, 32, 47,
    43, 48, 38, 55, 33, 52, 45, 41, 49, 35, 28, 31,
)

EXPANSION = (
    31, 0, 1, 2, 3, 4, 3, 4, 5, 6, 7, 8,
    7, 8, 9, 10, 11, 12, 11, 12, 13, 14, 15, 16,
    15, 16, 17, 18, 19, 20, 19, 20, 21, 22, 23, 24,
    23, 24, 25, 26, 27, 28, 27, 28, 29, 30, 31, 0,
)

P_BOX = (
    15, 6, 19, 20, 28, 11, 27, 16, 0, 14, 22, 25, 4, 17, 30, 9,
    1, 7, 23, 13, 31, 26, 2, 8, 18, 12, 29, 5, 21, 10, 3, 24,
)

S_BOX1 = (
    14, 4, 13, 1, 2, 15, 11, 8, 3, 10, 6, 12, 5, 9, 0, 7,
    0, 15, 7, 4, 14, 2, 13, 1, 10, 6, 12, 11, 9, 5, 3, 8,
    4, 1, 14, 8, 13, 6, 2, 11, 15, 12, 9, 7, 3, 10, 5, 0,
    15, 12, 8, 2, 4, 9, 1, 7, 5, 11, 3, 14, 10, 0, 6, 13,
)

# row 1, column 7 is 15 here
S_BOX2 = (
    15, 1, 8, 14, 6, 11, 3, 4, 9, 7, 2, 13, 12, 0, 5, 10,
    3, 13, 4, 7, 15, 2, 8, 15, 12, 0, 1, 10, 6, 9, 11, 5,
    0, 14, 7, 11, 10, 4, 13, 1, 5, 8, 12, 6, 9, 3, 2, 15,
    13, 8, 10, 1, 3, 15, 4, 2, 11, 6, 7, 12, 0, 5, 14, 9,
)

S_BOX3 = (
    10, 0, 9, 14, 6, 3, 15, 5, 1, 13, 12, 7, 11, 4, 2, 8,
    13, 7, 0, 9, 3, 4, 6, 10, 2, 8, 5, 14, 12, 11, 15, 1,
    13, 6, 4, 9, 8, 15, 3, 0, 11, 1, 2, 12, 5, 10, 14, 7,
    1, 10, 13, 0, 6, 9, 8, 7, 4, 15, 14, 3, 11, 5, 2, 12,
)

# row 3, column 5 is 10 here
S_BOX4 = (
    7, 13, 14, 3, 0, 6, 9, 10, 1, 2, 8, 5, 11, 12, 4, 15,
    13, 8, 11, 5, 6, 15, 0, 3, 4, 7, 2, 12, 1, 10, 14, 9,
    10, 6, 9, 0, 12, 11, 7, 13, 15, 1, 3, 14, 5, 2, 8, 4,
    3, 15, 0, 6, 10, 10, 13, 8, 9, 4, 5, 11, 12, 7, 2, 14,
)

S_BOX5 = (
    2, 12, 4, 1, 7, 10, 11, 6, 8, 5, 3, 15, 13, 0, 14, 9,
    14, 11, 2, 12, 4, 7, 13, 1, 5, 0, 15, 10, 3, 9, 8, 6,
    4, 2, 1, 11, 10, 13, 7, 8, 15, 9, 12, 5, 6, 3, 0, 14,
    11, 8, 12, 7, 1, 14, 2, 13, 6, 15, 0, 9, 10, 4, 5, 3,
)

S_BOX6 = (
    12, 1, 10, 15, 9, 2, 6, 8, 0, 13, 3, 4, 14, 7, 5, 11,
    10, 15, 4, 2, 7, 12, 9, 5, 6, 1, 13, 14, 0, 11, 3, 8,
    9, 14, 15, 5, 2, 8, 12, 3, 7, 0, 4, 10, 1, 13, 11, 6,
    4, 3, 2, 12, 9, 5, 15, 10, 11, 14, 1, 7, 6, 0, 8, 13,
)

S_BOX7 = (
    4, 11, 2, 14, 15, 0, 8, 13, 3, 12, 9, 7, 5, 10, 6, 1,
    13, 0, 11, 7, 4, 9, 1, 10, 14, 3, 5, 12, 2, 15, 8, 6,
    1, 4, 11, 13, 12, 3, 7, 14, 10, 15, 6, 8, 0, 5, 9, 2,
    6, 11, 13, 8, 1, 4, 10, 7, 9, 5, 0, 15, 14, 2, 3, 12,
)

S_BOX8 = (
    13, 2, 8, 4, 6, 15, 11, 1, 10, 9, 3, 14, 5, 0, 12, 7,
    1, 15, 13, 8, 10, 3, 7, 4, 12, 5, 6, 11, 0, 14, 9, 2,
    7, 11, 4, 1, 9, 12, 14, 2, 0, 6, 10, 13, 15, 3, 5, 8,
    2, 1, 14, 7, 4, 10, 8, 13, 15, 12, 9, 0, 3, 5, 6, 11,
)

S_BOXES = (S_BOX1, S_BOX2, S_BOX3, S_BOX4, S_BOX5, S_BOX6, S_BOX7, S_BOX8)


def ip(state: list, in_bytes: bytes) -> list:
    """Initial permutation of an 8 byte block into two 32-bit halves."""
    left = right = 0
    for i in range(32):
        left |= bit_num(in_bytes, IP_LEFT[i], 31 - i)
        right |= bit_num(in_bytes, IP_RIGHT[i], 31 - i)
    state[0] = left
    state[1] = right
    return state


def inv_ip(state: list, out_bytes: bytearray) -> bytearray:
    """Inverse of :func:`ip`, writing the halves back as 8 bytes."""
    for base in range(8):
        value = 0
        for step in range(4):
            bit = base + 8 * step
            value |= bit_num_int_r(state[1], bit, 7 - 2 * step)
            value |= bit_num_int_r(state[0], bit, 6 - 2 * step)
        # bytes come out word-swapped, same as ip() reads them
        out_bytes[(base + 4) % 8] = value
    return out_bytes


def f_func(state: int, key: bytes) -> int:
    """DES round function: expansion, key mix, S-boxes, P-box."""
    lrgstate = 0
    for i, bit in enumerate(EXPANSION):
        lrgstate |= bit_num_int_r(state, bit, 47 - i)
    lrgstate ^= int.from_bytes(key, 'big')

    out = 0
    for i, s_box in enumerate(S_BOXES):
        group = (lrgstate >> (42 - 6 * i)) & 0x3f
        out |= s_box[s_box_bit(group)] << (28 - 4 * i)

    state = 0
    for i, bit in enumerate(P_BOX):
        state |= bit_num_int_l(out, bit, i)
    return state


def des_key_setup(key: bytes, mode: DESMode) -> tuple:
    """Build the 16 round keys for one DES instance.

    The decrypt schedule holds the same keys as the encrypt one, in reverse
    round order.
    """
    if len(key) != BLOCK_SIZE:
        raise InvalidKeyLength(len(key), BLOCK_SIZE)
    if not isinstance(mode, DESMode):
        raise ValueError(f'invalid mode {mode!r}')

    c = 0
    d = 0
    for i in range(28):
        c |= bit_num(key, KEY_PERM_C[i], 31 - i)
        d |= bit_num(key, KEY_PERM_D[i], 31 - i)

    schedule = [None] * 16
    for i, shift in enumerate(KEY_RND_SHIFT):
        c = ((c << shift) | (c >> (28 - shift))) & 0xfffffff0
        d = ((d << shift) | (d >> (28 - shift))) & 0xfffffff0

        if mode is DESMode.DES_DECRYPT:
            to_gen = 15 - i
        else:
            to_gen = i

        subkey = bytearray(6)
        for j in range(24):
            subkey[j // 8] |= bit_num_int_r(c, KEY_COMPRESSION[j], 7 - (j % 8))
        for j in range(24, 48):
            subkey[j // 8] |= bit_num_int_r(d, KEY_COMPRESSION[j] - 27, 7 - (j % 8))
        schedule[to_gen] = bytes(subkey)

    return tuple(schedule)


def des_crypt(input_bytes: bytes, key_schedule: tuple) -> bytes:
    """Run one 8 byte block through the 16 Feistel rounds."""
    if len(input_bytes) != BLOCK_SIZE:
        raise InvalidBlockLength(len(input_bytes))

    state = ip([0, 0], input_bytes)

    for idx in range(15):
        t = state[1]
        state[1] = f_func(state[1], key_schedule[idx]) ^ state[0]
        state[0] = t

    # no swap after the last round
    state[0] = f_func(state[1], key_schedule[15]) ^ state[0]

    return bytes(inv_ip(state, bytearray(BLOCK_SIZE)))


def triple_des_key_setup(key: bytes, mode: DESMode) -> tuple:
    """Three DES schedules, in the order :func:`triple_des_crypt` applies them."""
    if len(key) != 3 * BLOCK_SIZE:
        raise InvalidKeyLength(len(key), 3 * BLOCK_SIZE)

    if mode is DESMode.DES_ENCRYPT:
        return (
            des_key_setup(key[0:8], DESMode.DES_ENCRYPT),
            des_key_setup(key[8:16], DESMode.DES_DECRYPT),
            des_key_setup(key[16:24], DESMode.DES_ENCRYPT),
        )
    if mode is DESMode.DES_DECRYPT:
        return (
            des_key_setup(key[16:24], DESMode.DES_DECRYPT),
            des_key_setup(key[8:16], DESMode.DES_ENCRYPT),
            des_key_setup(key[0:8], DESMode.DES_DECRYPT),
        )
    raise ValueError(f'invalid mode {mode!r}')


def triple_des_crypt(input_bytes: bytes, schedule: tuple) -> bytes:
    temp = des_crypt(input_bytes, schedule[0])
    temp = des_crypt(temp, schedule[1])
    return des_crypt(temp, schedule[2])


class TripleDES:
    """Triple DES over a fixed 24 byte key, with both schedules cached.

    Instances hold no mutable state after construction and can be shared
    between threads.
    """

    def __init__(self, key: bytes):
        self._encrypt_schedule = triple_des_key_setup(key, DESMode.DES_ENCRYPT)
        self._decrypt_schedule = triple_des_key_setup(key, DESMode.DES_DECRYPT)
        log.debug('built triple DES schedules')

    def encrypt_block(self, block: bytes) -> bytes:
        return triple_des_crypt(block, self._encrypt_schedule)

    def decrypt_block(self, block: bytes) -> bytes:
        return triple_des_crypt(block, self._decrypt_schedule)
