import random

import pytest

from qrcdec.des_decrypt import (
    BLOCK_SIZE,
    DESMode,
    S_BOXES,
    TripleDES,
    bit_num,
    bit_num_int_l,
    bit_num_int_r,
    des_crypt,
    des_key_setup,
    f_func,
    inv_ip,
    ip,
    s_box_bit,
    triple_des_crypt,
    triple_des_key_setup,
)
from qrcdec.errors import InvalidBlockLength, InvalidKeyLength
from qrcdec.qrc import QRC_KEY

from reference_des import QQ_S_BOXES, ReferenceDES, reference_triple_decrypt


def random_bytes(rng, n):
    return bytes(rng.getrandbits(8) for _ in range(n))


def test_bit_num_reads_bytes_reversed_within_words():
    block = bytes([0x80, 0, 0, 0x01, 0, 0, 0, 0x40])
    # bit 0 lives in byte 3, bit 24 in byte 0
    assert bit_num(block, 24, 0) == 1
    assert bit_num(block, 7, 5) == 1 << 5
    assert bit_num(block, 0, 0) == 0
    # second word: bit 32 lives in byte 7
    assert bit_num(block, 33, 0) == 1


def test_bit_num_int_helpers():
    assert bit_num_int_r(0x80000000, 0, 3) == 0x8
    assert bit_num_int_r(0x00000001, 31, 0) == 1
    assert bit_num_int_r(0x7fffffff, 0, 10) == 0
    assert bit_num_int_l(0x00000001, 31, 0) == 0x80000000
    assert bit_num_int_l(0x80000000, 0, 31) == 1
    assert bit_num_int_l(0x40000000, 1, 2) == 0x20000000


def test_s_box_bit_moves_row_bits_to_the_top():
    assert s_box_bit(0b100001) == 0b110000
    assert s_box_bit(0b011110) == 0b001111
    assert s_box_bit(0b000001) == 0b010000
    assert sorted(s_box_bit(a) for a in range(64)) == list(range(64))


def test_inv_ip_undoes_ip():
    rng = random.Random(1)
    for _ in range(50):
        block = random_bytes(rng, BLOCK_SIZE)
        state = ip([0, 0], block)
        assert all(0 <= half < 1 << 32 for half in state)
        assert bytes(inv_ip(state, bytearray(BLOCK_SIZE))) == block


def test_f_func_stays_within_32_bits():
    rng = random.Random(2)
    key = random_bytes(rng, 6)
    for _ in range(20):
        assert 0 <= f_func(rng.getrandbits(32), key) < 1 << 32


def test_key_schedule_decrypt_is_encrypt_reversed():
    key = b'!@#)(*$%'
    encrypt = des_key_setup(key, DESMode.DES_ENCRYPT)
    decrypt = des_key_setup(key, DESMode.DES_DECRYPT)
    assert len(encrypt) == 16
    assert all(isinstance(k, bytes) and len(k) == 6 for k in encrypt)
    assert decrypt == tuple(reversed(encrypt))


def test_key_schedule_is_deterministic():
    assert des_key_setup(b'12345678', DESMode.DES_ENCRYPT) == \
        des_key_setup(b'12345678', DESMode.DES_ENCRYPT)


@pytest.mark.parametrize('key', [b'', b'1234567', b'123456789'])
def test_key_schedule_rejects_bad_key_length(key):
    with pytest.raises(InvalidKeyLength):
        des_key_setup(key, DESMode.DES_ENCRYPT)


def test_key_schedule_rejects_unknown_mode():
    with pytest.raises(ValueError):
        des_key_setup(b'12345678', 'encrypt')


@pytest.mark.parametrize('block', [b'', b'1234567', b'123456789'])
def test_des_crypt_rejects_bad_block_length(block):
    schedule = des_key_setup(b'12345678', DESMode.DES_ENCRYPT)
    with pytest.raises(InvalidBlockLength) as excinfo:
        des_crypt(block, schedule)
    assert excinfo.value.length == len(block)
    assert excinfo.value.stage == 'decrypt'


def test_des_crypt_is_pure_and_injective():
    rng = random.Random(3)
    schedule = des_key_setup(random_bytes(rng, 8), DESMode.DES_ENCRYPT)
    blocks = {random_bytes(rng, BLOCK_SIZE) for _ in range(64)}
    outputs = [des_crypt(block, schedule) for block in blocks]
    assert [des_crypt(block, schedule) for block in blocks] == outputs
    assert len(set(outputs)) == len(blocks)
    assert all(len(out) == BLOCK_SIZE for out in outputs)


def test_des_crypt_round_trip():
    rng = random.Random(4)
    key = random_bytes(rng, 8)
    encrypt = des_key_setup(key, DESMode.DES_ENCRYPT)
    decrypt = des_key_setup(key, DESMode.DES_DECRYPT)
    for _ in range(20):
        block = random_bytes(rng, BLOCK_SIZE)
        assert des_crypt(des_crypt(block, encrypt), decrypt) == block


def test_reference_model_matches_textbook_des():
    des = ReferenceDES(bytes.fromhex('133457799BBCDFF1'), qq_quirks=False)
    ciphertext = des.crypt(bytes.fromhex('0123456789ABCDEF'))
    assert ciphertext == bytes.fromhex('85E813540F0AB405')
    assert des.crypt(ciphertext, decrypt=True) == bytes.fromhex('0123456789ABCDEF')


def test_des_crypt_matches_reference_model():
    rng = random.Random(5)
    for _ in range(16):
        key = random_bytes(rng, 8)
        block = random_bytes(rng, BLOCK_SIZE)
        reference = ReferenceDES(key)
        assert des_crypt(block, des_key_setup(key, DESMode.DES_ENCRYPT)) == reference.crypt(block)
        assert des_crypt(block, des_key_setup(key, DESMode.DES_DECRYPT)) == \
            reference.crypt(block, decrypt=True)


def test_qq_variant_differs_from_textbook_des():
    key = bytes.fromhex('133457799BBCDFF1')
    block = bytes.fromhex('0123456789ABCDEF')
    assert des_crypt(block, des_key_setup(key, DESMode.DES_ENCRYPT)) != \
        bytes.fromhex('85E813540F0AB405')


def test_triple_key_setup_slot_order():
    key = QRC_KEY
    assert triple_des_key_setup(key, DESMode.DES_ENCRYPT) == (
        des_key_setup(key[0:8], DESMode.DES_ENCRYPT),
        des_key_setup(key[8:16], DESMode.DES_DECRYPT),
        des_key_setup(key[16:24], DESMode.DES_ENCRYPT),
    )
    assert triple_des_key_setup(key, DESMode.DES_DECRYPT) == (
        des_key_setup(key[16:24], DESMode.DES_DECRYPT),
        des_key_setup(key[8:16], DESMode.DES_ENCRYPT),
        des_key_setup(key[0:8], DESMode.DES_DECRYPT),
    )


def test_triple_key_setup_rejects_bad_key_length():
    with pytest.raises(InvalidKeyLength):
        triple_des_key_setup(QRC_KEY[:16], DESMode.DES_DECRYPT)
    with pytest.raises(ValueError):
        triple_des_key_setup(QRC_KEY, 'decrypt')


def test_triple_decrypt_matches_reference_model():
    rng = random.Random(6)
    schedule = triple_des_key_setup(QRC_KEY, DESMode.DES_DECRYPT)
    for _ in range(4):
        block = random_bytes(rng, BLOCK_SIZE)
        assert triple_des_crypt(block, schedule) == reference_triple_decrypt(block, QRC_KEY)


@pytest.mark.parametrize('block', [b'\x00' * 8, b'\xff' * 8])
def test_triple_round_trip_fixed_blocks(block):
    cipher = TripleDES(QRC_KEY)
    encrypted = cipher.encrypt_block(block)
    assert encrypted != block
    assert cipher.decrypt_block(encrypted) == block


def test_triple_round_trip_random_blocks():
    rng = random.Random(7)
    ciphers = [TripleDES(QRC_KEY), TripleDES(random_bytes(rng, 24))]
    for cipher in ciphers:
        for _ in range(100):
            block = random_bytes(rng, BLOCK_SIZE)
            assert cipher.decrypt_block(cipher.encrypt_block(block)) == block


def test_triple_accepts_bytearray_and_memoryview():
    cipher = TripleDES(QRC_KEY)
    block = b'lyrics!!'
    encrypted = cipher.encrypt_block(bytearray(block))
    assert cipher.decrypt_block(memoryview(encrypted)) == block


def test_s_boxes_match_textbook_plus_qq_cells():
    assert [list(s_box) for s_box in S_BOXES] == QQ_S_BOXES


# ciphertext -> plaintext under QRC_KEY, computed outside this package
TRIPLE_DECRYPT_VECTORS = [
    ('538c7f96b164bf1b', '7c76d6da46a73c34'),
    ('97bb9f4bb472e89f', '73d5117ad292931f'),
]


@pytest.mark.parametrize('ciphertext, plaintext', TRIPLE_DECRYPT_VECTORS)
def test_triple_decrypt_known_vectors(ciphertext, plaintext):
    schedule = triple_des_key_setup(QRC_KEY, DESMode.DES_DECRYPT)
    assert triple_des_crypt(bytes.fromhex(ciphertext), schedule) == bytes.fromhex(plaintext)
    assert TripleDES(QRC_KEY).encrypt_block(bytes.fromhex(plaintext)) == bytes.fromhex(ciphertext)
    assert reference_triple_decrypt(bytes.fromhex(ciphertext), QRC_KEY) == bytes.fromhex(plaintext)
