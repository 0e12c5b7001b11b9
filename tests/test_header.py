import pytest

from chronq.errors import CorruptError, PayloadTooLargeError
from chronq.header import (
    HEADER_SIZE,
    MAX_PAYLOAD_LEN,
    MessageHeader,
    commit_len_for_payload,
    crc32,
    load_commit_len,
    payload_len_from_commit,
    store_commit_len,
)


def test_header_serialises_to_64_bytes():
    header = MessageHeader.new_uncommitted(1, 2, 3, 4, 5)
    assert len(header.to_bytes()) == HEADER_SIZE == 64


def test_crc_matches_known_payload():
    assert crc32(b"hello") == 0x3610A686


def test_header_round_trip_preserves_fields():
    header = MessageHeader(
        commit_len=42,
        pad0=0xAABBCCDD,
        seq=0x1122334455667788,
        timestamp_ns=0x99AABBCCDDEEFF00,
        type_id=0x1357,
        flags=0x2468,
        reserved_u32=0x0F0E0D0C,
        padding=bytes([0x5A]) * 32,
    )
    decoded = MessageHeader.from_bytes(header.to_bytes())
    assert decoded == header


def test_new_uncommitted_has_zero_commit_word():
    header = MessageHeader.new_uncommitted(1, 42, 7, 0, 99)
    assert header.commit_len == 0
    assert load_commit_len(header.to_bytes(), 0) == 0
    assert (header.seq, header.timestamp_ns, header.type_id) == (1, 42, 7)


def test_in_memory_round_trip():
    payload = b"hello world"
    header = MessageHeader.new_uncommitted(1, 42, 7, 0, crc32(payload))
    buf = bytearray(1024)
    buf[0:64] = header.to_bytes()
    buf[64 : 64 + len(payload)] = payload
    store_commit_len(buf, 0, commit_len_for_payload(len(payload)))

    read_header = MessageHeader.from_bytes(buf[0:64])
    commit = load_commit_len(buf, 0)
    assert commit > 0
    assert payload_len_from_commit(commit) == len(payload)
    read_payload = bytes(buf[64 : 64 + payload_len_from_commit(commit)])
    assert read_payload == payload
    read_header.validate_crc(read_payload)
    assert read_header.reserved_u32 == crc32(payload)


def test_commit_word_at_offset():
    buf = bytearray(256)
    store_commit_len(buf, 128, 17)
    assert load_commit_len(buf, 128) == 17
    assert load_commit_len(buf, 0) == 0


def test_validate_crc_mismatch():
    header = MessageHeader.new_uncommitted(0, 0, 1, 0, crc32(b"alpha"))
    with pytest.raises(CorruptError, match="crc mismatch"):
        header.validate_crc(b"bravo")


def test_commit_len_limits():
    assert commit_len_for_payload(MAX_PAYLOAD_LEN) == MAX_PAYLOAD_LEN + 1
    with pytest.raises(PayloadTooLargeError):
        commit_len_for_payload(MAX_PAYLOAD_LEN + 1)


def test_commit_len_round_trip():
    for length in (0, 1, 5, 4096):
        assert payload_len_from_commit(commit_len_for_payload(length)) == length


def test_zero_commit_is_corrupt():
    with pytest.raises(CorruptError, match="commit length is zero"):
        payload_len_from_commit(0)


def test_from_bytes_rejects_wrong_length():
    with pytest.raises(CorruptError):
        MessageHeader.from_bytes(b"\x00" * 10)


def test_padding_must_be_32_bytes():
    with pytest.raises(ValueError):
        MessageHeader(0, 0, 0, 0, 0, 0, padding=b"\x00" * 3)