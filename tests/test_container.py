# tests/test_container.py
"""
Tests for the .kang binary framing.
"""
import io
import struct
import pytest

from kang import (
    SIGNATURE,
    ChunkEntry,
    ChunkedCompressor,
    ChunkedDecompressor,
    CompressedArchive,
    KangBadSignatureError,
    KangTruncatedError,
    decode_archive,
    encode_archive,
    read_archive_info,
)

@pytest.fixture
def scenario_archive(backend) -> bytes:
    """The archive for a 7-byte header and 200 tensor bytes in 64-byte chunks."""
    result = ChunkedCompressor(backend, 64).compress(b'{"a":1}', bytes(range(50)) * 4)
    return encode_archive(CompressedArchive.from_result(result))

def test_layout(scenario_archive: bytes):
    data = scenario_archive
    assert data[:8] == SIGNATURE == b"KANGCOMP"

    header_size = struct.unpack_from("<Q", data, 8)[0]
    assert header_size > 0
    num_chunks = struct.unpack_from("<Q", data, 16 + header_size)[0]
    assert num_chunks == 4

    table_start = 24 + header_size
    entries = [struct.unpack_from("<QQ", data, table_start + 16 * i) for i in range(num_chunks)]
    assert [original for original, _ in entries] == [64, 64, 64, 8]

    block_start = table_start + 16 * num_chunks
    assert len(data) - block_start == sum(compressed for _, compressed in entries)

def test_decode_roundtrip(backend, scenario_archive: bytes):
    archive = decode_archive(scenario_archive)
    assert [e.original_size for e in archive.chunk_table] == [64, 64, 64, 8]

    restored = ChunkedDecompressor(backend).decompress(
        archive.compressed_header, archive.compressed_tensors, archive.chunk_table
    )
    assert restored.header_bytes == b'{"a":1}'
    assert restored.tensor_data.tobytes() == bytes(range(50)) * 4

def test_empty_archive_layout():
    archive = CompressedArchive(compressed_header=b"", chunk_table=[], compressed_tensors=b"")
    data = encode_archive(archive)
    assert data == SIGNATURE + b"\x00" * 16

    decoded = decode_archive(data)
    assert decoded.compressed_header == b""
    assert decoded.chunk_table == []
    assert decoded.compressed_tensors.size == 0

def test_read_archive_info(scenario_archive: bytes):
    info = read_archive_info(io.BytesIO(scenario_archive))
    assert info.num_chunks == 4
    assert info.original_tensor_size == 200
    assert info.tensor_block_offset + info.tensor_block_size == len(scenario_archive)
    assert info.tensor_block_size == sum(e.compressed_size for e in info.chunk_table)

@pytest.mark.parametrize("position", range(8))
def test_flipped_signature_byte(scenario_archive: bytes, position: int):
    data = bytearray(scenario_archive)
    data[position] ^= 0xFF
    with pytest.raises(KangBadSignatureError):
        decode_archive(bytes(data))

def test_truncation_before_tensor_block(scenario_archive: bytes):
    block_offset = read_archive_info(io.BytesIO(scenario_archive)).tensor_block_offset
    for cut in range(block_offset):
        with pytest.raises(KangTruncatedError):
            decode_archive(scenario_archive[:cut])

def test_oversized_declarations_are_truncated():
    huge = struct.pack("<Q", 2 ** 62)
    with pytest.raises(KangTruncatedError, match="compressed header"):
        decode_archive(SIGNATURE + huge + b"abc")
    with pytest.raises(KangTruncatedError, match="chunk table"):
        decode_archive(SIGNATURE + struct.pack("<Q", 0) + huge)

def test_chunk_table_entries_preserve_order():
    table = [ChunkEntry(5, 3), ChunkEntry(1, 9), ChunkEntry(7, 2)]
    archive = CompressedArchive(b"hdr", table, b"x" * 14)
    decoded = decode_archive(encode_archive(archive))
    assert decoded.chunk_table == table
    assert decoded.compressed_header == b"hdr"
    assert decoded.compressed_tensors.tobytes() == b"x" * 14
