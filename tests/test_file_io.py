# tests/test_file_io.py
"""
Comprehensive tests for the archive Reader and Writer classes and source file helpers.
"""
import io
import pytest
import numpy as np
from pathlib import Path

from kang import (
    open as kang_open,
    KangIOError,
    KangTruncatedError,
    split_source,
    write_source,
)
from conftest import make_source

# --- Source file helpers ---

def test_split_source(weight_file_parts):
    header, tensors = weight_file_parts
    got_header, got_tensors = split_source(make_source(header, tensors))
    assert got_header == header
    assert got_tensors.tobytes() == tensors

def test_split_source_empty_parts():
    header, tensors = split_source(make_source(b"", b""))
    assert header == b""
    assert tensors.size == 0

@pytest.mark.parametrize("data", [
    b"",
    b"\x05\x00\x00",
    (10).to_bytes(8, "little") + b"123456789",
])
def test_split_source_rejects_short_files(data):
    with pytest.raises(KangTruncatedError):
        split_source(data)

def test_write_source_recomputes_length_prefix(weight_file_parts):
    header, tensors = weight_file_parts
    stream = io.BytesIO()
    written = write_source(stream, header, np.frombuffer(tensors, dtype=np.uint8))
    assert stream.getvalue() == make_source(header, tensors)
    assert written == 8 + len(header) + len(tensors)

# --- Writer Tests ---

def test_writer_create_and_read_back(tmp_path: Path, weight_file_parts):
    """Tests creating an archive and verifying it with a reader."""
    header, tensors = weight_file_parts
    filepath = tmp_path / "writer_test.kang"

    with kang_open(filepath, 'w', level=5, chunk_size=1024) as f:
        assert not f.closed
        size = f.write(header, tensors)
    assert f.closed
    assert filepath.stat().st_size == size

    with kang_open(filepath, 'r') as f:
        assert f.nchunks == len(f) == -(-len(tensors) // 1024)
        assert f.read_header() == header
        result = f.read()
        assert result.header_bytes == header
        assert result.tensor_data.tobytes() == tensors

def test_writer_write_source(tmp_path: Path, weight_file_parts):
    header, tensors = weight_file_parts
    filepath = tmp_path / "from_source.kang"
    with kang_open(filepath, 'w', chunk_size=4096) as f:
        f.write_source(make_source(header, tensors))
    with kang_open(filepath, 'r') as f:
        assert f.read_tensors().tobytes() == tensors

def test_writer_only_writes_once(tmp_path: Path):
    with kang_open(tmp_path / "once.kang", 'w') as f:
        f.write(b"{}", b"abc")
        with pytest.raises(ValueError, match="already been written"):
            f.write(b"{}", b"abc")

def test_operation_on_closed_writer_fails(tmp_path: Path):
    f = kang_open(tmp_path / "closed.kang", 'w')
    f.close()
    assert f.closed
    with pytest.raises(ValueError, match="Operation attempted on a closed archive"):
        f.write(b"{}", b"")

def test_invalid_mode(tmp_path: Path):
    with pytest.raises(ValueError, match="Unsupported mode"):
        kang_open(tmp_path / "x.kang", 'a')
    with pytest.raises(ValueError, match="only be provided in 'w' mode"):
        kang_open(tmp_path / "x.kang", 'r', level=3)

def test_open_missing_file():
    with pytest.raises(KangIOError):
        kang_open("/nonexistent/dir/archive.kang", 'r')

# --- Reader Tests ---

@pytest.fixture
def multi_chunk_archive(tmp_path: Path, weight_file_parts) -> Path:
    header, tensors = weight_file_parts
    filepath = tmp_path / "multi_chunk.kang"
    with kang_open(filepath, 'w', chunk_size=5000) as f:
        f.write(header, tensors)
    return filepath

def test_reader_properties(multi_chunk_archive: Path, weight_file_parts):
    """Tests the lazy-loaded properties of the Reader."""
    header, tensors = weight_file_parts
    with kang_open(multi_chunk_archive, 'r') as f:
        info = f.info
        assert info.num_chunks == 3
        assert info.original_tensor_size == len(tensors)

        chunks = f.chunks
        assert [c.index for c in chunks] == [0, 1, 2]
        assert [c.original_size for c in chunks] == [5000, 5000, len(tensors) - 10000]
        assert chunks[0].original_offset == 0
        assert chunks[1].original_offset == 5000
        assert chunks[1].compressed_offset == chunks[0].compressed_size
    assert f.closed

def test_reader_integer_indexing(multi_chunk_archive: Path, weight_file_parts):
    """Tests decoding single chunks with positive and negative indices."""
    _, tensors = weight_file_parts
    with kang_open(multi_chunk_archive, 'r') as f:
        assert f[1].tobytes() == tensors[5000:10000]
        assert f[-1].tobytes() == tensors[10000:]

        with pytest.raises(IndexError):
            _ = f[99]
        with pytest.raises(IndexError):
            _ = f[-99]
        with pytest.raises(TypeError):
            _ = f[0:2]

def test_reader_tensors_view_as_float32(multi_chunk_archive: Path, weight_file_parts):
    _, tensors = weight_file_parts
    with kang_open(multi_chunk_archive, 'r') as f:
        data = f.read_tensors()
    weight = data[:64 * 48 * 4].view(np.float32).reshape(64, 48)
    expected = np.frombuffer(tensors[:64 * 48 * 4], dtype=np.float32).reshape(64, 48)
    np.testing.assert_array_equal(weight, expected)
