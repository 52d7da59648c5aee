# tests/test_batch.py
"""
Tests for directory mode.
"""
import pytest
from pathlib import Path

from kang import (
    BatchReport,
    ChunkEntry,
    Command,
    CompressedArchive,
    KangBadSignatureError,
    KangConfig,
    KangIOError,
    KangSizeMismatchError,
    ZstdBackend,
    decode_archive,
    encode_archive,
    process_directory,
)
from kang import convenience
from conftest import make_source

@pytest.fixture
def source_dir(tmp_path: Path, weight_file_parts) -> Path:
    header, tensors = weight_file_parts
    directory = tmp_path / "models"
    directory.mkdir()
    (directory / "b.safetensors").write_bytes(make_source(header, tensors))
    (directory / "a.safetensors").write_bytes(make_source(b'{"small":true}', b"\x01" * 300))
    (directory / "notes.txt").write_text("not a model")
    (directory / "nested.safetensors").mkdir()
    return directory

CONFIG = KangConfig(level=3, chunk_size=1024)

def test_directory_roundtrip(tmp_path: Path, source_dir: Path):
    archives = tmp_path / "archives"
    restored = tmp_path / "restored"

    report = process_directory(Command.COMPRESS, source_dir, archives, config=CONFIG)
    assert report.ok
    assert report.total == 2
    assert [Path(s.source_path).name for s in report.succeeded] == \
        ["a.safetensors", "b.safetensors"]
    assert sorted(p.name for p in archives.iterdir()) == ["a.kang", "b.kang"]

    report = process_directory("decompress", archives, restored, config=CONFIG)
    assert report.ok
    for name in ("a.safetensors", "b.safetensors"):
        assert (restored / name).read_bytes() == (source_dir / name).read_bytes()
    assert not (restored / "notes.safetensors").exists()

def test_failed_file_does_not_stop_batch(tmp_path: Path, source_dir: Path):
    archives = tmp_path / "archives"
    process_directory(Command.COMPRESS, source_dir, archives, config=CONFIG)
    (archives / "0-corrupt.kang").write_bytes(b"NOTKANG!" + b"\x00" * 16)

    restored = tmp_path / "restored"
    report = process_directory(Command.DECOMPRESS, archives, restored, config=CONFIG)

    assert not report.ok
    assert report.total == 3
    assert len(report.succeeded) == 2
    [(path, error)] = report.failed
    assert path.name == "0-corrupt.kang"
    assert isinstance(error, KangBadSignatureError)
    assert not (restored / "0-corrupt.safetensors").exists()
    assert (restored / "a.safetensors").exists()
    assert (restored / "b.safetensors").exists()

def test_empty_directory(tmp_path: Path):
    empty = tmp_path / "empty"
    empty.mkdir()
    report = process_directory(Command.COMPRESS, empty, tmp_path / "out" / "deep")
    assert report == BatchReport()
    assert report.ok
    assert (tmp_path / "out" / "deep").is_dir()

def test_missing_input_directory(tmp_path: Path):
    with pytest.raises(KangIOError):
        process_directory(Command.COMPRESS, tmp_path / "missing", tmp_path / "out")

def test_tampered_archive_does_not_stop_batch(tmp_path: Path, source_dir: Path):
    archives = tmp_path / "archives"
    process_directory(Command.COMPRESS, source_dir, archives, config=CONFIG)

    archive = decode_archive((archives / "a.kang").read_bytes())
    table = list(archive.chunk_table)
    table[0] = ChunkEntry(original_size=2 ** 62, compressed_size=table[0].compressed_size)
    archive = CompressedArchive(archive.compressed_header, table, archive.compressed_tensors)
    (archives / "a.kang").write_bytes(encode_archive(archive))

    restored = tmp_path / "restored"
    report = process_directory(Command.DECOMPRESS, archives, restored, config=CONFIG)

    [(path, error)] = report.failed
    assert path.name == "a.kang"
    assert isinstance(error, KangSizeMismatchError)
    assert not (restored / "a.safetensors").exists()
    assert (restored / "b.safetensors").read_bytes() == (source_dir / "b.safetensors").read_bytes()


class ChokingBackend(ZstdBackend):
    """Raises a plain ValueError on the tensor chunk of `a.safetensors`."""
    def compress(self, data) -> bytes:
        if bytes(memoryview(data)) == b"\x01" * 300:
            raise ValueError("unexpected buffer")
        return super().compress(data)

    def spawn(self) -> "ChokingBackend":
        return ChokingBackend(self.level)

def test_unexpected_error_does_not_stop_batch(tmp_path: Path, source_dir: Path, monkeypatch):
    monkeypatch.setattr(convenience, "_make_backend", lambda config: ChokingBackend(config.level))
    archives = tmp_path / "archives"

    report = process_directory(Command.COMPRESS, source_dir, archives, config=CONFIG)

    [(path, error)] = report.failed
    assert path.name == "a.safetensors"
    assert isinstance(error, ValueError)
    assert [Path(s.source_path).name for s in report.succeeded] == ["b.safetensors"]
    assert not (archives / "a.kang").exists()
    assert (archives / "b.kang").exists()
