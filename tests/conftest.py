# tests/conftest.py
"""
Pytest configuration and shared fixtures for the test suite.
"""
import json
import pytest
from pathlib import Path
import numpy as np

from kang import ZstdBackend, KangBackendError

def make_source(header: bytes, tensors: bytes) -> bytes:
    """Builds a weight file image: 8-byte LE header length, header, tensors."""
    return len(header).to_bytes(8, "little") + header + tensors

def forged_frame(content_size: int) -> bytes:
    """
    A zstd frame whose header declares `content_size` bytes but whose only
    block is an empty raw block.
    """
    magic = b"\x28\xb5\x2f\xfd"
    descriptor = bytes([0xC0, 0x00])  # 8-byte content size, 1 KiB window
    last_empty_raw_block = b"\x01\x00\x00"
    return magic + descriptor + content_size.to_bytes(8, "little") + last_empty_raw_block


class RecordingBackend(ZstdBackend):
    """A zstd backend that remembers the size of every buffer it is asked to compress."""
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.compressed_sizes = []
        self.decompress_calls = 0

    def compress(self, data) -> bytes:
        self.compressed_sizes.append(len(memoryview(data)))
        return super().compress(data)

    def decompress_into(self, data, out) -> int:
        self.decompress_calls += 1
        return super().decompress_into(data, out)


class OversizeReportingBackend(ZstdBackend):
    """Declares one byte more than each compressed frame really holds."""
    def decompressed_size(self, data) -> int:
        return super().decompressed_size(data) + 1

    def spawn(self) -> "OversizeReportingBackend":
        return OversizeReportingBackend(self.level)


class FailingBackend(ZstdBackend):
    """Fails every compress call, like a backend reporting an internal fault."""
    def compress(self, data) -> bytes:
        raise KangBackendError("simulated backend fault")

    def spawn(self) -> "FailingBackend":
        return FailingBackend(self.level)


@pytest.fixture
def backend():
    """A fast zstd backend, closed after the test."""
    with ZstdBackend(level=3) as b:
        yield b

@pytest.fixture(scope="session")
def weight_file_parts():
    """
    The header and tensor payload of a small, realistic weight file:
    a safetensors-style JSON index followed by float32 and int64 tensors.
    """
    rng = np.random.default_rng(seed=7)
    weight = rng.standard_normal((64, 48)).astype(np.float32)
    bias = np.arange(48, dtype=np.int64)
    tensors = weight.tobytes() + bias.tobytes()
    header = json.dumps({
        "__metadata__": {"format": "pt"},
        "layer.weight": {"dtype": "F32", "shape": [64, 48], "data_offsets": [0, weight.nbytes]},
        "layer.bias": {"dtype": "I64", "shape": [48],
                       "data_offsets": [weight.nbytes, weight.nbytes + bias.nbytes]},
    }, separators=(",", ":")).encode("utf-8")
    return header, tensors

@pytest.fixture(scope="session")
def weight_file(tmp_path_factory, weight_file_parts) -> Path:
    """
    A .safetensors-layout file on disk, created once per session.
    """
    header, tensors = weight_file_parts
    filepath = tmp_path_factory.getbasetemp() / "model.safetensors"
    filepath.write_bytes(make_source(header, tensors))
    return filepath
