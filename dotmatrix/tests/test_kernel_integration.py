"""End-to-end strikes through the real Gforth kernel.

Runs ``kernel/striker.fth`` with the generated fragment and directive, so
the encoder and the Forth words are checked against each other.  Skipped
when ``gforth`` is not on PATH.
"""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from dotmatrix.configs.loader import KernelConfig, StrikerConfig
from dotmatrix.pipeline.strike_pipeline import StrikePipeline

KERNEL_SOURCE = Path(__file__).resolve().parents[2] / "kernel" / "striker.fth"

pytestmark = pytest.mark.skipif(
    shutil.which("gforth") is None, reason="gforth not installed",
)


@pytest.fixture()
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "kernel").mkdir()
    shutil.copy(KERNEL_SOURCE, tmp_path / "kernel" / "striker.fth")
    return tmp_path


# ---------------------------------------------------------------------------
# Strike -> verify
# ---------------------------------------------------------------------------


class TestRealKernel:
    def test_hello(self, workdir: Path) -> None:
        pipeline = StrikePipeline()
        pipeline.execute([72, 101, 108, 108, 111], "dist/substrate.bin", timeout_s=30.0)

        result = pipeline.verify("dist/substrate.bin")

        assert result.clean
        assert result.size == 5
        assert (workdir / "dist" / "substrate.bin").read_bytes() == b"Hello"
        assert sorted(p.name for p in (workdir / "kernel").iterdir()) == ["striker.fth"]

    def test_boundary_bytes(self, workdir: Path) -> None:
        data = bytes([0, 1, 10, 32, 126, 127])
        pipeline = StrikePipeline()
        pipeline.execute(data, "edge.bin", timeout_s=30.0)
        assert (workdir / "edge.bin").read_bytes() == data

    def test_overwrites_previous_strike(self, workdir: Path) -> None:
        pipeline = StrikePipeline()
        pipeline.execute(b"longer text", "out.bin", timeout_s=30.0)
        pipeline.execute(b"Hi", "out.bin", timeout_s=30.0)
        assert (workdir / "out.bin").read_bytes() == b"Hi"

    def test_shared_fragment_mode(self, workdir: Path) -> None:
        config = StrikerConfig(kernel=KernelConfig(unique_fragments=False))
        StrikePipeline(config).execute(b"ok", "shared.bin", timeout_s=30.0)
        assert (workdir / "shared.bin").read_bytes() == b"ok"
        assert "CREATE STRIKE-DATA 111 , 107 , " in (
            workdir / "kernel" / "data.fth"
        ).read_text()
