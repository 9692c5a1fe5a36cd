"""Tests for striker.yaml loading and schema validation.

The shipped default must load and reproduce the built-in policy; bad
files must fail with ``ConfigError`` naming the problem.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from dotmatrix.configs.loader import (
    DEFAULT_CONFIG_PATH,
    ConfigError,
    KernelConfig,
    StrikerConfig,
    load_config,
)
from dotmatrix.constraints.policy import ConstraintSet


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config() -> StrikerConfig:
    return load_config()


def write_yaml(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "striker.yaml"
    path.write_text(text)
    return path


# ---------------------------------------------------------------------------
# Default file
# ---------------------------------------------------------------------------


class TestDefaultConfig:
    def test_file_shipped(self) -> None:
        assert DEFAULT_CONFIG_PATH.is_file()

    def test_matches_builtin_policy(self, config: StrikerConfig) -> None:
        assert config.constraints == ConstraintSet.default()

    def test_matches_dataclass_defaults(self, config: StrikerConfig) -> None:
        assert config == StrikerConfig()

    def test_kernel(self, config: StrikerConfig) -> None:
        k = config.kernel
        assert k.binary == "gforth"
        assert k.program_path == Path("kernel") / "striker.fth"
        assert k.unique_fragments is True
        assert k.timeout_s is None

    def test_hashable(self, config: StrikerConfig) -> None:
        assert hash(config) == hash(StrikerConfig())

    def test_frozen(self, config: StrikerConfig) -> None:
        with pytest.raises(AttributeError):
            config.kernel.binary = "other"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------


class TestOverrides:
    def test_partial_file_uses_defaults(self, tmp_path: Path) -> None:
        cfg = load_config(write_yaml(tmp_path, "kernel:\n  timeout_s: 12.5\n"))
        assert cfg.kernel.timeout_s == 12.5
        assert cfg.constraints == ConstraintSet.default()

    def test_empty_file(self, tmp_path: Path) -> None:
        assert load_config(write_yaml(tmp_path, "")) == StrikerConfig()

    def test_custom_constraints(self, tmp_path: Path) -> None:
        cfg = load_config(write_yaml(tmp_path, (
            "constraints:\n"
            "  max_value: 255\n"
            "  forbidden:\n"
            "    - value: 0\n"
            "      description: NUL\n"
        )))
        assert cfg.constraints.max_value == 255
        assert dict(cfg.constraints.forbidden) == {0: "NUL"}

    def test_custom_words(self, tmp_path: Path) -> None:
        cfg = load_config(write_yaml(tmp_path, (
            "kernel:\n"
            "  array_name: BUF\n"
            "  words:\n"
            "    init: open-sub\n"
        )))
        assert cfg.kernel.array_name == "BUF"
        assert cfg.kernel.init_word == "open-sub"
        assert cfg.kernel.close_word == "strike-close"

    def test_logging_json_alias(self, tmp_path: Path) -> None:
        cfg = load_config(write_yaml(tmp_path, "logging:\n  level: debug\n  json: true\n"))
        assert cfg.logging.level == "DEBUG"
        assert cfg.logging.json is True


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Malformed"):
            load_config(write_yaml(tmp_path, "kernel: [unclosed\n"))

    @pytest.mark.parametrize(
        "text",
        [
            "constraints:\n  max_value: 300\n",
            "constraints:\n  forbidden:\n    - value: 256\n      description: x\n",
            "constraints:\n  forbidden:\n"
            "    - {value: 160, description: a}\n"
            "    - {value: 160, description: b}\n",
            "kernel:\n  timeout_s: 0\n",
            "kernel:\n  fragment_name: ../data.fth\n",
            "kernel:\n  fragment_name: data.txt\n",
            "kernel:\n  words:\n    init: two words\n",
            "kernel:\n  words:\n    init: same\n    close: same\n",
            "logging:\n  level: LOUD\n",
        ],
    )
    def test_invalid_values(self, tmp_path: Path, text: str) -> None:
        with pytest.raises(ConfigError, match="Invalid configuration value"):
            load_config(write_yaml(tmp_path, text))


# ---------------------------------------------------------------------------
# KernelConfig helpers
# ---------------------------------------------------------------------------


class TestKernelPaths:
    def test_unique_fragment_path(self) -> None:
        k = KernelConfig()
        assert k.fragment_path_for("abc123") == Path("kernel") / "data-abc123.fth"

    def test_shared_fragment_path(self) -> None:
        k = KernelConfig(unique_fragments=False)
        assert k.fragment_path_for("abc123") == Path("kernel") / "data.fth"
        assert k.shared_fragment_path == Path("kernel") / "data.fth"
