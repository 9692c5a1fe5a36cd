"""Configuration loader for the strike pipeline.

Loads ``striker.yaml``, validates it against the pydantic schema in
``dotmatrix.utils.validators`` and converts it into typed, frozen
dataclasses.  The byte policy, interpreter binary, kernel layout and
protocol words all come from the config -- nothing else is hardcoded.

Relative paths (``kernel.working_dir``, ``destination.default``) are
resolved against the process working directory at use time, matching
how the kernel is launched.

Usage::

    from dotmatrix.configs.loader import load_config
    cfg = load_config()                        # default path
    cfg = load_config("/custom/striker.yaml")  # explicit path
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from dotmatrix.constraints.policy import ConstraintSet
from dotmatrix.utils import validators

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "striker.yaml"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


# ---------------------------------------------------------------------------
# Dataclasses -- mirror the YAML structure
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KernelConfig:
    """Gforth interpreter and kernel directory settings."""

    binary: str = "gforth"
    version_flag: str = "--version"
    working_dir: Path = Path("kernel")
    program: str = "striker.fth"
    fragment_name: str = "data.fth"
    unique_fragments: bool = True
    keep_fragments: bool = False
    timeout_s: float | None = None
    array_name: str = "STRIKE-DATA"
    init_word: str = "strike-init"
    sequence_word: str = "strike-sequence"
    close_word: str = "strike-close"

    @property
    def program_path(self) -> Path:
        """Static protocol program inside the working directory."""
        return self.working_dir / self.program

    @property
    def shared_fragment_path(self) -> Path:
        """Legacy single fragment location (``unique_fragments: false``)."""
        return self.working_dir / self.fragment_name

    def fragment_path_for(self, request_id: str) -> Path:
        """Fragment location for one request.

        With ``unique_fragments`` the request id is spliced before the
        suffix (``data-<id>.fth``); otherwise the shared path is returned.
        """
        if not self.unique_fragments:
            return self.shared_fragment_path
        stem = Path(self.fragment_name).stem
        return self.working_dir / f"{stem}-{request_id}.fth"


@dataclass(frozen=True)
class DestinationConfig:
    """Where strikes land by default and which paths are acceptable."""

    default: str = "dist/substrate.bin"
    allow_traversal: bool = False


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file: str | None = None
    json: bool = False


@dataclass(frozen=True)
class StrikerConfig:
    """Complete configuration loaded from ``striker.yaml``."""

    constraints: ConstraintSet = field(default_factory=ConstraintSet.default)
    kernel: KernelConfig = field(default_factory=KernelConfig)
    destination: DestinationConfig = field(default_factory=DestinationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def from_profile(profile: validators.StrikerV1) -> StrikerConfig:
    """Convert a validated schema model into frozen config dataclasses."""
    c = profile.constraints
    k = profile.kernel
    return StrikerConfig(
        constraints=ConstraintSet(
            max_value=c.max_value,
            forbidden={f.value: f.description for f in c.forbidden},
        ),
        kernel=KernelConfig(
            binary=k.binary,
            version_flag=k.version_flag,
            working_dir=Path(k.working_dir),
            program=k.program,
            fragment_name=k.fragment_name,
            unique_fragments=k.unique_fragments,
            keep_fragments=k.keep_fragments,
            timeout_s=k.timeout_s,
            array_name=k.array_name,
            init_word=k.words.init,
            sequence_word=k.words.sequence,
            close_word=k.words.close,
        ),
        destination=DestinationConfig(
            default=profile.destination.default,
            allow_traversal=profile.destination.allow_traversal,
        ),
        logging=LoggingConfig(
            level=profile.logging.level,
            file=profile.logging.file,
            json=profile.logging.json_lines,
        ),
    )


def load_config(path: str | Path | None = None) -> StrikerConfig:
    """Load and validate striker configuration from YAML.

    Parameters
    ----------
    path : str | Path | None
        Path to ``striker.yaml``.  ``None`` loads the default shipped
        alongside this module.

    Returns
    -------
    StrikerConfig
        Fully validated, frozen configuration object.

    Raises
    ------
    ConfigError
        If any field fails validation or the YAML is malformed.
    FileNotFoundError
        If *path* does not exist.
    """
    path = DEFAULT_CONFIG_PATH if path is None else Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    logger.info("Loading configuration from %s", path)

    try:
        profile = validators.load_striker_profile(path)
        config = from_profile(profile)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Malformed configuration file: {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid configuration value: {exc}") from exc

    logger.info(
        "Configuration loaded: max_value=%d forbidden=%s binary=%s",
        config.constraints.max_value,
        list(config.constraints.forbidden),
        config.kernel.binary,
    )
    return config
