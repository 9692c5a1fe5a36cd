"""YAML schema validation for ``striker.yaml``.

Pydantic models mirror the YAML layout one-to-one so a malformed file
fails fast with the offending key and the expected range:
    - constraints: byte ceiling and individually forbidden values
    - kernel: interpreter binary, working directory, protocol words
    - destination: default output path and traversal policy
    - logging: level / file / json

The config loader (``dotmatrix.configs.loader``) converts the validated
model into frozen dataclasses; nothing else imports these models.

Usage:
    from dotmatrix.utils import validators
    raw = validators.load_striker_profile("striker.yaml")
"""

from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


class ForbiddenByteV1(BaseModel):
    """One individually banned byte value."""
    value: int = Field(..., ge=0, le=255, description="Banned byte value")
    description: str = Field(..., min_length=1, description="Human-readable reason")


class ConstraintsV1(BaseModel):
    max_value: int = Field(127, ge=0, le=255, description="Inclusive byte ceiling")
    forbidden: List[ForbiddenByteV1] = Field(
        default_factory=lambda: [
            ForbiddenByteV1(value=160, description="NBSP (Non-Breaking Space)"),
            ForbiddenByteV1(value=194, description="UTF-8 continuation marker"),
        ]
    )

    @field_validator('forbidden')
    @classmethod
    def validate_unique(cls, v: List[ForbiddenByteV1]) -> List[ForbiddenByteV1]:
        values = [f.value for f in v]
        dupes = sorted({x for x in values if values.count(x) > 1})
        if dupes:
            raise ValueError(f"Forbidden byte values listed more than once: {dupes}")
        return v


class KernelWordsV1(BaseModel):
    """Interpreter-side words invoked by the execution directive."""
    init: str = "strike-init"
    sequence: str = "strike-sequence"
    close: str = "strike-close"

    @field_validator('init', 'sequence', 'close')
    @classmethod
    def validate_word(cls, v: str) -> str:
        if not v or any(ch.isspace() for ch in v):
            raise ValueError(f"Forth word must be non-empty without whitespace, got: {v!r}")
        return v


class KernelV1(BaseModel):
    binary: str = Field("gforth", min_length=1)
    version_flag: str = Field("--version", min_length=1)
    working_dir: str = Field("kernel", min_length=1)
    program: str = Field("striker.fth", min_length=1)
    fragment_name: str = Field("data.fth", min_length=1)
    unique_fragments: bool = True
    keep_fragments: bool = False
    timeout_s: Optional[float] = Field(None, gt=0.0, description="None waits forever")
    array_name: str = Field("STRIKE-DATA", min_length=1)
    words: KernelWordsV1 = Field(default_factory=KernelWordsV1)

    @field_validator('array_name')
    @classmethod
    def validate_array_name(cls, v: str) -> str:
        if any(ch.isspace() for ch in v):
            raise ValueError(f"array_name must not contain whitespace, got: {v!r}")
        return v

    @field_validator('fragment_name')
    @classmethod
    def validate_fragment_name(cls, v: str) -> str:
        if '/' in v or '\\' in v:
            raise ValueError(f"fragment_name must be a bare file name, got: {v!r}")
        if not v.endswith('.fth'):
            raise ValueError(f"fragment_name must end in .fth, got: {v!r}")
        return v


class DestinationV1(BaseModel):
    default: str = Field("dist/substrate.bin", min_length=1)
    allow_traversal: bool = False


class LoggingV1(BaseModel):
    level: str = "INFO"
    file: Optional[str] = None
    json_lines: bool = Field(False, alias="json")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return v


class StrikerV1(BaseModel):
    """Complete ``striker.yaml`` schema."""
    constraints: ConstraintsV1 = Field(default_factory=ConstraintsV1)
    kernel: KernelV1 = Field(default_factory=KernelV1)
    destination: DestinationV1 = Field(default_factory=DestinationV1)
    logging: LoggingV1 = Field(default_factory=LoggingV1)

    @model_validator(mode='after')
    def validate_words_distinct(self) -> 'StrikerV1':
        w = self.kernel.words
        names = {w.init, w.sequence, w.close, self.kernel.array_name}
        if len(names) != 4:
            raise ValueError("kernel words and array_name must all be distinct")
        return self


def load_striker_profile(path: Union[str, Path]) -> StrikerV1:
    """Load and validate a striker profile from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to a striker.yaml file

    Returns
    -------
    StrikerV1
        Validated profile

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails (with actionable error message)
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Striker profile not found: {path}")

    data = fs.load_yaml(path) or {}
    try:
        return StrikerV1(**data)
    except Exception as e:
        raise ValueError(f"Striker profile validation failed at {path}: {e}") from e
