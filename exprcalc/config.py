"""Settings for the calculator, read from the environment and a .env file."""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

ENV_PREFIX = "EXPRCALC_"


class CalculatorSettings(BaseModel):
    """Model for calculator configuration."""
    model_config = ConfigDict(validate_default=True)

    history_file: Optional[str] = Field(default="~/.exprcalc_history", description="prompt_toolkit history file")
    rc_file: Optional[str] = Field(default="~/.exprcalcrc", description="Definitions loaded at startup")
    radix: str = Field(default="dec", description="Display radix for Int results")
    float_precision: int = Field(default=15, ge=1, le=17, description="Significant digits for Float results")
    max_call_depth: int = Field(default=100, ge=1, le=1000, description="Closure call depth limit")
    # 14000 bits stays below Python's 4300-digit int/str conversion limit
    max_int_bits: int = Field(default=4096, ge=64, le=14000, description="Largest Int result in bits")
    track_ans: bool = Field(default=True, description="Bind the last result to 'ans'")
    log_level: str = Field(default="WARNING")

    @field_validator('radix')
    @classmethod
    def radix_must_be_known(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ('dec', 'hex', 'bin'):
            raise ValueError("radix must be one of dec, hex, bin")
        return v

    @field_validator('log_level')
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {v!r}")
        return v

    @field_validator('history_file', 'rc_file')
    @classmethod
    def expand_user(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return os.path.expanduser(v.strip())


def load_settings(environ: Optional[Mapping[str, str]] = None, **overrides) -> CalculatorSettings:
    """Build settings from EXPRCALC_* variables, then apply explicit overrides.

    When ``environ`` is not given, a .env file in the working directory is
    loaded first and ``os.environ`` is used.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ
    values = {}
    for name in CalculatorSettings.model_fields:
        key = ENV_PREFIX + name.upper()
        if key in environ:
            values[name] = environ[key]
    values.update({k: v for k, v in overrides.items() if v is not None})
    settings = CalculatorSettings(**values)
    logger.debug("loaded settings %s", settings.model_dump())
    return settings
