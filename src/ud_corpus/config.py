"""
Pipeline settings: defaults, optional YAML file, then environment overrides.

Environment variables:
- UD_MODEL: spaCy package name or path of the parsing model.
- UD_WORKERS: number of annotation worker processes.
- UD_CHUNK_SIZE: rows per annotation chunk.
- UD_SEED: sampling seed.
"""

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_OVERRIDES = {
    "UD_MODEL": "model",
    "UD_WORKERS": "workers",
    "UD_CHUNK_SIZE": "chunk_size",
    "UD_SEED": "seed",
}


class PipelineConfig(BaseModel):
    model: str = "zh_core_web_sm"
    seed: int = 123
    sample_size: Optional[int] = None
    chunk_size: int = Field(10, ge=1)
    workers: int = Field(default_factory=lambda: os.cpu_count() or 1, ge=1)
    sep: str = "_"
    tag: Optional[Literal["upos", "xpos"]] = "upos"
    group_pattern: str = r"^(.*?)\d+$"
    min_termfreq: Optional[int] = None
    window: int = Field(5, ge=1)

    @field_validator("sep")
    @classmethod
    def sep_must_be_nonempty(cls, v: str) -> str:
        if not v:
            raise ValueError("Separator must be a non-empty string")
        return v

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "PipelineConfig":
        """
        Read settings from `path` (YAML) if given, then apply UD_* overrides.

        >>> PipelineConfig.load().chunk_size >= 1
        True
        """
        values: dict = {}
        if path is not None:
            with open(path, encoding="utf-8") as f:
                values.update(yaml.safe_load(f) or {})
        for env, key in ENV_OVERRIDES.items():
            if (v := os.getenv(env)) is not None:
                values[key] = v
        return cls.model_validate(values)
