# Copyright (c) Syntropy Systems
"""Shared Pydantic model helpers for cisignal."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict
from typing_extensions import TypeAlias

VariantSet: TypeAlias = dict[str, str]


class SignalBaseModel(BaseModel):
    """Base model with shared config for cisignal schemas."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
    )


class FrozenModel(BaseModel):
    """Base model for immutable, hashable values."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="forbid",
        frozen=True,
    )
