"""Declarative parameter schema for flat, dotted override dicts.

Each ParamDef names one field of a nested settings object by its dotted
path ("compressor.threshold", "reverb.mix") together with its section,
default and documented range. ParamSchema derives flat views of
defaults, ranges and sections, and sanitizes override dicts coming from
the command line or from preset files: unknown keys and unparseable
values are dropped, numbers are clamped to range, arrays are cut to
their declared length.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ParamType(Enum):
    FLOAT = "float"
    FLOAT_ARRAY = "float_array"


@dataclass
class ParamDef:
    key: str
    type: ParamType
    default: Any
    section: str
    label: str = ""
    range: tuple | None = None  # (lo, hi)
    array_size: int = 0

    @property
    def is_array(self):
        return self.type == ParamType.FLOAT_ARRAY

    def fresh_default(self):
        return list(self.default) if self.is_array else self.default

    def clamp(self, v: float) -> float:
        if self.range is None:
            return v
        lo, hi = self.range
        return min(hi, max(lo, v))

    def coerce(self, value):
        """Clamped float, or list of clamped floats for arrays.

        Arrays are truncated to the declared size but never padded: a short
        list only names its leading entries. Unparseable entries become None.
        Raises TypeError/ValueError if the value is unusable as a whole.
        """
        if not self.is_array:
            return self.clamp(float(value))
        if not isinstance(value, (list, tuple)):
            raise TypeError(f"{self.key} expects a list")
        size = self.array_size or len(self.default)
        out = []
        for v in value[:size]:
            try:
                out.append(self.clamp(float(v)))
            except (TypeError, ValueError):
                out.append(None)
        return out


class ParamSchema:

    def __init__(self, params: list[ParamDef]):
        self._params = list(params)
        self._by_key = {p.key: p for p in self._params}

    def default_params(self) -> dict:
        return {p.key: p.fresh_default() for p in self._params}

    def param_ranges(self) -> dict[str, tuple]:
        return {p.key: p.range for p in self._params if p.range is not None}

    def param_sections(self) -> dict[str, list[str]]:
        """Section name -> keys, in declaration order."""
        sections: dict[str, list[str]] = {}
        for p in self._params:
            sections.setdefault(p.section, []).append(p.key)
        return sections

    def validate_and_clamp(self, raw: dict) -> dict:
        result = {}
        for key, value in raw.items():
            p = self._by_key.get(key)
            if p is None:
                continue
            try:
                result[key] = p.coerce(value)
            except (TypeError, ValueError):
                continue
        return result

    def get(self, key: str) -> ParamDef | None:
        return self._by_key.get(key)

    def __iter__(self):
        return iter(self._params)

    def __len__(self):
        return len(self._params)
