# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Value encoding for the DynamoDB wire types.

Numeric values travel as the native number type (``N``), stringified.
Everything else is encoded as compact JSON and stored as a string (``S``).
JSON is the wire contract for non-numeric values, so rows written here
can be read by any client that decodes JSON.

Decoding tries an integer literal, then any other numeric literal, and
only then JSON. A JSON document can never look like a bare number, because
numbers are never JSON-encoded in the first place.
"""

from __future__ import annotations

import json
import math
from decimal import Decimal
import re
from typing import Any

from dynacache.kernel.exceptions import CacheSerializationException

NUMBER = "N"
STRING = "S"

_INT_RE = re.compile(r"^\s*[+-]?\d+\s*$", re.ASCII)
_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$", re.ASCII)


class ValueSerializer:
    """Maps cache values to and from DynamoDB attribute payloads."""

    def is_numeric(self, value: Any) -> bool:
        if isinstance(value, bool):
            return False
        if isinstance(value, int):
            return True
        if isinstance(value, float):
            return math.isfinite(value)
        if isinstance(value, str):
            return _NUMERIC_RE.match(value) is not None
        return False

    def type_of(self, value: Any) -> str:
        """Return the DynamoDB type descriptor for *value*."""
        return NUMBER if self.is_numeric(value) else STRING

    def serialize(self, value: Any) -> str:
        """Encode *value* into the string sent over the wire."""
        if self.is_numeric(value):
            return str(value).strip()
        try:
            return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise CacheSerializationException(
                f"Cannot serialize value of type {type(value).__name__}",
                code="CACHE_SERIALIZE",
                context={"type": type(value).__name__},
            ) from exc

    def attribute(self, value: Any) -> dict[str, str]:
        """Build a typed attribute value, e.g. ``{"N": "42"}``."""
        return {self.type_of(value): self.serialize(value)}

    def unserialize(self, raw: str | None) -> Any:
        """Decode a stored payload back into a Python value."""
        if raw is None:
            return None
        if _INT_RE.match(raw):
            return int(raw)
        if _NUMERIC_RE.match(raw):
            return float(raw)
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CacheSerializationException(
                "Stored value is neither numeric nor valid JSON",
                code="CACHE_UNSERIALIZE",
            ) from exc

    def number(self, raw: str) -> int | float:
        """Decode a value the backend reported as a number."""
        if _INT_RE.match(raw):
            return int(raw)
        return float(raw)

    def canonical(self, raw: str) -> str:
        """Normalize a numeric literal the way DynamoDB stores numbers.

        ``"1.0"`` becomes ``"1"``, ``"1.50"`` becomes ``"1.5"`` and ``"1e3"``
        becomes ``"1000"``.
        """
        number = Decimal(raw.strip())
        if number == number.to_integral_value():
            return str(int(number))
        return format(number.normalize(), "f")
