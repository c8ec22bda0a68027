"""
Record value type and its wire encoding.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from errors import SerializationError

DEFAULT_RECORD_TYPE = "A"
DEFAULT_TTL_SECONDS = 60


@dataclass(frozen=True)
class Record:
    """
    A named DNS-like record.

    `name` is the only identity: storing a record under an existing name
    replaces the previous one entirely.

    Wire form (stable field order, the only encoding persisted remotely):
        {"name": str, "type": str, "values": [str, ...], "ttl": int}
    """

    name: str
    type: str = ""
    values: Tuple[str, ...] = ()
    ttl: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "values": list(self.values),
            "ttl": self.ttl,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Any, *, key: Optional[str] = None) -> "Record":
        """
        Decode a wire-form mapping.

        Extra fields are ignored. A missing `type` decodes as "" and a missing
        `ttl` as 0; filling in defaults is the caller's job.
        """
        if not isinstance(data, dict):
            raise SerializationError(f"expected an object, got {type(data).__name__}", key=key)

        name = data.get("name")
        if not isinstance(name, str):
            raise SerializationError("field 'name' must be a string", key=key)

        rtype = data.get("type", "")
        if not isinstance(rtype, str):
            raise SerializationError("field 'type' must be a string", key=key)

        values = data.get("values")
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise SerializationError("field 'values' must be a list of strings", key=key)

        ttl = data.get("ttl", 0)
        # bool is an int subclass; reject it explicitly
        if not isinstance(ttl, int) or isinstance(ttl, bool):
            raise SerializationError("field 'ttl' must be an integer", key=key)

        return cls(name=name, type=rtype, values=list(values), ttl=ttl)

    @classmethod
    def from_json(cls, raw: Any, *, key: Optional[str] = None) -> "Record":
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise SerializationError(f"invalid utf-8: {e}", key=key) from e
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"invalid JSON: {e}", key=key) from e
        return cls.from_dict(data, key=key)
