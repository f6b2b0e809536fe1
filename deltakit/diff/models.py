from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from deltakit.common.enums import OperationType


class _Missing:
    def __repr__(self) -> str:
        return "<missing>"

    def __copy__(self) -> "_Missing":
        return self

    def __deepcopy__(self, memo: Dict[int, Any]) -> "_Missing":
        return self

    def __reduce__(self) -> str:
        return "_MISSING"


_MISSING = _Missing()


@dataclass(frozen=True)
class PatchOperation:
    op: OperationType
    path: str
    value: Any = _MISSING

    @classmethod
    def add(cls, path: str, value: Any) -> "PatchOperation":
        return cls(op=OperationType.add, path=path, value=value)

    @classmethod
    def remove(cls, path: str) -> "PatchOperation":
        return cls(op=OperationType.remove, path=path)

    @classmethod
    def replace(cls, path: str, value: Any) -> "PatchOperation":
        return cls(op=OperationType.replace, path=path, value=value)

    @property
    def has_value(self) -> bool:
        return self.value is not _MISSING

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"op": self.op.value, "path": self.path}
        if self.has_value:
            payload["value"] = self.value
        return payload

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "PatchOperation":
        op = OperationType(payload["op"])
        if op == OperationType.remove:
            return cls.remove(payload["path"])
        if "value" not in payload:
            raise ValueError(f"{op.value} operation requires a value")
        return cls(op=op, path=payload["path"], value=payload["value"])


@dataclass(frozen=True)
class ChangeSummary:
    additions: int
    deletions: int
    modifications: int
    total: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "additions": self.additions,
            "deletions": self.deletions,
            "modifications": self.modifications,
            "total": self.total,
        }
