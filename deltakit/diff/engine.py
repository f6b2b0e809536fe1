"""Structural diff between two JSON documents.

Objects are compared key by key in sorted order, arrays positionally, and
anything else by value. The result is an ordered list of add/remove/replace
operations that ``apply_patch`` replays onto the old document to obtain the
new one.
"""

from __future__ import annotations

import copy
from typing import Any, Iterable, List, Sequence

from deltakit.common.enums import OperationType
from deltakit.diff.models import ChangeSummary, PatchOperation
from deltakit.diff.pointer import join_pointer, split_pointer


def _kind(value: Any) -> str:
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if value is None:
        return "null"
    return "string"


def _diff_into(old: Any, new: Any, path: str, operations: List[PatchOperation]) -> None:
    old_kind = _kind(old)
    new_kind = _kind(new)
    if old_kind != new_kind:
        operations.append(PatchOperation.replace(path, copy.deepcopy(new)))
        return

    if old_kind == "object":
        for key in sorted(set(old) | set(new)):
            child = join_pointer(path, key)
            if key not in old:
                operations.append(PatchOperation.add(child, copy.deepcopy(new[key])))
            elif key not in new:
                operations.append(PatchOperation.remove(child))
            else:
                _diff_into(old[key], new[key], child, operations)
        return

    if old_kind == "array":
        shared = min(len(old), len(new))
        for index in range(shared):
            _diff_into(old[index], new[index], join_pointer(path, index), operations)
        for index in range(shared, len(new)):
            operations.append(PatchOperation.add(join_pointer(path, index), copy.deepcopy(new[index])))
        # highest index first so each removal leaves the remaining indices valid
        for index in range(len(old) - 1, shared - 1, -1):
            operations.append(PatchOperation.remove(join_pointer(path, index)))
        return

    if old != new:
        operations.append(PatchOperation.replace(path, copy.deepcopy(new)))


def compute_diff(old: Any, new: Any) -> List[PatchOperation]:
    operations: List[PatchOperation] = []
    _diff_into(old, new, "", operations)
    return operations


def count_changes(operations: Sequence[PatchOperation]) -> int:
    return len(operations)


def categorize_changes(operations: Iterable[PatchOperation]) -> ChangeSummary:
    additions = deletions = modifications = 0
    for operation in operations:
        if operation.op == OperationType.add:
            additions += 1
        elif operation.op == OperationType.remove:
            deletions += 1
        else:
            modifications += 1
    return ChangeSummary(
        additions=additions,
        deletions=deletions,
        modifications=modifications,
        total=additions + deletions + modifications,
    )


def _array_index(container: list, token: str, *, allow_end: bool) -> int:
    if token == "-" and allow_end:
        return len(container)
    if not token.isdigit():
        raise ValueError(f"Invalid array index {token!r}")
    index = int(token)
    upper = len(container) if allow_end else len(container) - 1
    if index > upper:
        raise ValueError(f"Array index {index} out of range")
    return index


def _resolve_parent(document: Any, tokens: List[str]) -> Any:
    target = document
    for token in tokens:
        if isinstance(target, dict):
            if token not in target:
                raise ValueError(f"Path segment {token!r} not found")
            target = target[token]
        elif isinstance(target, list):
            target = target[_array_index(target, token, allow_end=False)]
        else:
            raise ValueError(f"Cannot traverse into scalar at {token!r}")
    return target


def apply_patch(document: Any, operations: Iterable[PatchOperation]) -> Any:
    """Return a copy of ``document`` with ``operations`` applied in order."""
    result = copy.deepcopy(document)
    for operation in operations:
        tokens = split_pointer(operation.path)
        if not tokens:
            if operation.op == OperationType.remove:
                result = None
            else:
                result = copy.deepcopy(operation.value)
            continue

        parent = _resolve_parent(result, tokens[:-1])
        last = tokens[-1]
        if isinstance(parent, dict):
            if operation.op == OperationType.remove:
                if last not in parent:
                    raise ValueError(f"Cannot remove missing key {operation.path!r}")
                del parent[last]
            elif operation.op == OperationType.replace and last not in parent:
                raise ValueError(f"Cannot replace missing key {operation.path!r}")
            else:
                parent[last] = copy.deepcopy(operation.value)
        elif isinstance(parent, list):
            if operation.op == OperationType.add:
                parent.insert(_array_index(parent, last, allow_end=True), copy.deepcopy(operation.value))
            elif operation.op == OperationType.remove:
                del parent[_array_index(parent, last, allow_end=False)]
            else:
                parent[_array_index(parent, last, allow_end=False)] = copy.deepcopy(operation.value)
        else:
            raise ValueError(f"Cannot apply {operation.op.value} below a scalar at {operation.path!r}")
    return result
