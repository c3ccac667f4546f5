"""Structural patches between JSON documents.

``diff`` and the two ``apply`` variants are pure functions over plain JSON
values (dicts, lists, scalars). The contract tying them together:

    apply_patch(a, diff(a, b)) == b

``apply_patch`` is strict and raises ``PatchApplicationFailure`` on any
precondition violation. ``apply_patch_permissive`` relaxes the
preconditions: it creates missing parents, turns a replace of a missing
target into an add and ignores removal of something that is not there.
"""

import copy
from collections.abc import Iterable, Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from genui.core import PatchApplicationFailure


OpName = Literal["add", "replace", "remove"]


class Operation(BaseModel):
    """A single patch operation."""

    model_config = ConfigDict(frozen=True)

    op: OpName
    path: str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"op": self.op, "path": self.path}
        if self.op != "remove":
            data["value"] = self.value
        return data

    @classmethod
    def coerce(cls, raw: "Operation | Mapping[str, Any]") -> "Operation":
        if isinstance(raw, Operation):
            return raw
        try:
            return cls.model_validate(raw)
        except PydanticValidationError as e:
            raise PatchApplicationFailure(f"Malformed operation: {e.errors()[0]['msg']}", dict(raw)) from e


# ============================================================================
# Pointers
# ============================================================================


def escape(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def unescape(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def join(path: str, token: str | int) -> str:
    return f"{path}/{escape(str(token))}"


def parse_pointer(path: str) -> list[str]:
    """Split a slash-delimited path into unescaped tokens."""
    if path == "":
        return []
    if not path.startswith("/"):
        raise PatchApplicationFailure(f"Path must start with '/': {path!r}")
    return [unescape(token) for token in path[1:].split("/")]


# ============================================================================
# Diff
# ============================================================================


def json_equal(a: Any, b: Any) -> bool:
    """Structural equality that also tells ``1``, ``1.0`` and ``True`` apart."""
    if isinstance(a, dict):
        return isinstance(b, dict) and a.keys() == b.keys() and all(json_equal(a[k], b[k]) for k in a)
    if isinstance(a, list):
        return isinstance(b, list) and len(a) == len(b) and all(json_equal(x, y) for x, y in zip(a, b))
    return type(a) is type(b) and a == b


def _diff(old: Any, new: Any, path: str, ops: list[Operation]) -> None:
    if json_equal(old, new):
        return

    if isinstance(old, dict) and isinstance(new, dict):
        for key in old:
            if key not in new:
                ops.append(Operation(op="remove", path=join(path, key)))
        for key, value in new.items():
            if key in old:
                _diff(old[key], value, join(path, key), ops)
            else:
                ops.append(Operation(op="add", path=join(path, key), value=value))
        return

    if isinstance(old, list) and isinstance(new, list):
        common = min(len(old), len(new))
        for index in range(common):
            _diff(old[index], new[index], join(path, index), ops)
        # Highest index first so earlier indices stay valid
        for index in range(len(old) - 1, common - 1, -1):
            ops.append(Operation(op="remove", path=join(path, index)))
        for index in range(common, len(new)):
            ops.append(Operation(op="add", path=join(path, index), value=new[index]))
        return

    ops.append(Operation(op="replace", path=path, value=new))


def diff(old: Any, new: Any) -> list[Operation]:
    """
    Compute the operations that turn ``old`` into ``new``.

    Mappings are compared key by key and lists index by index; anything
    else that differs is replaced wholesale.
    """
    ops: list[Operation] = []
    _diff(old, new, "", ops)
    return ops


# ============================================================================
# Apply
# ============================================================================


def _list_index(token: str, op: Operation) -> int:
    if not token.isdigit() or (len(token) > 1 and token.startswith("0")):
        raise PatchApplicationFailure(f"Invalid array index {token!r}", op.to_dict())
    return int(token)


def _descend(container: Any, token: str, op: Operation, permissive: bool) -> Any:
    if isinstance(container, dict):
        child = container.get(token)
        if isinstance(child, (dict, list)):
            return child
        if not permissive:
            if token not in container:
                raise PatchApplicationFailure(f"Missing parent {token!r} in {op.path}", op.to_dict())
            raise PatchApplicationFailure(f"Parent {token!r} in {op.path} is not a container", op.to_dict())
        container[token] = {}
        return container[token]

    if isinstance(container, list):
        if token == "-" and permissive:
            container.append({})
            return container[-1]
        index = _list_index(token, op)
        if index < len(container):
            child = container[index]
            if isinstance(child, (dict, list)):
                return child
            if not permissive:
                raise PatchApplicationFailure(f"Parent {token!r} in {op.path} is not a container", op.to_dict())
            container[index] = {}
            return container[index]
        if not permissive:
            raise PatchApplicationFailure(f"Index {index} out of range in {op.path}", op.to_dict())
        container.append({})
        return container[-1]

    raise PatchApplicationFailure(f"Cannot descend into scalar at {op.path}", op.to_dict())


def _apply_to_dict(parent: dict[str, Any], key: str, op: Operation, permissive: bool) -> None:
    if op.op == "add":
        parent[key] = copy.deepcopy(op.value)
    elif op.op == "replace":
        if key not in parent and not permissive:
            raise PatchApplicationFailure(f"Replace target missing: {op.path}", op.to_dict())
        parent[key] = copy.deepcopy(op.value)
    elif key in parent:
        del parent[key]
    elif not permissive:
        raise PatchApplicationFailure(f"Remove target missing: {op.path}", op.to_dict())


def _apply_to_list(parent: list[Any], token: str, op: Operation, permissive: bool) -> None:
    if token == "-":
        if op.op == "add" or (op.op == "replace" and permissive):
            parent.append(copy.deepcopy(op.value))
        elif not permissive:
            raise PatchApplicationFailure(f"'-' is only valid for add: {op.path}", op.to_dict())
        return

    index = _list_index(token, op)
    if op.op == "add":
        if index > len(parent):
            if not permissive:
                raise PatchApplicationFailure(f"Index {index} out of range in {op.path}", op.to_dict())
            index = len(parent)
        parent.insert(index, copy.deepcopy(op.value))
    elif op.op == "replace":
        if index < len(parent):
            parent[index] = copy.deepcopy(op.value)
        elif permissive:
            parent.append(copy.deepcopy(op.value))
        else:
            raise PatchApplicationFailure(f"Replace target missing: {op.path}", op.to_dict())
    elif index < len(parent):
        del parent[index]
    elif not permissive:
        raise PatchApplicationFailure(f"Remove target missing: {op.path}", op.to_dict())


def _apply_one(document: Any, op: Operation, permissive: bool) -> Any:
    tokens = parse_pointer(op.path)

    if not tokens:
        if op.op == "remove":
            if not permissive:
                raise PatchApplicationFailure("Cannot remove the document root", op.to_dict())
            return {}
        return copy.deepcopy(op.value)

    if not isinstance(document, (dict, list)):
        if not permissive:
            raise PatchApplicationFailure(f"Document root is not a container for {op.path}", op.to_dict())
        document = {}

    parent = document
    for token in tokens[:-1]:
        parent = _descend(parent, token, op, permissive)

    if isinstance(parent, dict):
        _apply_to_dict(parent, tokens[-1], op, permissive)
    else:
        _apply_to_list(parent, tokens[-1], op, permissive)
    return document


def _apply(document: Any, operations: Iterable[Operation | Mapping[str, Any]], permissive: bool) -> Any:
    result = copy.deepcopy(document)
    for raw in operations:
        result = _apply_one(result, Operation.coerce(raw), permissive)
    return result


def apply_patch(document: Any, operations: Iterable[Operation | Mapping[str, Any]]) -> Any:
    """
    Apply operations in order and return the new document.

    The input document is not modified.

    Raises:
        PatchApplicationFailure: If any operation's preconditions fail
    """
    return _apply(document, operations, permissive=False)


def apply_patch_permissive(document: Any, operations: Iterable[Operation | Mapping[str, Any]]) -> Any:
    """Apply operations, creating missing parents instead of failing."""
    return _apply(document, operations, permissive=True)


def to_wire(operations: Iterable[Operation]) -> list[dict[str, Any]]:
    return [op.to_dict() for op in operations]
