"""Lingua – Document tree and base/translation reconciliation.

A document is decoded from JSON into a tagged tree:

    Leaf(value)                 scalar or null
    Node(children, is_array)    ordered map of key -> Tree

Array positions are addressed by their decimal index string, so every path
is a plain ``list[str]``. The base document is the schema: ``merge`` only
ever walks the base's keys, so keys that exist only in a translation are
dropped and every base leaf gets a value.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterator, Union

from app.translation.errors import PathConflictError

JSONValue = Any
Path = list[str]


@dataclass(frozen=True)
class Leaf:
    value: JSONValue = None


@dataclass
class Node:
    children: dict[str, "Tree"] = field(default_factory=dict)
    is_array: bool = False


Tree = Union[Leaf, Node]


# ── JSON codec ────────────────────────────────────────────────────────────────

def from_json(value: JSONValue) -> Tree:
    """Decode a JSON value (as produced by ``json.loads``) into a tree."""
    if isinstance(value, dict):
        return Node({str(k): from_json(v) for k, v in value.items()})
    if isinstance(value, list):
        return Node({str(i): from_json(v) for i, v in enumerate(value)}, is_array=True)
    return Leaf(value)


def to_json(tree: Tree) -> JSONValue:
    if isinstance(tree, Leaf):
        return tree.value
    if tree.is_array:
        return [to_json(child) for child in tree.children.values()]
    return {key: to_json(child) for key, child in tree.children.items()}


def path_key(path: Path) -> str:
    """Dotted form of a path, e.g. ``header.title``."""
    return ".".join(path)


def parse_path_key(key: str) -> Path:
    return key.split(".") if key else []


# ── Reconciliation ────────────────────────────────────────────────────────────

def _is_defined(tree: Tree | None) -> bool:
    return isinstance(tree, Leaf) and tree.value is not None


def merge(base: Tree, translation: Tree | None = None) -> Tree:
    """Return a translation tree with exactly the shape of ``base``.

    Each base leaf takes the translation's leaf at the same path when one is
    defined, otherwise the base value. A translation container sitting where
    the base has a leaf is not a usable value, so the base leaf wins.
    Neither input is mutated.
    """
    if isinstance(base, Leaf):
        return translation if _is_defined(translation) else base
    source = translation.children if isinstance(translation, Node) else {}
    return Node(
        {key: merge(child, source.get(key)) for key, child in base.children.items()},
        is_array=base.is_array,
    )


def build_full_translation(base: JSONValue, translation: JSONValue = None) -> JSONValue:
    """JSON-in, JSON-out form of :func:`merge`."""
    return to_json(merge(from_json(base), from_json(translation) if translation is not None else None))


# ── Path addressing ───────────────────────────────────────────────────────────

def get_value_at_path(tree: Tree | None, path: Path) -> Tree | None:
    """Walk ``path`` from the root; None as soon as a key is missing."""
    current = tree
    for key in path:
        if not isinstance(current, Node):
            return None
        current = current.children.get(key)
        if current is None:
            return None
    return current


def get_leaf_value(tree: Tree | None, path: Path) -> JSONValue:
    """Raw value of the leaf at ``path``; None when absent or not a leaf."""
    found = get_value_at_path(tree, path)
    return found.value if isinstance(found, Leaf) else None


def delete_at_path(tree: Tree, path: Path) -> bool:
    """Remove the last segment of ``path`` in place.

    Returns False (and changes nothing) when the path is empty or does not
    resolve. Removing an array element shifts the following elements down.
    """
    if not path:
        return False
    parent = get_value_at_path(tree, path[:-1])
    last = path[-1]
    if not isinstance(parent, Node) or last not in parent.children:
        return False
    if parent.is_array:
        remaining = [child for key, child in parent.children.items() if key != last]
        parent.children = {str(i): child for i, child in enumerate(remaining)}
    else:
        del parent.children[last]
    return True


def _check_array_key(node: Node, key: str, path: Path) -> None:
    if node.is_array and key not in node.children and key != str(len(node.children)):
        raise PathConflictError(path, "array index out of range")


def set_value_at_path(tree: Tree, path: Path, value: Tree | JSONValue) -> None:
    """Assign ``value`` at ``path``, creating missing intermediate objects.

    An existing leaf is never turned into an object: if any intermediate
    segment resolves to a leaf, PathConflictError is raised and the tree is
    left untouched.
    """
    if not path:
        raise PathConflictError(path, "empty path")
    if not isinstance(tree, Node):
        raise PathConflictError(path, "document root is not an object")
    new_value = value if isinstance(value, (Leaf, Node)) else from_json(value)

    # Validate the whole walk before mutating anything.
    current: Tree | None = tree
    for depth, key in enumerate(path):
        if not isinstance(current, Node):
            break
        _check_array_key(current, key, path[: depth + 1])
        child = current.children.get(key)
        if depth < len(path) - 1 and isinstance(child, Leaf):
            raise PathConflictError(path[: depth + 1], "existing leaf cannot become an object")
        current = child

    node = tree
    for key in path[:-1]:
        child = node.children.get(key)
        if child is None:
            child = Node()
            node.children[key] = child
        node = child
    node.children[path[-1]] = new_value


def iter_leaves(tree: Tree, prefix: Path | None = None) -> Iterator[tuple[Path, Leaf]]:
    """Yield ``(path, leaf)`` for every leaf in document order."""
    prefix = prefix or []
    if isinstance(tree, Leaf):
        yield prefix, tree
        return
    for key, child in tree.children.items():
        yield from iter_leaves(child, prefix + [key])


# ── Completeness accounting ───────────────────────────────────────────────────

def _same_value(a: JSONValue, b: JSONValue) -> bool:
    return a == b and isinstance(a, bool) == isinstance(b, bool)


def is_translated(base: Leaf, translation: Tree | None) -> bool:
    """A leaf counts as translated when it is defined, non-empty and differs
    from the base value. A translation identical to the source is treated as
    untranslated placeholder content."""
    if not _is_defined(translation):
        return False
    value = translation.value
    return value != "" and not _same_value(value, base.value)


def count_leaves(base: Tree) -> int:
    if isinstance(base, Leaf):
        return 1
    return sum(count_leaves(child) for child in base.children.values())


def count_translated(base: Tree, translation: Tree | None) -> int:
    if isinstance(base, Leaf):
        return 1 if is_translated(base, translation) else 0
    source = translation.children if isinstance(translation, Node) else {}
    return sum(count_translated(child, source.get(key)) for key, child in base.children.items())


def completeness_percent(translated: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half-up rounding, 12.5 -> 13.
    return int(math.floor(100 * translated / total + 0.5))


@dataclass(frozen=True)
class Completeness:
    total: int
    translated: int
    percent: int


def completeness(base: Tree, translation: Tree | None) -> Completeness:
    total = count_leaves(base)
    translated = count_translated(base, translation)
    return Completeness(total=total, translated=translated, percent=completeness_percent(translated, total))
