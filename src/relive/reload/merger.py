"""Transplant live state from an old module generation into a new one.

The merge walks the old and new value graphs side by side and mutates the
old graph in place, so that anything already holding a reference into the
old module (instances, registries, bound callbacks) sees the new code.

Only *composites* are merged structurally: modules, classes, dicts and plain
instances. Every other value (numbers, strings, sequences, functions,
descriptors) is copied across as a whole. An instance is only merged into an
instance of a class with the same qualified name; an instance of an unrelated
class replaces the old value.
"""

import logging
import types
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

# Class attributes that cannot be reassigned
_READONLY_CLASS_ATTRS = frozenset({"__dict__", "__weakref__"})

_DESCRIPTORS = (staticmethod, classmethod, property)


class NodeKind(Enum):
    """Kinds of mergeable composite."""

    MODULE = "module"
    CLASS = "class"
    MAPPING = "mapping"
    INSTANCE = "instance"


def node_kind(value: Any) -> NodeKind | None:
    """Classify a value as a mergeable composite, or None for opaque values."""
    if isinstance(value, types.ModuleType):
        return NodeKind.MODULE
    if isinstance(value, type):
        return NodeKind.CLASS
    if isinstance(value, dict):
        return NodeKind.MAPPING
    if callable(value) or isinstance(value, _DESCRIPTORS):
        return None
    if hasattr(value, "__dict__"):
        return NodeKind.INSTANCE
    return None


def _same_shape(old: Any, new: Any) -> bool:
    # Instances of unrelated classes are different values, not two versions
    return type(old).__qualname__ == type(new).__qualname__


def _fields(node: Any, kind: NodeKind) -> list[tuple[Any, Any]]:
    if kind is NodeKind.MAPPING:
        return list(node.items())
    return list(vars(node).items())


def _get_field(node: Any, kind: NodeKind, name: Any, default: Any) -> Any:
    if kind is NodeKind.MAPPING:
        return node.get(name, default)
    # Own attributes only; inherited ones belong to the shape
    return vars(node).get(name, default)


def _functions_of(value: Any) -> list[types.FunctionType]:
    if isinstance(value, (staticmethod, classmethod)):
        value = value.__func__
    if isinstance(value, property):
        return [f for f in (value.fget, value.fset, value.fdel) if isinstance(f, types.FunctionType)]
    if isinstance(value, types.FunctionType):
        return [value]
    return []


class StateMerger:
    """Merges one new value graph into one old value graph.

    A merger holds the visited set for a single merge and must not be
    reused; create one per merge call.
    """

    _MISSING = object()

    def __init__(self) -> None:
        # id(old node) -> old node
        self._visited: dict[int, Any] = {}
        # id(new class) -> (new class, surviving old class)
        self._classes: dict[int, tuple[type, type]] = {}

    @property
    def merged_count(self) -> int:
        """Number of distinct old nodes merged so far."""
        return len(self._visited)

    def merge(self, old: Any, new: Any) -> None:
        """Merge ``new`` into ``old`` in place."""
        if old is new:
            return
        if id(old) in self._visited:
            return

        kind = node_kind(old)
        if (
            kind is None
            or node_kind(new) is not kind
            or (kind is NodeKind.INSTANCE and not _same_shape(old, new))
        ):
            logger.debug(f"Cannot merge {type(new).__name__} into {type(old).__name__}")
            return

        self._visited[id(old)] = old
        if kind is NodeKind.CLASS:
            self._classes[id(new)] = (new, old)

        # Shape-level behavior first: class of an instance, metaclass of a class
        if kind in (NodeKind.INSTANCE, NodeKind.CLASS):
            old_shape, new_shape = type(old), type(new)
            if (
                node_kind(old_shape) is NodeKind.CLASS
                and node_kind(new_shape) is NodeKind.CLASS
                and _same_shape(old, new)
            ):
                self.merge(old_shape, new_shape)

        for name, value in _fields(new, kind):
            if kind is NodeKind.CLASS and name in _READONLY_CLASS_ATTRS:
                continue

            value_kind = node_kind(value)
            if value_kind is not None:
                current = _get_field(old, kind, name, self._MISSING)
                if (
                    current is not self._MISSING
                    and node_kind(current) is value_kind
                    and (value_kind is not NodeKind.INSTANCE or _same_shape(current, value))
                ):
                    self.merge(current, value)
                    continue
                value = self._adopt(value)

            self._set_field(old, kind, name, value)

        if kind is NodeKind.CLASS:
            self._retarget_class_cells(new, old)

    def _set_field(self, node: Any, kind: NodeKind, name: Any, value: Any) -> None:
        if kind is NodeKind.MAPPING:
            node[name] = value
        elif kind is NodeKind.CLASS:
            try:
                setattr(node, name, value)
            except (AttributeError, TypeError) as e:
                logger.debug(f"Kept {node.__qualname__}.{name}: {e}")
        else:
            vars(node)[name] = value

    def _adopt(self, value: Any) -> Any:
        """Point a new instance at the surviving version of its class."""
        if node_kind(value) is not NodeKind.INSTANCE:
            return value

        entry = self._classes.get(id(type(value)))
        if entry is not None:
            try:
                value.__class__ = entry[1]
            except TypeError as e:
                logger.debug(f"Kept class of adopted {type(value).__name__}: {e}")
        return value

    def _retarget_class_cells(self, new_cls: type, old_cls: type) -> None:
        # The implicit __class__ cell behind zero-argument super()
        for value in vars(new_cls).values():
            for func in _functions_of(value):
                for cell in func.__closure__ or ():
                    try:
                        contents = cell.cell_contents
                    except ValueError:
                        continue
                    if contents is new_cls:
                        cell.cell_contents = old_cls


def merge(old: Any, new: Any) -> int:
    """Merge ``new`` into ``old`` and return the number of nodes merged."""
    merger = StateMerger()
    merger.merge(old, new)
    return merger.merged_count
