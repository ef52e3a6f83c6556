# File: crudgen/markers.py
"""
crudgen - Declarative Role Markers
====================================

Decorators that annotate persistent classes and their accessor methods.
They attach metadata only; the decorated object is returned unchanged.

Usage::

    from crudgen.markers import codegen, column, entity, identifier, join_column

    @codegen(crud="WidgetRepository")
    @entity
    class Widget(Base):

        @identifier
        @column(insertable=False, updatable=False)
        def get_id(self) -> Optional[int]:
            return self._id

        def set_id(self, value: Optional[int]) -> None:
            self._id = value

Validation markers are ordinary ``MarkerType`` instances declared with
``constraint=True``.  Their qualified name must be importable, because the
generated transfer types re-apply them as dotted decorators::

    not_blank = MarkerType("shop.validation.not_blank", constraint=True)
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, NewType, Optional, Tuple

logger: logging.Logger = logging.getLogger("crudgen.markers")

#: Attribute under which markers are stored on functions and classes.
MARKERS_ATTRIBUTE: str = "__crudgen_markers__"

# ---------------------------------------------------------------------------
# Narrow primitive kinds (Python has one int and one float)
# ---------------------------------------------------------------------------

Byte = NewType("Byte", int)
Short = NewType("Short", int)
Long = NewType("Long", int)
Float32 = NewType("Float32", float)
Char = NewType("Char", str)


# ---------------------------------------------------------------------------
# Marker records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Marker:
    """One marker occurrence: its type name plus configured key/value pairs."""

    qualified_name: str
    values: Tuple[Tuple[str, Any], ...] = ()
    defaults: Tuple[Tuple[str, Any], ...] = ()
    constraint: bool = False

    @property
    def simple_name(self) -> str:
        return self.qualified_name.rpartition(".")[2]

    @property
    def module_name(self) -> str:
        return self.qualified_name.rpartition(".")[0]

    def explicit_values(self) -> Dict[str, Any]:
        return dict(self.values)

    def get(self, key: str, default: Any = None) -> Any:
        """Configured value for *key*, else the marker default, else *default*."""
        for name, value in self.values:
            if name == key:
                return value
        for name, value in self.defaults:
            if name == key:
                return value
        return default


class MarkerType:
    """
    A declarative marker that can be applied bare (``@entity``) or called
    with attribute values (``@column(nullable=False)``).
    """

    __slots__ = ("qualified_name", "defaults", "constraint")

    def __init__(
        self,
        qualified_name: str,
        *,
        defaults: Optional[Dict[str, Any]] = None,
        constraint: bool = False,
    ) -> None:
        self.qualified_name: str = qualified_name
        self.defaults: Optional[Dict[str, Any]] = defaults
        self.constraint: bool = constraint

    def __call__(self, target: Any = None, /, **values: Any) -> Any:
        if target is not None:
            if values or not (inspect.isclass(target) or callable(target)):
                raise TypeError(
                    f"Marker '{self.qualified_name}' takes keyword attributes only."
                )
            return self._apply(target, {})

        if self.defaults is not None:
            unknown: List[str] = sorted(set(values) - set(self.defaults))
            if unknown:
                raise TypeError(
                    f"Marker '{self.qualified_name}' has no attribute(s) {unknown}."
                )

        def decorator(obj: Any) -> Any:
            return self._apply(obj, values)

        return decorator

    def _apply(self, obj: Any, values: Dict[str, Any]) -> Any:
        marker: Marker = Marker(
            qualified_name=self.qualified_name,
            values=tuple(values.items()),
            defaults=tuple((self.defaults or {}).items()),
            constraint=self.constraint,
        )
        # Decorators run bottom-up; prepend to keep source order.
        setattr(obj, MARKERS_ATTRIBUTE, (marker,) + markers_of(obj))
        return obj

    def __repr__(self) -> str:
        kind: str = "constraint" if self.constraint else "marker"
        return f"<{kind} {self.qualified_name}>"


def markers_of(obj: Any) -> Tuple[Marker, ...]:
    """Markers declared directly on *obj* (never inherited from a base)."""
    namespace: Optional[Dict[str, Any]] = getattr(obj, "__dict__", None)
    if namespace is None:
        return ()
    return tuple(namespace.get(MARKERS_ATTRIBUTE, ()))


# ---------------------------------------------------------------------------
# Built-in role markers
# ---------------------------------------------------------------------------

_COLUMN_DEFAULTS: Dict[str, Any] = {
    "nullable": True,
    "insertable": True,
    "updatable": True,
}

codegen: MarkerType = MarkerType(
    "crudgen.markers.codegen", defaults={"crud": "", "dto": "", "dti": ""}
)
entity: MarkerType = MarkerType("crudgen.markers.entity", defaults={})
embeddable: MarkerType = MarkerType("crudgen.markers.embeddable", defaults={})
identifier: MarkerType = MarkerType("crudgen.markers.identifier", defaults={})
generated_value: MarkerType = MarkerType("crudgen.markers.generated_value", defaults={})
version: MarkerType = MarkerType("crudgen.markers.version", defaults={})
column: MarkerType = MarkerType("crudgen.markers.column", defaults=dict(_COLUMN_DEFAULTS))
join_column: MarkerType = MarkerType(
    "crudgen.markers.join_column", defaults=dict(_COLUMN_DEFAULTS)
)
embedded: MarkerType = MarkerType("crudgen.markers.embedded", defaults={})

CODEGEN: str = codegen.qualified_name
ENTITY: str = entity.qualified_name
EMBEDDABLE: str = embeddable.qualified_name
IDENTIFIER: str = identifier.qualified_name
GENERATED_VALUE: str = generated_value.qualified_name
VERSION: str = version.qualified_name
COLUMN: str = column.qualified_name
JOIN_COLUMN: str = join_column.qualified_name
EMBEDDED: str = embedded.qualified_name

ROLE_MARKERS: Tuple[str, ...] = (COLUMN, JOIN_COLUMN, EMBEDDED)


def constraint(qualified_name: str) -> MarkerType:
    """Declare a validation marker that generated transfer types reproduce."""
    return MarkerType(qualified_name, constraint=True)


__all__: List[str] = [
    "MARKERS_ATTRIBUTE",
    "Byte",
    "Short",
    "Long",
    "Float32",
    "Char",
    "Marker",
    "MarkerType",
    "markers_of",
    "constraint",
    "codegen",
    "entity",
    "embeddable",
    "identifier",
    "generated_value",
    "version",
    "column",
    "join_column",
    "embedded",
    "CODEGEN",
    "ENTITY",
    "EMBEDDABLE",
    "IDENTIFIER",
    "GENERATED_VALUE",
    "VERSION",
    "COLUMN",
    "JOIN_COLUMN",
    "EMBEDDED",
    "ROLE_MARKERS",
]

logger.debug("crudgen.markers loaded.")
