# File: crudgen/typemodel.py
"""
crudgen - Type Normalizer
===========================

Maps Python annotations onto a closed set of neutral type descriptors.

The set distinguishes the primitive (never-absent) forms from their
nullable *boxed* counterparts, because generated code must know whether a
value can be ``None`` before dereferencing it:

    ``int``            -> ``INT``
    ``Optional[int]``  -> ``BOXED_INT``
    ``str``            -> ``STRING``   (a reference: always nullable)

``normalize`` is total: whatever it does not recognise becomes ``UNKNOWN``,
which renders as ``Any`` in emitted code.
"""

from __future__ import annotations

import collections.abc
import inspect
import logging
import types
import typing
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from crudgen.markers import Byte, Char, Float32, Long, Short
from crudgen.reflection import ClassHandle, PythonClassHandle
from crudgen.utils import ImportCollector

logger: logging.Logger = logging.getLogger("crudgen.typemodel")


class TypeKind(str, Enum):
    """Every variant a ``TypeModel`` can take."""

    # Primitive kinds
    VOID = "void"
    BYTE = "byte"
    SHORT = "short"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    CHAR = "char"

    # Boxed counterparts
    BOXED_VOID = "Void"
    BOXED_BYTE = "Byte"
    BOXED_SHORT = "Short"
    BOXED_INT = "Integer"
    BOXED_LONG = "Long"
    BOXED_FLOAT = "Float"
    BOXED_DOUBLE = "Double"
    BOXED_BOOLEAN = "Boolean"
    BOXED_CHAR = "Character"

    # References
    STRING = "String"
    ARRAY = "array"
    CLASS = "class"
    UNKNOWN = "unknown"


_BOXED: Dict[TypeKind, TypeKind] = {
    TypeKind.VOID: TypeKind.BOXED_VOID,
    TypeKind.BYTE: TypeKind.BOXED_BYTE,
    TypeKind.SHORT: TypeKind.BOXED_SHORT,
    TypeKind.INT: TypeKind.BOXED_INT,
    TypeKind.LONG: TypeKind.BOXED_LONG,
    TypeKind.FLOAT: TypeKind.BOXED_FLOAT,
    TypeKind.DOUBLE: TypeKind.BOXED_DOUBLE,
    TypeKind.BOOLEAN: TypeKind.BOXED_BOOLEAN,
    TypeKind.CHAR: TypeKind.BOXED_CHAR,
}
_UNBOXED: Dict[TypeKind, TypeKind] = {boxed: prim for prim, boxed in _BOXED.items()}

# Python spelling of each primitive kind in generated annotations
_PRIMITIVE_CODE: Dict[TypeKind, str] = {
    TypeKind.VOID: "None",
    TypeKind.BYTE: "int",
    TypeKind.SHORT: "int",
    TypeKind.INT: "int",
    TypeKind.LONG: "int",
    TypeKind.FLOAT: "float",
    TypeKind.DOUBLE: "float",
    TypeKind.BOOLEAN: "bool",
    TypeKind.CHAR: "str",
}

_PRIMITIVE_DEFAULT: Dict[TypeKind, str] = {
    TypeKind.VOID: "None",
    TypeKind.BYTE: "0",
    TypeKind.SHORT: "0",
    TypeKind.INT: "0",
    TypeKind.LONG: "0",
    TypeKind.FLOAT: "0.0",
    TypeKind.DOUBLE: "0.0",
    TypeKind.BOOLEAN: "False",
    TypeKind.CHAR: '""',
}


@dataclass(frozen=True)
class TypeModel:
    """
    Neutral type descriptor.

    ``component`` is set for ``ARRAY`` only; ``module``/``name``/``handle``
    for ``CLASS`` only.  The handle does not take part in equality: two
    descriptors of the same class are equal whichever call site built them.
    """

    kind: TypeKind
    component: Optional["TypeModel"] = None
    module: Optional[str] = None
    name: Optional[str] = None
    handle: Optional[ClassHandle] = field(default=None, compare=False, repr=False)

    # -- Constructors ---------------------------------------------------------

    @classmethod
    def of(cls, kind: TypeKind) -> "TypeModel":
        return _SIMPLE[kind]

    @classmethod
    def array_of(cls, component: "TypeModel") -> "TypeModel":
        return cls(TypeKind.ARRAY, component=component)

    @classmethod
    def class_ref(cls, handle: ClassHandle) -> "TypeModel":
        return cls(
            TypeKind.CLASS,
            module=handle.module_name,
            name=handle.qualified_name[len(handle.module_name) + 1:],
            handle=handle,
        )

    # -- Classification -------------------------------------------------------

    @property
    def is_primitive(self) -> bool:
        return self.kind in _BOXED

    @property
    def is_boxed(self) -> bool:
        return self.kind in _UNBOXED

    @property
    def is_class_ref(self) -> bool:
        return self.kind is TypeKind.CLASS

    @property
    def qualified_name(self) -> str:
        if self.kind is TypeKind.CLASS:
            return f"{self.module}.{self.name}"
        return self.kind.value

    # -- Conversion rules -----------------------------------------------------

    def to_nullable(self) -> "TypeModel":
        """Primitive -> boxed counterpart; identity elsewhere."""
        boxed: Optional[TypeKind] = _BOXED.get(self.kind)
        return _SIMPLE[boxed] if boxed is not None else self

    def to_non_nullable(self) -> "TypeModel":
        """Boxed -> primitive counterpart; identity elsewhere."""
        primitive: Optional[TypeKind] = _UNBOXED.get(self.kind)
        return _SIMPLE[primitive] if primitive is not None else self

    # -- Rendering ------------------------------------------------------------

    def to_code(self, imports: ImportCollector) -> str:
        """Python annotation for this type, registering needed imports."""
        if self.is_primitive:
            return _PRIMITIVE_CODE[self.kind]
        if self.kind is TypeKind.BOXED_VOID:
            return "None"
        if self.is_boxed:
            imports.add_from("typing", "Optional")
            return f"Optional[{_PRIMITIVE_CODE[_UNBOXED[self.kind]]}]"
        if self.kind is TypeKind.STRING:
            imports.add_from("typing", "Optional")
            return "Optional[str]"
        if self.kind is TypeKind.ARRAY:
            imports.add_from("typing", "List", "Optional")
            if self.component is None:
                imports.add_from("typing", "Any")
                return "Optional[List[Any]]"
            inner: str = self.component.to_code(imports)
            return f"Optional[List[{inner}]]"
        if self.kind is TypeKind.CLASS:
            imports.add_from("typing", "Optional")
            if self.module == "builtins":
                return f"Optional[{self.name}]"
            imports.add_module(self.module or "")
            return f"Optional[{self.qualified_name}]"
        imports.add_from("typing", "Any")
        return "Any"

    def default_literal(self) -> str:
        """Initial field value for a transfer carrier."""
        return _PRIMITIVE_DEFAULT.get(self.kind, "None")

    def __str__(self) -> str:
        if self.kind is TypeKind.ARRAY and self.component is not None:
            return f"{self.component}[]"
        return self.qualified_name


_SIMPLE: Dict[TypeKind, TypeModel] = {
    kind: TypeModel(kind)
    for kind in TypeKind
    if kind not in (TypeKind.ARRAY, TypeKind.CLASS)
}

UNKNOWN: TypeModel = _SIMPLE[TypeKind.UNKNOWN]


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------

_NATIVE_KINDS: Dict[Any, TypeKind] = {
    type(None): TypeKind.VOID,
    bool: TypeKind.BOOLEAN,
    int: TypeKind.INT,
    float: TypeKind.DOUBLE,
    Byte: TypeKind.BYTE,
    Short: TypeKind.SHORT,
    Long: TypeKind.LONG,
    Float32: TypeKind.FLOAT,
    Char: TypeKind.CHAR,
    str: TypeKind.STRING,
}

_SEQUENCE_ORIGINS: tuple = (
    list,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Collection,
    collections.abc.Iterable,
)


def _native_kind(native: Any) -> Optional[TypeKind]:
    try:
        return _NATIVE_KINDS.get(native)
    except TypeError:  # unhashable annotation object
        return None


def normalize(
    native: Any,
    handle_factory: Callable[[type], ClassHandle] = PythonClassHandle,
) -> TypeModel:
    """
    Classify a Python annotation.  Never raises.

    *handle_factory* wraps classes met along the way so class-reference
    descriptors can later be modeled by the extractor.
    """
    if native is None:
        return _SIMPLE[TypeKind.VOID]

    kind: Optional[TypeKind] = _native_kind(native)
    if kind is not None:
        return _SIMPLE[kind]

    origin: Any = typing.get_origin(native)
    args: tuple = typing.get_args(native)

    if origin is Union or origin is types.UnionType:
        present: List[Any] = [a for a in args if a is not type(None)]
        if len(present) != 1:
            return UNKNOWN
        inner: TypeModel = normalize(present[0], handle_factory)
        return inner.to_nullable() if len(present) < len(args) else inner

    if origin is typing.Annotated:
        return normalize(args[0], handle_factory) if args else UNKNOWN

    if native in (bytes, bytearray):
        return TypeModel.array_of(_SIMPLE[TypeKind.BYTE])

    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return TypeModel.array_of(normalize(args[0], handle_factory))
        return UNKNOWN

    if origin in _SEQUENCE_ORIGINS:
        component: TypeModel = normalize(args[0], handle_factory) if args else UNKNOWN
        return TypeModel.array_of(component)

    if native in (list, set, frozenset, tuple):
        return TypeModel.array_of(UNKNOWN)

    if inspect.isclass(native) and native is not object:
        return TypeModel.class_ref(handle_factory(native))

    logger.debug("Unrecognised annotation %r normalised to UNKNOWN.", native)
    return UNKNOWN


__all__: List[str] = [
    "TypeKind",
    "TypeModel",
    "UNKNOWN",
    "normalize",
]

logger.debug("crudgen.typemodel loaded.")
