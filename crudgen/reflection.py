# File: crudgen/reflection.py
"""
crudgen - Reflection Facility
===============================

The extractor never touches Python classes directly: it talks to the
abstract ``ClassHandle`` / ``MethodHandle`` interfaces defined here.
``PythonClassHandle`` implements them over live, imported classes, which
is what the CLI and the generator use.  Tests (or another front end) can
provide their own handle implementations.

A handle exposes exactly what generation needs:
    * the declared and inherited accessor methods, with their markers and
      resolved annotations;
    * every marker attached to the class itself;
    * naming facts: simple/qualified name, defining module, package.
"""

from __future__ import annotations

import abc
import inspect
import logging
import typing
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from crudgen.markers import Marker, markers_of

logger: logging.Logger = logging.getLogger("crudgen.reflection")


class _Missing:
    """Sentinel type for an absent annotation."""

    _instance: "_Missing" = None  # type: ignore[assignment]

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"


#: Stand-in for "no annotation available"; normalises to the unknown type.
MISSING: Any = _Missing()


class NestingKind(str, Enum):
    TOP_LEVEL = "top_level"
    MEMBER = "member"
    LOCAL = "local"


# ---------------------------------------------------------------------------
# Abstract handles
# ---------------------------------------------------------------------------


class MethodHandle(abc.ABC):
    """One method of a reflected class."""

    @property
    @abc.abstractmethod
    def name(self) -> str: ...

    @property
    @abc.abstractmethod
    def is_static(self) -> bool: ...

    @property
    @abc.abstractmethod
    def markers(self) -> Tuple[Marker, ...]: ...

    @property
    @abc.abstractmethod
    def return_type(self) -> Any:
        """Native return annotation, or ``MISSING``."""

    @property
    @abc.abstractmethod
    def parameter_types(self) -> Tuple[Any, ...]:
        """Native annotations of the parameters after ``self``."""

    def has_marker(self, qualified_name: str) -> bool:
        return any(m.qualified_name == qualified_name for m in self.markers)

    def find_marker(self, qualified_name: str) -> Optional[Marker]:
        for marker in self.markers:
            if marker.qualified_name == qualified_name:
                return marker
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class ClassHandle(abc.ABC):
    """One reflected class.  Handles compare equal by qualified name."""

    @property
    @abc.abstractmethod
    def simple_name(self) -> str: ...

    @property
    @abc.abstractmethod
    def module_name(self) -> str: ...

    @property
    @abc.abstractmethod
    def qualified_name(self) -> str: ...

    @property
    @abc.abstractmethod
    def package_name(self) -> str: ...

    @property
    @abc.abstractmethod
    def nesting(self) -> NestingKind: ...

    @property
    @abc.abstractmethod
    def is_public(self) -> bool: ...

    @property
    @abc.abstractmethod
    def is_abstract(self) -> bool: ...

    @property
    @abc.abstractmethod
    def markers(self) -> Tuple[Marker, ...]: ...

    @abc.abstractmethod
    def methods(self) -> Sequence[MethodHandle]:
        """Declared and inherited methods in discovery order."""

    def has_marker(self, qualified_name: str) -> bool:
        return any(m.qualified_name == qualified_name for m in self.markers)

    def find_marker(self, qualified_name: str) -> Optional[Marker]:
        for marker in self.markers:
            if marker.qualified_name == qualified_name:
                return marker
        return None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClassHandle):
            return NotImplemented
        return self.qualified_name == other.qualified_name

    def __hash__(self) -> int:
        return hash(self.qualified_name)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.qualified_name}>"


# ---------------------------------------------------------------------------
# Live implementation over imported Python classes
# ---------------------------------------------------------------------------


def _resolve_hints(func: Any) -> Dict[str, Any]:
    try:
        return typing.get_type_hints(func)
    except (NameError, TypeError, AttributeError, SyntaxError) as exc:
        logger.debug(
            "Cannot resolve annotations of %s (%s); using raw values.",
            getattr(func, "__qualname__", func),
            exc,
        )
        raw: Dict[str, Any] = getattr(func, "__annotations__", {}) or {}
        return {k: v for k, v in raw.items() if not isinstance(v, str)}


class PythonMethodHandle(MethodHandle):
    __slots__ = ("_name", "_func", "_static", "_hints")

    def __init__(self, name: str, func: Any, *, static: bool = False) -> None:
        self._name: str = name
        self._func: Any = func
        self._static: bool = static
        self._hints: Optional[Dict[str, Any]] = None

    def _type_hints(self) -> Dict[str, Any]:
        if self._hints is None:
            self._hints = _resolve_hints(self._func)
        return self._hints

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_static(self) -> bool:
        return self._static

    @property
    def markers(self) -> Tuple[Marker, ...]:
        return markers_of(self._func)

    @property
    def return_type(self) -> Any:
        return self._type_hints().get("return", MISSING)

    @property
    def parameter_types(self) -> Tuple[Any, ...]:
        try:
            params: List[inspect.Parameter] = list(
                inspect.signature(self._func).parameters.values()
            )
        except (TypeError, ValueError):
            return ()
        if not self._static:
            params = params[1:]
        hints: Dict[str, Any] = self._type_hints()
        return tuple(hints.get(p.name, MISSING) for p in params)


class PythonClassHandle(ClassHandle):
    """``ClassHandle`` over a live Python class object."""

    __slots__ = ("_cls", "_methods")

    def __init__(self, cls: type) -> None:
        self._cls: type = cls
        self._methods: Optional[Tuple[PythonMethodHandle, ...]] = None

    @property
    def simple_name(self) -> str:
        return self._cls.__name__

    @property
    def module_name(self) -> str:
        return self._cls.__module__

    @property
    def qualified_name(self) -> str:
        return f"{self._cls.__module__}.{self._cls.__qualname__}"

    @property
    def package_name(self) -> str:
        return self._cls.__module__.rpartition(".")[0]

    @property
    def nesting(self) -> NestingKind:
        qualname: str = self._cls.__qualname__
        if "<locals>" in qualname:
            return NestingKind.LOCAL
        if "." in qualname:
            return NestingKind.MEMBER
        return NestingKind.TOP_LEVEL

    @property
    def is_public(self) -> bool:
        return not self._cls.__name__.startswith("_")

    @property
    def is_abstract(self) -> bool:
        return inspect.isabstract(self._cls)

    @property
    def markers(self) -> Tuple[Marker, ...]:
        return markers_of(self._cls)

    def methods(self) -> Sequence[MethodHandle]:
        if self._methods is None:
            collected: Dict[str, PythonMethodHandle] = {}
            for klass in reversed(self._cls.__mro__):
                if klass is object:
                    continue
                for name, member in vars(klass).items():
                    if isinstance(member, (staticmethod, classmethod)):
                        collected[name] = PythonMethodHandle(
                            name, member.__func__, static=True
                        )
                    elif inspect.isfunction(member):
                        collected[name] = PythonMethodHandle(name, member)
            self._methods = tuple(collected.values())
            logger.debug(
                "Reflected %d method(s) on %s.", len(self._methods), self.qualified_name
            )
        return self._methods

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PythonClassHandle):
            return self._cls is other._cls
        return super().__eq__(other)

    def __hash__(self) -> int:
        return hash(self.qualified_name)


__all__: List[str] = [
    "MISSING",
    "NestingKind",
    "MethodHandle",
    "ClassHandle",
    "PythonMethodHandle",
    "PythonClassHandle",
]

logger.debug("crudgen.reflection loaded.")
