# File: crudgen/metamodel.py
"""
crudgen - Metamodel Extractor
===============================

Builds ``ClassModel`` / ``PropertyModel`` descriptions of annotated
persistent classes from a ``ClassHandle``.

Pipeline per class:
    1. Collect the non-static accessor candidates (getters take no
       argument, setters take exactly one).
    2. ``pair_accessors`` matches getters and setters by property name.
    3. Each pair is classified once into a ``PropertyRole`` from the
       markers on its getter.
    4. Artifact names are derived (override, else ``<Name>CRUD`` etc.).

Models are immutable.  ``MetamodelExtractor`` caches them by qualified
name for one generation pass, so a related class reached from several
owners is reflected once and always yields the same derived names.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from crudgen import markers as mk
from crudgen.markers import Marker
from crudgen.reflection import (
    MISSING,
    ClassHandle,
    MethodHandle,
    NestingKind,
    PythonClassHandle,
)
from crudgen.typemodel import UNKNOWN, TypeModel, normalize
from crudgen.utils import capitalize, decapitalize, qualify, to_snake_case

logger: logging.Logger = logging.getLogger("crudgen.metamodel")


# ---------------------------------------------------------------------------
# Accessor pairing (pure)
# ---------------------------------------------------------------------------


class AccessorStyle(str, Enum):
    SNAKE = "snake"  # get_name / is_name / set_name
    CAMEL = "camel"  # getName / isName / setName


@dataclass(frozen=True, slots=True)
class ParsedAccessor:
    method_name: str
    kind: str  # "get", "is" or "set"
    property_name: str
    style: AccessorStyle

    @property
    def is_getter(self) -> bool:
        return self.kind != "set"


_PREFIXES: Tuple[str, ...] = ("get", "is", "set")


def parse_accessor_name(method_name: str) -> Optional[ParsedAccessor]:
    """
    Classify *method_name* as a getter or setter.

    ``get_first_name`` -> (get, ``first_name``, snake)
    ``getFirstName``   -> (get, ``firstName``, camel)
    ``getURL``         -> (get, ``URL``, camel)
    Anything else returns ``None``.
    """
    for prefix in _PREFIXES:
        snake_prefix: str = f"{prefix}_"
        if method_name.startswith(snake_prefix):
            rest: str = method_name[len(snake_prefix):]
            if rest and not rest.startswith("_"):
                return ParsedAccessor(method_name, prefix, rest, AccessorStyle.SNAKE)
            return None
        if (
            method_name.startswith(prefix)
            and len(method_name) > len(prefix)
            and method_name[len(prefix)].isupper()
        ):
            rest = method_name[len(prefix):]
            return ParsedAccessor(
                method_name, prefix, decapitalize(rest), AccessorStyle.CAMEL
            )
    return None


@dataclass(frozen=True, slots=True)
class AccessorPair:
    """
    A getter/setter couple for one property name.

    ``getter``/``setter`` hold the discovered method names (``None`` when
    that side does not exist); ``getter_name``/``setter_name`` always hold
    a usable name, synthesised in the pair's style when missing.
    """

    property_name: str
    style: AccessorStyle
    getter: Optional[str] = None
    setter: Optional[str] = None

    @property
    def getter_name(self) -> str:
        if self.getter is not None:
            return self.getter
        return _synthesise("get", self.property_name, self.style)

    @property
    def setter_name(self) -> str:
        if self.setter is not None:
            return self.setter
        return _synthesise("set", self.property_name, self.style)


def _synthesise(prefix: str, property_name: str, style: AccessorStyle) -> str:
    if style is AccessorStyle.SNAKE:
        return f"{prefix}_{property_name}"
    return f"{prefix}{capitalize(property_name)}"


def pair_accessors(method_names: Iterable[str]) -> List[AccessorPair]:
    """
    Pair getters and setters by property name.

    The first getter (and first setter) seen for a name wins; pairs are
    returned in order of first discovery of either side.  Non-accessor
    names are ignored.
    """
    order: List[str] = []
    getters: Dict[str, ParsedAccessor] = {}
    setters: Dict[str, ParsedAccessor] = {}

    for method_name in method_names:
        parsed: Optional[ParsedAccessor] = parse_accessor_name(method_name)
        if parsed is None:
            continue
        bucket: Dict[str, ParsedAccessor] = getters if parsed.is_getter else setters
        if parsed.property_name in bucket:
            continue
        if parsed.property_name not in getters and parsed.property_name not in setters:
            order.append(parsed.property_name)
        bucket[parsed.property_name] = parsed

    pairs: List[AccessorPair] = []
    for name in order:
        getter: Optional[ParsedAccessor] = getters.get(name)
        setter: Optional[ParsedAccessor] = setters.get(name)
        style: AccessorStyle = (getter or setter).style  # type: ignore[union-attr]
        pairs.append(
            AccessorPair(
                property_name=name,
                style=style,
                getter=getter.method_name if getter else None,
                setter=setter.method_name if setter else None,
            )
        )
    return pairs


# ---------------------------------------------------------------------------
# Property model
# ---------------------------------------------------------------------------


class PropertyRole(str, Enum):
    """How a property takes part in persistence.  Exactly one per property."""

    COLUMN = "column"
    RELATION = "relation"
    EMBEDDED = "embedded"
    UNCLASSIFIED = "unclassified"


@dataclass(frozen=True, slots=True)
class PropertyModel:
    name: str
    type: TypeModel
    accessors: AccessorPair
    role: PropertyRole = PropertyRole.UNCLASSIFIED
    identity: bool = False
    generated: bool = False
    version: bool = False
    nullable: bool = False
    insertable: bool = False
    updatable: bool = False
    constraints: Tuple[Marker, ...] = ()
    conflicting_roles: Tuple[str, ...] = ()

    @property
    def snake_name(self) -> str:
        return to_snake_case(self.name)

    @property
    def getter_name(self) -> str:
        return self.accessors.getter_name

    @property
    def setter_name(self) -> str:
        return self.accessors.setter_name

    @property
    def has_getter(self) -> bool:
        return self.accessors.getter is not None

    @property
    def has_setter(self) -> bool:
        return self.accessors.setter is not None

    @property
    def is_column(self) -> bool:
        return self.role is PropertyRole.COLUMN

    @property
    def is_relation(self) -> bool:
        return self.role is PropertyRole.RELATION

    @property
    def is_embedded(self) -> bool:
        return self.role is PropertyRole.EMBEDDED

    @property
    def is_managed(self) -> bool:
        """Generated-value and version properties belong to the persistence runtime."""
        return self.generated or self.version

    # -- Names used on the transfer side --------------------------------------

    def _id_suffixed(self, accessor: str) -> str:
        suffix: str = "_id" if self.accessors.style is AccessorStyle.SNAKE else "Id"
        return f"{accessor}{suffix}"

    @property
    def transfer_getter_name(self) -> str:
        if self.is_relation:
            return self._id_suffixed(self.getter_name)
        return self.getter_name

    @property
    def transfer_setter_name(self) -> str:
        if self.is_relation:
            return self._id_suffixed(self.setter_name)
        return self.setter_name

    @property
    def transfer_field_name(self) -> str:
        base: str = f"_{self.snake_name}"
        return f"{base}_id" if self.is_relation else base


# ---------------------------------------------------------------------------
# Class model
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ClassModel:
    simple_name: str
    qualified_name: str
    module_name: str
    package_name: str
    nesting: NestingKind
    is_public: bool
    is_abstract: bool
    is_entity: bool
    is_embeddable: bool
    is_codegen: bool
    crud_override: str = ""
    dto_override: str = ""
    dti_override: str = ""
    properties: Tuple[PropertyModel, ...] = ()
    # Identity markers ignored because an earlier property already won
    ignored_identities: Tuple[str, ...] = ()
    handle: Optional[ClassHandle] = field(default=None, compare=False, repr=False)

    # -- Naming ----------------------------------------------------------------

    @property
    def snake_name(self) -> str:
        return to_snake_case(self.simple_name)

    @property
    def crud_name(self) -> str:
        return _override_or(self.crud_override, f"{self.simple_name}CRUD")

    @property
    def dto_name(self) -> str:
        return _override_or(self.dto_override, f"{self.simple_name}DTO")

    @property
    def dti_name(self) -> str:
        return _override_or(self.dti_override, f"{self.simple_name}DTI")

    @property
    def qualified_crud_name(self) -> str:
        return qualify(self.package_name, self.crud_name)

    @property
    def qualified_dto_name(self) -> str:
        return qualify(self.package_name, self.dto_name)

    @property
    def qualified_dti_name(self) -> str:
        return qualify(self.package_name, self.dti_name)

    @property
    def crud_module(self) -> str:
        return qualify(self.package_name, to_snake_case(self.crud_name))

    @property
    def dto_module(self) -> str:
        return qualify(self.package_name, to_snake_case(self.dto_name))

    @property
    def dti_module(self) -> str:
        return qualify(self.package_name, to_snake_case(self.dti_name))

    @property
    def crud_reference(self) -> str:
        """Importable dotted path of the generated CRUD class."""
        return f"{self.crud_module}.{self.crud_name}"

    @property
    def dto_reference(self) -> str:
        return f"{self.dto_module}.{self.dto_name}"

    @property
    def dti_reference(self) -> str:
        return f"{self.dti_module}.{self.dti_name}"

    # -- Properties & eligibility ---------------------------------------------

    @property
    def id_property(self) -> Optional[PropertyModel]:
        for prop in self.properties:
            if prop.identity:
                return prop
        return None

    @property
    def is_top_level(self) -> bool:
        return self.nesting is NestingKind.TOP_LEVEL

    @property
    def is_crud_eligible(self) -> bool:
        return self.is_entity and self.is_top_level and self.is_public and not self.is_abstract

    @property
    def is_transfer_eligible(self) -> bool:
        return (
            (self.is_entity or self.is_embeddable)
            and self.is_top_level
            and self.is_public
            and not self.is_abstract
        )

    def find_property(self, name: str) -> Optional[PropertyModel]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None


def _override_or(override: str, fallback: str) -> str:
    return override.strip() if override and override.strip() else fallback


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


class MetamodelExtractor:
    """
    Turns class handles into ``ClassModel`` instances, caching by qualified
    name.  Create one per generation pass.
    """

    def __init__(
        self, handle_factory: Callable[[type], ClassHandle] = PythonClassHandle
    ) -> None:
        self._handle_factory: Callable[[type], ClassHandle] = handle_factory
        self._cache: Dict[str, ClassModel] = {}
        logger.debug("MetamodelExtractor initialised.")

    def __len__(self) -> int:
        return len(self._cache)

    def extract(self, handle: ClassHandle) -> ClassModel:
        cached: Optional[ClassModel] = self._cache.get(handle.qualified_name)
        if cached is not None:
            return cached
        model: ClassModel = self._build(handle)
        self._cache[handle.qualified_name] = model
        logger.debug(
            "Modeled %s: %d propert%s.",
            model.qualified_name,
            len(model.properties),
            "y" if len(model.properties) == 1 else "ies",
        )
        return model

    def extract_class(self, cls: type) -> ClassModel:
        return self.extract(self._handle_factory(cls))

    def related_model(self, type_model: TypeModel) -> Optional[ClassModel]:
        """Model of the class a class-reference type points at, else ``None``."""
        if not type_model.is_class_ref or type_model.handle is None:
            return None
        if type_model.module == "builtins":
            return None
        return self.extract(type_model.handle)

    # -- Internals --------------------------------------------------------------

    def _build(self, handle: ClassHandle) -> ClassModel:
        codegen_marker: Optional[Marker] = handle.find_marker(mk.CODEGEN)
        properties, ignored = self._build_properties(handle)
        return ClassModel(
            simple_name=handle.simple_name,
            qualified_name=handle.qualified_name,
            module_name=handle.module_name,
            package_name=handle.package_name,
            nesting=handle.nesting,
            is_public=handle.is_public,
            is_abstract=handle.is_abstract,
            is_entity=handle.has_marker(mk.ENTITY),
            is_embeddable=handle.has_marker(mk.EMBEDDABLE),
            is_codegen=codegen_marker is not None,
            crud_override=_marker_string(codegen_marker, "crud"),
            dto_override=_marker_string(codegen_marker, "dto"),
            dti_override=_marker_string(codegen_marker, "dti"),
            properties=properties,
            ignored_identities=ignored,
            handle=handle,
        )

    def _build_properties(
        self, handle: ClassHandle
    ) -> Tuple[Tuple[PropertyModel, ...], Tuple[str, ...]]:
        methods: Dict[str, MethodHandle] = {}
        for method in handle.methods():
            if method.is_static:
                continue
            parsed: Optional[ParsedAccessor] = parse_accessor_name(method.name)
            if parsed is None:
                continue
            arity: int = len(method.parameter_types)
            if (parsed.is_getter and arity == 0) or (not parsed.is_getter and arity == 1):
                methods[method.name] = method

        properties: List[PropertyModel] = []
        ignored: List[str] = []
        seen_identity: bool = False
        for pair in pair_accessors(methods):
            getter: Optional[MethodHandle] = methods.get(pair.getter) if pair.getter else None
            setter: Optional[MethodHandle] = methods.get(pair.setter) if pair.setter else None
            prop: PropertyModel = self._build_property(pair, getter, setter)
            if prop.identity:
                if seen_identity:
                    logger.debug(
                        "%s: '%s' is a second identity property; the first one wins.",
                        handle.qualified_name,
                        prop.name,
                    )
                    ignored.append(prop.name)
                    prop = replace(prop, identity=False)
                seen_identity = True
            properties.append(prop)
        return tuple(properties), tuple(ignored)

    def _build_property(
        self,
        pair: AccessorPair,
        getter: Optional[MethodHandle],
        setter: Optional[MethodHandle],
    ) -> PropertyModel:
        native: Any = MISSING
        if getter is not None and getter.return_type is not MISSING:
            native = getter.return_type
        elif setter is not None and setter.parameter_types:
            native = setter.parameter_types[0]
        prop_type: TypeModel = (
            UNKNOWN if native is MISSING else normalize(native, self._handle_factory)
        )

        getter_markers: Sequence[Marker] = getter.markers if getter is not None else ()
        present: List[str] = [
            m.qualified_name for m in getter_markers if m.qualified_name in mk.ROLE_MARKERS
        ]
        role: PropertyRole = PropertyRole.UNCLASSIFIED
        role_marker: Optional[Marker] = None
        if mk.COLUMN in present:
            role = PropertyRole.COLUMN
            role_marker = _first(getter_markers, mk.COLUMN)
        elif mk.JOIN_COLUMN in present:
            role = PropertyRole.RELATION
            role_marker = _first(getter_markers, mk.JOIN_COLUMN)
        elif mk.EMBEDDED in present:
            role = PropertyRole.EMBEDDED

        def flag(key: str) -> bool:
            return bool(role_marker.get(key, True)) if role_marker is not None else False

        names: Set[str] = {m.qualified_name for m in getter_markers}
        return PropertyModel(
            name=pair.property_name,
            type=prop_type,
            accessors=pair,
            role=role,
            identity=mk.IDENTIFIER in names,
            generated=mk.GENERATED_VALUE in names,
            version=mk.VERSION in names,
            nullable=flag("nullable"),
            insertable=flag("insertable"),
            updatable=flag("updatable"),
            constraints=tuple(m for m in getter_markers if m.constraint),
            conflicting_roles=tuple(dict.fromkeys(present)) if len(set(present)) > 1 else (),
        )


def _first(markers: Sequence[Marker], qualified_name: str) -> Optional[Marker]:
    for marker in markers:
        if marker.qualified_name == qualified_name:
            return marker
    return None


def _marker_string(marker: Optional[Marker], key: str) -> str:
    if marker is None:
        return ""
    value = marker.get(key, "")
    return value if isinstance(value, str) else ""


__all__: List[str] = [
    "AccessorStyle",
    "ParsedAccessor",
    "AccessorPair",
    "parse_accessor_name",
    "pair_accessors",
    "PropertyRole",
    "PropertyModel",
    "ClassModel",
    "MetamodelExtractor",
]

logger.debug("crudgen.metamodel loaded.")
