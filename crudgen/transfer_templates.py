# File: crudgen/transfer_templates.py
"""
crudgen - DTO / DTI Emitter
=============================

Renders the two transfer artifacts of a persistent class.

``<Name>DTI``
    Abstract transfer interface.  Declares one getter/setter pair per
    column, relation (as the foreign identity, ``get_owner_id``) and
    embedded value (typed as the embedded class's DTI), re-applies the
    validation markers found on the source getters, and carries the static
    copy routines:

    * ``copy_all_properties(target, source)``       entity → transfer
    * ``copy_transfer_properties(target, source)``  transfer → transfer
    * ``copy_insert_properties(session, target, source)``  transfer → entity
    * ``copy_update_properties(session, target, source)``  transfer → entity

    ``<Name>DTI.Wrapper`` is an abstract subclass whose accessors all
    forward to ``get_wrapped()``.

``<Name>DTO``
    Plain carrier implementing the DTI: private fields initialised to the
    type defaults, accessors, ``__repr__`` and field-wise ``__eq__``.
    Properties without a persistence role become plain fields here.

Relations whose target cannot be modeled (or has no identity property) and
embedded values whose class is not a generatable transfer type are left
out of both artifacts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from crudgen.exceptions import CrudgenError
from crudgen.markers import Marker
from crudgen.metamodel import ClassModel, MetamodelExtractor, PropertyModel
from crudgen.models import GenerationConfig
from crudgen.typemodel import TypeModel
from crudgen.utils import (
    ImportCollector,
    format_call_arguments,
    make_docstring,
    module_header,
    safe_identifier,
)

logger: logging.Logger = logging.getLogger("crudgen.transfer_templates")


@dataclass(frozen=True, slots=True)
class TransferSlot:
    """One property as it appears on the transfer side."""

    prop: PropertyModel
    related: Optional[ClassModel] = None

    @property
    def target(self) -> ClassModel:
        """Model of the related or embedded class; only relation and embedded slots have one."""
        if self.related is None:
            raise CrudgenError(f"Property '{self.prop.name}' has no related class model.")
        return self.related

    @property
    def target_id(self) -> PropertyModel:
        identity: Optional[PropertyModel] = self.target.id_property
        if identity is None:
            raise CrudgenError(
                f"Property '{self.prop.name}' refers to {self.target.qualified_name}, "
                f"which has no identity property."
            )
        return identity

    @property
    def parameter(self) -> str:
        base: str = self.prop.snake_name
        if self.prop.is_relation:
            base = f"{base}_id"
        return safe_identifier(base)

    def interface_type(self) -> TypeModel:
        """Relation identity as declared on the DTI: always nullable."""
        return self.target_id.type.to_nullable()

    def carrier_type(self) -> TypeModel:
        """Relation identity as stored on the DTO: follows the relation's nullability."""
        id_type: TypeModel = self.target_id.type
        return id_type.to_nullable() if self.prop.nullable else id_type.to_non_nullable()


class TransferTemplate:
    """Stateless DTO/DTI renderer."""

    def __init__(self, config: GenerationConfig, extractor: MetamodelExtractor) -> None:
        self._config: GenerationConfig = config
        self._extractor: MetamodelExtractor = extractor
        self._indent: str = " " * config.indent_size
        self._double_indent: str = self._indent * 2
        self._triple_indent: str = self._indent * 3
        self._quad_indent: str = self._indent * 4

    # ===================================================================
    # Property selection
    # ===================================================================

    def transfer_slots(self, model: ClassModel, include_plain: bool = False) -> List[TransferSlot]:
        """
        Properties that appear on the transfer side, in declaration order.

        *include_plain* adds the role-less properties (DTO fields only).
        """
        slots: List[TransferSlot] = []
        for prop in model.properties:
            if prop.is_column:
                slots.append(TransferSlot(prop))
            elif prop.is_relation:
                related: Optional[ClassModel] = self._extractor.related_model(prop.type)
                if related is None or related.id_property is None:
                    logger.debug(
                        "%s.%s: relation target unresolved or without identity; skipped.",
                        model.simple_name,
                        prop.name,
                    )
                    continue
                slots.append(TransferSlot(prop, related))
            elif prop.is_embedded:
                related = self._extractor.related_model(prop.type)
                if related is None or not related.is_transfer_eligible:
                    logger.debug(
                        "%s.%s: embedded type is not a transfer type; skipped.",
                        model.simple_name,
                        prop.name,
                    )
                    continue
                slots.append(TransferSlot(prop, related))
            elif include_plain:
                slots.append(TransferSlot(prop))
        return slots

    # ===================================================================
    # Shared rendering helpers
    # ===================================================================

    def _doc(self, text: str, level: int) -> List[str]:
        if not self._config.generate_docstrings:
            return []
        return make_docstring(text, level, self._config.indent_size)

    def _validations(
        self, markers: Sequence[Marker], imports: ImportCollector, level: int
    ) -> List[str]:
        prefix: str = self._indent * level
        lines: List[str] = []
        for marker in markers:
            if marker.module_name:
                imports.add_module(marker.module_name)
            values: Dict[str, Any] = marker.explicit_values()
            if values:
                lines.append(f"{prefix}@{marker.qualified_name}({format_call_arguments(values)})")
            else:
                lines.append(f"{prefix}@{marker.qualified_name}")
        return lines

    def _accessor_type(self, slot: TransferSlot, imports: ImportCollector, carrier: bool) -> str:
        prop: PropertyModel = slot.prop
        if prop.is_relation:
            id_type: TypeModel = slot.carrier_type() if carrier else slot.interface_type()
            return id_type.to_code(imports)
        if prop.is_embedded:
            imports.add_from("typing", "Optional")
            if self._config.generate_dti:
                imports.add_module(slot.target.dti_module)
                return f"Optional[{slot.target.dti_reference}]"
            imports.add_module(slot.target.dto_module)
            return f"Optional[{slot.target.dto_reference}]"
        return prop.type.to_code(imports)

    # ===================================================================
    # DTI
    # ===================================================================

    def generate_dti(self, model: ClassModel) -> str:
        imports: ImportCollector = ImportCollector()
        imports.add_module("abc")
        imports.add_module(model.module_name)
        imports.add_from("typing", "Type")
        imports.add_from(self._config.session_module, self._config.session_class)

        slots: List[TransferSlot] = self.transfer_slots(model)
        i1: str = self._indent

        body: List[str] = [f"class {model.dti_name}(abc.ABC):"]
        body.extend(
            self._doc(
                f"Transfer interface for {model.qualified_name}.\n\n"
                f"{model.dti_name}.Wrapper delegates every accessor to a wrapped instance.",
                1,
            )
        )
        body.append("")
        body.append(f"{i1}Wrapper: Type[{model.dti_name}]")

        for slot in slots:
            body.extend(self._dti_accessors(slot, imports))

        body.extend(self._copy_all_block(model, slots, imports))
        body.extend(self._copy_transfer_block(model, slots, imports))
        body.extend(self._copy_in_block(model, slots, imports, insert=True))
        body.extend(self._copy_in_block(model, slots, imports, insert=False))

        body.append("")
        body.append("")
        body.extend(self._wrapper_block(model, slots, imports))
        body.append("")
        body.append("")
        body.append(f"{model.dti_name}.Wrapper = _{model.dti_name}Wrapper")
        body.append("")

        lines: List[str] = module_header(
            model.qualified_name,
            f"{model.dti_name}: transfer interface for {model.qualified_name}.",
            imports,
            [model.dti_name],
        )
        lines.extend(body)
        content: str = "\n".join(lines)
        logger.debug(
            "Generated DTI %s: %d accessor pair(s), %d lines.",
            model.dti_name,
            len(slots),
            content.count("\n") + 1,
        )
        return content

    def _dti_accessors(self, slot: TransferSlot, imports: ImportCollector) -> List[str]:
        i1, i2 = self._indent, self._double_indent
        hint: str = self._accessor_type(slot, imports, carrier=False)
        prop: PropertyModel = slot.prop
        lines: List[str] = [""]
        lines.extend(self._validations(prop.constraints, imports, 1))
        lines.append(f"{i1}@abc.abstractmethod")
        lines.append(f"{i1}def {prop.transfer_getter_name}(self) -> {hint}:")
        lines.append(f"{i2}...")
        lines.append("")
        lines.append(f"{i1}@abc.abstractmethod")
        lines.append(f"{i1}def {prop.transfer_setter_name}(self, {slot.parameter}: {hint}) -> None:")
        lines.append(f"{i2}...")
        return lines

    def _static_header(self, name: str, params: str, doc: str) -> List[str]:
        i1, i2 = self._indent, self._double_indent
        lines: List[str] = ["", f"{i1}@staticmethod", f"{i1}def {name}("]
        lines.append(f"{i2}{params}")
        lines.append(f"{i1}) -> None:")
        lines.extend(self._doc(doc, 2))
        return lines

    def _close_body(self, lines: List[str], statements: List[str]) -> List[str]:
        if statements:
            lines.extend(statements)
        elif not self._config.generate_docstrings:
            lines.append(f"{self._double_indent}pass")
        return lines

    def _copy_all_block(
        self, model: ClassModel, slots: List[TransferSlot], imports: ImportCollector
    ) -> List[str]:
        """Entity → transfer."""
        i2, i3 = self._double_indent, self._triple_indent
        lines: List[str] = self._static_header(
            "copy_all_properties",
            f"target: {model.dti_name}, source: {model.qualified_name}",
            f"Copy the state of a {model.simple_name} into target.",
        )
        statements: List[str] = []
        for slot in slots:
            prop: PropertyModel = slot.prop
            if not prop.has_getter:
                continue
            if prop.is_column:
                statements.append(
                    f"{i2}target.{prop.transfer_setter_name}(source.{prop.getter_name}())"
                )
            elif prop.is_relation:
                related_id: PropertyModel = slot.target_id
                statements.append(f"{i2}if source.{prop.getter_name}() is not None:")
                statements.append(
                    f"{i3}target.{prop.transfer_setter_name}("
                    f"source.{prop.getter_name}().{related_id.getter_name}())"
                )
            elif prop.is_embedded:
                imports.add_module(slot.target.dto_module)
                imports.add_module(slot.target.dti_module)
                statements.append(f"{i2}if source.{prop.getter_name}() is not None:")
                statements.append(
                    f"{i3}target.{prop.setter_name}({slot.target.dto_reference}())"
                )
                statements.append(
                    f"{i3}{slot.target.dti_reference}.copy_all_properties("
                    f"target.{prop.getter_name}(), source.{prop.getter_name}())"
                )
        return self._close_body(lines, statements)

    def _copy_transfer_block(
        self, model: ClassModel, slots: List[TransferSlot], imports: ImportCollector
    ) -> List[str]:
        """Transfer → transfer."""
        i2, i3 = self._double_indent, self._triple_indent
        lines: List[str] = self._static_header(
            "copy_transfer_properties",
            f"target: {model.dti_name}, source: {model.dti_name}",
            "Copy every transfer property of source into target.",
        )
        statements: List[str] = []
        for slot in slots:
            prop: PropertyModel = slot.prop
            if prop.is_embedded:
                imports.add_module(slot.target.dto_module)
                imports.add_module(slot.target.dti_module)
                statements.append(f"{i2}if source.{prop.getter_name}() is not None:")
                statements.append(
                    f"{i3}target.{prop.setter_name}({slot.target.dto_reference}())"
                )
                statements.append(
                    f"{i3}{slot.target.dti_reference}.copy_transfer_properties("
                    f"target.{prop.getter_name}(), source.{prop.getter_name}())"
                )
                statements.append(f"{i2}else:")
                statements.append(f"{i3}target.{prop.setter_name}(None)")
            else:
                statements.append(
                    f"{i2}target.{prop.transfer_setter_name}"
                    f"(source.{prop.transfer_getter_name}())"
                )
        return self._close_body(lines, statements)

    def _copy_in_block(
        self,
        model: ClassModel,
        slots: List[TransferSlot],
        imports: ImportCollector,
        insert: bool,
    ) -> List[str]:
        """Transfer → entity, for insert or for update."""
        i2, i3 = self._double_indent, self._triple_indent
        routine: str = "copy_insert_properties" if insert else "copy_update_properties"
        phase: str = "insertable" if insert else "updatable"
        lines: List[str] = self._static_header(
            routine,
            f"session: {self._config.session_class}, "
            f"target: {model.qualified_name}, source: {model.dti_name}",
            f"Copy the {phase} properties of source into a {model.simple_name}, "
            f"resolving relation identities through session.",
        )
        statements: List[str] = []
        for index, slot in enumerate(slots):
            prop: PropertyModel = slot.prop
            if prop.is_embedded:
                if not (prop.has_getter and prop.has_setter):
                    continue
                imports.add_module(slot.target.module_name)
                imports.add_module(slot.target.dti_module)
                statements.append(f"{i2}if source.{prop.getter_name}() is not None:")
                statements.append(
                    f"{i3}target.{prop.setter_name}({slot.target.qualified_name}())"
                )
                statements.append(
                    f"{i3}{slot.target.dti_reference}.{routine}("
                    f"session, target.{prop.getter_name}(), source.{prop.getter_name}())"
                )
                statements.append(f"{i2}else:")
                statements.append(f"{i3}target.{prop.setter_name}(None)")
                continue

            allowed: bool = prop.insertable if insert else prop.updatable
            if not allowed or prop.is_managed or not prop.has_setter:
                continue
            if prop.is_column:
                statements.append(
                    f"{i2}target.{prop.setter_name}(source.{prop.transfer_getter_name}())"
                )
            elif prop.is_relation:
                statements.extend(self._relation_lookup(slot, index, imports))
        return self._close_body(lines, statements)

    def _relation_lookup(
        self, slot: TransferSlot, index: int, imports: ImportCollector
    ) -> List[str]:
        i2, i3, i4 = self._double_indent, self._triple_indent, self._quad_indent
        prop: PropertyModel = slot.prop
        imports.add_module(slot.target.module_name)
        imports.add_from("crudgen.exceptions", "RelationNotFoundError")
        variable: str = f"relation{index}"
        lookup: str = (
            f"{variable} = session.get({slot.target.qualified_name}, "
            f"source.{prop.transfer_getter_name}())"
        )
        if slot.carrier_type().is_primitive:
            return [
                f"{i2}{lookup}",
                f"{i2}if {variable} is None:",
                f'{i3}raise RelationNotFoundError("Relation Not Found")',
                f"{i2}target.{prop.setter_name}({variable})",
            ]
        return [
            f"{i2}if source.{prop.transfer_getter_name}() is not None:",
            f"{i3}{lookup}",
            f"{i3}if {variable} is None:",
            f'{i4}raise RelationNotFoundError("Relation Not Found")',
            f"{i3}target.{prop.setter_name}({variable})",
            f"{i2}else:",
            f"{i3}target.{prop.setter_name}(None)",
        ]

    def _wrapper_block(
        self, model: ClassModel, slots: List[TransferSlot], imports: ImportCollector
    ) -> List[str]:
        i1, i2 = self._indent, self._double_indent
        wrapper: str = f"_{model.dti_name}Wrapper"
        lines: List[str] = [f"class {wrapper}({model.dti_name}):"]
        lines.extend(
            self._doc(f"{model.dti_name} whose accessors forward to get_wrapped().", 1)
        )
        lines.append("")
        lines.append(f"{i1}@abc.abstractmethod")
        lines.append(f"{i1}def get_wrapped(self) -> {model.dti_name}:")
        lines.append(f"{i2}...")
        for slot in slots:
            prop: PropertyModel = slot.prop
            hint: str = self._accessor_type(slot, imports, carrier=False)
            lines.append("")
            lines.append(f"{i1}def {prop.transfer_getter_name}(self) -> {hint}:")
            lines.append(f"{i2}return self.get_wrapped().{prop.transfer_getter_name}()")
            lines.append("")
            lines.append(
                f"{i1}def {prop.transfer_setter_name}(self, {slot.parameter}: {hint}) -> None:"
            )
            lines.append(
                f"{i2}self.get_wrapped().{prop.transfer_setter_name}({slot.parameter})"
            )
        return lines

    # ===================================================================
    # DTO
    # ===================================================================

    def generate_dto(self, model: ClassModel) -> str:
        imports: ImportCollector = ImportCollector()
        slots: List[TransferSlot] = self.transfer_slots(model, include_plain=True)
        i1, i2 = self._indent, self._double_indent

        if self._config.generate_dti:
            imports.add_module(model.dti_module)
            declaration: str = f"class {model.dto_name}({model.dti_reference}):"
        else:
            declaration = f"class {model.dto_name}:"

        body: List[str] = [declaration]
        body.extend(self._doc(f"Transfer carrier for {model.qualified_name}.", 1))
        body.append("")
        body.append(f"{i1}def __init__(self) -> None:")
        for slot in slots:
            hint: str = self._accessor_type(slot, imports, carrier=True)
            default: str = self._default_literal(slot)
            body.append(f"{i2}self.{slot.prop.transfer_field_name}: {hint} = {default}")
        if not slots:
            body.append(f"{i2}pass")

        for slot in slots:
            body.extend(self._dto_accessors(slot, imports))

        body.extend(self._repr_block(model, slots))
        body.extend(self._eq_block(model, slots))
        body.append("")

        lines: List[str] = module_header(
            model.qualified_name,
            f"{model.dto_name}: transfer carrier for {model.qualified_name}.",
            imports,
            [model.dto_name],
        )
        lines.extend(body)
        content: str = "\n".join(lines)
        logger.debug(
            "Generated DTO %s: %d field(s), %d lines.",
            model.dto_name,
            len(slots),
            content.count("\n") + 1,
        )
        return content

    @staticmethod
    def _default_literal(slot: TransferSlot) -> str:
        if slot.prop.is_relation:
            return slot.carrier_type().default_literal()
        if slot.prop.is_embedded:
            return "None"
        return slot.prop.type.default_literal()

    def _dto_accessors(self, slot: TransferSlot, imports: ImportCollector) -> List[str]:
        i1, i2 = self._indent, self._double_indent
        prop: PropertyModel = slot.prop
        hint: str = self._accessor_type(slot, imports, carrier=True)
        field_name: str = prop.transfer_field_name
        lines: List[str] = [""]
        lines.extend(self._validations(prop.constraints, imports, 1))
        lines.append(f"{i1}def {prop.transfer_getter_name}(self) -> {hint}:")
        lines.append(f"{i2}return self.{field_name}")
        lines.append("")
        lines.append(f"{i1}def {prop.transfer_setter_name}(self, {slot.parameter}: {hint}) -> None:")
        lines.append(f"{i2}self.{field_name} = {slot.parameter}")
        return lines

    def _repr_block(self, model: ClassModel, slots: List[TransferSlot]) -> List[str]:
        i1, i2, i3 = self._indent, self._double_indent, self._triple_indent
        lines: List[str] = ["", f"{i1}def __repr__(self) -> str:"]
        if not slots:
            lines.append(f'{i2}return "{model.dto_name}()"')
            return lines
        lines.append(f"{i2}return (")
        lines.append(f'{i3}"{model.dto_name}("')
        for position, slot in enumerate(slots):
            label: str = slot.prop.snake_name + ("_id" if slot.prop.is_relation else "")
            separator: str = ", " if position < len(slots) - 1 else ""
            lines.append(f'{i3}f"{label}={{self.{slot.prop.transfer_field_name}!r}}{separator}"')
        lines.append(f'{i3}")"')
        lines.append(f"{i2})")
        return lines

    def _eq_block(self, model: ClassModel, slots: List[TransferSlot]) -> List[str]:
        i1, i2, i3 = self._indent, self._double_indent, self._triple_indent
        lines: List[str] = ["", f"{i1}def __eq__(self, other: object) -> bool:"]
        lines.append(f"{i2}if not isinstance(other, {model.dto_name}):")
        lines.append(f"{i3}return NotImplemented")
        if not slots:
            lines.append(f"{i2}return True")
            return lines
        comparisons: List[str] = [
            f"self.{s.prop.transfer_field_name} == other.{s.prop.transfer_field_name}"
            for s in slots
        ]
        lines.append(f"{i2}return (")
        lines.append(f"{i3}{comparisons[0]}")
        for comparison in comparisons[1:]:
            lines.append(f"{i3}and {comparison}")
        lines.append(f"{i2})")
        return lines


__all__: List[str] = [
    "TransferSlot",
    "TransferTemplate",
]

logger.debug("crudgen.transfer_templates loaded.")
