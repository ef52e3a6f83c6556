# File: crudgen/crud_templates.py
"""
crudgen - CRUD Emitter
========================

Renders ``<Name>CRUD``: an abstract base whose single abstract method,
``get_session()``, supplies a SQLAlchemy 2.0 ``Session``.  Everything else
is concrete and built on top of it:

    count_<name>(configurator)            -> int
    list_<name>(configurator)             -> List[<Name>DTO]
    find_<name>(entity_id, lock_mode)     -> <Name>DTO   (EntityNotFoundError)
    find_<name>_or_none(...)              -> Optional[<Name>DTO]
    create_<name>(data)                   -> <Name>DTO   (RelationNotFoundError)
    update_<name>(entity_id, data)        -> <Name>DTO
    update_<name>_or_none(...)            -> Optional[<Name>DTO]
    delete_<name>(entity_id)              -> <Name>DTO
    delete_<name>_or_none(...)            -> Optional[<Name>DTO]

The module is emitted block by block in that order, followed by the
nested ``CountContext`` / ``ListContext`` classes.  Without an identity
property the find/update/delete blocks are left out.

**Performance contract:** ``List[str]`` + ``"\\n".join()`` only.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from crudgen.context_templates import ContextTemplate
from crudgen.metamodel import ClassModel, MetamodelExtractor, PropertyModel
from crudgen.models import GenerationConfig
from crudgen.utils import ImportCollector, make_docstring, module_header

logger: logging.Logger = logging.getLogger("crudgen.crud_templates")

_CONCURRENCY_NOTE: str = (
    "An instance must not be shared across concurrent callers unless the "
    "session it supplies is safe for that."
)


class CrudTemplate:
    """
    Stateless CRUD-base renderer.

    The extractor is only consulted for related classes; the class being
    rendered arrives already modeled.
    """

    def __init__(self, config: GenerationConfig, extractor: MetamodelExtractor) -> None:
        self._config: GenerationConfig = config
        self._extractor: MetamodelExtractor = extractor
        self._contexts: ContextTemplate = ContextTemplate(config)
        self._indent: str = " " * config.indent_size
        self._double_indent: str = self._indent * 2
        self._triple_indent: str = self._indent * 3

    # ===================================================================
    # Entry point
    # ===================================================================

    def generate(self, model: ClassModel) -> str:
        imports: ImportCollector = ImportCollector()
        imports.add_module("abc")
        imports.add_module(model.module_name)
        imports.add_module(model.dto_module)
        imports.add_module(model.dti_module)
        imports.add_from("typing", "Callable", "List", "Optional")
        imports.add_from(self._config.session_module, self._config.session_class)

        body: List[str] = []
        body.extend(self._header_block(model))
        body.extend(self._count_block(model, imports))
        body.extend(self._list_block(model))

        id_prop: Optional[PropertyModel] = model.id_property
        if id_prop is not None:
            id_hint: str = id_prop.type.to_non_nullable().to_code(imports)
            imports.add_from("crudgen.exceptions", "EntityNotFoundError")
            imports.add_from("typing", "Any", "Dict")
            body.extend(self._find_block(model, id_hint, or_none=False))
            body.extend(self._find_block(model, id_hint, or_none=True))
        else:
            logger.debug(
                "%s has no identity property: find/update/delete omitted.",
                model.qualified_name,
            )

        body.extend(self._create_block(model))

        if id_prop is not None:
            body.extend(self._update_block(model, id_hint, or_none=False))
            body.extend(self._update_block(model, id_hint, or_none=True))
            body.extend(self._delete_block(model, id_hint, or_none=False))
            body.extend(self._delete_block(model, id_hint, or_none=True))

        body.append("")
        body.extend(self._contexts.render(model, imports))

        lines: List[str] = module_header(
            model.qualified_name,
            f"{model.crud_name}: CRUD operations for {model.qualified_name}.",
            imports,
            [model.crud_name],
        )
        lines.extend(body)
        lines.append("")

        content: str = "\n".join(lines)
        logger.debug(
            "Generated CRUD base %s: %d lines.",
            model.crud_name,
            content.count("\n") + 1,
        )
        return content

    # ===================================================================
    # Blocks
    # ===================================================================

    def _doc(self, text: str, level: int = 2) -> List[str]:
        if not self._config.generate_docstrings:
            return []
        return make_docstring(text, level, self._config.indent_size)

    def _header_block(self, model: ClassModel) -> List[str]:
        i1, i2 = self._indent, self._double_indent
        lines: List[str] = [f"class {model.crud_name}(abc.ABC):"]
        if self._config.generate_docstrings:
            lines.extend(
                self._doc(
                    f"CRUD operations for {model.qualified_name}.\n\n"
                    f"Subclasses implement get_session(); every operation runs against "
                    f"the session it returns. {_CONCURRENCY_NOTE}",
                    level=1,
                )
            )
            lines.append("")
        lines.append(f"{i1}@abc.abstractmethod")
        lines.append(f"{i1}def get_session(self) -> {self._config.session_class}:")
        lines.append(
            f'{i2}"""Session the operations of this instance run against."""'
        )
        return lines

    def _copy_out(self, model: ClassModel, var: str, source: str, level: int) -> List[str]:
        prefix: str = self._indent * level
        return [
            f"{prefix}{var} = {model.dto_reference}()",
            f"{prefix}{model.dti_reference}.copy_all_properties({var}, {source})",
        ]

    def _count_block(self, model: ClassModel, imports: ImportCollector) -> List[str]:
        imports.add_from("sqlalchemy", "func", "select")
        i1, i2, i3 = self._indent, self._double_indent, self._triple_indent
        name: str = model.snake_name
        lines: List[str] = [""]
        lines.append(f"{i1}def count_{name}(")
        lines.append(f"{i2}self,")
        lines.append(
            f"{i2}configurator: Optional[Callable[[{model.crud_name}.CountContext], None]] = None,"
        )
        lines.append(f"{i1}) -> int:")
        lines.extend(
            self._doc(
                f"Number of {model.simple_name} rows matching the configured predicates. "
                f"{_CONCURRENCY_NOTE}"
            )
        )
        lines.append(f"{i2}session = self.get_session()")
        lines.append(f"{i2}root = {model.qualified_name}")
        lines.append(f"{i2}context = {model.crud_name}.CountContext(root)")
        lines.append(f"{i2}if configurator is not None:")
        lines.append(f"{i3}configurator(context)")
        lines.append(f"{i2}stmt = select(root)")
        lines.append(f"{i2}if context.predicates:")
        lines.append(f"{i3}stmt = stmt.where(*context.predicates)")
        lines.append(f"{i2}if context.distinct:")
        lines.append(f"{i3}stmt = stmt.distinct()")
        lines.append(
            f"{i2}return session.scalar(select(func.count()).select_from(stmt.subquery()))"
        )
        return lines

    def _list_block(self, model: ClassModel) -> List[str]:
        i1, i2, i3 = self._indent, self._double_indent, self._triple_indent
        name: str = model.snake_name
        lines: List[str] = [""]
        lines.append(f"{i1}def list_{name}(")
        lines.append(f"{i2}self,")
        lines.append(
            f"{i2}configurator: Optional[Callable[[{model.crud_name}.ListContext], None]] = None,"
        )
        lines.append(f"{i1}) -> List[{model.dto_reference}]:")
        lines.extend(
            self._doc(
                f"{model.simple_name} rows matching the configured predicates, "
                f"ordered and paged, copied into {model.dto_name} instances. "
                f"{_CONCURRENCY_NOTE}"
            )
        )
        lines.append(f"{i2}session = self.get_session()")
        lines.append(f"{i2}root = {model.qualified_name}")
        lines.append(f"{i2}context = {model.crud_name}.ListContext(root)")
        lines.append(f"{i2}if configurator is not None:")
        lines.append(f"{i3}configurator(context)")
        lines.append(f"{i2}stmt = select(root)")
        lines.append(f"{i2}if context.predicates:")
        lines.append(f"{i3}stmt = stmt.where(*context.predicates)")
        lines.append(f"{i2}if context.orders:")
        lines.append(f"{i3}stmt = stmt.order_by(*context.orders)")
        lines.append(f"{i2}if context.distinct:")
        lines.append(f"{i3}stmt = stmt.distinct()")
        lines.append(f"{i2}if context.first_result >= 0:")
        lines.append(f"{i3}stmt = stmt.offset(context.first_result)")
        lines.append(f"{i2}if context.max_results >= 0:")
        lines.append(f"{i3}stmt = stmt.limit(context.max_results)")
        lines.append(f"{i2}if context.lock_mode is not None:")
        lines.append(f"{i3}stmt = stmt.with_for_update(**context.lock_mode)")
        lines.append(f"{i2}result = []")
        lines.append(f"{i2}for entity in session.scalars(stmt):")
        lines.extend(self._copy_out(model, "data", "entity", 3))
        lines.append(f"{i3}result.append(data)")
        lines.append(f"{i2}return result")
        return lines

    def _lookup(self, model: ClassModel, or_none: bool, with_lock: bool) -> List[str]:
        i2, i3 = self._double_indent, self._triple_indent
        lock: str = ", with_for_update=lock_mode" if with_lock else ""
        lines: List[str] = [
            f"{i2}session = self.get_session()",
            f"{i2}entity = session.get({model.qualified_name}, entity_id{lock})",
            f"{i2}if entity is None:",
        ]
        if or_none:
            lines.append(f"{i3}return None")
        else:
            lines.append(f'{i3}raise EntityNotFoundError("Entity Not Found")')
        return lines

    def _signature_return(self, model: ClassModel, or_none: bool) -> str:
        if or_none:
            return f"Optional[{model.dto_reference}]"
        return model.dto_reference

    def _find_block(self, model: ClassModel, id_hint: str, or_none: bool) -> List[str]:
        i1, i2 = self._indent, self._double_indent
        suffix: str = "_or_none" if or_none else ""
        lines: List[str] = [""]
        lines.append(f"{i1}def find_{model.snake_name}{suffix}(")
        lines.append(f"{i2}self, entity_id: {id_hint}, lock_mode: Optional[Dict[str, Any]] = None")
        lines.append(f"{i1}) -> {self._signature_return(model, or_none)}:")
        if or_none:
            doc: str = f"The {model.simple_name} with this identity, or None when there is none."
        else:
            doc = (
                f"The {model.simple_name} with this identity; raises EntityNotFoundError "
                f"when there is none."
            )
        lines.extend(self._doc(f"{doc} {_CONCURRENCY_NOTE}"))
        lines.extend(self._lookup(model, or_none, with_lock=True))
        lines.extend(self._copy_out(model, "result", "entity", 2))
        lines.append(f"{i2}return result")
        return lines

    def _create_block(self, model: ClassModel) -> List[str]:
        i1, i2 = self._indent, self._double_indent
        lines: List[str] = [""]
        lines.append(
            f"{i1}def create_{model.snake_name}(self, data: {model.dti_reference}) "
            f"-> {model.dto_reference}:"
        )
        lines.extend(
            self._doc(
                f"Persist a new {model.simple_name} from the insertable properties of data."
            )
        )
        lines.append(f"{i2}session = self.get_session()")
        lines.append(f"{i2}entity = {model.qualified_name}()")
        lines.append(f"{i2}{model.dti_reference}.copy_insert_properties(session, entity, data)")
        lines.append(f"{i2}session.add(entity)")
        lines.append(f"{i2}session.flush()")
        lines.extend(self._copy_out(model, "result", "entity", 2))
        lines.append(f"{i2}return result")
        return lines

    def _update_block(self, model: ClassModel, id_hint: str, or_none: bool) -> List[str]:
        i1, i2 = self._indent, self._double_indent
        suffix: str = "_or_none" if or_none else ""
        lines: List[str] = [""]
        lines.append(f"{i1}def update_{model.snake_name}{suffix}(")
        lines.append(f"{i2}self, entity_id: {id_hint}, data: {model.dti_reference}")
        lines.append(f"{i1}) -> {self._signature_return(model, or_none)}:")
        lines.extend(
            self._doc(
                f"Apply the updatable properties of data to an existing {model.simple_name}."
            )
        )
        lines.extend(self._lookup(model, or_none, with_lock=False))
        lines.append(f"{i2}{model.dti_reference}.copy_update_properties(session, entity, data)")
        lines.append(f"{i2}session.flush()")
        lines.extend(self._copy_out(model, "result", "entity", 2))
        lines.append(f"{i2}return result")
        return lines

    def _delete_block(self, model: ClassModel, id_hint: str, or_none: bool) -> List[str]:
        i1, i2 = self._indent, self._double_indent
        suffix: str = "_or_none" if or_none else ""
        lines: List[str] = [""]
        lines.append(f"{i1}def delete_{model.snake_name}{suffix}(")
        lines.append(f"{i2}self, entity_id: {id_hint}")
        lines.append(f"{i1}) -> {self._signature_return(model, or_none)}:")
        lines.extend(
            self._doc(
                f"Remove a {model.simple_name}, returning a snapshot taken before removal."
            )
        )
        lines.extend(self._lookup(model, or_none, with_lock=False))
        lines.extend(self._copy_out(model, "result", "entity", 2))
        lines.append(f"{i2}session.delete(entity)")
        lines.append(f"{i2}session.flush()")
        lines.append(f"{i2}return result")
        return lines


__all__: List[str] = [
    "CrudTemplate",
]

logger.debug("crudgen.crud_templates loaded.")
