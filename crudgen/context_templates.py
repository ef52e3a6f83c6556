# File: crudgen/context_templates.py
"""
crudgen - Query-Context Emitter
=================================

Emits the two mutable collectors nested inside every generated CRUD base:

``CountContext``
    ``root`` (the mapped entity class), ``predicates`` and a
    ``distinct`` flag.

``ListContext``
    everything ``CountContext`` has plus ``orders``, ``first_result`` and
    ``max_results`` (``-1`` means "not applied") and ``lock_mode``
    (``None`` or ``Select.with_for_update`` keyword arguments).

Callers populate a context from the configurator they hand to
``count_*`` / ``list_*``.  Both contexts also offer chaining helpers so a
configurator can be a single lambda::

    crud.list_widget(lambda ctx: ctx.where(ctx.root.name == "x").paginate(10, 5))
"""

from __future__ import annotations

import logging
from typing import List

from crudgen.metamodel import ClassModel
from crudgen.models import GenerationConfig
from crudgen.utils import ImportCollector, make_docstring

logger: logging.Logger = logging.getLogger("crudgen.context_templates")


class ContextTemplate:
    """Renders ``CountContext`` and ``ListContext`` as nested class blocks."""

    def __init__(self, config: GenerationConfig) -> None:
        self._config: GenerationConfig = config
        self._indent: str = " " * config.indent_size

    def render(self, model: ClassModel, imports: ImportCollector) -> List[str]:
        """Both context classes, indented one level (nested in the CRUD class)."""
        imports.add_from("typing", "Any", "Dict", "List", "Optional", "Type")
        imports.add_module(model.module_name)
        lines: List[str] = []
        lines.extend(self._count_context(model))
        lines.append("")
        lines.extend(self._list_context(model))
        return lines

    # -- Blocks ---------------------------------------------------------------

    def _count_context(self, model: ClassModel) -> List[str]:
        i1: str = self._indent
        i2: str = i1 * 2
        i3: str = i1 * 3
        owner: str = f"{model.crud_name}.CountContext"
        lines: List[str] = [f"{i1}class CountContext:"]
        if self._config.generate_docstrings:
            lines.extend(
                make_docstring(
                    f"Predicates and duplicate suppression for count_{model.snake_name}().",
                    2,
                    self._config.indent_size,
                )
            )
            lines.append("")
        lines.extend(self._init_block(model, list_fields=False))
        lines.append("")
        lines.extend(self._where_method(owner))
        lines.append("")
        lines.append(f"{i2}def with_distinct(self, distinct: bool = True) -> {owner}:")
        lines.append(f"{i3}self.distinct = distinct")
        lines.append(f"{i3}return self")
        return lines

    def _list_context(self, model: ClassModel) -> List[str]:
        i1: str = self._indent
        i2: str = i1 * 2
        i3: str = i1 * 3
        owner: str = f"{model.crud_name}.ListContext"
        lines: List[str] = [f"{i1}class ListContext:"]
        if self._config.generate_docstrings:
            lines.extend(
                make_docstring(
                    f"Predicates, sort terms, paging, lock hint and duplicate "
                    f"suppression for list_{model.snake_name}().",
                    2,
                    self._config.indent_size,
                )
            )
            lines.append("")
        lines.extend(self._init_block(model, list_fields=True))
        lines.append("")
        lines.extend(self._where_method(owner))
        lines.append("")
        lines.append(f"{i2}def order_by(self, *orders: Any) -> {owner}:")
        lines.append(f"{i3}self.orders.extend(orders)")
        lines.append(f"{i3}return self")
        lines.append("")
        lines.append(
            f"{i2}def paginate(self, first_result: int = -1, max_results: int = -1) -> {owner}:"
        )
        lines.append(f"{i3}self.first_result = first_result")
        lines.append(f"{i3}self.max_results = max_results")
        lines.append(f"{i3}return self")
        lines.append("")
        lines.append(f"{i2}def lock(self, **options: Any) -> {owner}:")
        lines.append(f"{i3}self.lock_mode = dict(options)")
        lines.append(f"{i3}return self")
        lines.append("")
        lines.append(f"{i2}def with_distinct(self, distinct: bool = True) -> {owner}:")
        lines.append(f"{i3}self.distinct = distinct")
        lines.append(f"{i3}return self")
        return lines

    def _init_block(self, model: ClassModel, list_fields: bool) -> List[str]:
        i2: str = self._indent * 2
        i3: str = self._indent * 3
        lines: List[str] = [
            f"{i2}def __init__(self, root: Type[{model.qualified_name}]) -> None:",
            f"{i3}self.root: Type[{model.qualified_name}] = root",
            f"{i3}self.predicates: List[Any] = []",
        ]
        if list_fields:
            lines.append(f"{i3}self.orders: List[Any] = []")
            lines.append(f"{i3}self.first_result: int = -1")
            lines.append(f"{i3}self.max_results: int = -1")
            lines.append(f"{i3}self.lock_mode: Optional[Dict[str, Any]] = None")
        lines.append(f"{i3}self.distinct: bool = False")
        return lines

    def _where_method(self, context_name: str) -> List[str]:
        i2: str = self._indent * 2
        i3: str = self._indent * 3
        return [
            f"{i2}def where(self, *predicates: Any) -> {context_name}:",
            f"{i3}self.predicates.extend(predicates)",
            f"{i3}return self",
        ]


__all__: List[str] = [
    "ContextTemplate",
]

logger.debug("crudgen.context_templates loaded.")
