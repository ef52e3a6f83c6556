"""
A second ``Owner`` in the same package as ``shopmodels.entities.Owner``.

Both derive the same artifact names (``shopmodels.OwnerDTO``...), so only
the first one a pass reaches gets its artifacts emitted.
"""

from __future__ import annotations

from crudgen.markers import codegen, column, entity, identifier


@codegen
@entity
class Owner:
    def __init__(self) -> None:
        self._code: int = 0

    @identifier
    @column
    def get_code(self) -> int:
        return self._code

    def set_code(self, value: int) -> None:
        self._code = value
