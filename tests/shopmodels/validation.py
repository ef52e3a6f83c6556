"""Validation markers re-applied by the generated transfer types."""

from __future__ import annotations

from crudgen.markers import MarkerType, constraint

not_blank: MarkerType = constraint("shopmodels.validation.not_blank")
size: MarkerType = MarkerType("shopmodels.validation.size", constraint=True)
