# File: crudgen/exceptions.py
"""
crudgen - Exception Hierarchy
===============================

Two families live here:

* Generation-time failures (``CrudgenError`` and subclasses) raised by the
  pipeline when its *inputs* are unusable: a configuration file that does
  not parse, a module that cannot be imported.
* Runtime failures raised by the **generated** code: ``EntityNotFoundError``
  and ``RelationNotFoundError``.  Generated modules import them from here,
  so the installed ``crudgen`` package is a runtime dependency of the code
  it emits.

Degenerate class shapes (no identity property, unresolvable relation type,
...) are never raised; they are reported through
``crudgen.validators.ValidationResult``.
"""

from __future__ import annotations

import logging
from typing import List, Optional

logger: logging.Logger = logging.getLogger("crudgen.exceptions")


class CrudgenError(Exception):
    """Base class for every error raised by the generator itself."""


class ConfigurationError(CrudgenError):
    """A configuration file or value could not be loaded or validated."""


class DiscoveryError(CrudgenError):
    """An input module could not be imported or scanned."""

    def __init__(self, module_name: str, cause: Optional[BaseException] = None) -> None:
        self.module_name: str = module_name
        self.cause: Optional[BaseException] = cause
        detail: str = f": {type(cause).__name__}: {cause}" if cause else ""
        super().__init__(f"Cannot import module '{module_name}'{detail}")


# ---------------------------------------------------------------------------
# Raised by generated code
# ---------------------------------------------------------------------------


class EntityNotFoundError(LookupError):
    """No persistent instance exists for the supplied identity."""


class RelationNotFoundError(LookupError):
    """A non-null foreign identity did not resolve to a managed instance."""


__all__: List[str] = [
    "CrudgenError",
    "ConfigurationError",
    "DiscoveryError",
    "EntityNotFoundError",
    "RelationNotFoundError",
]

logger.debug("crudgen.exceptions loaded.")
