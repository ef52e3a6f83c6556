# File: crudgen/__init__.py
"""
crudgen — CRUD Base & Transfer-Type Generator
===============================================

Scans Python modules for classes marked ``@codegen`` and emits, per
persistent class, up to three source modules:

* ``<Name>CRUD``: an abstract base whose single abstract method supplies a
  SQLAlchemy ``Session``; count/list/find/create/update/delete are inherited.
* ``<Name>DTO``: a plain transfer carrier.
* ``<Name>DTI``: the transfer interface with validation markers, a
  delegating ``Wrapper`` and the static copy routines.

Architecture overview::

    ┌──────────────┐     ┌────────────────┐     ┌───────────────────┐
    │  CLI / Entry │────▶│ CodeGenerator  │────▶│ CrudTemplate      │
    │   (cli.py)   │     │ (generator.py) │     │ TransferTemplate  │
    └──────────────┘     └───────┬────────┘     └───────────────────┘
                                 │
                    ┌────────────┼────────────┐
                    ▼            ▼            ▼
             ┌──────────┐ ┌───────────┐ ┌───────────┐
             │metamodel │ │validators │ │ exporters │
             │  (.py)   │ │  (.py)    │ │  (.py)    │
             └──────────┘ └───────────┘ └───────────┘

Usage::

    # As a library
    from crudgen import CodeGenerator, GenerationConfig
    result = CodeGenerator(GenerationConfig()).generate_classes([Widget])

    # From the command line
    crudgen -m shop.entities -o ./src --verbose

Generated modules import ``crudgen.exceptions``, so this package is a
runtime dependency of the code it emits.
"""

from __future__ import annotations

__version__: str = "1.0.0"
__license__: str = "MIT"

from crudgen.exceptions import (
    ConfigurationError,
    CrudgenError,
    DiscoveryError,
    EntityNotFoundError,
    RelationNotFoundError,
)
from crudgen.models import (
    ArtifactKind,
    GeneratedArtifact,
    GenerationConfig,
    GenerationResult,
)
from crudgen.typemodel import TypeKind, TypeModel, normalize
from crudgen.metamodel import (
    ClassModel,
    MetamodelExtractor,
    PropertyModel,
    PropertyRole,
    pair_accessors,
)
from crudgen.validators import ValidationResult, validate_full
from crudgen.crud_templates import CrudTemplate
from crudgen.transfer_templates import TransferTemplate
from crudgen.exporters import ExportManifest, ExportResult, ProjectExporter
from crudgen.generator import CodeGenerator, GenerationReport, discover_classes

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Core orchestrator
    "CodeGenerator",
    "GenerationReport",
    "discover_classes",
    # Models
    "ArtifactKind",
    "GeneratedArtifact",
    "GenerationConfig",
    "GenerationResult",
    "TypeKind",
    "TypeModel",
    "normalize",
    "ClassModel",
    "PropertyModel",
    "PropertyRole",
    "MetamodelExtractor",
    "pair_accessors",
    # Validation
    "validate_full",
    "ValidationResult",
    # Templates
    "CrudTemplate",
    "TransferTemplate",
    # Exporters
    "ProjectExporter",
    "ExportManifest",
    "ExportResult",
    # Errors
    "CrudgenError",
    "ConfigurationError",
    "DiscoveryError",
    "EntityNotFoundError",
    "RelationNotFoundError",
]
