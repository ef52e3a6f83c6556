# File: crudgen/models.py
"""
crudgen - Configuration & Result Models
=========================================
Pydantic V2 models for the generation configuration and for the artifacts
a generation pass produces.  They are the contract between the CLI, the
generator and the exporter:

    GenerationConfig  →  CodeGenerator  →  GenerationResult[GeneratedArtifact]  →  ProjectExporter

The metamodel itself (``ClassModel`` / ``PropertyModel``) lives in
``crudgen.metamodel`` as frozen dataclasses; it is rebuilt every pass and
never serialised.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.models")


class ArtifactKind(str, Enum):
    """The three artifact families emitted per persistent class."""

    CRUD = "crud"
    DTO = "dto"
    DTI = "dti"


# ---------------------------------------------------------------------------
# Mixin: shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Generation Config
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """
    Master configuration for one generation pass.

    Loaded from YAML/JSON by ``crudgen.generator.load_config_file`` and
    overridden field-by-field by CLI flags.
    """

    model_config = _SHARED_CONFIG

    # -- Input ----------------------------------------------------------------
    modules: List[str] = Field(
        default_factory=list,
        description="Dotted names of the modules scanned for @codegen classes.",
    )
    recursive: bool = Field(
        default=False, description="Also scan the sub-modules of package inputs."
    )
    sys_path: List[str] = Field(
        default_factory=list,
        description="Extra directories prepended to sys.path before importing.",
    )

    # -- Artifacts --------------------------------------------------------------
    generate_crud: bool = Field(default=True, description="Emit <Name>CRUD bases.")
    generate_dto: bool = Field(default=True, description="Emit <Name>DTO carriers.")
    generate_dti: bool = Field(default=True, description="Emit <Name>DTI interfaces.")

    # -- Code style -------------------------------------------------------------
    indent_size: int = Field(
        default=4, ge=2, le=8, description="Indentation width."
    )
    generate_docstrings: bool = Field(
        default=True, description="Add docstrings to generated classes and methods."
    )
    session_import: str = Field(
        default="sqlalchemy.orm.Session",
        description="Dotted path of the session type named in get_session() hints.",
    )

    # -- Output -----------------------------------------------------------------
    output_dir: str = Field(
        default="./generated", description="Root directory for generated modules."
    )
    write_manifest: bool = Field(
        default=True, description="Write crudgen-manifest.json next to the output."
    )
    clean_output: bool = Field(
        default=False,
        description="Remove previously generated files listed in the manifest first.",
    )

    @field_validator("modules", "sys_path")
    @classmethod
    def _strip_entries(cls, v: List[str]) -> List[str]:
        cleaned: List[str] = []
        for entry in v:
            entry = entry.strip()
            if entry and entry not in cleaned:
                cleaned.append(entry)
        return cleaned

    @model_validator(mode="after")
    def _validate_some_artifact(self) -> "GenerationConfig":
        if not (self.generate_crud or self.generate_dto or self.generate_dti):
            raise ValueError(
                "At least one of generate_crud, generate_dto, generate_dti must be enabled."
            )
        return self

    @property
    def session_module(self) -> str:
        return self.session_import.rpartition(".")[0]

    @property
    def session_class(self) -> str:
        return self.session_import.rpartition(".")[2]


# ---------------------------------------------------------------------------
# Generation result: artifacts of one pass
# ---------------------------------------------------------------------------


class GeneratedArtifact(BaseModel):
    """One emitted source module."""

    model_config = _SHARED_CONFIG

    kind: ArtifactKind = Field(..., description="Artifact family.")
    name: str = Field(..., min_length=1, description="Generated class name.")
    qualified_name: str = Field(
        ..., min_length=1, description="Package-qualified artifact name (dedup key)."
    )
    module: str = Field(..., min_length=1, description="Dotted module path.")
    origin: str = Field(..., description="Qualified name of the source class.")
    content: str = Field(..., description="Full module source.")

    @computed_field  # type: ignore[misc]
    @property
    def line_count(self) -> int:
        return self.content.count("\n") + (1 if self.content else 0)

    @computed_field  # type: ignore[misc]
    @property
    def size_bytes(self) -> int:
        return len(self.content.encode("utf-8"))

    @computed_field  # type: ignore[misc]
    @property
    def path(self) -> str:
        """Relative file path, e.g. ``shop/widget_crud.py``."""
        return self.module.replace(".", "/") + ".py"


class GenerationResult(BaseModel):
    """
    Everything a generation pass produced.

    Consumed by the exporter to write files and by the CLI to print
    summary statistics.
    """

    model_config = _SHARED_CONFIG

    artifacts: List[GeneratedArtifact] = Field(
        default_factory=list, description="Emitted artifacts, in emission order."
    )
    config: GenerationConfig = Field(..., description="Config used for this run.")
    classes: List[str] = Field(
        default_factory=list, description="Qualified names of the processed classes."
    )
    skipped: List[str] = Field(
        default_factory=list,
        description="Artifact names skipped because this pass already produced them.",
    )
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Run start time."
    )
    finished_at: Optional[datetime] = Field(default=None, description="Run finish time.")
    success: bool = Field(default=True, description="Overall success flag.")
    errors: List[str] = Field(
        default_factory=list, description="Per-class emission errors."
    )

    @computed_field  # type: ignore[misc]
    @property
    def total_artifacts(self) -> int:
        return len(self.artifacts)

    @computed_field  # type: ignore[misc]
    @property
    def total_lines(self) -> int:
        return sum(a.line_count for a in self.artifacts)

    @computed_field  # type: ignore[misc]
    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at and self.started_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def artifact_names(self) -> List[str]:
        return [a.qualified_name for a in self.artifacts]

    def get(self, qualified_name: str) -> Optional[GeneratedArtifact]:
        for artifact in self.artifacts:
            if artifact.qualified_name == qualified_name:
                return artifact
        return None

    def __repr__(self) -> str:
        return (
            f"<GenerationResult {self.total_artifacts} artifacts, "
            f"{self.total_lines} lines, "
            f"{'OK' if self.success else 'FAILED'}>"
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ArtifactKind",
    "GenerationConfig",
    "GeneratedArtifact",
    "GenerationResult",
]

logger.debug("crudgen.models loaded — %d public symbols.", len(__all__))
