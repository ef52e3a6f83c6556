# File: crudgen/generator.py
"""
crudgen - Master Generation Pipeline (Orchestrator)
=====================================================

Connects every phase together:

    Module discovery → Metamodel extraction → Validation → Emission → File export

The ``CodeGenerator`` class provides both a programmatic API and the
backend for the CLI.

Workflow::

    1. Import the configured modules (optionally walking sub-packages) and
       collect the classes carrying ``@codegen``.
    2. Model each class with a ``MetamodelExtractor`` (one per pass).
    3. Run the validation pipeline (validators.py).
    4. Emit CRUD / DTO / DTI text per class, skipping any artifact name the
       pass already produced; embeddable classes reached through
       ``@embedded`` properties are emitted too.
    5. Hand the artifacts to ``ProjectExporter`` (exporters.py).
    6. Return a ``GenerationReport`` with metrics and status.

Error handling strategy:
    - Unusable inputs (config file, module import) are reported as input
      errors and stop the run.
    - Validation errors are collected and surfaced, not swallowed.
    - Emission errors are isolated per class; one bad class doesn't
      crash the entire pass.
    - Export errors are recorded per file.
"""

from __future__ import annotations

import importlib
import inspect
import json
import logging
import pkgutil
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple

import yaml
from pydantic import ValidationError as PydanticValidationError

from crudgen import markers as mk
from crudgen.crud_templates import CrudTemplate
from crudgen.exceptions import ConfigurationError, DiscoveryError
from crudgen.exporters import ExportManifest, ExportResult, ProjectExporter
from crudgen.metamodel import ClassModel, MetamodelExtractor
from crudgen.models import (
    ArtifactKind,
    GeneratedArtifact,
    GenerationConfig,
    GenerationResult,
)
from crudgen.transfer_templates import TransferTemplate
from crudgen.utils import Timer
from crudgen.validators import ValidationResult, validate_full

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.generator")


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Comprehensive report produced by ``CodeGenerator.run()``.

    Contains timing information, artifact counts, validation results,
    and any errors/warnings encountered.
    """

    success: bool = False
    output_directory: str = ""
    dry_run: bool = False

    # Metrics
    total_classes: int = 0
    total_artifacts: int = 0
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    total_elapsed_seconds: float = 0.0

    # Sub-reports
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    input_errors: List[str] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    generation_errors: List[str] = field(default_factory=list)
    export_errors: List[str] = field(default_factory=list)
    skipped_artifacts: List[str] = field(default_factory=list)

    validation: Optional[ValidationResult] = None
    result: Optional[GenerationResult] = None
    manifest: Optional[ExportManifest] = None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  crudgen — Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:            {status}{' (dry run)' if self.dry_run else ''}")
        lines.append(f"  Output:            {self.output_directory or '-'}")
        lines.append(f"  Classes processed: {self.total_classes}")
        lines.append(f"  Artifacts:         {self.total_artifacts}")
        lines.append(f"  Files written:     {self.total_files}")
        lines.append(f"  Total lines:       {self.total_lines:,}")
        lines.append(f"  Total bytes:       {self.total_bytes:,}")
        lines.append(f"  Total time:        {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        for title, items, bullet in (
            ("Input Errors", self.input_errors, "✗"),
            ("Validation Errors", self.validation_errors, "✗"),
            ("Validation Warnings", self.validation_warnings, "⚠"),
            ("Generation Errors", self.generation_errors, "✗"),
            ("Export Errors", self.export_errors, "✗"),
            ("Skipped Artifacts", self.skipped_artifacts, "⊘"),
        ):
            if items:
                lines.append(f"{'─'*60}")
                lines.append(f"  {title} ({len(items)}):")
                for item in items:
                    lines.append(f"    {bullet} {item}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Config loader helpers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a JSON object at top level, got {type(data).__name__}."
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}."
        )
    return data


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Load a configuration file (JSON or YAML), dispatching on extension.

    A top-level ``crudgen`` mapping, when present, is used as the
    configuration; otherwise the whole document is.

    Raises:
        ConfigurationError: If the file is missing or can't be parsed.
    """
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    if not path.is_file():
        raise ConfigurationError(f"Config path is not a file: {path}")

    suffix: str = path.suffix.lower()
    if suffix == ".json":
        raw: Dict[str, Any] = _load_json_file(path)
    else:
        # YAML is a superset of JSON; unknown extensions go through it.
        raw = _load_yaml_file(path)

    section: Any = raw.get("crudgen")
    if isinstance(section, dict):
        return section
    return raw


def build_config(
    raw: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> GenerationConfig:
    """
    Validate *raw* (plus *overrides*, which win) into a ``GenerationConfig``.

    Raises:
        ConfigurationError: On any Pydantic validation failure.
    """
    data: Dict[str, Any] = dict(raw or {})
    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return GenerationConfig.model_validate(data)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Config validation failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def _import(module_name: str) -> ModuleType:
    try:
        return importlib.import_module(module_name)
    except Exception as exc:
        raise DiscoveryError(module_name, exc) from exc


def _iter_modules(module_names: Sequence[str], recursive: bool) -> List[ModuleType]:
    modules: List[ModuleType] = []
    seen: Set[str] = set()
    for name in module_names:
        module: ModuleType = _import(name)
        if module.__name__ not in seen:
            seen.add(module.__name__)
            modules.append(module)
        if not recursive or not hasattr(module, "__path__"):
            continue
        for info in pkgutil.walk_packages(module.__path__, prefix=f"{module.__name__}."):
            if info.name in seen:
                continue
            seen.add(info.name)
            modules.append(_import(info.name))
    return modules


def _marked_classes(owner: Any, module_name: str, prefix: str = "") -> List[type]:
    """Classes defined in *module_name* under *owner*, nested ones included."""
    found: List[type] = []
    for attr, value in vars(owner).items():
        if not inspect.isclass(value) or value.__module__ != module_name:
            continue
        # Aliases and back-references are not definitions
        if value.__qualname__ != f"{prefix}{attr}":
            continue
        if any(m.qualified_name == mk.CODEGEN for m in mk.markers_of(value)):
            found.append(value)
        found.extend(_marked_classes(value, module_name, f"{value.__qualname__}."))
    return found


def discover_classes(
    module_names: Sequence[str], recursive: bool = False
) -> List[type]:
    """
    Import *module_names* and return their ``@codegen`` classes.

    Order is module order, then definition order within each module.
    Classes re-exported from another module are ignored there and picked
    up in their defining module only.

    Raises:
        DiscoveryError: If a module (or sub-module) fails to import.
    """
    classes: List[type] = []
    seen: Set[int] = set()
    for module in _iter_modules(module_names, recursive):
        for cls in _marked_classes(module, module.__name__):
            if id(cls) in seen:
                continue
            seen.add(id(cls))
            classes.append(cls)
        logger.debug("Scanned module %s.", module.__name__)
    logger.info(
        "Discovered %d @codegen class(es) in %d module input(s).",
        len(classes),
        len(module_names),
    )
    return classes


def _extend_sys_path(entries: Sequence[str]) -> None:
    for entry in reversed(entries):
        resolved: str = str(Path(entry).resolve())
        if resolved not in sys.path:
            sys.path.insert(0, resolved)
            logger.debug("Prepended %s to sys.path.", resolved)


# ---------------------------------------------------------------------------
# CodeGenerator: pipeline orchestrator
# ---------------------------------------------------------------------------


class CodeGenerator:
    """
    Master pipeline orchestrator.

    Usage::

        generator = CodeGenerator(config)

        # Whole pipeline from config.modules to config.output_dir
        report = generator.run()
        print(report.summary())

        # In-memory only
        result = generator.generate_classes([Widget, Gadget])

    Each ``generate_*`` call is one generation pass with its own
    extractor and its own artifact-name dedup set.
    """

    def __init__(
        self,
        config: GenerationConfig,
        *,
        strict_validation: bool = True,
        fail_on_warnings: bool = False,
    ) -> None:
        self._config: GenerationConfig = config
        self._strict_validation: bool = strict_validation
        self._fail_on_warnings: bool = fail_on_warnings

        logger.debug(
            "CodeGenerator initialised: strict=%s, fail_on_warnings=%s.",
            strict_validation,
            fail_on_warnings,
        )

    @property
    def config(self) -> GenerationConfig:
        return self._config

    # -----------------------------------------------------------------
    # Public: emission only (no I/O)
    # -----------------------------------------------------------------

    def generate_classes(self, classes: Sequence[type]) -> GenerationResult:
        """Model and emit *classes* in one pass."""
        extractor: MetamodelExtractor = MetamodelExtractor()
        models: List[ClassModel] = [extractor.extract_class(cls) for cls in classes]
        return self.generate_models(models, extractor)

    def generate_models(
        self,
        models: Sequence[ClassModel],
        extractor: Optional[MetamodelExtractor] = None,
    ) -> GenerationResult:
        """
        Emit every artifact for *models* in one pass.

        Artifact names already produced in this pass are skipped, so a
        class reached twice (listed and embedded, or embedded from two
        owners) is emitted once.
        """
        extractor = extractor or MetamodelExtractor()
        crud: CrudTemplate = CrudTemplate(self._config, extractor)
        transfer: TransferTemplate = TransferTemplate(self._config, extractor)

        result: GenerationResult = GenerationResult(config=self._config)
        produced: Dict[str, str] = {}
        visited: Set[str] = set()

        for model in models:
            self._emit_class(model, crud, transfer, result, produced, visited)

        result.finished_at = datetime.now(timezone.utc)
        result.success = not result.errors
        logger.info(
            "Emitted %d artifact(s) for %d class(es); %d skipped as duplicates.",
            result.total_artifacts,
            len(result.classes),
            len(result.skipped),
        )
        return result

    def _emit_class(
        self,
        model: ClassModel,
        crud: CrudTemplate,
        transfer: TransferTemplate,
        result: GenerationResult,
        produced: Dict[str, str],
        visited: Set[str],
    ) -> None:
        if model.qualified_name in visited:
            return
        visited.add(model.qualified_name)

        if not model.is_transfer_eligible:
            logger.debug("%s is not generatable; skipped.", model.qualified_name)
            return
        result.classes.append(model.qualified_name)

        plan: List[Tuple[ArtifactKind, str, str, str, Callable[[ClassModel], str]]] = []
        if self._config.generate_crud and model.is_crud_eligible:
            plan.append(
                (ArtifactKind.CRUD, model.crud_name, model.qualified_crud_name,
                 model.crud_module, crud.generate)
            )
        if self._config.generate_dto:
            plan.append(
                (ArtifactKind.DTO, model.dto_name, model.qualified_dto_name,
                 model.dto_module, transfer.generate_dto)
            )
        if self._config.generate_dti:
            plan.append(
                (ArtifactKind.DTI, model.dti_name, model.qualified_dti_name,
                 model.dti_module, transfer.generate_dti)
            )

        for kind, name, qualified, module, render in plan:
            owner: Optional[str] = produced.get(module)
            if owner == qualified:
                result.skipped.append(qualified)
                logger.debug("Skipping %s: already produced in this pass.", qualified)
                continue
            if owner is not None:
                clash_msg: str = (
                    f"{model.qualified_name}: {kind.value} '{qualified}' would be "
                    f"written to module {module}, already taken by '{owner}'."
                )
                result.errors.append(clash_msg)
                logger.error(clash_msg)
                continue
            produced[module] = qualified
            try:
                content: str = render(model)
            except Exception as exc:
                error_msg: str = (
                    f"{model.qualified_name}: {kind.value} emission failed: "
                    f"{type(exc).__name__}: {exc}"
                )
                result.errors.append(error_msg)
                logger.error(error_msg, exc_info=True)
                continue
            result.artifacts.append(
                GeneratedArtifact(
                    kind=kind,
                    name=name,
                    qualified_name=qualified,
                    module=module,
                    origin=model.qualified_name,
                    content=content,
                )
            )

        if not (self._config.generate_dto or self._config.generate_dti):
            return
        for slot in transfer.transfer_slots(model):
            if slot.prop.is_embedded and slot.related is not None:
                self._emit_class(slot.related, crud, transfer, result, produced, visited)

    # -----------------------------------------------------------------
    # Public: full pipeline
    # -----------------------------------------------------------------

    def run(
        self,
        output_dir: Optional[Path] = None,
        *,
        dry_run: bool = False,
        validate_only: bool = False,
    ) -> GenerationReport:
        """
        Full pipeline: discover → extract → validate → generate → export.

        Args:
            output_dir: Overrides ``config.output_dir``.
            dry_run: Generate but write nothing.
            validate_only: Stop after validation.
        """
        target: Path = Path(output_dir or self._config.output_dir)
        report: GenerationReport = GenerationReport(
            output_directory=str(target.resolve()),
            dry_run=dry_run,
        )
        pipeline_start: float = time.perf_counter()

        classes: Optional[List[type]] = self._step_discover(report)
        if classes is None:
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        extractor: MetamodelExtractor = MetamodelExtractor()
        models: List[ClassModel] = self._step_extract(classes, extractor, report)

        validation_ok: bool = self._step_validate(models, extractor, report)
        if validate_only or (not validation_ok and self._strict_validation):
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        result: GenerationResult = self._step_generate(models, extractor, report)

        if not dry_run and result.artifacts:
            self._step_export(result, target, report)

        return self._finalise_report(report, time.perf_counter() - pipeline_start)

    # -----------------------------------------------------------------
    # Pipeline steps
    # -----------------------------------------------------------------

    def _step_discover(self, report: GenerationReport) -> Optional[List[type]]:
        failure: Optional[DiscoveryError] = None
        classes: List[type] = []
        with Timer("discovery") as t:
            _extend_sys_path(self._config.sys_path)
            try:
                classes = discover_classes(self._config.modules, self._config.recursive)
            except DiscoveryError as exc:
                failure = exc

        if failure is not None:
            report.input_errors.append(str(failure))
            logger.error("%s", failure)
            report.step_metrics.append(GenerationStepMetric(
                step_name="Discover Classes",
                success=False,
                elapsed_seconds=t.elapsed,
                detail=str(failure),
            ))
            return None

        report.step_metrics.append(GenerationStepMetric(
            step_name="Discover Classes",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{len(classes)} class(es)",
        ))
        return classes

    def _step_extract(
        self,
        classes: Sequence[type],
        extractor: MetamodelExtractor,
        report: GenerationReport,
    ) -> List[ClassModel]:
        with Timer("extraction") as t:
            models: List[ClassModel] = [extractor.extract_class(cls) for cls in classes]
        report.total_classes = len(models)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Extract Metamodel",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{len(models)} class model(s), {len(extractor)} cached",
        ))
        return models

    def _step_validate(
        self,
        models: Sequence[ClassModel],
        extractor: MetamodelExtractor,
        report: GenerationReport,
    ) -> bool:
        """
        Run the validation pipeline.

        Returns True if validation passed (warnings allowed unless
        ``fail_on_warnings``).
        """
        with Timer("validation") as t:
            result: ValidationResult = validate_full(models, self._config, extractor)

        report.validation = result
        report.validation_errors.extend(str(e) for e in result.errors)
        report.validation_warnings.extend(str(w) for w in result.warnings)

        if result.has_errors:
            detail: str = f"{result.error_count} error(s)"
        elif result.has_warnings:
            detail = f"{result.warning_count} warning(s)"
        else:
            detail = "all checks passed"

        passed: bool = result.is_valid and not (
            self._fail_on_warnings and result.has_warnings
        )
        report.step_metrics.append(GenerationStepMetric(
            step_name="Validate Metamodel",
            success=passed,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))

        for warn in result.warnings:
            logger.warning("  ⚠ %s", warn)
        for err in result.errors:
            logger.error("  ✗ %s", err)
        return passed

    def _step_generate(
        self,
        models: Sequence[ClassModel],
        extractor: MetamodelExtractor,
        report: GenerationReport,
    ) -> GenerationResult:
        with Timer("code_generation") as t:
            result: GenerationResult = self.generate_models(models, extractor)

        report.result = result
        report.total_artifacts = result.total_artifacts
        report.total_lines = result.total_lines
        report.total_bytes = sum(a.size_bytes for a in result.artifacts)
        report.generation_errors.extend(result.errors)
        report.skipped_artifacts.extend(result.skipped)

        detail_str: str = (
            f"{result.total_artifacts} artifact(s), ~{result.total_lines:,} lines"
        )
        report.step_metrics.append(GenerationStepMetric(
            step_name="Code Generation",
            success=result.success,
            elapsed_seconds=t.elapsed,
            detail=detail_str,
        ))
        logger.info("Code generation complete: %s in %.3fs.", detail_str, t.elapsed)
        return result

    def _step_export(
        self,
        result: GenerationResult,
        output_dir: Path,
        report: GenerationReport,
    ) -> None:
        exporter: ProjectExporter = ProjectExporter(self._config, output_dir)
        export_result: ExportResult = exporter.export(result.artifacts)

        report.total_files = export_result.manifest.total_files
        report.total_bytes = export_result.manifest.total_bytes
        report.total_lines = export_result.manifest.total_lines
        report.export_errors.extend(export_result.errors)
        report.manifest = export_result.manifest

        report.step_metrics.append(GenerationStepMetric(
            step_name="Export to Filesystem",
            success=export_result.success,
            elapsed_seconds=export_result.elapsed_seconds,
            detail=(
                f"{export_result.manifest.total_files} files, "
                f"{export_result.manifest.total_bytes:,} bytes"
            ),
        ))

    def _finalise_report(
        self,
        report: GenerationReport,
        total_elapsed: float,
    ) -> GenerationReport:
        """Set final status and timing on the report."""
        report.total_elapsed_seconds = total_elapsed
        failed_validation: bool = bool(report.validation_errors) or (
            self._fail_on_warnings and bool(report.validation_warnings)
        )
        report.success = not (
            report.input_errors
            or failed_validation
            or report.generation_errors
            or report.export_errors
        )
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "CodeGenerator",
    "GenerationReport",
    "GenerationStepMetric",
    "build_config",
    "discover_classes",
    "load_config_file",
]

logger.debug("crudgen.generator loaded.")
