# File: crudgen/validators.py
"""
crudgen - Metamodel & Configuration Validators
================================================
A **pure-function validation pipeline** over the ``ClassModel`` instances
built by ``crudgen.metamodel`` and the ``GenerationConfig``.

Generation itself never fails on a degenerate class: a class without an
identity property simply gets no find/update/delete, a relation whose
target cannot be modeled is simply left out.  This module makes those
omissions visible.  Anything that would make generated code unusable
(an artifact name that is not an identifier, a session import that is not
a dotted path) is an error; everything the emitters silently work around
is a warning or info item.

Usage by downstream modules:
    from crudgen.validators import validate_full
    result = validate_full(models, config, extractor)
    if not result.is_valid:
        raise SystemExit(...)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from crudgen.metamodel import ClassModel, MetamodelExtractor, PropertyModel, PropertyRole
from crudgen.models import GenerationConfig
from crudgen.utils import is_dotted_name, is_identifier

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


ERROR: str = "error"
WARNING: str = "warning"
INFO: str = "info"

_REPORT_MARKS: Dict[str, str] = {ERROR: "❌", WARNING: "⚠️", INFO: "ℹ️"}


@dataclass(frozen=True, slots=True)
class ValidationError:
    """One finding from a validation pass."""

    level: str
    code: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.level == ERROR

    @property
    def is_warning(self) -> bool:
        return self.level == WARNING

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    __str__ = __repr__

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ValidationResult:
    """
    Ordered findings of one validation pass.

    Truthiness means "no errors"; warnings and info items never make a
    result falsy unless the caller opts into ``fail_on_warnings``.
    """

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    def add(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError(level, code, message, dict(context or {})))

    def add_error(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self.add(ERROR, code, message, context)

    def add_warning(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self.add(WARNING, code, message, context)

    def add_info(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self.add(INFO, code, message, context)

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    def _of_level(self, level: str) -> List[ValidationError]:
        return [item for item in self._items if item.level == level]

    @property
    def errors(self) -> List[ValidationError]:
        return self._of_level(ERROR)

    @property
    def warnings(self) -> List[ValidationError]:
        return self._of_level(WARNING)

    @property
    def all_items(self) -> List[ValidationError]:
        return list(self._items)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0

    @property
    def has_warnings(self) -> bool:
        return self.warning_count > 0

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> List[str]:
        return [item.code for item in self._items]

    def summary(self) -> str:
        return (
            f"{len(self._items)} finding(s): {self.error_count} error(s), "
            f"{self.warning_count} warning(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """One line per finding, context keys indented beneath it."""
        lines: List[str] = [self.summary(), ""]
        shown = self._items if include_info else [i for i in self._items if i.level != INFO]
        for item in shown:
            lines.append(f"  {_REPORT_MARKS.get(item.level, '•')} [{item.code}] {item.message}")
            lines.extend(f"       {key}: {value}" for key, value in item.context.items())
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Per-class validators
# ---------------------------------------------------------------------------


def validate_eligibility(model: ClassModel) -> ValidationResult:
    """A ``@codegen`` class that no artifact can be generated for."""
    result: ValidationResult = ValidationResult()
    if model.is_transfer_eligible:
        return result

    reasons: List[str] = []
    if not (model.is_entity or model.is_embeddable):
        reasons.append("neither @entity nor @embeddable")
    if not model.is_top_level:
        reasons.append(f"{model.nesting.value} class")
    if not model.is_public:
        reasons.append("not public")
    if model.is_abstract:
        reasons.append("abstract")
    result.add_warning(
        "CODEGEN_NOT_ELIGIBLE",
        f"{model.qualified_name} is marked @codegen but nothing will be "
        f"generated: {', '.join(reasons)}.",
        {"class": model.qualified_name},
    )
    return result


def validate_identity(model: ClassModel) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    if model.is_entity and model.id_property is None:
        result.add_warning(
            "NO_ID_PROPERTY",
            f"{model.qualified_name} has no @identifier property; "
            f"find/update/delete are not generated.",
            {"class": model.qualified_name},
        )
    for name in model.ignored_identities:
        result.add_warning(
            "MULTIPLE_ID_PROPERTIES",
            f"{model.qualified_name}.{name} is marked @identifier but "
            f"'{model.id_property.name if model.id_property else '?'}' already is; "
            f"the first one wins.",
            {"class": model.qualified_name, "property": name},
        )
    return result


def validate_properties(
    model: ClassModel, extractor: MetamodelExtractor
) -> ValidationResult:
    """Role conflicts, unresolvable relation/embedded types, one-sided accessors."""
    result: ValidationResult = ValidationResult()
    for prop in model.properties:
        ctx: Dict[str, Any] = {"class": model.qualified_name, "property": prop.name}
        where: str = f"{model.qualified_name}.{prop.name}"

        if prop.conflicting_roles:
            result.add_warning(
                "CONFLICTING_ROLES",
                f"{where} carries {', '.join(prop.conflicting_roles)}; "
                f"treated as {prop.role.value}.",
                ctx,
            )

        if prop.is_relation:
            _check_relation(prop, where, ctx, extractor, result)
        elif prop.is_embedded:
            _check_embedded(prop, where, ctx, extractor, result)

        if prop.role is not PropertyRole.UNCLASSIFIED and not prop.has_setter:
            result.add_info(
                "MISSING_SETTER",
                f"{where} has no setter; it is never copied into the entity.",
                ctx,
            )
        if not prop.has_getter:
            # Role markers live on getters, so a setter-only property is
            # always unclassified.
            result.add_info(
                "MISSING_GETTER",
                f"{where} has no getter; it carries no markers and only "
                f"appears as a plain DTO field.",
                ctx,
            )
    return result


def _check_relation(
    prop: PropertyModel,
    where: str,
    ctx: Dict[str, Any],
    extractor: MetamodelExtractor,
    result: ValidationResult,
) -> None:
    related: Optional[ClassModel] = extractor.related_model(prop.type)
    if related is None:
        result.add_warning(
            "UNRESOLVED_RELATION_TYPE",
            f"{where} is a @join_column but its type ({prop.type}) is not a "
            f"class; the property is skipped.",
            ctx,
        )
    elif related.id_property is None:
        result.add_warning(
            "RELATION_TARGET_NO_ID",
            f"{where} refers to {related.qualified_name}, which has no "
            f"@identifier property; the property is skipped.",
            ctx,
        )


def _check_embedded(
    prop: PropertyModel,
    where: str,
    ctx: Dict[str, Any],
    extractor: MetamodelExtractor,
    result: ValidationResult,
) -> None:
    related: Optional[ClassModel] = extractor.related_model(prop.type)
    if related is None:
        result.add_warning(
            "UNRESOLVED_RELATION_TYPE",
            f"{where} is @embedded but its type ({prop.type}) is not a class; "
            f"the property is skipped.",
            ctx,
        )
    elif not related.is_transfer_eligible:
        result.add_warning(
            "EMBEDDED_NOT_GENERATED",
            f"{where} embeds {related.qualified_name}, which is not a public "
            f"top-level @embeddable; the property is skipped.",
            ctx,
        )


def validate_artifact_names(models: Sequence[ClassModel]) -> ValidationResult:
    """
    Override names must be identifiers; qualified names must not collide,
    and no two artifacts may share an output module.
    """
    result: ValidationResult = ValidationResult()
    owners: Dict[str, List[str]] = defaultdict(list)
    module_claims: Dict[str, List[str]] = defaultdict(list)

    for model in models:
        for kind, name, qualified, module in (
            ("crud", model.crud_name, model.qualified_crud_name, model.crud_module),
            ("dto", model.dto_name, model.qualified_dto_name, model.dto_module),
            ("dti", model.dti_name, model.qualified_dti_name, model.dti_module),
        ):
            if not is_identifier(name):
                result.add_error(
                    "INVALID_ARTIFACT_NAME",
                    f"{model.qualified_name}: {kind} name '{name}' is not a valid "
                    f"Python identifier.",
                    {"class": model.qualified_name, "kind": kind},
                )
            if model.qualified_name not in owners[qualified]:
                owners[qualified].append(model.qualified_name)
            if kind == "crud" and not model.is_crud_eligible:
                continue
            if qualified not in module_claims[module]:
                module_claims[module].append(qualified)

    for qualified, sources in owners.items():
        if len(sources) > 1:
            result.add_warning(
                "DUPLICATE_ARTIFACT_NAME",
                f"'{qualified}' is derived from {len(sources)} classes "
                f"({', '.join(sources)}); only the first is generated.",
                {"artifact": qualified},
            )
    for module, artifacts in module_claims.items():
        if len(artifacts) > 1:
            result.add_error(
                "ARTIFACT_MODULE_COLLISION",
                f"{', '.join(artifacts)} would all be written to module {module}.",
                {"module": module},
            )
    return result


def validate_class_model(
    model: ClassModel, extractor: MetamodelExtractor
) -> ValidationResult:
    """All per-class checks."""
    result: ValidationResult = ValidationResult()
    result.merge(validate_eligibility(model))
    if not model.is_transfer_eligible:
        return result
    result.merge(validate_identity(model))
    result.merge(validate_properties(model, extractor))
    return result


# ---------------------------------------------------------------------------
# Config validators
# ---------------------------------------------------------------------------


def validate_generation_config(config: GenerationConfig) -> ValidationResult:
    """Sanity checks beyond what Pydantic field constraints express."""
    result: ValidationResult = ValidationResult()

    if "." not in config.session_import or not is_dotted_name(config.session_import):
        result.add_error(
            "INVALID_SESSION_IMPORT",
            f"session_import '{config.session_import}' must be a dotted "
            f"'module.ClassName' path.",
            {"session_import": config.session_import},
        )

    for module in config.modules:
        if not is_dotted_name(module):
            result.add_error(
                "INVALID_MODULE_NAME",
                f"'{module}' is not a valid dotted module name.",
                {"module": module},
            )

    if config.generate_crud and not (config.generate_dto and config.generate_dti):
        result.add_warning(
            "CRUD_WITHOUT_TRANSFER_TYPES",
            "CRUD bases call the DTO and DTI artifacts; generate them too or "
            "provide them by hand.",
        )

    if config.generate_dto and not config.generate_dti:
        result.add_info(
            "DTO_WITHOUT_DTI",
            "DTO carriers are generated without a DTI base class.",
        )
    return result


# ---------------------------------------------------------------------------
# Master validator
# ---------------------------------------------------------------------------


def validate_full(
    models: Sequence[ClassModel],
    config: GenerationConfig,
    extractor: MetamodelExtractor,
) -> ValidationResult:
    """
    **Master validation entry point.**

    Runs the config validators, every per-class validator and the
    cross-class artifact-name checks.  This is the single function that
    ``generator.py`` and ``cli.py`` call before generating.
    """
    logger.info("Starting full validation — %d class(es).", len(models))

    result: ValidationResult = ValidationResult()
    result.merge(validate_generation_config(config))

    if not models:
        result.add_warning(
            "NO_CLASSES_FOUND",
            "No @codegen classes were found in the scanned modules.",
            {"modules": ", ".join(config.modules)},
        )

    for model in models:
        result.merge(validate_class_model(model, extractor))

    result.merge(validate_artifact_names([m for m in models if m.is_transfer_eligible]))

    if result.has_errors:
        logger.error(
            "Validating %d class model(s) found errors: %s",
            len(models),
            result.summary(),
        )
    else:
        logger.info("Validated %d class model(s): %s", len(models), result.summary())

    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "validate_eligibility",
    "validate_identity",
    "validate_properties",
    "validate_artifact_names",
    "validate_class_model",
    "validate_generation_config",
    "validate_full",
]

logger.debug("crudgen.validators loaded — %d public symbols.", len(__all__))
