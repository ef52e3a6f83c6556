# File: crudgen/exporters.py
"""
crudgen - Source-File Sink
============================

Writes ``GeneratedArtifact`` modules under an output root, one file per
artifact at the artifact's module path (``shop.widget_crud`` →
``<root>/shop/widget_crud.py``).

Responsibilities:
    1. Remove files listed in a previous run's manifest (``clean_output``).
    2. Write every artifact atomically (write-to-temp then ``os.replace``).
    3. Produce ``crudgen-manifest.json`` with sizes and checksums.

No ``__init__.py`` files are created: generated modules extend packages
that already exist on the caller's import path, so the output root is
either that source tree itself or a directory appended to the package's
``__path__``.

Failures are recorded per file; one unwritable path does not stop the
rest of the batch.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

from crudgen.models import ArtifactKind, GeneratedArtifact, GenerationConfig
from crudgen.utils import Timer, count_lines, ensure_directory, sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.exporters")

MANIFEST_FILENAME: str = "crudgen-manifest.json"


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """One written module: where it went and what it holds."""

    relative_path: str
    absolute_path: str
    size_bytes: int
    line_count: int
    sha256: str
    kind: str = ""
    origin: str = ""


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """
    What a run put on disk.

    ``clean_output`` on the next run only ever deletes paths listed in
    ``files``; ``origins`` maps each source class to the modules derived
    from it.
    """

    generator_version: str = ""
    export_timestamp: str = ""
    output_directory: str = ""
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    artifacts_by_kind: Dict[str, int] = field(default_factory=dict)
    origins: Dict[str, List[str]] = field(default_factory=dict)
    files: List[FileRecord] = field(default_factory=list)

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(asdict(self), indent=indent_size, ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class ExportResult:
    """
    Final result returned by ``ProjectExporter.export()``.

    ``removed`` lists stale paths deleted by ``clean_output``.
    """

    success: bool
    manifest: ExportManifest
    errors: Tuple[str, ...]
    warnings: Tuple[str, ...]
    removed: Tuple[str, ...]
    elapsed_seconds: float


def read_manifest(output_dir: Path) -> List[str]:
    """Relative paths recorded in an existing manifest, or ``[]``."""
    manifest_path: Path = output_dir / MANIFEST_FILENAME
    if not manifest_path.is_file():
        return []
    try:
        data: Any = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable manifest %s: %s", manifest_path, exc)
        return []
    files: Any = data.get("files", []) if isinstance(data, dict) else []
    return [
        entry["relative_path"]
        for entry in files
        if isinstance(entry, dict) and isinstance(entry.get("relative_path"), str)
    ]


# ---------------------------------------------------------------------------
# ProjectExporter class
# ---------------------------------------------------------------------------


class ProjectExporter:
    """
    Puts generated CRUD, DTO and DTI modules under one output root.

    Usage::

        exporter = ProjectExporter(config, output_dir=Path("./src"))
        result = exporter.export(generation_result.artifacts)
        print(result.manifest.to_json())

    Holds per-run state; create a fresh exporter for every run.
    """

    def __init__(
        self,
        config: GenerationConfig,
        output_dir: Path,
        *,
        atomic_writes: bool = True,
    ) -> None:
        self._config: GenerationConfig = config
        self._output_dir: Path = output_dir.resolve()
        self._atomic_writes: bool = atomic_writes

        self._errors: List[str] = []
        self._warnings: List[str] = []
        self._removed: List[str] = []
        self._file_records: List[FileRecord] = []

        logger.debug(
            "Exporter ready for %s (atomic writes: %s).",
            self._output_dir,
            self._atomic_writes,
        )

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def export(self, artifacts: Sequence[GeneratedArtifact]) -> ExportResult:
        """
        Write every artifact, then the manifest.

        Returns:
            ExportResult; ``success`` is False if any single write failed.
        """
        with Timer("export") as timer:
            try:
                ensure_directory(self._output_dir)
                if self._config.clean_output:
                    self._clean_previous_output()
                self._write_artifacts(artifacts)
                if self._config.write_manifest:
                    self._write_manifest_file()
            except OSError as exc:
                error_msg: str = f"Fatal export error: {type(exc).__name__}: {exc}"
                self._errors.append(error_msg)
                logger.error(error_msg, exc_info=True)

        manifest: ExportManifest = self._build_manifest()
        success: bool = len(self._errors) == 0

        result: ExportResult = ExportResult(
            success=success,
            manifest=manifest,
            errors=tuple(self._errors),
            warnings=tuple(self._warnings),
            removed=tuple(self._removed),
            elapsed_seconds=timer.elapsed,
        )

        if success:
            logger.info(
                "Exported %d module(s), %d bytes in %.3fs.",
                manifest.total_files,
                manifest.total_bytes,
                timer.elapsed,
            )
        else:
            logger.error(
                "Export finished with %d failed write(s) after %.3fs.",
                len(self._errors),
                timer.elapsed,
            )

        return result

    # -----------------------------------------------------------------
    # Internal: cleanup
    # -----------------------------------------------------------------

    def _clean_previous_output(self) -> None:
        """Delete files a previous run recorded; nothing else is touched."""
        for rel_path in read_manifest(self._output_dir):
            target: Path = (self._output_dir / rel_path).resolve()
            if self._output_dir not in target.parents:
                self._warnings.append(f"Refusing to remove {target}: outside output root.")
                logger.warning("Refusing to remove %s: outside output root.", target)
                continue
            if not target.is_file():
                continue
            try:
                target.unlink()
                self._removed.append(rel_path)
                logger.debug("Removed stale file: %s", rel_path)
            except OSError as exc:
                warning_msg: str = f"Could not remove {target}: {exc}"
                self._warnings.append(warning_msg)
                logger.warning(warning_msg)

        if self._removed:
            logger.info(
                "Removed %d previously generated file(s) from %s.",
                len(self._removed),
                self._output_dir,
            )

    # -----------------------------------------------------------------
    # Internal: file writing
    # -----------------------------------------------------------------

    def _write_artifacts(self, artifacts: Sequence[GeneratedArtifact]) -> None:
        for artifact in artifacts:
            full_path: Path = self._output_dir / artifact.path
            try:
                record: FileRecord = self._write_single_file(
                    full_path,
                    artifact.content,
                    artifact.path,
                    kind=ArtifactKind(artifact.kind).value,
                    origin=artifact.origin,
                )
                self._file_records.append(record)
            except OSError as exc:
                error_msg: str = (
                    f"Failed to write {artifact.path}: {type(exc).__name__}: {exc}"
                )
                self._errors.append(error_msg)
                logger.error(error_msg)

        logger.info(
            "Wrote %d generated file(s) to %s.",
            len(self._file_records),
            self._output_dir,
        )

    def _write_single_file(
        self,
        full_path: Path,
        content: str,
        rel_path: str,
        *,
        kind: str = "",
        origin: str = "",
    ) -> FileRecord:
        """Encode ``content`` as UTF-8, write it, and describe the result."""
        ensure_directory(full_path.parent)

        encoded: bytes = content.encode("utf-8")
        if self._atomic_writes:
            self._atomic_write(full_path, encoded)
        else:
            full_path.write_bytes(encoded)

        record: FileRecord = FileRecord(
            relative_path=rel_path,
            absolute_path=str(full_path),
            size_bytes=len(encoded),
            line_count=count_lines(content),
            sha256=sha256_hex(content),
            kind=kind,
            origin=origin,
        )
        logger.debug(
            "Wrote file: %s (%d bytes, %d lines).",
            rel_path,
            record.size_bytes,
            record.line_count,
        )
        return record

    @staticmethod
    def _atomic_write(target_path: Path, data: bytes) -> None:
        """Replace ``target_path`` in one step; readers never see half a module."""
        fd, tmp_name = tempfile.mkstemp(
            dir=str(target_path.parent), prefix=f".{target_path.stem}-", suffix=".part"
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, target_path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # -----------------------------------------------------------------
    # Internal: manifest
    # -----------------------------------------------------------------

    def _build_manifest(self) -> ExportManifest:
        import crudgen

        by_kind: Dict[str, int] = {}
        origins: Dict[str, List[str]] = {}
        for record in self._file_records:
            by_kind[record.kind] = by_kind.get(record.kind, 0) + 1
            origins.setdefault(record.origin, []).append(record.relative_path)

        return ExportManifest(
            generator_version=crudgen.__version__,
            export_timestamp=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            output_directory=str(self._output_dir),
            total_files=len(self._file_records),
            total_bytes=sum(r.size_bytes for r in self._file_records),
            total_lines=sum(r.line_count for r in self._file_records),
            artifacts_by_kind=by_kind,
            origins=origins,
            files=list(self._file_records),
        )

    def _write_manifest_file(self) -> None:
        manifest: ExportManifest = self._build_manifest()
        manifest_path: Path = self._output_dir / MANIFEST_FILENAME
        try:
            self._write_single_file(manifest_path, manifest.to_json(), MANIFEST_FILENAME)
            logger.debug("Wrote manifest to %s.", manifest_path)
        except OSError as exc:
            self._warnings.append(f"Could not write manifest: {exc}")
            logger.warning("Failed to write manifest: %s", exc)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MANIFEST_FILENAME",
    "ProjectExporter",
    "ExportManifest",
    "ExportResult",
    "FileRecord",
    "read_manifest",
]

logger.debug("crudgen.exporters loaded.")
