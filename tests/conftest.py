"""
tests/conftest.py
Shared fixtures for the crudgen test suite.

The ``shopmodels`` package next to this file holds the annotated classes
every test generates from.  Generated modules are written into a
temporary directory that is appended to ``shopmodels.__path__``, so they
import as ``shopmodels.widget_crud`` and so on, exactly where their
cross-references point.

No external mocking libraries are used; the only stand-in is
``FakeSession`` for the unmapped ``shopmodels.shipping`` classes.
"""

from __future__ import annotations

import pathlib
import sys
from typing import Any, Dict, Iterator, List, Optional, Tuple

import pytest
import yaml
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

import shopmodels
from crudgen.generator import CodeGenerator, GenerationReport
from crudgen.metamodel import MetamodelExtractor
from crudgen.models import GenerationConfig
from shopmodels.entities import Base


# ---------------------------------------------------------------------------
# Module names
# ---------------------------------------------------------------------------

ENTITY_MODULES: List[str] = ["shopmodels.entities", "shopmodels.shipping"]
GENERATED_SUFFIXES: Tuple[str, ...] = ("_crud", "_dto", "_dti", "_store")


# ---------------------------------------------------------------------------
# Config & extractor fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config() -> GenerationConfig:
    """Default configuration over the entity modules."""
    return GenerationConfig(modules=list(ENTITY_MODULES))


@pytest.fixture()
def extractor() -> MetamodelExtractor:
    """Fresh extractor (empty cache) per test."""
    return MetamodelExtractor()


@pytest.fixture()
def config_dict(tmp_path: pathlib.Path) -> Dict[str, Any]:
    """Raw configuration as it would appear in a crudgen.yaml."""
    return {
        "modules": list(ENTITY_MODULES),
        "output_dir": str(tmp_path / "out"),
        "indent_size": 4,
        "generate_docstrings": True,
    }


@pytest.fixture()
def config_yaml_path(config_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the config under a top-level ``crudgen`` key and return its path."""
    path = tmp_path / "crudgen.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump({"crudgen": config_dict}, fh, default_flow_style=False)
    return path


# ---------------------------------------------------------------------------
# Generated package
# ---------------------------------------------------------------------------


def _forget_generated_modules() -> None:
    for name in list(sys.modules):
        if name.startswith("shopmodels.") and name.endswith(GENERATED_SUFFIXES):
            del sys.modules[name]


@pytest.fixture(scope="session")
def generated_report(tmp_path_factory: pytest.TempPathFactory) -> Iterator[GenerationReport]:
    """
    Generate every artifact for the entity modules once per session and
    make the output importable as part of ``shopmodels``.
    """
    out = tmp_path_factory.mktemp("generated")
    config = GenerationConfig(modules=list(ENTITY_MODULES), output_dir=str(out))
    report = CodeGenerator(config).run()
    assert report.success, report.summary()

    package_dir = str(out / "shopmodels")
    shopmodels.__path__.append(package_dir)
    try:
        yield report
    finally:
        shopmodels.__path__.remove(package_dir)
        _forget_generated_modules()


@pytest.fixture(scope="session")
def generated_root(generated_report: GenerationReport) -> pathlib.Path:
    return pathlib.Path(generated_report.output_directory)


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def db_session(generated_report: GenerationReport) -> Iterator[Session]:
    """In-memory SQLite session with the ``shopmodels`` tables created."""
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    engine.dispose()


class FakeSession:
    """
    Records ``get`` lookups and answers them from a fixed table.

    Enough for the copy routines, which only ever call ``session.get``.
    """

    def __init__(self, rows: Optional[Dict[Tuple[type, Any], Any]] = None) -> None:
        self.rows: Dict[Tuple[type, Any], Any] = dict(rows or {})
        self.lookups: List[Tuple[type, Any]] = []

    def get(self, entity: type, ident: Any, **options: Any) -> Any:
        self.lookups.append((entity, ident))
        return self.rows.get((entity, ident))


@pytest.fixture()
def fake_session() -> FakeSession:
    return FakeSession()
