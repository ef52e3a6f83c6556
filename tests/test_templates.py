"""
tests/test_templates.py
Unit tests for the CRUD, context and transfer emitters.

Tests cover:
- Every emitted module is syntactically valid Python
- Module header: origin comment, docstring, __future__ import, __all__
- CRUD operation set with and without an identity property
- Transfer slots: relations as foreign identities, embedded values,
  plain properties on the DTO only
- Copy routines honour insertable / updatable / managed flags
- Validation markers re-applied on transfer accessors
- Style options (indent size, docstrings) and deterministic output
"""

from __future__ import annotations

import ast
from typing import Dict, List

import pytest

from crudgen.crud_templates import CrudTemplate
from crudgen.exceptions import CrudgenError
from crudgen.metamodel import MetamodelExtractor
from crudgen.models import GenerationConfig
from crudgen.transfer_templates import TransferSlot, TransferTemplate
from shopmodels.entities import AuditEntry, Gadget, Owner, Widget
from shopmodels.shipping import Dimensions, Parcel


# ===========================================================================
# Helpers
# ===========================================================================


def _render(config: GenerationConfig, cls: type) -> Dict[str, str]:
    extractor = MetamodelExtractor()
    model = extractor.extract_class(cls)
    transfer = TransferTemplate(config, extractor)
    rendered: Dict[str, str] = {
        "dto": transfer.generate_dto(model),
        "dti": transfer.generate_dti(model),
    }
    if model.is_crud_eligible:
        rendered["crud"] = CrudTemplate(config, extractor).generate(model)
    return rendered


def _function_names(source: str, class_name: str) -> List[str]:
    tree = ast.parse(source)
    for node in tree.body:
        if isinstance(node, ast.ClassDef) and node.name == class_name:
            return [n.name for n in node.body if isinstance(n, ast.FunctionDef)]
    raise AssertionError(f"class {class_name} not found")


def _method_source(source: str, class_name: str, method: str) -> str:
    tree = ast.parse(source)
    for node in tree.body:
        if isinstance(node, ast.ClassDef) and node.name == class_name:
            for item in node.body:
                if isinstance(item, ast.FunctionDef) and item.name == method:
                    segment = ast.get_source_segment(source, item)
                    assert segment is not None
                    return segment
    raise AssertionError(f"{class_name}.{method} not found")


@pytest.fixture()
def widget(config: GenerationConfig) -> Dict[str, str]:
    return _render(config, Widget)


# ===========================================================================
# Module structure
# ===========================================================================


class TestModuleStructure:
    """Header and syntax of every emitted module."""

    @pytest.mark.parametrize("cls", [Owner, Widget, Gadget, AuditEntry, Dimensions, Parcel])
    def test_every_artifact_parses(self, config: GenerationConfig, cls: type) -> None:
        for source in _render(config, cls).values():
            ast.parse(source)

    def test_header(self, widget: Dict[str, str]) -> None:
        crud = widget["crud"]
        assert crud.startswith("# Origin: shopmodels.entities.Widget\n")
        assert "from __future__ import annotations" in crud
        assert "__all__ = ['WidgetCRUD']" in crud
        assert "__all__ = ['WidgetDTO']" in widget["dto"]
        assert "__all__ = ['WidgetDTI']" in widget["dti"]

    def test_cross_references_are_fully_qualified(self, widget: Dict[str, str]) -> None:
        crud = widget["crud"]
        assert "import shopmodels.widget_dto" in crud
        assert "import shopmodels.widget_dti" in crud
        assert "import shopmodels.entities" in crud
        assert "from sqlalchemy.orm import Session" in crud
        assert "shopmodels.widget_dti.WidgetDTI.copy_all_properties(data, entity)" in crud

    def test_output_is_deterministic(self, config: GenerationConfig) -> None:
        assert _render(config, Widget) == _render(config, Widget)


# ===========================================================================
# CRUD base
# ===========================================================================


class TestCrudTemplate:
    """Tests for CrudTemplate.generate()."""

    def test_operations(self, widget: Dict[str, str]) -> None:
        assert _function_names(widget["crud"], "WidgetCRUD") == [
            "get_session",
            "count_widget",
            "list_widget",
            "find_widget",
            "find_widget_or_none",
            "create_widget",
            "update_widget",
            "update_widget_or_none",
            "delete_widget",
            "delete_widget_or_none",
        ]

    def test_identity_operations_omitted_without_identity(
        self, config: GenerationConfig
    ) -> None:
        names = _function_names(_render(config, AuditEntry)["crud"], "AuditEntryCRUD")
        assert names == ["get_session", "count_audit_entry", "list_audit_entry", "create_audit_entry"]

    def test_identity_type_is_non_nullable(self, widget: Dict[str, str]) -> None:
        assert "self, entity_id: int, lock_mode: Optional[Dict[str, Any]] = None" in widget["crud"]

    def test_nested_contexts(self, widget: Dict[str, str]) -> None:
        tree = ast.parse(widget["crud"])
        crud = next(n for n in tree.body if isinstance(n, ast.ClassDef))
        nested = [n.name for n in crud.body if isinstance(n, ast.ClassDef)]
        assert nested == ["CountContext", "ListContext"]

    def test_list_applies_paging_only_when_set(self, widget: Dict[str, str]) -> None:
        body = _method_source(widget["crud"], "WidgetCRUD", "list_widget")
        assert "if context.first_result >= 0:" in body
        assert "if context.max_results >= 0:" in body
        assert "stmt.with_for_update(**context.lock_mode)" in body

    def test_delete_snapshots_before_removal(self, widget: Dict[str, str]) -> None:
        body = _method_source(widget["crud"], "WidgetCRUD", "delete_widget")
        assert body.index("copy_all_properties") < body.index("session.delete(entity)")

    def test_not_found_messages(self, widget: Dict[str, str]) -> None:
        find = _method_source(widget["crud"], "WidgetCRUD", "find_widget")
        find_or_none = _method_source(widget["crud"], "WidgetCRUD", "find_widget_or_none")
        assert 'raise EntityNotFoundError("Entity Not Found")' in find
        assert "return None" in find_or_none
        assert "EntityNotFoundError" not in find_or_none

    def test_override_name(self, config: GenerationConfig) -> None:
        crud = _render(config, Gadget)["crud"]
        assert "class GadgetStore(abc.ABC):" in crud
        assert "__all__ = ['GadgetStore']" in crud

    def test_custom_session_import(self) -> None:
        config = GenerationConfig(session_import="shopmodels.db.ShopSession")
        crud = _render(config, Widget)["crud"]
        assert "from shopmodels.db import ShopSession" in crud
        assert "def get_session(self) -> ShopSession:" in crud


# ===========================================================================
# DTI
# ===========================================================================


class TestDtiTemplate:
    """Tests for TransferTemplate.generate_dti()."""

    def test_accessors_skip_plain_properties(self, widget: Dict[str, str]) -> None:
        names = _function_names(widget["dti"], "WidgetDTI")
        assert "get_owner_id" in names and "set_owner_id" in names
        assert "get_owner" not in names
        assert "get_note" not in names
        assert names[-4:] == [
            "copy_all_properties",
            "copy_transfer_properties",
            "copy_insert_properties",
            "copy_update_properties",
        ]

    def test_relation_identity_is_nullable_on_interface(self, config: GenerationConfig) -> None:
        dti = _render(config, Gadget)["dti"]
        assert "def get_owner_id(self) -> Optional[int]:" in dti

    def test_validation_markers_reapplied(self, widget: Dict[str, str]) -> None:
        dti = widget["dti"]
        assert "import shopmodels.validation" in dti
        assert "@shopmodels.validation.not_blank\n" in dti
        assert "@shopmodels.validation.size(max=40)\n" in dti

    def test_slot_without_related_model(self, extractor: MetamodelExtractor) -> None:
        name = extractor.extract_class(Widget).find_property("name")
        assert name is not None
        with pytest.raises(CrudgenError, match="no related class model"):
            TransferSlot(name).target

    def test_slot_target_identity(
        self, config: GenerationConfig, extractor: MetamodelExtractor
    ) -> None:
        slots = TransferTemplate(config, extractor).transfer_slots(extractor.extract_class(Widget))
        owner = next(slot for slot in slots if slot.prop.name == "owner")
        assert owner.target.qualified_name == "shopmodels.entities.Owner"
        assert owner.target_id.name == "id"

    def test_insert_skips_managed_and_non_insertable(self, widget: Dict[str, str]) -> None:
        body = _method_source(widget["dti"], "WidgetDTI", "copy_insert_properties")
        assert "target.set_name(source.get_name())" in body
        assert "target.set_serial(source.get_serial())" in body
        assert "set_id" not in body
        assert "set_revision" not in body
        assert "set_note" not in body

    def test_update_skips_non_updatable(self, widget: Dict[str, str]) -> None:
        body = _method_source(widget["dti"], "WidgetDTI", "copy_update_properties")
        assert "target.set_price(source.get_price())" in body
        assert "set_serial" not in body

    def test_nullable_relation_lookup_is_guarded(self, widget: Dict[str, str]) -> None:
        body = _method_source(widget["dti"], "WidgetDTI", "copy_insert_properties")
        assert "if source.get_owner_id() is not None:" in body
        assert "session.get(shopmodels.entities.Owner, source.get_owner_id())" in body
        assert 'raise RelationNotFoundError("Relation Not Found")' in body
        assert "target.set_owner(None)" in body

    def test_primitive_relation_lookup_is_unconditional(self, config: GenerationConfig) -> None:
        body = _method_source(_render(config, Gadget)["dti"], "GadgetDTI", "copy_insert_properties")
        assert "if source.get_owner_id() is not None:" not in body
        assert "session.get(shopmodels.entities.Owner, source.get_owner_id())" in body

    def test_embedded_is_typed_as_embedded_dti(self, config: GenerationConfig) -> None:
        dti = _render(config, Parcel)["dti"]
        assert "import shopmodels.dimensions_dti" in dti
        assert "def get_dimensions(self) -> Optional[shopmodels.dimensions_dti.DimensionsDTI]:" in dti

    def test_embedded_copy_in_allocates_entity_value(self, config: GenerationConfig) -> None:
        body = _method_source(_render(config, Parcel)["dti"], "ParcelDTI", "copy_update_properties")
        assert "target.set_dimensions(shopmodels.shipping.Dimensions())" in body
        assert "shopmodels.dimensions_dti.DimensionsDTI.copy_update_properties(" in body
        assert "if target.get_dimensions() is None" not in body

    def test_wrapper(self, widget: Dict[str, str]) -> None:
        dti = widget["dti"]
        assert "Wrapper: Type[WidgetDTI]" in dti
        assert "class _WidgetDTIWrapper(WidgetDTI):" in dti
        assert "WidgetDTI.Wrapper = _WidgetDTIWrapper" in dti
        names = _function_names(dti, "_WidgetDTIWrapper")
        assert names[0] == "get_wrapped"


# ===========================================================================
# DTO
# ===========================================================================


class TestDtoTemplate:
    """Tests for TransferTemplate.generate_dto()."""

    def test_implements_dti(self, widget: Dict[str, str]) -> None:
        assert "class WidgetDTO(shopmodels.widget_dti.WidgetDTI):" in widget["dto"]

    def test_fields_and_defaults(self, widget: Dict[str, str]) -> None:
        init = _method_source(widget["dto"], "WidgetDTO", "__init__")
        assert "self._id: Optional[int] = None" in init
        assert "self._name: Optional[str] = None" in init
        assert "self._price: float = 0.0" in init
        assert "self._active: bool = False" in init
        assert "self._owner_id: Optional[int] = None" in init
        assert "self._note: Optional[str] = None" in init

    def test_primitive_relation_carrier(self, config: GenerationConfig) -> None:
        init = _method_source(_render(config, Gadget)["dto"], "GadgetDTO", "__init__")
        assert "self._owner_id: int = 0" in init

    def test_plain_property_is_a_dto_field(self, widget: Dict[str, str]) -> None:
        names = _function_names(widget["dto"], "WidgetDTO")
        assert "get_note" in names and "set_note" in names
        assert names[-2:] == ["__repr__", "__eq__"]

    def test_without_dti_has_no_base(self) -> None:
        config = GenerationConfig(generate_dti=False)
        dto = _render(config, Parcel)["dto"]
        assert "class ParcelDTO:" in dto
        assert "import shopmodels.parcel_dti" not in dto
        assert "Optional[shopmodels.dimensions_dto.DimensionsDTO]" in dto


# ===========================================================================
# Style options
# ===========================================================================


class TestStyleOptions:
    """indent_size and generate_docstrings."""

    def test_indent_size(self) -> None:
        rendered = _render(GenerationConfig(indent_size=2), Widget)
        for source in rendered.values():
            ast.parse(source)
        assert "\n  def get_session(self) -> Session:" in rendered["crud"]

    def test_docstrings_disabled(self) -> None:
        rendered = _render(GenerationConfig(generate_docstrings=False), Dimensions)
        for source in rendered.values():
            ast.parse(source)
            tree = ast.parse(source)
            for node in ast.walk(tree):
                if isinstance(node, ast.ClassDef) and node.name.startswith("Dimensions"):
                    assert ast.get_docstring(node) is None

    def test_docstrings_enabled(self, widget: Dict[str, str]) -> None:
        tree = ast.parse(widget["crud"])
        crud = next(n for n in tree.body if isinstance(n, ast.ClassDef))
        assert "CRUD operations for shopmodels.entities.Widget." in (ast.get_docstring(crud) or "")
