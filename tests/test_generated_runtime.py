"""
tests/test_generated_runtime.py
Behavioural tests for the generated modules.

The generated package is imported from the session-scoped output (see
conftest.py).  CRUD bases run against an in-memory SQLite database;
the embedded-value copy routines run against plain objects and a
``FakeSession``.

Tests cover:
- count / list with predicates, ordering, paging, distinct and lock hints
- find / update / delete and their ``_or_none`` variants
- create with relation identities resolved through the session
- delete returns the state captured before removal
- version and generated properties left to the persistence runtime
- embedded values: allocation, clearing, updatable flags
- Wrapper forwarding, DTO equality and repr, re-applied markers
"""

from __future__ import annotations

import importlib
from types import ModuleType
from typing import Any, List

import pytest
from sqlalchemy.orm import Session

from crudgen.exceptions import EntityNotFoundError, RelationNotFoundError
from crudgen.generator import GenerationReport
from crudgen.markers import markers_of
from shopmodels.shipping import Dimensions, Parcel


# ===========================================================================
# Helpers & fixtures
# ===========================================================================


def _generated(name: str) -> ModuleType:
    return importlib.import_module(f"shopmodels.{name}")


def _crud_for(module_name: str, class_name: str, session: Any) -> Any:
    base = getattr(_generated(module_name), class_name)

    class BoundCrud(base):  # type: ignore[misc, valid-type]
        def get_session(self) -> Any:
            return session

    return BoundCrud()


@pytest.fixture()
def widget_crud(db_session: Session) -> Any:
    return _crud_for("widget_crud", "WidgetCRUD", db_session)


@pytest.fixture()
def owner_crud(db_session: Session) -> Any:
    return _crud_for("owner_crud", "OwnerCRUD", db_session)


@pytest.fixture()
def gadget_store(db_session: Session) -> Any:
    return _crud_for("gadget_store", "GadgetStore", db_session)


@pytest.fixture()
def widget_dto(generated_report: GenerationReport) -> type:
    return _generated("widget_dto").WidgetDTO


@pytest.fixture()
def owner_dto(generated_report: GenerationReport) -> type:
    return _generated("owner_dto").OwnerDTO


@pytest.fixture()
def parcel_dto(generated_report: GenerationReport) -> type:
    return _generated("parcel_dto").ParcelDTO


@pytest.fixture()
def parcel_dti(generated_report: GenerationReport) -> type:
    return _generated("parcel_dti").ParcelDTI


def _new_widget(widget_dto: type, name: str, **values: Any) -> Any:
    data = widget_dto()
    data.set_name(name)
    for key, value in values.items():
        getattr(data, f"set_{key}")(value)
    return data


@pytest.fixture()
def twenty_widgets(widget_crud: Any, widget_dto: type) -> List[Any]:
    return [widget_crud.create_widget(_new_widget(widget_dto, f"w{i:02d}")) for i in range(20)]


class RecordingSession:
    """Captures the statements handed to ``scalars``."""

    def __init__(self) -> None:
        self.statements: List[Any] = []

    def scalars(self, stmt: Any) -> List[Any]:
        self.statements.append(stmt)
        return []


# ===========================================================================
# count / list
# ===========================================================================


class TestCountAndList:
    """Query-context driven reads."""

    def test_count_all(self, widget_crud: Any, twenty_widgets: List[Any]) -> None:
        assert widget_crud.count_widget() == 20

    def test_count_with_predicate(self, widget_crud: Any, twenty_widgets: List[Any]) -> None:
        count = widget_crud.count_widget(lambda ctx: ctx.where(ctx.root.name.like("w1%")))
        assert count == 10

    def test_count_distinct(self, widget_crud: Any, twenty_widgets: List[Any]) -> None:
        assert widget_crud.count_widget(lambda ctx: ctx.with_distinct()) == 20

    def test_list_paging(self, widget_crud: Any, twenty_widgets: List[Any]) -> None:
        page = widget_crud.list_widget(
            lambda ctx: ctx.order_by(ctx.root.name).paginate(10, 5)
        )
        assert [w.get_name() for w in page] == ["w10", "w11", "w12", "w13", "w14"]

    def test_list_everything_without_configurator(
        self, widget_crud: Any, twenty_widgets: List[Any], widget_dto: type
    ) -> None:
        rows = widget_crud.list_widget()
        assert len(rows) == 20
        assert all(isinstance(row, widget_dto) for row in rows)

    def test_list_with_lock_hint(self, widget_crud: Any, twenty_widgets: List[Any]) -> None:
        rows = widget_crud.list_widget(lambda ctx: ctx.where(ctx.root.name == "w03").lock())
        assert [w.get_name() for w in rows] == ["w03"]

    def test_unset_paging_is_not_applied(self, generated_report: GenerationReport) -> None:
        session = RecordingSession()
        crud = _crud_for("widget_crud", "WidgetCRUD", session)
        crud.list_widget()
        crud.list_widget(lambda ctx: ctx.paginate(0, 3))
        unpaged, paged = (str(stmt).upper() for stmt in session.statements)
        assert "LIMIT" not in unpaged and "OFFSET" not in unpaged
        assert "LIMIT" in paged and "OFFSET" in paged

    def test_context_defaults(self, generated_report: GenerationReport) -> None:
        crud_class = _generated("widget_crud").WidgetCRUD
        context = crud_class.ListContext(object)
        assert context.predicates == [] and context.orders == []
        assert (context.first_result, context.max_results) == (-1, -1)
        assert context.lock_mode is None and context.distinct is False


# ===========================================================================
# find / create / update / delete
# ===========================================================================


class TestSingleEntityOperations:
    """Identity-based operations and their _or_none variants."""

    def test_create_leaves_managed_values_to_runtime(
        self, widget_crud: Any, widget_dto: type
    ) -> None:
        created = widget_crud.create_widget(
            _new_widget(widget_dto, "gear", id=999, revision=42, price=2.5)
        )
        assert created.get_id() is not None and created.get_id() != 999
        assert created.get_revision() == 1
        assert created.get_price() == 2.5

    def test_find(self, widget_crud: Any, widget_dto: type) -> None:
        created = widget_crud.create_widget(_new_widget(widget_dto, "gear", serial="S-1"))
        found = widget_crud.find_widget(created.get_id())
        assert found == created
        assert found.get_serial() == "S-1"
        assert widget_crud.find_widget_or_none(created.get_id()) == created

    def test_find_missing(self, widget_crud: Any) -> None:
        with pytest.raises(EntityNotFoundError, match="Entity Not Found"):
            widget_crud.find_widget(12345)
        assert widget_crud.find_widget_or_none(12345) is None

    def test_find_with_lock_mode(self, widget_crud: Any, widget_dto: type) -> None:
        created = widget_crud.create_widget(_new_widget(widget_dto, "gear"))
        assert widget_crud.find_widget(created.get_id(), {"read": False}) == created

    def test_update_honours_updatable(self, widget_crud: Any, widget_dto: type) -> None:
        created = widget_crud.create_widget(_new_widget(widget_dto, "gear", serial="S-1"))
        data = widget_crud.find_widget(created.get_id())
        data.set_name("renamed")
        data.set_serial("S-2")
        data.set_revision(42)
        updated = widget_crud.update_widget(created.get_id(), data)
        assert updated.get_name() == "renamed"
        assert updated.get_serial() == "S-1"
        assert updated.get_revision() == 2

    def test_unmodified_update_keeps_every_updatable_value(
        self, widget_crud: Any, widget_dto: type, owner_crud: Any, owner_dto: type
    ) -> None:
        owner_data = owner_dto()
        owner_data.set_name("ada")
        owner = owner_crud.create_owner(owner_data)
        created = widget_crud.create_widget(
            _new_widget(
                widget_dto, "gear", price=4.5, serial="S-9", active=True,
                owner_id=owner.get_id(),
            )
        )
        data = widget_crud.find_widget(created.get_id())
        updated = widget_crud.update_widget(created.get_id(), data)
        assert updated.get_name() == "gear"
        assert updated.get_price() == 4.5
        assert updated.get_serial() == "S-9"
        assert updated.is_active() is True
        assert updated.get_owner_id() == owner.get_id()
        assert widget_crud.find_widget(created.get_id()) == updated

    def test_update_missing(self, widget_crud: Any, widget_dto: type) -> None:
        data = _new_widget(widget_dto, "ghost")
        with pytest.raises(EntityNotFoundError):
            widget_crud.update_widget(12345, data)
        assert widget_crud.update_widget_or_none(12345, data) is None

    def test_delete_returns_prior_state(self, widget_crud: Any, widget_dto: type) -> None:
        created = widget_crud.create_widget(_new_widget(widget_dto, "gear"))
        snapshot = widget_crud.find_widget(created.get_id())
        deleted = widget_crud.delete_widget(created.get_id())
        assert deleted == snapshot
        assert widget_crud.find_widget_or_none(created.get_id()) is None
        assert widget_crud.count_widget() == 0

    def test_delete_missing(self, widget_crud: Any) -> None:
        with pytest.raises(EntityNotFoundError):
            widget_crud.delete_widget(12345)
        assert widget_crud.delete_widget_or_none(12345) is None


# ===========================================================================
# Relations
# ===========================================================================


class TestRelations:
    """Foreign identities resolved through the session."""

    @pytest.fixture()
    def owner(self, owner_crud: Any, owner_dto: type) -> Any:
        data = owner_dto()
        data.set_name("ada")
        return owner_crud.create_owner(data)

    def test_create_with_owner(self, widget_crud: Any, widget_dto: type, owner: Any) -> None:
        created = widget_crud.create_widget(
            _new_widget(widget_dto, "gear", owner_id=owner.get_id())
        )
        assert created.get_owner_id() == owner.get_id()

    def test_absent_nullable_relation_is_cleared(
        self, widget_crud: Any, widget_dto: type, owner: Any
    ) -> None:
        created = widget_crud.create_widget(
            _new_widget(widget_dto, "gear", owner_id=owner.get_id())
        )
        data = widget_crud.find_widget(created.get_id())
        data.set_owner_id(None)
        assert widget_crud.update_widget(created.get_id(), data).get_owner_id() is None

    def test_unresolvable_identity(self, widget_crud: Any, widget_dto: type) -> None:
        with pytest.raises(RelationNotFoundError, match="Relation Not Found"):
            widget_crud.create_widget(_new_widget(widget_dto, "gear", owner_id=777))

    def test_primitive_identity_is_always_resolved(
        self, gadget_store: Any, generated_report: GenerationReport, owner: Any
    ) -> None:
        gadget_dto = _generated("gadget_dto").GadgetDTO
        data = gadget_dto()
        data.set_label("probe")
        assert data.get_owner_id() == 0
        with pytest.raises(RelationNotFoundError):
            gadget_store.create_gadget(data)

        data.set_owner_id(owner.get_id())
        created = gadget_store.create_gadget(data)
        assert created.get_owner_id() == owner.get_id()
        assert gadget_store.count_gadget() == 1


# ===========================================================================
# Embedded values
# ===========================================================================


class TestEmbedded:
    """Copy routines on a class embedding another generated class."""

    def _parcel(self, dimensions: Any = None) -> Parcel:
        parcel = Parcel()
        parcel.set_id(7)
        parcel.set_label("box")
        parcel.set_dimensions(dimensions)
        return parcel

    def test_copy_all_builds_nested_dto(self, parcel_dto: type, parcel_dti: type) -> None:
        data = parcel_dto()
        parcel_dti.copy_all_properties(data, self._parcel(Dimensions(2.0, 3.0)))
        nested = data.get_dimensions()
        assert type(nested).__name__ == "DimensionsDTO"
        assert (nested.get_width(), nested.get_height()) == (2.0, 3.0)
        assert data.get_id() == 7

    def test_copy_all_without_value(self, parcel_dto: type, parcel_dti: type) -> None:
        data = parcel_dto()
        parcel_dti.copy_all_properties(data, self._parcel())
        assert data.get_dimensions() is None

    def test_insert_allocates_value(
        self, parcel_dto: type, parcel_dti: type, fake_session: Any
    ) -> None:
        data = parcel_dto()
        parcel_dti.copy_all_properties(data, self._parcel(Dimensions(2.0, 3.0)))
        target = Parcel()
        parcel_dti.copy_insert_properties(fake_session, target, data)
        assert target.get_id() is None
        assert target.get_label() == "box"
        dims = target.get_dimensions()
        assert isinstance(dims, Dimensions)
        assert (dims.get_width(), dims.get_height()) == (2.0, 3.0)
        assert fake_session.lookups == []

    def test_update_allocates_fresh_value_and_skips_non_updatable(
        self, parcel_dto: type, parcel_dti: type, fake_session: Any
    ) -> None:
        existing = Dimensions(1.0, 1.0)
        target = self._parcel(existing)
        data = parcel_dto()
        parcel_dti.copy_all_properties(data, self._parcel(Dimensions(5.0, 6.0)))
        parcel_dti.copy_update_properties(fake_session, target, data)
        dims = target.get_dimensions()
        assert isinstance(dims, Dimensions) and dims is not existing
        assert dims.get_width() == 5.0
        assert dims.get_height() == 0.0
        assert (existing.get_width(), existing.get_height()) == (1.0, 1.0)

    def test_unmodified_transfer_round_trip(
        self, parcel_dto: type, parcel_dti: type, fake_session: Any
    ) -> None:
        target = self._parcel(Dimensions(2.0, 3.0))
        data = parcel_dto()
        parcel_dti.copy_all_properties(data, target)
        parcel_dti.copy_update_properties(fake_session, target, data)
        assert target.get_id() == 7
        assert target.get_label() == "box"
        assert target.get_dimensions().get_width() == 2.0
        again = parcel_dto()
        parcel_dti.copy_all_properties(again, target)
        assert again.get_label() == data.get_label()
        assert again.get_dimensions().get_width() == data.get_dimensions().get_width()

    def test_absent_value_clears_target(
        self, parcel_dto: type, parcel_dti: type, fake_session: Any
    ) -> None:
        target = self._parcel(Dimensions(1.0, 1.0))
        parcel_dti.copy_update_properties(fake_session, target, parcel_dto())
        assert target.get_dimensions() is None

    def test_copy_transfer_clears_absent_value(self, parcel_dto: type, parcel_dti: type) -> None:
        source = parcel_dto()
        target = parcel_dto()
        parcel_dti.copy_all_properties(target, self._parcel(Dimensions(1.0, 1.0)))
        parcel_dti.copy_transfer_properties(target, source)
        assert target.get_dimensions() is None
        assert target == source

    def test_copy_transfer_copies_nested_value(self, parcel_dto: type, parcel_dti: type) -> None:
        source = parcel_dto()
        parcel_dti.copy_all_properties(source, self._parcel(Dimensions(4.0, 2.0)))
        target = parcel_dto()
        parcel_dti.copy_transfer_properties(target, source)
        assert target == source
        assert target.get_dimensions() is not source.get_dimensions()


# ===========================================================================
# Transfer types
# ===========================================================================


class TestTransferTypes:
    """DTO value semantics, Wrapper forwarding and re-applied markers."""

    def test_copy_transfer_round_trip(self, widget_dto: type) -> None:
        source = _new_widget(widget_dto, "gear", price=1.5, serial="S-1", owner_id=4)
        target = widget_dto()
        widget_dto.copy_transfer_properties(target, source)
        assert target == source

    def test_eq_compares_fields(self, widget_dto: type) -> None:
        assert _new_widget(widget_dto, "a") == _new_widget(widget_dto, "a")
        assert _new_widget(widget_dto, "a") != _new_widget(widget_dto, "b")
        assert _new_widget(widget_dto, "a") != "a"

    def test_repr(self, widget_dto: type) -> None:
        text = repr(_new_widget(widget_dto, "gear"))
        assert text.startswith("WidgetDTO(id=None, name='gear', ")
        assert "owner_id=None" in text
        assert text.endswith("note=None)")

    def test_wrapper_forwards(self, widget_dto: type, generated_report: GenerationReport) -> None:
        widget_dti = _generated("widget_dti").WidgetDTI

        class Forwarding(widget_dti.Wrapper):  # type: ignore[misc, name-defined]
            def __init__(self, wrapped: Any) -> None:
                self._wrapped = wrapped

            def get_wrapped(self) -> Any:
                return self._wrapped

        inner = widget_dto()
        wrapper = Forwarding(inner)
        wrapper.set_name("forwarded")
        wrapper.set_owner_id(3)
        assert inner.get_name() == "forwarded"
        assert wrapper.get_owner_id() == 3
        assert isinstance(wrapper, widget_dti)

    def test_dti_is_abstract(self, generated_report: GenerationReport) -> None:
        with pytest.raises(TypeError):
            _generated("widget_dti").WidgetDTI()

    def test_validation_markers_on_accessors(self, widget_dto: type) -> None:
        names = [m.qualified_name for m in markers_of(widget_dto.get_name)]
        assert names == ["shopmodels.validation.not_blank", "shopmodels.validation.size"]
        size = markers_of(widget_dto.get_name)[1]
        assert size.get("max") == 40
