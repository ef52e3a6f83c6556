"""
SQLAlchemy-mapped entities with crudgen accessors.

Each class maps plain attributes (``name``, ``owner``...) for queries and
exposes ``get_*``/``set_*`` accessors carrying the crudgen markers.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from crudgen.markers import (
    codegen,
    column,
    entity,
    generated_value,
    identifier,
    join_column,
    version,
)
from shopmodels import validation


class Base(DeclarativeBase):
    pass


@codegen
@entity
class Owner(Base):
    __tablename__ = "owners"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), default="")

    @identifier
    @generated_value
    @column(nullable=False, insertable=False, updatable=False)
    def get_id(self) -> Optional[int]:
        return self.id

    def set_id(self, value: Optional[int]) -> None:
        self.id = value

    @column(nullable=False)
    def get_name(self) -> str:
        return self.name

    def set_name(self, value: str) -> None:
        self.name = value


@codegen
@entity
class Widget(Base):
    __tablename__ = "widgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(40), default="")
    price: Mapped[float] = mapped_column(Float, default=0.0)
    serial: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=False)
    revision: Mapped[int] = mapped_column(Integer, nullable=False)
    owner_id: Mapped[Optional[int]] = mapped_column(ForeignKey("owners.id"), nullable=True)
    owner: Mapped[Optional[Owner]] = relationship()

    __mapper_args__ = {"version_id_col": revision}

    @identifier
    @generated_value
    @column(nullable=False, insertable=False, updatable=False)
    def get_id(self) -> Optional[int]:
        return self.id

    def set_id(self, value: Optional[int]) -> None:
        self.id = value

    @validation.not_blank
    @validation.size(max=40)
    @column(nullable=False)
    def get_name(self) -> str:
        return self.name

    def set_name(self, value: str) -> None:
        self.name = value

    @column
    def get_price(self) -> float:
        return self.price

    def set_price(self, value: float) -> None:
        self.price = value

    @column(updatable=False)
    def get_serial(self) -> Optional[str]:
        return self.serial

    def set_serial(self, value: Optional[str]) -> None:
        self.serial = value

    @column
    def is_active(self) -> bool:
        return self.active

    def set_active(self, value: bool) -> None:
        self.active = value

    @version
    @column
    def get_revision(self) -> int:
        return self.revision

    def set_revision(self, value: int) -> None:
        self.revision = value

    @join_column(nullable=True)
    def get_owner(self) -> Optional[Owner]:
        return self.owner

    def set_owner(self, value: Optional[Owner]) -> None:
        self.owner = value

    def get_note(self) -> str:
        return "transient"

    def set_note(self, value: str) -> None:
        pass


@codegen(crud="GadgetStore", dto="  ")
@entity
class Gadget(Base):
    __tablename__ = "gadgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    label: Mapped[str] = mapped_column(String(40), default="")
    owner_id: Mapped[int] = mapped_column(ForeignKey("owners.id"), nullable=False)
    owner: Mapped[Owner] = relationship()

    @identifier
    @generated_value
    @column(insertable=False, updatable=False)
    def get_id(self) -> Optional[int]:
        return self.id

    def set_id(self, value: Optional[int]) -> None:
        self.id = value

    @column
    def get_label(self) -> str:
        return self.label

    def set_label(self, value: str) -> None:
        self.label = value

    @join_column(nullable=False)
    def get_owner(self) -> Owner:
        return self.owner

    def set_owner(self, value: Owner) -> None:
        self.owner = value


@codegen
@entity
class AuditEntry(Base):
    """Mapped with a primary key, but no accessor is marked as the identity."""

    __tablename__ = "audit_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    message: Mapped[str] = mapped_column(String(200), default="")

    @column
    def get_message(self) -> str:
        return self.message

    def set_message(self, value: str) -> None:
        self.message = value
