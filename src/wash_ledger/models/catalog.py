"""Catalog tables read by the core: users, locations, vehicle types, vehicles.

These rows are managed elsewhere. The core only reads them, apart from the
best-effort last-seen fields on vehicles.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Date, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wash_ledger.models.base import Base, TimestampMixin


class AppUser(Base, TimestampMixin):
    """Employee, manager or administrator."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False, default="employee")
    manager_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    manager: Mapped[AppUser | None] = relationship(remote_side=[id])


class Location(Base, TimestampMixin):
    """Physical site where vehicles are washed."""

    __tablename__ = "locations"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class VehicleType(Base, TimestampMixin):
    """Vehicle category (rates hang off this elsewhere)."""

    __tablename__ = "vehicle_types"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    type_name: Mapped[str] = mapped_column(String, nullable=False, unique=True)


class Vehicle(Base, TimestampMixin):
    """A washable vehicle, identified by its normalized number."""

    __tablename__ = "vehicles"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    vehicle_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    vehicle_type_id: Mapped[UUID] = mapped_column(
        ForeignKey("vehicle_types.id"), nullable=False
    )
    home_location_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("locations.id"), nullable=True
    )
    client_id: Mapped[UUID | None] = mapped_column(nullable=True)
    last_seen_location_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("locations.id"), nullable=True
    )
    last_seen_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    vehicle_type: Mapped[VehicleType] = relationship()
