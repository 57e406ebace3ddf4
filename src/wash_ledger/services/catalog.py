"""Read-only lookups of vehicles and users.

Catalog management happens elsewhere; the only write here is the
best-effort last-seen update triggered by a new wash entry.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from wash_ledger.errors import NotFoundError, ValidationError
from wash_ledger.models import AppUser, Vehicle

logger = logging.getLogger(__name__)


def normalize_vehicle_number(number: str) -> str:
    """Canonical vehicle number: trimmed and upper-case."""
    return number.strip().upper()


class VehicleCatalog:
    """Vehicles scoped to locations."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, vehicle_id: UUID) -> Vehicle:
        vehicle = self.session.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise NotFoundError(f"Vehicle {vehicle_id} not found")
        return vehicle

    def find_by_number(self, number: str) -> Vehicle | None:
        """Look up a vehicle by number, ignoring case and surrounding spaces."""
        normalized = normalize_vehicle_number(number)
        if not normalized:
            return None
        return self.session.execute(
            select(Vehicle).where(Vehicle.vehicle_number == normalized)
        ).scalar_one_or_none()

    def list_for_locations(self, location_ids: Sequence[UUID]) -> list[Vehicle]:
        """Active vehicles whose home location is in scope, by number."""
        if not location_ids:
            return []
        result = self.session.execute(
            select(Vehicle)
            .where(
                Vehicle.home_location_id.in_(list(location_ids)),
                Vehicle.is_active.is_(True),
            )
            .order_by(Vehicle.vehicle_number)
        )
        return list(result.scalars().all())

    @staticmethod
    def resolve_actual_location(
        vehicle: Vehicle, location_ids: Sequence[UUID]
    ) -> UUID:
        """Where a wash in this scope is recorded.

        The vehicle's home location when it is in scope, otherwise the
        first location of the scope.
        """
        if not location_ids:
            raise ValidationError("A location is required to record a wash")
        if vehicle.home_location_id is not None and vehicle.home_location_id in location_ids:
            return vehicle.home_location_id
        return location_ids[0]

    def touch_last_seen(
        self, vehicle_id: UUID, location_id: UUID, seen_on: date
    ) -> bool:
        """Update the vehicle's last-seen fields. Failures are logged, not raised."""
        try:
            self.session.execute(
                update(Vehicle)
                .where(Vehicle.id == vehicle_id)
                .values(last_seen_location_id=location_id, last_seen_date=seen_on)
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.exception("Last-seen update failed for vehicle %s", vehicle_id)
            return False
        return True


class UserDirectory:
    """Users and their reporting lines."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: UUID) -> AppUser:
        user = self.session.get(AppUser, user_id)
        if user is None or not user.is_active:
            raise NotFoundError(f"User {user_id} not found")
        return user
