"""
Driver Service (Domain Logic).

Onboarding, compliance edits, explicit status changes and the license
renewal report.
"""

import logging
from datetime import date, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleetops.app.core.config import settings
from fleetops.app.core.exceptions import ActiveTripConflictError, ValidationFailedError
from fleetops.app.db.session import atomic
from fleetops.app.domain.lifecycle import rules
from fleetops.app.domain.lifecycle.queries import count_driver_dispatched_trips, get_driver_or_404
from fleetops.app.models.driver import Driver
from fleetops.app.models.fleet_enums import DriverStatus

logger = logging.getLogger(__name__)


class DriverService:

    @staticmethod
    async def create(
        db: AsyncSession,
        name: str,
        license_expiry: date,
        today: Optional[date] = None
    ) -> Driver:
        """
        Onboard a driver.

        New drivers start Off Duty with a safety score of 100.

        Raises:
            InvalidExpiryError: license expiry is not after today
        """
        rules.ensure_future_expiry(license_expiry, today)

        driver = Driver(
            name=name,
            license_expiry=license_expiry,
            status=DriverStatus.OFF_DUTY,
            safety_score=100.0,
        )
        async with atomic(db):
            db.add(driver)

        await db.refresh(driver)
        logger.info("Driver %s onboarded (license expires %s)", driver.id, license_expiry)
        return driver

    @staticmethod
    async def update(
        db: AsyncSession,
        driver_id: int,
        name: Optional[str] = None,
        license_expiry: Optional[date] = None,
        safety_score: Optional[float] = None,
        today: Optional[date] = None
    ) -> Driver:
        """
        Patch name, license expiry or safety score.

        Raises:
            InvalidExpiryError: new expiry is not after today
            OutOfRangeError: safety score outside [0, 100]
        """
        driver = await get_driver_or_404(db, driver_id)

        changes = {}
        if name is not None:
            changes["name"] = name
        if safety_score is not None:
            rules.ensure_safety_score(safety_score)
            changes["safety_score"] = safety_score
        if license_expiry is not None:
            rules.ensure_future_expiry(license_expiry, today)
            changes["license_expiry"] = license_expiry

        if changes:
            async with atomic(db):
                for field, value in changes.items():
                    setattr(driver, field, value)
            await db.refresh(driver)
            logger.info("Driver %s updated: %s", driver.id, sorted(changes))

        return driver

    @staticmethod
    async def change_status(db: AsyncSession, driver_id: int, status: DriverStatus) -> Driver:
        """
        Explicitly set a driver's status (e.g. suspend or reinstate).

        A driver on a Dispatched trip can only be set On Duty; the trip
        must be completed or cancelled first.

        Raises:
            ValidationFailedError: unknown status
            ActiveTripConflictError: driver is mid-trip and target is not On Duty
        """
        try:
            target = DriverStatus(status)
        except ValueError:
            valid = ", ".join(s.value for s in DriverStatus)
            raise ValidationFailedError(f"Status must be one of: {valid}", details={"status": status})

        driver = await get_driver_or_404(db, driver_id)

        if target != DriverStatus.ON_DUTY and await count_driver_dispatched_trips(db, driver.id) > 0:
            raise ActiveTripConflictError(
                "Cannot change status while driver is on an active trip",
                details={"driver_id": driver.id, "requested_status": target.value},
            )

        async with atomic(db):
            driver.status = target

        await db.refresh(driver)
        logger.info("Driver %s status set to %s", driver.id, target.value)
        return driver

    @staticmethod
    async def delete(db: AsyncSession, driver_id: int) -> int:
        """
        Remove a driver.

        Historical trips keep their record with the driver reference cleared.

        Raises:
            ActiveTripConflictError: driver has a Dispatched trip
        """
        driver = await get_driver_or_404(db, driver_id)

        if await count_driver_dispatched_trips(db, driver.id) > 0:
            raise ActiveTripConflictError(
                "Cannot delete driver with active trips. Complete or cancel all trips first.",
                details={"driver_id": driver.id},
            )

        async with atomic(db):
            await db.delete(driver)

        logger.info("Driver %s deleted", driver_id)
        return driver_id

    @staticmethod
    async def get(db: AsyncSession, driver_id: int) -> Driver:
        return await get_driver_or_404(db, driver_id)

    @staticmethod
    async def list(
        db: AsyncSession,
        status: Optional[DriverStatus] = None,
        suspended: Optional[bool] = None
    ) -> List[Driver]:
        stmt = select(Driver)
        if status:
            stmt = stmt.where(Driver.status == status)
        if suspended:
            stmt = stmt.where(Driver.status == DriverStatus.SUSPENDED)
        stmt = stmt.order_by(Driver.id.asc()).execution_options(populate_existing=True)

        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def needing_renewal(
        db: AsyncSession,
        today: Optional[date] = None,
        window_days: Optional[int] = None
    ) -> List[Tuple[Driver, int]]:
        """
        Drivers whose license expires after today but within the renewal window.

        Returns:
            (driver, days_until_expiry) pairs, soonest expiry first
        """
        today = today or date.today()
        window_days = window_days if window_days is not None else settings.license_renewal_window_days
        horizon = today + timedelta(days=window_days)

        result = await db.execute(
            select(Driver)
            .where(Driver.license_expiry > today, Driver.license_expiry <= horizon)
            .order_by(Driver.license_expiry.asc())
        )
        return [
            (driver, rules.days_until_expiry(driver.license_expiry, today))
            for driver in result.scalars().all()
        ]
