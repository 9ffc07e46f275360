"""Appointment service: booking admission, status changes and reschedules."""

from dataclasses import dataclass, field
from datetime import date, time
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, func, insert, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    DuplicateActiveBookingException,
    InvalidTransitionException,
    NotFoundException,
    NotOwnerException,
    RoleNotPermittedException,
    SlotBlockedException,
)
from app.models.appointments import appointments
from app.models.base import utcnow
from app.schemas.appointments import (
    AppointmentChangeResponse,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentUpdate,
    BookingResponse,
    SlotQueueResponse,
)
from app.schemas.notifications import NotificationEvent, NotificationKind
from app.schemas.users import ActingUser, UserRole
from app.services.availability_service import AvailabilityService, SlotAvailability
from app.services.notification_service import NotificationService
from app.services.permissions import (
    ACTIVE_HOLDER_STATUSES,
    NON_TERMINAL_STATUSES,
    STATUS_TRANSITIONS,
    Transition,
    authorize_access,
    authorize_transition,
    validate_reschedule,
    validate_status_change,
)
from app.services.promotion_service import PromotionService
from app.services.property_catalog import PropertyBookingStatus, PropertyCatalog
from app.services.queue_ledger import QueueLedger
from app.services.slot_keys import SlotKey, resolve_slot_key
from app.services.slot_lock import SlotStateConflict, lock_slots, run_slot_transaction

logger = structlog.get_logger(__name__)

NON_TERMINAL_VALUES = tuple(status.value for status in NON_TERMINAL_STATUSES)

STATUS_NOTIFICATIONS = {
    AppointmentStatus.CONFIRMED: NotificationKind.APPOINTMENT_CONFIRMED,
    AppointmentStatus.COMPLETED: NotificationKind.APPOINTMENT_COMPLETED,
    AppointmentStatus.CANCELLED: NotificationKind.APPOINTMENT_CANCELLED,
}


def slot_of(row: dict[str, Any]) -> SlotKey:
    """Slot key of a stored appointment."""
    return SlotKey(
        property_id=row["property_id"],
        slot_date=row["appointment_date"],
        slot_time=row["appointment_time"],
    )


def slot_context(slot: SlotKey, property_status: PropertyBookingStatus | None = None) -> dict[str, Any]:
    """Notification context describing a slot."""
    context: dict[str, Any] = {
        "property_id": str(slot.property_id),
        "appointment_date": slot.slot_date.isoformat(),
        "appointment_time": slot.slot_time.strftime("%H:%M"),
    }
    if property_status is not None and property_status.title:
        context["property_title"] = property_status.title
    return context


@dataclass
class _ChangeOutcome:
    row: dict[str, Any]
    message: str
    promoted: dict[str, Any] | None = None
    events: list[NotificationEvent] = field(default_factory=list)


class AppointmentService:
    """Service for booking and managing viewing appointments."""

    def __init__(self, db: AsyncSession, notifier: NotificationService | None = None):
        """Initialize service with database session."""
        self.db = db
        self.catalog = PropertyCatalog(db)
        self.availability = AvailabilityService(db)
        self.ledger = QueueLedger(db)
        self.promotion = PromotionService(db)
        self.notifier = notifier or NotificationService(db)

    # Admission

    async def create_appointment(
        self,
        user: ActingUser,
        data: AppointmentCreate,
    ) -> BookingResponse:
        """
        Book a viewing for the acting customer.

        Args:
            user: Authenticated caller, must be a customer
            data: Requested property, date and time

        Returns:
            The created appointment, pending or queued

        Raises:
            RoleNotPermittedException: If the caller is not a customer
        """
        if user.role != UserRole.CUSTOMER:
            raise RoleNotPermittedException("Only customers can book viewings")

        slot = resolve_slot_key(data.property_id, data.appointment_date, data.appointment_time)
        return await self.admit(user.id, slot, notes=data.notes)

    async def admit(
        self,
        customer_id: UUID,
        slot: SlotKey,
        notes: str | None = None,
    ) -> BookingResponse:
        """
        Decide whether a booking request holds the slot or waits in its queue.

        The decision and the insert happen in one slot-locked transaction.

        Raises:
            PropertyUnavailableException: If the property is not bookable
            SlotBlockedException: If the slot is blocked
            DuplicateActiveBookingException: If the customer already has a
                non-terminal appointment on this property
            ConcurrencyConflictException: If the slot stayed contended
        """

        async def _admit() -> tuple[dict[str, Any], PropertyBookingStatus]:
            await lock_slots(self.db, slot)

            property_status = await self.catalog.get_property_booking_status(slot.property_id)
            availability = await self.availability.check(slot, property_status)
            if availability == SlotAvailability.BLOCKED:
                raise SlotBlockedException(
                    f"The slot {slot.slot_date.isoformat()} {slot.slot_time.strftime('%H:%M')} "
                    "is blocked for this property"
                )

            await self._ensure_no_active_booking(customer_id, slot.property_id)

            if availability == SlotAvailability.OPEN:
                status, position = AppointmentStatus.PENDING, None
            else:
                status, position = AppointmentStatus.QUEUED, await self.ledger.next_position(slot)

            result = await self.db.execute(
                insert(appointments)
                .values(
                    property_id=slot.property_id,
                    customer_id=customer_id,
                    agent_id=property_status.assigned_agent_id,
                    appointment_date=slot.slot_date,
                    appointment_time=slot.slot_time,
                    booking_timestamp=utcnow(),
                    status=status.value,
                    queue_position=position,
                    notes=notes,
                )
                .returning(appointments)
            )
            return dict(result.fetchone()._mapping), property_status

        row, property_status = await run_slot_transaction(
            self.db, _admit, operation_name="admit"
        )

        appointment = AppointmentResponse.model_validate(row)
        context = {**slot_context(slot, property_status), "appointment_id": str(appointment.id)}
        events: list[NotificationEvent] = []

        if appointment.status == AppointmentStatus.QUEUED:
            logger.info(
                "appointment_queued",
                appointment_id=str(appointment.id),
                slot=slot.lock_key,
                queue_position=appointment.queue_position,
            )
            message = (
                "This slot is in high demand! You've been added to the queue at position "
                f"{appointment.queue_position}. You'll be notified immediately if the slot "
                "becomes available."
            )
            events.append(
                NotificationEvent(
                    recipient_user_id=customer_id,
                    kind=NotificationKind.APPOINTMENT_QUEUED,
                    context={**context, "queue_position": appointment.queue_position},
                )
            )
        else:
            logger.info("appointment_admitted", appointment_id=str(appointment.id), slot=slot.lock_key)
            message = "Appointment request submitted. The agent will confirm your viewing shortly."
            if appointment.agent_id:
                events.append(
                    NotificationEvent(
                        recipient_user_id=appointment.agent_id,
                        kind=NotificationKind.APPOINTMENT_REQUESTED,
                        context={**context, "customer_id": str(customer_id)},
                    )
                )

        await self.notifier.dispatch_all(events)

        return BookingResponse(
            appointment=appointment,
            is_queued=appointment.status == AppointmentStatus.QUEUED,
            queue_position=appointment.queue_position,
            message=message,
        )

    async def _ensure_no_active_booking(
        self,
        customer_id: UUID,
        property_id: UUID,
        exclude_id: UUID | None = None,
    ) -> None:
        conditions = [
            appointments.c.property_id == property_id,
            appointments.c.customer_id == customer_id,
            appointments.c.status.in_(NON_TERMINAL_VALUES),
        ]
        if exclude_id is not None:
            conditions.append(appointments.c.id != exclude_id)

        stmt = select(appointments.c.id).where(and_(*conditions)).limit(1)
        if (await self.db.execute(stmt)).first() is not None:
            raise DuplicateActiveBookingException()

    # Status changes and reschedules

    async def update_appointment(
        self,
        user: ActingUser,
        appointment_id: UUID,
        data: AppointmentUpdate,
    ) -> AppointmentChangeResponse:
        """
        Apply a status change, a reschedule or a notes edit.

        Args:
            user: Authenticated caller
            appointment_id: Appointment to change
            data: Requested change

        Returns:
            Updated appointment and the promoted appointment, if any

        Raises:
            NotFoundException: If the appointment does not exist
            NotOwnerException, RoleNotPermittedException: If the gate denies
            InvalidTransitionException: If the state machine forbids the change
        """
        rescheduling = data.appointment_date is not None or data.appointment_time is not None

        async def _change() -> _ChangeOutcome:
            current = await self._get_row(appointment_id)
            old_slot = slot_of(current)

            if rescheduling:
                new_slot = resolve_slot_key(
                    current["property_id"],
                    data.appointment_date or current["appointment_date"],
                    data.appointment_time or current["appointment_time"],
                )
                await lock_slots(self.db, old_slot, new_slot)
            else:
                new_slot = None
                await lock_slots(self.db, old_slot)

            # The row may have moved between the first read and the lock
            current = await self._get_row(appointment_id)
            if slot_of(current) != old_slot:
                raise SlotStateConflict(f"Appointment {appointment_id} moved while locking")

            if new_slot is not None:
                outcome = await self._reschedule(user, current, new_slot, data.notes)
            elif data.status is not None:
                outcome = await self._change_status(user, current, data.status, data.notes)
            else:
                outcome = await self._edit_notes(user, current, data.notes)
            return outcome

        outcome = await run_slot_transaction(self.db, _change, operation_name="update_appointment")
        await self.notifier.dispatch_all(outcome.events)

        promoted = outcome.promoted
        return AppointmentChangeResponse(
            appointment=AppointmentResponse.model_validate(outcome.row),
            promoted_appointment_id=promoted["id"] if promoted else None,
            promoted_customer_id=promoted["customer_id"] if promoted else None,
            message=outcome.message,
        )

    async def _change_status(
        self,
        user: ActingUser,
        current: dict[str, Any],
        target: AppointmentStatus,
        notes: str | None,
    ) -> _ChangeOutcome:
        old_status = AppointmentStatus(current["status"])
        authorize_access(user, current).raise_for_denial()
        transition = STATUS_TRANSITIONS.get(target)
        if transition is None:
            raise InvalidTransitionException(
                f"Appointments cannot be set to {target.value} directly"
            )

        authorize_transition(user, current, transition).raise_for_denial()
        validate_status_change(old_status, target)

        now = utcnow()
        values: dict[str, Any] = {"status": target.value, "queue_position": None, "updated_at": now}
        if target == AppointmentStatus.CANCELLED:
            values["cancelled_at"] = now
        if target == AppointmentStatus.COMPLETED:
            values["completed_at"] = now
        if notes is not None:
            values["notes"] = notes

        row = await self._update_row(current["id"], values)
        slot = slot_of(current)

        logger.info(
            "appointment_status_changed",
            appointment_id=str(current["id"]),
            old_status=old_status.value,
            new_status=target.value,
            acting_user_id=str(user.id),
            acting_role=user.role.value,
        )

        property_status = await self.catalog.get_property_booking_status(slot.property_id)
        context = {**slot_context(slot, property_status), "appointment_id": str(current["id"])}
        events = [
            NotificationEvent(
                recipient_user_id=current["customer_id"],
                kind=STATUS_NOTIFICATIONS[target],
                context={**context, "old_status": old_status.value, "new_status": target.value},
            )
        ]
        if (
            target == AppointmentStatus.CANCELLED
            and current.get("agent_id")
            and user.id == current["customer_id"]
        ):
            events.append(
                NotificationEvent(
                    recipient_user_id=current["agent_id"],
                    kind=NotificationKind.CUSTOMER_CANCELLED,
                    context={**context, "customer_id": str(current["customer_id"])},
                )
            )

        promoted = None
        if old_status in ACTIVE_HOLDER_STATUSES and target in (
            AppointmentStatus.CANCELLED,
            AppointmentStatus.COMPLETED,
        ):
            promotion = await self.promotion.promote_next(slot)
            promoted = promotion.promoted
            events.extend(self._with_title(promotion.events, property_status))
        elif old_status == AppointmentStatus.QUEUED:
            await self.ledger.remove_and_compact(slot, current["queue_position"])

        return _ChangeOutcome(
            row=row,
            message=f"Appointment {target.value}.",
            promoted=promoted,
            events=events,
        )

    async def _reschedule(
        self,
        user: ActingUser,
        current: dict[str, Any],
        new_slot: SlotKey,
        notes: str | None,
    ) -> _ChangeOutcome:
        authorize_transition(user, current, Transition.RESCHEDULE).raise_for_denial()
        old_status = AppointmentStatus(current["status"])
        validate_reschedule(old_status)

        old_slot = slot_of(current)
        if new_slot == old_slot:
            raise InvalidTransitionException("Appointment is already booked for this slot")

        # Fresh admission for the new slot
        property_status = await self.catalog.get_property_booking_status(new_slot.property_id)
        availability = await self.availability.check(
            new_slot, property_status, exclude_id=current["id"]
        )
        if availability == SlotAvailability.BLOCKED:
            raise SlotBlockedException(
                f"The slot {new_slot.slot_date.isoformat()} {new_slot.slot_time.strftime('%H:%M')} "
                "is blocked for this property"
            )
        await self._ensure_no_active_booking(
            current["customer_id"], new_slot.property_id, exclude_id=current["id"]
        )

        if availability == SlotAvailability.OPEN:
            status, position = AppointmentStatus.PENDING, None
        else:
            status, position = AppointmentStatus.QUEUED, await self.ledger.next_position(new_slot)

        values: dict[str, Any] = {
            "appointment_date": new_slot.slot_date,
            "appointment_time": new_slot.slot_time,
            "booking_timestamp": utcnow(),
            "status": status.value,
            "queue_position": position,
            "updated_at": utcnow(),
        }
        if notes is not None:
            values["notes"] = notes
        row = await self._update_row(current["id"], values)

        logger.info(
            "appointment_rescheduled",
            appointment_id=str(current["id"]),
            old_slot=old_slot.lock_key,
            new_slot=new_slot.lock_key,
            new_status=status.value,
            queue_position=position,
        )

        # Release the old slot
        promoted = None
        events: list[NotificationEvent] = []
        if old_status in ACTIVE_HOLDER_STATUSES:
            promotion = await self.promotion.promote_next(old_slot)
            promoted = promotion.promoted
            events.extend(self._with_title(promotion.events, property_status))
        else:
            await self.ledger.remove_and_compact(old_slot, current["queue_position"])

        context = {
            **slot_context(new_slot, property_status),
            "appointment_id": str(current["id"]),
            "queue_position": position,
        }
        events.append(
            NotificationEvent(
                recipient_user_id=current["customer_id"],
                kind=NotificationKind.APPOINTMENT_RESCHEDULED,
                context=context,
            )
        )
        if status == AppointmentStatus.PENDING and current.get("agent_id"):
            events.append(
                NotificationEvent(
                    recipient_user_id=current["agent_id"],
                    kind=NotificationKind.APPOINTMENT_REQUESTED,
                    context={**context, "customer_id": str(current["customer_id"])},
                )
            )

        if status == AppointmentStatus.QUEUED:
            message = f"Appointment rescheduled and queued at position {position}."
        else:
            message = "Appointment rescheduled."
        return _ChangeOutcome(row=row, message=message, promoted=promoted, events=events)

    async def _edit_notes(
        self,
        user: ActingUser,
        current: dict[str, Any],
        notes: str | None,
    ) -> _ChangeOutcome:
        authorize_transition(user, current, Transition.EDIT_NOTES).raise_for_denial()
        row = await self._update_row(current["id"], {"notes": notes, "updated_at": utcnow()})
        return _ChangeOutcome(row=row, message="Appointment updated.")

    @staticmethod
    def _with_title(
        events: list[NotificationEvent],
        property_status: PropertyBookingStatus,
    ) -> list[NotificationEvent]:
        if not property_status.title:
            return events
        return [
            event.model_copy(update={"context": {**event.context, "property_title": property_status.title}})
            for event in events
        ]

    # Hard delete

    async def delete_appointment(self, user: ActingUser, appointment_id: UUID) -> None:
        """
        Permanently delete an appointment (admin only).

        Bypasses the state machine, but still promotes or compacts the
        slot's queue so its invariants survive the deletion.

        Raises:
            RoleNotPermittedException: If the caller is not an admin
            NotFoundException: If the appointment does not exist
        """
        if user.role != UserRole.ADMIN:
            raise RoleNotPermittedException("Only admins can delete appointments")

        async def _delete() -> list[NotificationEvent]:
            current = await self._get_row(appointment_id)
            slot = slot_of(current)
            await lock_slots(self.db, slot)

            current = await self._get_row(appointment_id)
            if slot_of(current) != slot:
                raise SlotStateConflict(f"Appointment {appointment_id} moved while locking")

            await self.db.execute(delete(appointments).where(appointments.c.id == appointment_id))
            logger.info(
                "appointment_deleted",
                appointment_id=str(appointment_id),
                status=current["status"],
                acting_user_id=str(user.id),
            )

            status = AppointmentStatus(current["status"])
            if status in ACTIVE_HOLDER_STATUSES:
                return (await self.promotion.promote_next(slot)).events
            if status == AppointmentStatus.QUEUED:
                await self.ledger.remove_and_compact(slot, current["queue_position"])
            return []

        events = await run_slot_transaction(self.db, _delete, operation_name="delete_appointment")
        await self.notifier.dispatch_all(events)

    # Queries

    async def get_appointment(self, user: ActingUser, appointment_id: UUID) -> AppointmentResponse:
        """
        Get appointment by ID, scoped to what the caller may see.

        Raises:
            NotFoundException: If appointment not found
            NotOwnerException: If a customer asks for someone else's appointment
            RoleNotPermittedException: If an agent asks for an unassigned appointment
        """
        row = await self._get_row(appointment_id)

        if user.role == UserRole.CUSTOMER and row["customer_id"] != user.id:
            raise NotOwnerException("Access denied to this appointment")
        if user.role == UserRole.AGENT and row["agent_id"] != user.id:
            raise RoleNotPermittedException("Access denied to this appointment")

        return AppointmentResponse.model_validate(row)

    async def list_appointments(
        self,
        user: ActingUser,
        filters: AppointmentFilters,
    ) -> AppointmentListResponse:
        """
        List appointments with filtering and pagination.

        Customers see their own bookings, agents the ones assigned to them,
        admins everything.
        """
        conditions: list[Any] = []
        if user.role == UserRole.CUSTOMER:
            conditions.append(appointments.c.customer_id == user.id)
        elif user.role == UserRole.AGENT:
            conditions.append(appointments.c.agent_id == user.id)

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)
        if filters.property_id:
            conditions.append(appointments.c.property_id == filters.property_id)
        if filters.from_date:
            conditions.append(appointments.c.appointment_date >= filters.from_date)
        if filters.to_date:
            conditions.append(appointments.c.appointment_date <= filters.to_date)

        where = and_(true(), *conditions)

        count_stmt = select(func.count()).select_from(appointments).where(where)
        total = (await self.db.execute(count_stmt)).scalar() or 0

        offset = (filters.page - 1) * filters.page_size
        stmt = (
            select(appointments)
            .where(where)
            .order_by(
                appointments.c.appointment_date.desc(),
                appointments.c.appointment_time.desc(),
                appointments.c.queue_position.asc(),
            )
            .limit(filters.page_size)
            .offset(offset)
        )
        rows = (await self.db.execute(stmt)).fetchall()

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=[AppointmentResponse.model_validate(dict(row._mapping)) for row in rows],
        )

    async def get_slot_queue(
        self,
        user: ActingUser,
        property_id: UUID,
        slot_date: str | date,
        slot_time: str | time,
    ) -> SlotQueueResponse:
        """
        Active holder and waiting queue of one slot.

        Raises:
            RoleNotPermittedException: If the caller is a customer, or an agent
                not assigned to the property
        """
        slot = resolve_slot_key(property_id, slot_date, slot_time)

        if user.role == UserRole.CUSTOMER:
            raise RoleNotPermittedException("Customers cannot view slot queues")
        if user.role == UserRole.AGENT:
            property_status = await self.catalog.get_property_booking_status(slot.property_id)
            if property_status.assigned_agent_id != user.id:
                raise RoleNotPermittedException("Agents can only view queues of their own properties")

        holder = await self.availability.get_active_holder(slot)
        queue = await self.ledger.list_queue(slot)

        return SlotQueueResponse(
            property_id=slot.property_id,
            appointment_date=slot.slot_date,
            appointment_time=slot.slot_time,
            holder=AppointmentResponse.model_validate(holder) if holder else None,
            queue=[AppointmentResponse.model_validate(row) for row in queue],
        )

    # Helpers

    async def _get_row(self, appointment_id: UUID) -> dict[str, Any]:
        row = (
            await self.db.execute(select(appointments).where(appointments.c.id == appointment_id))
        ).fetchone()
        if row is None:
            raise NotFoundException("Appointment not found")
        return dict(row._mapping)

    async def _update_row(self, appointment_id: UUID, values: dict[str, Any]) -> dict[str, Any]:
        result = await self.db.execute(
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(**values)
            .returning(appointments)
        )
        return dict(result.fetchone()._mapping)
