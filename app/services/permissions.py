"""Appointment state machine and role-aware permission gate.

Both are pure: they look at values only and never touch the database, so
the whole authorization policy can be exercised without a session.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from app.core.exceptions import (
    AppException,
    InvalidTransitionException,
    NotOwnerException,
    RoleNotPermittedException,
)
from app.schemas.appointments import AppointmentStatus
from app.schemas.users import ActingUser, UserRole


class Transition(str, Enum):
    """Changes a caller can request on an existing appointment."""

    CONFIRM = "confirm"
    COMPLETE = "complete"
    CANCEL = "cancel"
    RESCHEDULE = "reschedule"
    EDIT_NOTES = "edit_notes"


class DenialReason(str, Enum):
    """Why the permission gate refused a request."""

    NOT_OWNER = "NotOwner"
    ROLE_NOT_PERMITTED = "RoleNotPermitted"
    ALREADY_TERMINAL = "AlreadyTerminal"


TERMINAL_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED})
ACTIVE_HOLDER_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})
NON_TERMINAL_STATUSES = frozenset(
    {AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, AppointmentStatus.QUEUED}
)

# Status changes reachable through the permission-gated update path.
# queued -> confirmed is missing on purpose: only promotion does that.
ALLOWED_STATUS_CHANGES: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.QUEUED: frozenset({AppointmentStatus.CANCELLED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}

STATUS_TRANSITIONS: dict[AppointmentStatus, Transition] = {
    AppointmentStatus.CONFIRMED: Transition.CONFIRM,
    AppointmentStatus.COMPLETED: Transition.COMPLETE,
    AppointmentStatus.CANCELLED: Transition.CANCEL,
}

# Decision table: which transitions each non-admin role may request
ROLE_TRANSITIONS: dict[UserRole, frozenset[Transition]] = {
    UserRole.CUSTOMER: frozenset({Transition.CANCEL, Transition.EDIT_NOTES}),
    UserRole.AGENT: frozenset(
        {
            Transition.CONFIRM,
            Transition.COMPLETE,
            Transition.CANCEL,
            Transition.RESCHEDULE,
            Transition.EDIT_NOTES,
        }
    ),
}


@dataclass(frozen=True)
class PermissionDecision:
    """Result of the permission gate."""

    allowed: bool
    reason: DenialReason | None = None
    detail: str | None = None

    @classmethod
    def allow(cls) -> "PermissionDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenialReason, detail: str) -> "PermissionDecision":
        return cls(allowed=False, reason=reason, detail=detail)

    def raise_for_denial(self) -> None:
        """Convert a denial into the matching application exception."""
        if self.allowed:
            return
        exc: AppException
        if self.reason == DenialReason.NOT_OWNER:
            exc = NotOwnerException(self.detail or "You do not own this appointment")
        elif self.reason == DenialReason.ALREADY_TERMINAL:
            exc = InvalidTransitionException(self.detail or "Appointment is already closed")
        else:
            exc = RoleNotPermittedException(self.detail or "Your role does not permit this action")
        raise exc


def _as_uuid(value: Any) -> UUID | None:
    if value is None or isinstance(value, UUID):
        return value
    return UUID(str(value))


def authorize_access(user: ActingUser, appointment: dict[str, Any]) -> PermissionDecision:
    """
    Decide whether ``user`` may act on ``appointment`` at all.

    Admins reach every appointment, agents only those assigned to them and
    customers only their own. Runs before any check that would reveal the
    appointment's state.
    """
    if user.role == UserRole.ADMIN:
        return PermissionDecision.allow()

    if user.role == UserRole.AGENT:
        if _as_uuid(appointment.get("agent_id")) != user.id:
            return PermissionDecision.deny(
                DenialReason.ROLE_NOT_PERMITTED,
                "Agents can only manage appointments assigned to them",
            )
    elif user.role == UserRole.CUSTOMER:
        if _as_uuid(appointment.get("customer_id")) != user.id:
            return PermissionDecision.deny(
                DenialReason.NOT_OWNER,
                "You can only manage your own appointments",
            )
    else:
        return PermissionDecision.deny(DenialReason.ROLE_NOT_PERMITTED, "Unknown role")

    return PermissionDecision.allow()


def authorize_transition(
    user: ActingUser,
    appointment: dict[str, Any],
    transition: Transition,
) -> PermissionDecision:
    """
    Decide whether ``user`` may request ``transition`` on ``appointment``.

    Args:
        user: Authenticated caller
        appointment: Appointment row mapping (needs status, customer_id, agent_id)
        transition: Requested change

    Returns:
        Allow, or deny with a reason
    """
    access = authorize_access(user, appointment)
    if not access.allowed or user.role == UserRole.ADMIN:
        return access

    if transition not in ROLE_TRANSITIONS.get(user.role, frozenset()):
        return PermissionDecision.deny(
            DenialReason.ROLE_NOT_PERMITTED,
            f"{user.role.value.capitalize()}s cannot {transition.value.replace('_', ' ')} appointments",
        )

    status = AppointmentStatus(appointment["status"])
    # Staff may still annotate closed appointments; customers may not touch them
    closed_to_user = transition != Transition.EDIT_NOTES or user.role == UserRole.CUSTOMER
    if status in TERMINAL_STATUSES and closed_to_user:
        return PermissionDecision.deny(
            DenialReason.ALREADY_TERMINAL,
            f"Appointment is already {status.value}",
        )

    return PermissionDecision.allow()


def validate_status_change(current: AppointmentStatus, target: AppointmentStatus) -> None:
    """
    Check a status change against the state machine.

    Raises:
        InvalidTransitionException: If ``target`` is not reachable from ``current``
    """
    if target not in ALLOWED_STATUS_CHANGES[current]:
        raise InvalidTransitionException(
            f"Cannot change appointment status from {current.value} to {target.value}"
        )


def validate_reschedule(current: AppointmentStatus) -> None:
    """Only non-terminal appointments can move to another slot."""
    if current not in NON_TERMINAL_STATUSES:
        raise InvalidTransitionException(f"Cannot reschedule a {current.value} appointment")
