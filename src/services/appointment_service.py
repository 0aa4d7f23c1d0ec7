"""
Appointment service for single appointments and status changes.

Status changes cascade: a series parent carries its children along, invoices
follow their appointment's status, and cancelling part of a grouped series
shrinks the grouped invoice.
"""

import dataclasses
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from core.constants import MAX_RECURRING_COUNT
from core.exceptions import NotFoundError, ScopeRequiredError, SlotConflictError
from core.sentinels import is_set
from models import Appointment
from repositories import AppointmentRepository
from services.availability_service import AvailabilityService
from services.invoice_service import InvoiceService, session_note
from services.recurring_appointment_service import RecurringAppointmentService
from shared_types.availability import Occurrence
from shared_types.scheduling import AppointmentCreate, AppointmentPatch, StatusChangeResult
from shared_types.statuses import AppointmentStatus, CancellationScope, InvoiceStatus
from utils.slot_locks import slot_locks

logger = logging.getLogger(__name__)

PARENT_SCOPES = [CancellationScope.OCCURRENCE, CancellationScope.SERIES]
CHILD_SCOPES = [CancellationScope.OCCURRENCE, CancellationScope.FOLLOWING]


def _crosses_cancel(old: AppointmentStatus, new: AppointmentStatus) -> bool:
    return (old == AppointmentStatus.CANCELLED) != (new == AppointmentStatus.CANCELLED)


class AppointmentService:
    """
    Service class for appointment operations.

    Contains the business logic for creating, editing and changing the status
    of appointments. Recurring series creation lives in
    RecurringAppointmentService.
    """

    @staticmethod
    def get_appointment(db: Session, appointment_id: int) -> Appointment:
        """
        Raises:
            NotFoundError: If the appointment does not exist
        """
        appointment = AppointmentRepository(db).get(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        return appointment

    @staticmethod
    def list_appointments(
        db: Session,
        therapist_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Appointment]:
        return AppointmentRepository(db).list(
            therapist_id=therapist_id,
            patient_id=patient_id,
            start_date=start_date,
            end_date=end_date,
        )

    @staticmethod
    def _ensure_available(
        db: Session,
        therapist_id: int,
        slot_date: date,
        slot_time,
        exclude_appointment_id: Optional[int] = None,
    ) -> None:
        availability = AvailabilityService.check_availability(
            db, therapist_id, slot_date, slot_time, exclude_appointment_id=exclude_appointment_id
        )
        if availability.available:
            return
        conflict = availability.conflict
        logger.warning(f"Slot {slot_date} {slot_time} for therapist {therapist_id} is taken")
        raise SlotConflictError(
            slot_date,
            slot_time,
            patient_name=conflict.patient_name if conflict else None,
            patient_id=conflict.patient_id if conflict else None,
            appointment_id=conflict.appointment_id if conflict else None,
        )

    @staticmethod
    def create_single_appointment(
        db: Session,
        data: AppointmentCreate,
        today: Optional[date] = None,
    ) -> Appointment:
        """
        Create a standalone appointment.

        A confirmed appointment gets its invoice straight away.

        Raises:
            SlotConflictError: If the slot is already taken
        """
        with slot_locks.hold([(data.therapist_id, data.date, data.time)]):
            AppointmentService._ensure_available(db, data.therapist_id, data.date, data.time)

            appointments = AppointmentRepository(db)
            try:
                appointment = appointments.add(Appointment(
                    patient_id=data.patient_id,
                    therapist_id=data.therapist_id,
                    date=data.date,
                    time=data.time,
                    status=data.status,
                    duration=data.duration,
                    type=data.type,
                    notes=data.notes,
                    is_recurring=False,
                ))
                appointments.record_status_change(appointment.id, None, appointment.status)
                if appointment.status == AppointmentStatus.CONFIRMED:
                    InvoiceService.generate_invoice(db, appointment, today=today)
                db.commit()
            except Exception:
                db.rollback()
                raise

        logger.info(f"Created appointment {appointment.id} for patient {data.patient_id}")
        return appointment

    @staticmethod
    def create_multiple(
        db: Session,
        data: AppointmentCreate,
        slots: List[Occurrence],
        group_invoices: bool = True,
        today: Optional[date] = None,
    ) -> List[Appointment]:
        """
        Book one patient with one therapist on several explicit slots.

        Every slot is checked under the slot locks before anything is written;
        one taken slot aborts the whole booking. Several slots are stored as an
        irregular series (earliest slot as parent, no frequency) so that they
        share a grouped invoice and the usual series cancellation and deletion
        rules. A single slot is a plain appointment.

        Args:
            db: Database session
            data: Patient, therapist and shared details; its date and time are
                replaced by the slots
            slots: The requested slots, in any order
            group_invoices: Bill the sessions through one grouped invoice
            today: Invoice issue date, defaults to the clinic's current date

        Returns:
            The created appointments in date order

        Raises:
            ValueError: If there are no slots, too many, or the same slot twice
            SlotConflictError: If any slot is already taken
        """
        if not slots:
            raise ValueError("At least one slot is required")
        if len(slots) > MAX_RECURRING_COUNT:
            raise ValueError(f"At most {MAX_RECURRING_COUNT} slots can be booked at once")

        ordered = sorted(slots, key=lambda s: (s.date, s.time))
        if len({(s.date, s.time) for s in ordered}) != len(ordered):
            raise ValueError("The same slot is requested more than once")

        first = dataclasses.replace(data, date=ordered[0].date, time=ordered[0].time)
        if len(ordered) == 1:
            return [AppointmentService.create_single_appointment(db, first, today=today)]

        with slot_locks.hold([(data.therapist_id, s.date, s.time) for s in ordered]):
            for slot in ordered:
                AppointmentService._ensure_available(db, data.therapist_id, slot.date, slot.time)

            try:
                created = RecurringAppointmentService.persist_series(
                    db, first, ordered, None, group_invoices, today
                )
                db.commit()
            except Exception:
                db.rollback()
                raise

        logger.info(
            f"Booked {len(created)} slots as series {created[0].id} for patient {data.patient_id}"
        )
        return created

    @staticmethod
    def _require_scope(
        appointment: Appointment,
        scope: Optional[CancellationScope],
    ) -> Optional[CancellationScope]:
        """Validate the scope of a cancellation. Returns None for standalone appointments."""
        if appointment.is_series_parent:
            allowed = PARENT_SCOPES
        elif appointment.is_series_child:
            allowed = CHILD_SCOPES
        else:
            return None
        if scope is None or scope not in allowed:
            raise ScopeRequiredError(appointment.id, [s.value for s in allowed])
        return scope

    @staticmethod
    def change_status(
        db: Session,
        appointment_id: int,
        new_status: AppointmentStatus,
        scope: Optional[CancellationScope] = None,
        today: Optional[date] = None,
    ) -> StatusChangeResult:
        """
        Change an appointment's status and apply the cascades.

        Args:
            db: Database session
            appointment_id: Appointment to change
            new_status: Target status
            scope: Required when cancelling a member of a recurring series
            today: Issue date for any invoice generated on the way

        Returns:
            StatusChangeResult listing the appointments whose status changed,
            or the deletion outcome for SERIES/FOLLOWING cancellations

        Raises:
            NotFoundError: If the appointment does not exist
            ScopeRequiredError: If a series member is cancelled without a valid scope
        """
        appointment = AppointmentService.get_appointment(db, appointment_id)

        if new_status == AppointmentStatus.CANCELLED:
            scope = AppointmentService._require_scope(appointment, scope)
            if scope == CancellationScope.SERIES:
                deletion = RecurringAppointmentService.cancel_series(db, appointment.id)
                return StatusChangeResult(
                    appointment_id=appointment_id,
                    status=new_status,
                    deletion=deletion,
                )
            if scope == CancellationScope.FOLLOWING:
                deletion = RecurringAppointmentService.cancel_series_from_date(db, appointment.id)
                return StatusChangeResult(
                    appointment_id=appointment_id,
                    status=new_status,
                    deletion=deletion,
                )

        try:
            result = AppointmentService._apply_status(db, appointment, new_status, today)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return result

    @staticmethod
    def _apply_status(
        db: Session,
        appointment: Appointment,
        new_status: AppointmentStatus,
        today: Optional[date],
    ) -> StatusChangeResult:
        appointments = AppointmentRepository(db)
        old_status = appointment.status
        updated: List[int] = []
        crossed_cancel = _crosses_cancel(old_status, new_status)

        if old_status != new_status:
            appointment.status = new_status
            appointments.record_status_change(appointment.id, old_status, new_status)
            updated.append(appointment.id)
            logger.info(
                f"Appointment {appointment.id} status {old_status.value} -> {new_status.value}"
            )

        if appointment.is_series_parent and new_status != AppointmentStatus.CANCELLED:
            # Every child follows the parent, cancelled ones included
            propagated: List[int] = []
            for child in appointments.find_by_parent_id(appointment.id):
                if child.status == new_status:
                    continue
                previous = child.status
                crossed_cancel = crossed_cancel or _crosses_cancel(previous, new_status)
                child.status = new_status
                appointments.record_status_change(child.id, previous, new_status)
                propagated.append(child.id)
            if propagated:
                logger.info(
                    f"Propagated {new_status.value} to {len(propagated)} appointment(s) "
                    f"of series {appointment.id}"
                )
            updated.extend(propagated)

        invoice = InvoiceService.resolve_invoice(db, appointment)

        if invoice is None:
            if (
                new_status in (AppointmentStatus.CONFIRMED, AppointmentStatus.PENDING)
                and appointment.parent_appointment_id is None
            ):
                invoice = InvoiceService.generate_invoice(db, appointment, today=today)
        elif invoice.is_grouped:
            if crossed_cancel:
                InvoiceService.reconcile_series(db, invoice.appointment_id)
            if appointment.is_series_parent and new_status != AppointmentStatus.CANCELLED:
                InvoiceService.apply_appointment_status(db, invoice, new_status)
        elif invoice.appointment_id == appointment.id:
            InvoiceService.apply_appointment_status(db, invoice, new_status)

        return StatusChangeResult(
            appointment_id=appointment.id,
            status=new_status,
            updated_appointment_ids=updated,
            invoice_id=invoice.id if invoice is not None else None,
        )

    @staticmethod
    def update_appointment(
        db: Session,
        appointment_id: int,
        patch: AppointmentPatch,
        scope: Optional[CancellationScope] = None,
        today: Optional[date] = None,
    ) -> Appointment:
        """
        Edit an appointment.

        Moving the appointment re-checks the target slot, ignoring the
        appointment itself. A status in the patch goes through the same
        cascades as change_status; cancelling a series member here only
        accepts the OCCURRENCE scope, wider cancellations go through
        change_status.

        Raises:
            NotFoundError: If the appointment does not exist
            SlotConflictError: If the target slot is taken
            ScopeRequiredError: If a series member is cancelled without the OCCURRENCE scope
        """
        appointment = AppointmentService.get_appointment(db, appointment_id)

        if is_set(patch.status) and patch.status == AppointmentStatus.CANCELLED:
            if appointment.is_series_parent or appointment.is_series_child:
                if scope != CancellationScope.OCCURRENCE:
                    raise ScopeRequiredError(appointment.id, [CancellationScope.OCCURRENCE.value])

        therapist_id = patch.therapist_id if is_set(patch.therapist_id) else appointment.therapist_id
        new_date = patch.date if is_set(patch.date) else appointment.date
        new_time = patch.time if is_set(patch.time) else appointment.time
        moved = patch.moves_slot() and (therapist_id, new_date, new_time) != (
            appointment.therapist_id, appointment.date, appointment.time
        )

        lock_keys = [(therapist_id, new_date, new_time)] if moved else []
        with slot_locks.hold(lock_keys):
            if moved:
                AppointmentService._ensure_available(
                    db, therapist_id, new_date, new_time, exclude_appointment_id=appointment.id
                )

            try:
                appointment.therapist_id = therapist_id
                appointment.date = new_date
                appointment.time = new_time
                if is_set(patch.duration):
                    appointment.duration = patch.duration
                if is_set(patch.type):
                    appointment.type = patch.type
                if is_set(patch.notes):
                    appointment.notes = patch.notes
                db.flush()

                if moved:
                    AppointmentService._refresh_invoice_after_move(db, appointment)
                if is_set(patch.status):
                    AppointmentService._apply_status(db, appointment, patch.status, today)
                db.commit()
            except Exception:
                db.rollback()
                raise

        logger.info(f"Updated appointment {appointment.id}")
        return appointment

    @staticmethod
    def _refresh_invoice_after_move(db: Session, appointment: Appointment) -> None:
        invoice = InvoiceService.resolve_invoice(db, appointment)
        if invoice is None:
            return
        if invoice.is_grouped:
            InvoiceService.reconcile_series(db, invoice.appointment_id)
        elif (
            invoice.appointment_id == appointment.id
            and not appointment.is_series_parent
            and invoice.status != InvoiceStatus.PAID
        ):
            invoice.notes = session_note(appointment)
            db.flush()
