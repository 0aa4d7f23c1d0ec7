"""
Recurring appointment service.

Creates a recurring series (a parent appointment plus its children) and
cancels all or part of a series.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from core.constants import MAX_RECURRING_COUNT, MIN_RECURRING_COUNT
from core.exceptions import SlotConflictError
from models import Appointment
from repositories import AppointmentRepository
from services.availability_service import AvailabilityService
from services.deletion_service import DeletionService
from services.invoice_service import InvoiceService
from services.recurrence_service import RecurrenceExpander
from shared_types.availability import Occurrence
from shared_types.scheduling import AppointmentCreate, DeletionResult
from shared_types.statuses import AppointmentStatus, RecurringFrequency
from utils.slot_locks import slot_locks

logger = logging.getLogger(__name__)


class RecurringAppointmentService:
    """
    Service class for recurring series.

    Every public method runs as a single transaction: either the whole series
    change is committed or nothing is.
    """

    @staticmethod
    def create_series(
        db: Session,
        data: AppointmentCreate,
        frequency: RecurringFrequency,
        count: int,
        group_invoices: bool = True,
        check_first_slot: bool = False,
        today: Optional[date] = None,
    ) -> List[Appointment]:
        """
        Create a recurring series of appointments.

        Every slot after the first is checked before anything is written. The
        first slot is the caller's responsibility unless check_first_slot is
        set, in which case it is checked under the same slot locks.

        A confirmed series gets one invoice anchored to the parent: grouped
        (one line per session, amount for every session) or ungrouped (one
        session billed, the others only mentioned in the notes).

        Args:
            db: Database session
            data: Patient, therapist, first slot and details shared by all sessions
            frequency: Spacing between sessions
            count: Number of sessions, first one included
            group_invoices: Bill the whole series through one grouped invoice
            check_first_slot: Also check the first slot before writing
            today: Invoice issue date, defaults to the clinic's current date

        Returns:
            The created appointments, parent first, in date order

        Raises:
            ValueError: If count is outside the allowed range
            SlotConflictError: If a checked slot is already taken
        """
        if count < MIN_RECURRING_COUNT or count > MAX_RECURRING_COUNT:
            raise ValueError(
                f"Recurring count must be between {MIN_RECURRING_COUNT} and {MAX_RECURRING_COUNT}"
            )

        occurrences = RecurrenceExpander.expand(data.date, data.time, frequency, count)
        slot_keys = [(data.therapist_id, occ.date, occ.time) for occ in occurrences]

        with slot_locks.hold(slot_keys):
            to_check = occurrences if check_first_slot else occurrences[1:]
            for occurrence in to_check:
                availability = AvailabilityService.check_availability(
                    db, data.therapist_id, occurrence.date, occurrence.time
                )
                if not availability.available:
                    conflict = availability.conflict
                    logger.warning(
                        f"Series creation aborted: slot {occurrence.date} {occurrence.time} "
                        f"for therapist {data.therapist_id} is taken"
                    )
                    raise SlotConflictError(
                        occurrence.date,
                        occurrence.time,
                        patient_name=conflict.patient_name if conflict else None,
                        patient_id=conflict.patient_id if conflict else None,
                        appointment_id=conflict.appointment_id if conflict else None,
                    )

            try:
                created = RecurringAppointmentService.persist_series(
                    db, data, occurrences, frequency, group_invoices, today
                )
                db.commit()
            except Exception:
                db.rollback()
                raise

        logger.info(
            f"Created {frequency.value} series {created[0].id} of {count} appointments "
            f"for patient {data.patient_id}"
        )
        return created

    @staticmethod
    def persist_series(
        db: Session,
        data: AppointmentCreate,
        occurrences: List[Occurrence],
        frequency: Optional[RecurringFrequency],
        group_invoices: bool,
        today: Optional[date],
    ) -> List[Appointment]:
        """
        Write a series whose slots have already been checked. Only flushes.

        The first occurrence becomes the parent. A None frequency stores an
        irregular series, as booked through several explicit slots.
        """
        appointments = AppointmentRepository(db)
        count = len(occurrences)

        parent = appointments.add(Appointment(
            patient_id=data.patient_id,
            therapist_id=data.therapist_id,
            date=occurrences[0].date,
            time=occurrences[0].time,
            status=data.status,
            duration=data.duration,
            type=data.type,
            notes=data.notes,
            is_recurring=True,
            recurring_frequency=frequency,
            recurring_count=count,
            parent_appointment_id=None,
            groups_invoice=group_invoices,
        ))
        appointments.record_status_change(parent.id, None, parent.status)

        bills = data.status == AppointmentStatus.CONFIRMED
        invoice = None
        if bills and not group_invoices:
            invoice = InvoiceService.generate_invoice(db, parent, today=today)

        created = [parent]
        for occurrence in occurrences[1:]:
            child = appointments.add(Appointment(
                patient_id=data.patient_id,
                therapist_id=data.therapist_id,
                date=occurrence.date,
                time=occurrence.time,
                status=data.status,
                duration=data.duration,
                type=data.type,
                notes=data.notes,
                is_recurring=True,
                recurring_frequency=frequency,
                recurring_count=None,
                parent_appointment_id=parent.id,
                groups_invoice=False,
            ))
            appointments.record_status_change(child.id, None, child.status)
            if invoice is not None:
                InvoiceService.append_session(db, invoice, child)
            created.append(child)

        if bills and group_invoices:
            # Generated once every session exists so the grouped amount covers them all
            InvoiceService.generate_invoice(db, parent, today=today)

        return created

    @staticmethod
    def cancel_series(db: Session, parent_id: int) -> DeletionResult:
        """
        Cancel a whole series: the parent and every child are deleted.

        Children already settled with the therapist are kept as standalone
        appointments.

        Raises:
            ValueError: If the appointment is not a series parent
        """
        logger.info(f"Cancelling series {parent_id}")
        return DeletionService.delete_series(db, parent_id)

    @staticmethod
    def cancel_series_from_date(db: Session, appointment_id: int) -> DeletionResult:
        """
        Cancel a series child and every member of its series dated on or after it.

        Raises:
            ValueError: If the appointment is not a series child
        """
        logger.info(f"Cancelling appointment {appointment_id} and the following ones")
        return DeletionService.delete_following(db, appointment_id)
