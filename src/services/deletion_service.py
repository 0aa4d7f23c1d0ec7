"""
Deletion guard for appointments.

Nothing that has been paid to a therapist may disappear. An appointment whose
invoice carries a therapist payment is never deleted, and deleting a series
parent leaves its protected children in place as standalone appointments.
"""

import logging
from typing import Callable, Dict, List, Set

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.constants import (
    ALREADY_SETTLED_MESSAGE,
    APPOINTMENT_NOT_FOUND_MESSAGE,
    REASON_ALREADY_SETTLED,
    REASON_NOT_FOUND,
)
from models import Appointment
from repositories import AppointmentRepository, InvoiceRepository, PaymentRepository
from services.invoice_service import InvoiceService
from shared_types.scheduling import DeletionResult
from utils.db_errors import is_payment_fk_violation

logger = logging.getLogger(__name__)


def _not_found() -> DeletionResult:
    return DeletionResult(
        success=False, reason=REASON_NOT_FOUND, message=APPOINTMENT_NOT_FOUND_MESSAGE
    )


def _already_settled() -> DeletionResult:
    return DeletionResult(
        success=False, reason=REASON_ALREADY_SETTLED, message=ALREADY_SETTLED_MESSAGE
    )


class DeletionService:
    """
    Service class for guarded appointment deletion.

    The public methods each run as one transaction. The underscored helpers
    only flush, so the recurring-series service can compose them.
    """

    @staticmethod
    def delete_appointment(db: Session, appointment_id: int) -> DeletionResult:
        """
        Delete an appointment and its invoices, unless a therapist has been paid for it.

        Args:
            db: Database session
            appointment_id: Appointment to delete

        Returns:
            DeletionResult. ``success`` is False with reason "not_found" or
            "already_settled"; a series parent may succeed while listing
            protected children in ``skipped_appointment_ids``.
        """
        return DeletionService.run_guarded(
            db, lambda: DeletionService._delete(db, appointment_id)
        )

    @staticmethod
    def delete_many(db: Session, appointment_ids: List[int]) -> Dict[int, DeletionResult]:
        """
        Delete several appointments, each in its own transaction.

        One refusal does not stop the others. An id already removed earlier in
        the same call, such as the child of a parent listed before it, counts
        as deleted.

        Returns:
            The outcome per distinct id, in request order
        """
        outcomes: Dict[int, DeletionResult] = {}
        removed: Set[int] = set()
        for appointment_id in appointment_ids:
            if appointment_id in outcomes:
                continue
            if appointment_id in removed:
                outcomes[appointment_id] = DeletionResult(success=True)
                continue
            result = DeletionService.delete_appointment(db, appointment_id)
            removed.update(result.deleted_appointment_ids)
            outcomes[appointment_id] = result

        failed = [i for i, r in outcomes.items() if not r.success]
        if failed:
            logger.warning(f"Bulk deletion refused for appointments {failed}")
        logger.info(f"Bulk deletion: {len(outcomes) - len(failed)} of {len(outcomes)} succeeded")
        return outcomes

    @staticmethod
    def delete_series(db: Session, parent_id: int) -> DeletionResult:
        """
        Delete a whole recurring series through its parent.

        Raises:
            ValueError: If the appointment exists but is not a series parent
        """
        appointment = AppointmentRepository(db).get(parent_id)
        if appointment is None:
            return _not_found()
        if not appointment.is_series_parent:
            raise ValueError(f"Appointment {parent_id} is not the parent of a recurring series")
        return DeletionService.run_guarded(
            db, lambda: DeletionService._delete(db, parent_id)
        )

    @staticmethod
    def delete_following(db: Session, appointment_id: int) -> DeletionResult:
        """
        Delete a series child and every later member of its series.

        Members protected by a therapist payment are skipped. If the
        triggering appointment itself is protected nothing is deleted.

        Raises:
            ValueError: If the appointment is not a series child
        """
        appointment = AppointmentRepository(db).get(appointment_id)
        if appointment is None:
            return _not_found()
        if not appointment.is_series_child:
            raise ValueError(f"Appointment {appointment_id} is not a child of a recurring series")
        return DeletionService.run_guarded(
            db, lambda: DeletionService._delete_following(db, appointment)
        )

    @staticmethod
    def run_guarded(db: Session, operation: Callable[[], DeletionResult]) -> DeletionResult:
        """
        Run a deletion in one transaction.

        A violation of the payment foreign key means a payment slipped in
        concurrently; it is reported as "already settled". Any other error
        propagates after rollback.
        """
        try:
            result = operation()
            if result.success:
                db.commit()
            else:
                db.rollback()
            return result
        except IntegrityError as e:
            db.rollback()
            if is_payment_fk_violation(e):
                logger.warning(f"Deletion refused by payment foreign key: {e.orig}")
                return _already_settled()
            raise
        except Exception:
            db.rollback()
            raise

    @staticmethod
    def _is_protected(db: Session, appointment_id: int) -> bool:
        """True if any invoice anchored to the appointment has a therapist payment."""
        payments = PaymentRepository(db)
        return any(
            payments.has_payment(invoice.id)
            for invoice in InvoiceRepository(db).find_all_by_appointment_id(appointment_id)
        )

    @staticmethod
    def _delete_row(db: Session, appointment: Appointment) -> None:
        invoices = InvoiceRepository(db)
        for invoice in invoices.find_all_by_appointment_id(appointment.id):
            invoices.delete(invoice)
        AppointmentRepository(db).delete(appointment)

    @staticmethod
    def _delete(db: Session, appointment_id: int) -> DeletionResult:
        appointments = AppointmentRepository(db)
        appointment = appointments.get(appointment_id)
        if appointment is None:
            return _not_found()

        if DeletionService._is_protected(db, appointment.id):
            logger.warning(f"Refused deletion of settled appointment {appointment.id}")
            return _already_settled()

        if appointment.is_series_parent:
            return DeletionService._delete_parent(db, appointment)

        parent_id = appointment.parent_appointment_id
        DeletionService._delete_row(db, appointment)
        logger.info(f"Deleted appointment {appointment_id}")

        if parent_id is not None:
            InvoiceService.reconcile_series(db, parent_id)
        return DeletionResult(success=True, deleted_appointment_ids=[appointment_id])

    @staticmethod
    def _delete_parent(db: Session, parent: Appointment) -> DeletionResult:
        appointments = AppointmentRepository(db)
        deleted: List[int] = []
        skipped: List[int] = []

        for child in appointments.find_by_parent_id(parent.id):
            if DeletionService._is_protected(db, child.id):
                # Keep the settled session, without a dangling parent reference
                appointments.detach_from_series(child)
                skipped.append(child.id)
                continue
            DeletionService._delete_row(db, child)
            deleted.append(child.id)

        DeletionService._delete_row(db, parent)
        deleted.append(parent.id)

        if skipped:
            logger.warning(
                f"Deleted series {parent.id}; kept settled appointments {skipped} as standalone"
            )
        else:
            logger.info(f"Deleted series {parent.id} ({len(deleted)} appointments)")
        return DeletionResult(
            success=True,
            deleted_appointment_ids=deleted,
            skipped_appointment_ids=skipped,
        )

    @staticmethod
    def _delete_following(db: Session, appointment: Appointment) -> DeletionResult:
        if DeletionService._is_protected(db, appointment.id):
            logger.warning(f"Refused deletion of settled appointment {appointment.id}")
            return _already_settled()

        parent_id = appointment.parent_appointment_id
        members = AppointmentRepository(db).find_series_from_date(parent_id, appointment.date)

        result = DeletionResult(success=True)
        for member in members:
            if member.is_series_parent:
                continue
            if DeletionService._is_protected(db, member.id):
                result.skipped_appointment_ids.append(member.id)
                continue
            result = result.merge(DeletionService._delete(db, member.id))

        logger.info(
            f"Deleted {len(result.deleted_appointment_ids)} appointment(s) of series {parent_id} "
            f"from {appointment.date}"
        )
        return result
