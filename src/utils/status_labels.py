"""
Translation between canonical enum values and the clinic's French labels.

Older clients and imported data send French labels ("Confirmé", "Payée",
"Mensuel") or English variants ("canceled", "annual"). They are accepted here,
at the boundary, and turned into the canonical enums.
"""

import unicodedata
from enum import Enum
from typing import Dict, Type, TypeVar, Union

from shared_types.statuses import (
    AppointmentStatus,
    CancellationScope,
    InvoiceStatus,
    RecurringFrequency,
)

E = TypeVar("E", bound=Enum)


def _normalize(value: str) -> str:
    """Lower-case, strip accents and collapse separators: "À payer" -> "a_payer"."""
    decomposed = unicodedata.normalize("NFKD", value.strip().lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return "_".join(stripped.replace("-", " ").split())


APPOINTMENT_STATUS_SYNONYMS: Dict[str, AppointmentStatus] = {
    "confirme": AppointmentStatus.CONFIRMED,
    "en_attente": AppointmentStatus.PENDING,
    "termine": AppointmentStatus.COMPLETED,
    "annule": AppointmentStatus.CANCELLED,
    "canceled": AppointmentStatus.CANCELLED,
}

INVOICE_STATUS_SYNONYMS: Dict[str, InvoiceStatus] = {
    "en_attente": InvoiceStatus.PENDING,
    "a_payer": InvoiceStatus.TO_BE_PAID,
    "payee": InvoiceStatus.PAID,
    "annulee": InvoiceStatus.CANCELLED,
    "canceled": InvoiceStatus.CANCELLED,
}

FREQUENCY_SYNONYMS: Dict[str, RecurringFrequency] = {
    "hebdomadaire": RecurringFrequency.WEEKLY,
    "bimensuel": RecurringFrequency.BIWEEKLY,
    "mensuel": RecurringFrequency.MONTHLY,
    "annuel": RecurringFrequency.YEARLY,
    "annual": RecurringFrequency.YEARLY,
}

APPOINTMENT_STATUS_LABELS: Dict[AppointmentStatus, str] = {
    AppointmentStatus.PENDING: "En attente",
    AppointmentStatus.CONFIRMED: "Confirmé",
    AppointmentStatus.COMPLETED: "Terminé",
    AppointmentStatus.CANCELLED: "Annulé",
}

INVOICE_STATUS_LABELS: Dict[InvoiceStatus, str] = {
    InvoiceStatus.PENDING: "En attente",
    InvoiceStatus.TO_BE_PAID: "À payer",
    InvoiceStatus.PAID: "Payée",
    InvoiceStatus.CANCELLED: "Annulée",
}

FREQUENCY_LABELS: Dict[RecurringFrequency, str] = {
    RecurringFrequency.WEEKLY: "hebdomadaire",
    RecurringFrequency.BIWEEKLY: "bimensuel",
    RecurringFrequency.MONTHLY: "mensuel",
    RecurringFrequency.YEARLY: "annuel",
}


def _parse(value: Union[str, E], enum_cls: Type[E], synonyms: Dict[str, E]) -> E:
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid {enum_cls.__name__}: {value!r}")

    key = _normalize(value)
    for member in enum_cls:
        if member.value == key:
            return member
    if key in synonyms:
        return synonyms[key]
    raise ValueError(f"Invalid {enum_cls.__name__}: {value!r}")


def parse_appointment_status(value: Union[str, AppointmentStatus]) -> AppointmentStatus:
    """
    Parse an appointment status from its canonical value or a locale synonym.

    Raises:
        ValueError: If the value is not recognised
    """
    return _parse(value, AppointmentStatus, APPOINTMENT_STATUS_SYNONYMS)


def parse_invoice_status(value: Union[str, InvoiceStatus]) -> InvoiceStatus:
    """Parse an invoice status; raises ValueError if unrecognised."""
    return _parse(value, InvoiceStatus, INVOICE_STATUS_SYNONYMS)


def parse_frequency(value: Union[str, RecurringFrequency]) -> RecurringFrequency:
    """Parse a recurring frequency; raises ValueError if unrecognised."""
    return _parse(value, RecurringFrequency, FREQUENCY_SYNONYMS)


def parse_scope(value: Union[str, CancellationScope]) -> CancellationScope:
    return _parse(value, CancellationScope, {})


def appointment_status_label(status: AppointmentStatus) -> str:
    return APPOINTMENT_STATUS_LABELS[status]


def invoice_status_label(status: InvoiceStatus) -> str:
    return INVOICE_STATUS_LABELS[status]


def frequency_label(frequency: RecurringFrequency) -> str:
    """Lower-case French label, as used inside invoice notes."""
    return FREQUENCY_LABELS[frequency]
