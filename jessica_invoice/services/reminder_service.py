"""Payment reminders for sent and overdue invoices."""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Dict, Any

from ..models.invoice import Invoice, InvoiceStatus


@dataclass
class Reminder:
    """A notice that should be shown to the user about one invoice."""

    identifier: str
    invoice_id: str
    kind: str  # "due_soon" or "overdue"
    title: str
    body: str
    days_to_due: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "invoice_id": self.invoice_id,
            "kind": self.kind,
            "title": self.title,
            "body": self.body,
            "days_to_due": self.days_to_due,
        }


def days_to_due(invoice: Invoice, now: datetime) -> int:
    """Whole calendar days from ``now`` to the due date; negative when late."""
    return (invoice.due_date.date() - now.date()).days


def pending_reminders(
    invoices: Iterable[Invoice],
    days_before: int = 3,
    now: Optional[datetime] = None
) -> List[Reminder]:
    """
    Reminders for unpaid invoices.

    Sent invoices due within ``days_before`` days get a due-soon reminder;
    overdue ones get an overdue notice. Drafts, paid and cancelled invoices
    get nothing.
    """
    now = now or datetime.now()
    reminders = []

    for invoice in invoices:
        if invoice.status not in (InvoiceStatus.SENT, InvoiceStatus.OVERDUE):
            continue

        remaining = days_to_due(invoice, now)
        if invoice.is_overdue(now):
            reminders.append(Reminder(
                identifier=f"overdue_{invoice.id}",
                invoice_id=invoice.id,
                kind="overdue",
                title="Förfallen faktura",
                body=f"Faktura {invoice.number} till {invoice.client.name} har passerat förfallodatum",
                days_to_due=remaining,
            ))
        elif remaining <= days_before:
            reminders.append(Reminder(
                identifier=f"invoice_reminder_{invoice.id}",
                invoice_id=invoice.id,
                kind="due_soon",
                title="Faktura förfaller snart",
                body=f"Faktura {invoice.number} till {invoice.client.name} förfaller om {remaining} dagar",
                days_to_due=remaining,
            ))

    return sorted(reminders, key=lambda reminder: reminder.days_to_due)
