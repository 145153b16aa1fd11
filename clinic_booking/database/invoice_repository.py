"""Invoice repository: invoices, line items and payment status."""

import logging
import sqlite3
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum

from clinic_booking.errors import InvalidReference, ValidationError, translate_integrity_error
from clinic_booking.validation import InvoiceFields, InvoiceItemFields, validate

from .connection import get_connection, transaction

logger = logging.getLogger(__name__)


class InvoiceStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    CANCELLED = "Cancelled"


@dataclass
class Invoice:
    id: str | None
    patient_id: str
    issue_date: str
    due_date: str
    total_amount: float
    appointment_id: str | None = None
    paid_amount: float = 0.0
    status: InvoiceStatus = InvoiceStatus.PENDING
    payment_method: str | None = None
    payment_date: str | None = None


@dataclass
class InvoiceItem:
    id: str | None
    invoice_id: str
    description: str
    unit_price: float
    quantity: int = 1
    discount: float = 0.0


class InvoiceRepository:
    """Repository for invoices and their line items."""

    def create_invoice(self, invoice: Invoice) -> Invoice:
        """Create an invoice. Rejects a due date earlier than the issue date."""
        fields = validate(InvoiceFields, asdict(invoice))

        invoice.id = invoice.id or str(uuid.uuid4())
        invoice.issue_date = fields.issue_date.isoformat()
        invoice.due_date = fields.due_date.isoformat()
        invoice.total_amount = round(fields.total_amount, 2)
        invoice.paid_amount = round(fields.paid_amount, 2)

        conn = get_connection()
        try:
            conn.execute(
                """INSERT INTO invoices
                   (id, appointment_id, patient_id, issue_date, due_date,
                    total_amount, paid_amount, status, payment_method, payment_date)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    invoice.id, invoice.appointment_id, invoice.patient_id,
                    invoice.issue_date, invoice.due_date, invoice.total_amount,
                    invoice.paid_amount, invoice.status.value, invoice.payment_method,
                    invoice.payment_date,
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        finally:
            conn.close()
        return invoice

    def get_by_id(self, invoice_id: str, conn: sqlite3.Connection | None = None) -> Invoice | None:
        """Get an invoice by ID, optionally inside an open transaction."""
        own_conn = conn is None
        if own_conn:
            conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM invoices WHERE id = ?", (invoice_id,)).fetchone()
        finally:
            if own_conn:
                conn.close()
        return self._row_to_invoice(row) if row else None

    def _pending(self, conn: sqlite3.Connection, invoice_id: str) -> Invoice:
        """Load an invoice that must exist and still be Pending."""
        invoice = self.get_by_id(invoice_id, conn=conn)
        if invoice is None:
            raise InvalidReference(f"Invoice {invoice_id} does not exist")
        if invoice.status != InvoiceStatus.PENDING:
            raise ValidationError(f"Invoice {invoice_id} is {invoice.status.value}")
        return invoice

    def add_item(self, item: InvoiceItem) -> InvoiceItem:
        """Add a line item to a pending invoice. Quantity must be positive."""
        fields = validate(InvoiceItemFields, asdict(item))
        item.id = item.id or str(uuid.uuid4())
        item.description = fields.description
        item.quantity = fields.quantity
        item.unit_price = round(fields.unit_price, 2)
        item.discount = round(fields.discount, 2)

        try:
            with transaction() as conn:
                self._pending(conn, item.invoice_id)
                conn.execute(
                    """INSERT INTO invoice_items (id, invoice_id, description, quantity, unit_price, discount)
                       VALUES (?, ?, ?, ?, ?, ?)""",
                    (item.id, item.invoice_id, item.description, item.quantity, item.unit_price, item.discount),
                )
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        return item

    def items_for(self, invoice_id: str) -> list[InvoiceItem]:
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM invoice_items WHERE invoice_id = ? ORDER BY rowid", (invoice_id,)
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_item(row) for row in rows]

    def record_payment(self, invoice_id: str, amount: float, payment_method: str) -> Invoice:
        """Add a payment to an invoice; it becomes Paid once the total is covered.

        The read and the update share one write transaction, so concurrent
        payments on the same invoice add up instead of overwriting each other.
        """
        if amount <= 0:
            raise ValidationError("Payment amount must be positive")

        with transaction() as conn:
            invoice = self._pending(conn, invoice_id)
            paid = round(invoice.paid_amount + amount, 2)
            status = InvoiceStatus.PAID if paid >= invoice.total_amount else InvoiceStatus.PENDING
            now = datetime.now().isoformat(sep=" ", timespec="seconds")
            conn.execute(
                """UPDATE invoices
                   SET paid_amount = ?, status = ?, payment_method = ?, payment_date = ?
                   WHERE id = ?""",
                (paid, status.value, payment_method, now, invoice_id),
            )

        logger.info("Recorded payment of %.2f on invoice %s (%s)", amount, invoice_id, status.value)
        return self.get_by_id(invoice_id)

    def cancel(self, invoice_id: str) -> Invoice:
        """Cancel a pending invoice."""
        with transaction() as conn:
            self._pending(conn, invoice_id)
            conn.execute(
                "UPDATE invoices SET status = ? WHERE id = ?", (InvoiceStatus.CANCELLED.value, invoice_id)
            )
        return self.get_by_id(invoice_id)

    def _row_to_invoice(self, row) -> Invoice:
        """Convert a database row to an Invoice object."""
        return Invoice(
            id=row["id"],
            patient_id=row["patient_id"],
            issue_date=row["issue_date"],
            due_date=row["due_date"],
            total_amount=row["total_amount"],
            appointment_id=row["appointment_id"],
            paid_amount=row["paid_amount"] or 0.0,
            status=InvoiceStatus(row["status"]),
            payment_method=row["payment_method"],
            payment_date=row["payment_date"],
        )

    def _row_to_item(self, row) -> InvoiceItem:
        return InvoiceItem(
            id=row["id"],
            invoice_id=row["invoice_id"],
            description=row["description"],
            unit_price=row["unit_price"],
            quantity=row["quantity"],
            discount=row["discount"] or 0.0,
        )
