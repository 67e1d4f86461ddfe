"""
Job lifecycle automation

Actions taken automatically when a job's status, line items or payments
change. Functions mutate the model instances they are given and leave the
commit to the calling route.
"""
from decimal import Decimal, ROUND_HALF_UP
from datetime import timedelta
import logging

from fieldservice import db
from fieldservice.models.invoice import Invoice
from fieldservice.utils.helpers import utcnow, next_document_number, format_currency

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')

VALID_TRANSITIONS = {
    'draft': ['scheduled', 'cancelled'],
    'quote': ['scheduled', 'cancelled'],
    'scheduled': ['in_progress', 'cancelled'],
    'in_progress': ['completed'],
    'completed': [],  # moves to 'invoiced' only through generate_invoice
    'invoiced': [],
    'cancelled': [],
}

INVOICE_DUE_DAYS = 30


class InvalidTransition(Exception):
    pass


def _money(value):
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def change_job_status(job, new_status):
    """Validate and apply a status transition, stamping lifecycle timestamps"""
    if new_status not in VALID_TRANSITIONS.get(job.status, []):
        raise InvalidTransition(f'Invalid status transition from {job.status} to {new_status}')

    previous = job.status
    job.status = new_status
    if new_status == 'in_progress':
        job.started_at = utcnow()
    elif new_status == 'completed':
        job.completed_at = utcnow()

    logger.info(f"Job {job.job_number}: {previous} -> {new_status}")
    return job


def recalculate_job_totals(job, default_tax_rate=0.0):
    """Roll line item totals up into the job's subtotal, tax and total"""
    subtotal = sum((_money(item.total) for item in job.line_items), Decimal('0'))
    tax_rate = Decimal(str(job.tax_rate if job.tax_rate is not None else default_tax_rate))

    job.subtotal = subtotal
    job.tax = _money(subtotal * tax_rate)
    job.total = job.subtotal + job.tax
    update_payment_status(job)
    return job


def derive_payment_status(total, amount_paid):
    total = _money(total)
    amount_paid = _money(amount_paid)
    if amount_paid == 0:
        return 'unpaid'
    if amount_paid >= total:
        return 'paid'
    return 'partial'


def update_payment_status(job):
    new_status = derive_payment_status(job.total, job.amount_paid)
    if new_status != job.payment_status:
        logger.info(f"Job {job.job_number} payment status: {job.payment_status} -> {new_status}")
        job.payment_status = new_status
    return job.payment_status


def apply_payment(job, amount):
    job.amount_paid = _money(job.amount_paid) + _money(amount)
    return update_payment_status(job)


def generate_invoice(job):
    """Create a sent invoice from a completed job and mark the job invoiced"""
    if job.status != 'completed':
        raise InvalidTransition(f'Job {job.job_number} is not completed (current status: {job.status})')

    today = utcnow().date()
    invoice = Invoice(
        invoice_number=next_document_number(Invoice, Invoice.invoice_number, 'INV'),
        client_id=job.client_id,
        job_id=job.id,
        status='sent',
        issue_date=today,
        due_date=today + timedelta(days=INVOICE_DUE_DAYS),
        subtotal=job.subtotal,
        tax=job.tax,
        total=job.total,
        amount_paid=job.amount_paid,
        sent_at=utcnow()
    )
    db.session.add(invoice)

    job.status = 'invoiced'
    return invoice


def get_job_suggestions(job):
    """Manual next steps for a job given where it is in its lifecycle"""
    suggestions = []

    if job.status == 'quote':
        suggestions.append('Convert this quote to a scheduled job')
    if job.status == 'scheduled' and not job.service_date:
        suggestions.append('Set a service date for this scheduled job')
    if job.status == 'in_progress':
        suggestions.append('Mark this job as completed when work is finished')
    if job.status == 'completed':
        suggestions.append('Generate invoice for this completed job')
    if job.status == 'invoiced' and job.payment_status == 'unpaid':
        suggestions.append('Record payment when client pays')

    if job.payment_status == 'partial':
        remaining = _money(job.total) - _money(job.amount_paid)
        suggestions.append(f'Follow up on remaining balance: {format_currency(remaining)}')

    return suggestions
