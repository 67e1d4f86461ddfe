from decimal import Decimal
from datetime import timedelta
import logging

from flask import Blueprint, request, jsonify
from fieldservice import db
from fieldservice.models.client import Client
from fieldservice.models.invoice import Invoice, INVOICE_STATUSES
from fieldservice.models.billing_event import BillingEvent
from fieldservice.utils.helpers import (
    missing_fields, error_response, paginated_response, parse_uuid, parse_date,
    parse_decimal, next_document_number, utcnow
)
from fieldservice.utils.job_automation import apply_payment, INVOICE_DUE_DAYS

bp = Blueprint('invoices', __name__)
logger = logging.getLogger(__name__)

@bp.route('/', methods=['GET'])
def get_invoices():
    """
    Get invoices
    ---
    tags:
      - Invoices
    parameters:
      - in: query
        name: status
        schema:
          type: string
          enum: [draft, sent, paid, overdue, void]
        description: Filter by invoice status
      - in: query
        name: client_id
        schema:
          type: string
        description: Filter by client ID
    responses:
      200:
        description: Paginated list of invoices
        content:
          application/json:
            schema:
              type: object
              properties:
                invoices:
                  type: array
                  items:
                    type: object
                total:
                  type: integer
    """
    status = request.args.get('status')
    client_id = request.args.get('client_id')

    query = Invoice.query
    if status:
        query = query.filter_by(status=status)
    if client_id:
        try:
            query = query.filter_by(client_id=parse_uuid(client_id))
        except ValueError:
            return error_response('Invalid client_id')

    return paginated_response(query.order_by(Invoice.created_at.desc()), 'invoices')

@bp.route('/<uuid:invoice_id>', methods=['GET'])
def get_invoice(invoice_id):
    """Get invoice by ID, with its payments"""
    invoice = Invoice.query.get_or_404(invoice_id)
    invoice_dict = invoice.to_dict()
    invoice_dict['payments'] = [event.to_dict() for event in invoice.billing_events]
    return jsonify(invoice_dict), 200

@bp.route('/', methods=['POST'])
def create_invoice():
    """
    Create an invoice manually
    ---
    tags:
      - Invoices
    requestBody:
      required: true
      content:
        application/json:
          schema:
            type: object
            required:
              - client_id
              - total
            properties:
              client_id:
                type: string
                format: uuid
              job_id:
                type: string
                format: uuid
              subtotal:
                type: number
              tax:
                type: number
              total:
                type: number
              due_date:
                type: string
                format: date
              notes:
                type: string
    responses:
      201:
        description: Draft invoice created
      400:
        description: Missing or invalid fields
      404:
        description: Client not found
    """
    data = request.get_json() or {}

    missing = missing_fields(data, ['client_id', 'total'])
    if missing:
        return error_response(f"Missing required fields: {', '.join(missing)}")

    try:
        client_id = parse_uuid(data['client_id'])
        job_id = parse_uuid(data.get('job_id'))
        total = parse_decimal(data['total'])
        tax = parse_decimal(data.get('tax', 0))
        subtotal = parse_decimal(data['subtotal']) if data.get('subtotal') is not None else total - tax
        issue_date = parse_date(data.get('issue_date')) or utcnow().date()
        due_date = parse_date(data.get('due_date')) or issue_date + timedelta(days=INVOICE_DUE_DAYS)
    except ValueError:
        return error_response('Invalid request data')

    if not db.session.get(Client, client_id):
        return error_response('Client not found', 404)

    invoice = Invoice(
        invoice_number=next_document_number(Invoice, Invoice.invoice_number, 'INV'),
        client_id=client_id,
        job_id=job_id,
        status='draft',
        issue_date=issue_date,
        due_date=due_date,
        subtotal=subtotal,
        tax=tax,
        total=total,
        amount_paid=0,
        notes=data.get('notes')
    )

    db.session.add(invoice)
    db.session.commit()

    return jsonify(invoice.to_dict()), 201

@bp.route('/<uuid:invoice_id>', methods=['PUT'])
def update_invoice(invoice_id):
    """
    Update invoice
    ---
    tags:
      - Invoices
    parameters:
      - in: path
        name: invoice_id
        required: true
        schema:
          type: string
          format: uuid
    requestBody:
      required: true
      content:
        application/json:
          schema:
            type: object
            properties:
              status:
                type: string
                enum: [draft, sent, paid, overdue, void]
              due_date:
                type: string
                format: date
              notes:
                type: string
    responses:
      200:
        description: Invoice updated
      400:
        description: Invalid status
    """
    invoice = Invoice.query.get_or_404(invoice_id)
    data = request.get_json() or {}

    if 'status' in data:
        if data['status'] not in INVOICE_STATUSES:
            return error_response(f"Invalid status. Must be one of: {', '.join(INVOICE_STATUSES)}")
        invoice.status = data['status']

    try:
        if 'due_date' in data:
            invoice.due_date = parse_date(data['due_date'])
        for field in ('subtotal', 'tax', 'total'):
            if field in data:
                setattr(invoice, field, parse_decimal(data[field]))
    except ValueError:
        db.session.rollback()
        return error_response('Invalid request data')

    if 'notes' in data:
        invoice.notes = data['notes']

    db.session.commit()
    return jsonify(invoice.to_dict()), 200

@bp.route('/<uuid:invoice_id>/send', methods=['POST'])
def send_invoice(invoice_id):
    """Mark a draft invoice as sent"""
    invoice = Invoice.query.get_or_404(invoice_id)

    if invoice.status not in ('draft', 'sent'):
        return error_response(f'Cannot send an invoice with status {invoice.status}', 409)

    invoice.status = 'sent'
    invoice.sent_at = utcnow()
    db.session.commit()

    logger.info(f"Invoice {invoice.invoice_number} sent")
    return jsonify(invoice.to_dict()), 200

@bp.route('/<uuid:invoice_id>/payments', methods=['POST'])
def record_invoice_payment(invoice_id):
    """Record a payment; the invoice becomes paid once the balance reaches zero"""
    invoice = Invoice.query.get_or_404(invoice_id)
    data = request.get_json() or {}

    if invoice.status == 'void':
        return error_response('Cannot record a payment on a void invoice', 409)

    if data.get('amount') in (None, ''):
        return error_response('Missing required fields: amount')
    try:
        amount = parse_decimal(data['amount'])
    except ValueError:
        return error_response('Invalid amount')
    if amount <= 0:
        return error_response('Payment amount must be positive')

    event = BillingEvent(
        invoice_id=invoice.id,
        job_id=invoice.job_id,
        event_type='payment',
        amount=amount,
        method=data.get('method'),
        reference=data.get('reference'),
        notes=data.get('notes')
    )
    db.session.add(event)

    invoice.amount_paid = Decimal(str(invoice.amount_paid or 0)) + amount
    if invoice.amount_paid >= Decimal(str(invoice.total or 0)):
        invoice.status = 'paid'
        invoice.paid_at = utcnow()

    # Keep the job's payment status in step with its invoice
    if invoice.job:
        apply_payment(invoice.job, amount)

    db.session.commit()

    return jsonify({
        'billing_event': event.to_dict(),
        'invoice': invoice.to_dict()
    }), 201
