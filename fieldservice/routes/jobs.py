import logging

from flask import Blueprint, request, jsonify, current_app
from fieldservice import db
from fieldservice.models.client import Client
from fieldservice.models.job import Job, JobLineItem, JOB_PRIORITIES
from fieldservice.models.billing_event import BillingEvent
from fieldservice.utils.helpers import (
    missing_fields, error_response, paginated_response, parse_uuid, parse_date,
    parse_datetime, parse_decimal, next_document_number
)
from fieldservice.utils.job_automation import (
    InvalidTransition, change_job_status, recalculate_job_totals, apply_payment, generate_invoice,
    get_job_suggestions
)

bp = Blueprint('jobs', __name__)
logger = logging.getLogger(__name__)

INITIAL_STATUSES = ('draft', 'quote', 'scheduled')

UPDATABLE_FIELDS = [
    'title', 'description', 'service_type', 'estimated_duration_minutes', 'notes'
]

def _decimal(value, field):
    try:
        return parse_decimal(value)
    except ValueError:
        raise ValueError(f'Invalid {field}')

def _job_detail(job):
    job_dict = job.to_dict()
    job_dict['line_items'] = [item.to_dict() for item in job.line_items]
    job_dict['client'] = {
        'id': str(job.client.id),
        'name': job.client.full_name
    }
    if job.property:
        job_dict['property'] = job.property.to_dict()
    return job_dict

@bp.route('/', methods=['GET'])
def get_jobs():
    """Get all jobs with filters"""
    status = request.args.get('status')
    client_id = request.args.get('client_id')
    payment_status = request.args.get('payment_status')

    query = Job.query
    if status:
        query = query.filter_by(status=status)
    if client_id:
        try:
            query = query.filter_by(client_id=parse_uuid(client_id))
        except ValueError:
            return error_response('Invalid client_id')
    if payment_status:
        query = query.filter_by(payment_status=payment_status)

    return paginated_response(query.order_by(Job.created_at.desc()), 'jobs')

@bp.route('/<uuid:job_id>', methods=['GET'])
def get_job(job_id):
    """Get job by ID, including line items"""
    job = Job.query.get_or_404(job_id)
    return jsonify(_job_detail(job)), 200

@bp.route('/', methods=['POST'])
def create_job():
    """
    Create a new job
    ---
    tags:
      - Jobs
    requestBody:
      required: true
      content:
        application/json:
          schema:
            type: object
            required:
              - client_id
              - title
            properties:
              client_id:
                type: string
                format: uuid
              property_id:
                type: string
                format: uuid
              title:
                type: string
              service_type:
                type: string
              priority:
                type: string
                enum: [low, normal, high, emergency]
              service_date:
                type: string
                format: date
              status:
                type: string
                enum: [draft, quote, scheduled]
              tax_rate:
                type: number
    responses:
      201:
        description: Job created with a generated job number
      400:
        description: Missing or invalid fields
      404:
        description: Client not found
    """
    data = request.get_json() or {}

    missing = missing_fields(data, ['client_id', 'title'])
    if missing:
        return error_response(f"Missing required fields: {', '.join(missing)}")

    try:
        client_id = parse_uuid(data['client_id'])
        property_id = parse_uuid(data.get('property_id'))
        lead_id = parse_uuid(data.get('lead_id'))
        service_date = parse_date(data.get('service_date'))
        tax_rate = _decimal(data['tax_rate'], 'tax_rate') if data.get('tax_rate') is not None else None
    except ValueError as e:
        return error_response(str(e) or 'Invalid request data')

    if not db.session.get(Client, client_id):
        return error_response('Client not found', 404)

    status = data.get('status', 'quote')
    if status not in INITIAL_STATUSES:
        return error_response(f"Jobs can only be created as {', '.join(INITIAL_STATUSES)}")

    priority = data.get('priority', 'normal')
    if priority not in JOB_PRIORITIES:
        return error_response('Invalid priority')

    job = Job(
        job_number=next_document_number(Job, Job.job_number, 'JOB'),
        client_id=client_id,
        property_id=property_id,
        lead_id=lead_id,
        title=data['title'],
        description=data.get('description'),
        service_type=data.get('service_type'),
        priority=priority,
        service_date=service_date,
        estimated_duration_minutes=data.get('estimated_duration_minutes', 60),
        status=status,
        tax_rate=tax_rate,
        subtotal=0,
        tax=0,
        total=0,
        amount_paid=0,
        payment_status='unpaid',
        notes=data.get('notes')
    )

    db.session.add(job)
    db.session.commit()

    logger.info(f"Created job {job.job_number} for client {client_id}")
    return jsonify(job.to_dict()), 201

@bp.route('/<uuid:job_id>', methods=['PUT'])
def update_job(job_id):
    """Update job details (status changes go through /status)"""
    job = Job.query.get_or_404(job_id)
    data = request.get_json() or {}

    for field in UPDATABLE_FIELDS:
        if field in data:
            setattr(job, field, data[field])

    try:
        if 'service_date' in data:
            job.service_date = parse_date(data['service_date'])
        if 'property_id' in data:
            job.property_id = parse_uuid(data['property_id'])
        if 'priority' in data:
            if data['priority'] not in JOB_PRIORITIES:
                raise ValueError('Invalid priority')
            job.priority = data['priority']
        if 'tax_rate' in data:
            job.tax_rate = _decimal(data['tax_rate'], 'tax_rate') if data['tax_rate'] is not None else None
            recalculate_job_totals(job, current_app.config.get('DEFAULT_TAX_RATE', 0.0))
    except ValueError as e:
        db.session.rollback()
        return error_response(str(e) or 'Invalid request data')

    db.session.commit()
    return jsonify(job.to_dict()), 200

@bp.route('/<uuid:job_id>/status', methods=['PUT'])
def update_job_status(job_id):
    """
    Move a job through its lifecycle
    ---
    tags:
      - Jobs
    parameters:
      - in: path
        name: job_id
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
            required:
              - status
            properties:
              status:
                type: string
                enum: [scheduled, in_progress, completed, cancelled]
    responses:
      200:
        description: Status updated
      400:
        description: Missing status
      409:
        description: Transition not allowed from the current status
    """
    job = Job.query.get_or_404(job_id)
    data = request.get_json() or {}

    new_status = data.get('status')
    if not new_status:
        return error_response('Missing required fields: status')

    try:
        change_job_status(job, new_status)
    except InvalidTransition as e:
        return error_response(str(e), 409)

    db.session.commit()
    return jsonify(job.to_dict()), 200

@bp.route('/<uuid:job_id>/line-items', methods=['POST'])
def add_line_item(job_id):
    """Add a line item and recalculate job totals"""
    job = Job.query.get_or_404(job_id)
    data = request.get_json() or {}

    missing = missing_fields(data, ['description', 'unit_price'])
    if missing:
        return error_response(f"Missing required fields: {', '.join(missing)}")

    try:
        quantity = _decimal(data.get('quantity', 1), 'quantity')
        unit_price = _decimal(data['unit_price'], 'unit_price')
    except ValueError as e:
        return error_response(str(e))

    item = JobLineItem(
        description=data['description'],
        item_type=data.get('item_type', 'labor'),
        quantity=quantity,
        unit_price=unit_price,
        total=quantity * unit_price
    )
    job.line_items.append(item)
    db.session.flush()

    recalculate_job_totals(job, current_app.config.get('DEFAULT_TAX_RATE', 0.0))
    db.session.commit()

    return jsonify({
        'line_item': item.to_dict(),
        'job': job.to_dict()
    }), 201

@bp.route('/<uuid:job_id>/line-items/<uuid:item_id>', methods=['DELETE'])
def delete_line_item(job_id, item_id):
    """Remove a line item and recalculate job totals"""
    job = Job.query.get_or_404(job_id)
    item = JobLineItem.query.filter_by(id=item_id, job_id=job.id).first_or_404()

    db.session.delete(item)
    db.session.flush()

    recalculate_job_totals(job, current_app.config.get('DEFAULT_TAX_RATE', 0.0))
    db.session.commit()

    return jsonify(job.to_dict()), 200

@bp.route('/<uuid:job_id>/payments', methods=['POST'])
def record_job_payment(job_id):
    """Record a payment against a job"""
    job = Job.query.get_or_404(job_id)
    data = request.get_json() or {}

    if data.get('amount') in (None, ''):
        return error_response('Missing required fields: amount')
    try:
        amount = _decimal(data['amount'], 'amount')
        occurred_at = parse_datetime(data.get('occurred_at'))
    except ValueError as e:
        return error_response(str(e))
    if amount <= 0:
        return error_response('Payment amount must be positive')

    event = BillingEvent(
        job_id=job.id,
        event_type='payment',
        amount=amount,
        method=data.get('method'),
        reference=data.get('reference'),
        notes=data.get('notes')
    )
    if occurred_at:
        event.occurred_at = occurred_at
    db.session.add(event)

    apply_payment(job, amount)
    db.session.commit()

    return jsonify({
        'billing_event': event.to_dict(),
        'job': job.to_dict()
    }), 201

@bp.route('/<uuid:job_id>/invoice', methods=['POST'])
def create_job_invoice(job_id):
    """Generate an invoice from a completed job"""
    job = Job.query.get_or_404(job_id)

    try:
        invoice = generate_invoice(job)
    except InvalidTransition as e:
        return error_response(str(e), 409)

    db.session.commit()
    logger.info(f"Invoiced job {job.job_number} as {invoice.invoice_number}")
    return jsonify(invoice.to_dict()), 201

@bp.route('/<uuid:job_id>/suggestions', methods=['GET'])
def get_suggestions(job_id):
    """
    Suggested next manual actions for a job
    ---
    tags:
      - Jobs
    parameters:
      - in: path
        name: job_id
        required: true
        schema:
          type: string
          format: uuid
    responses:
      200:
        description: Suggestions based on job status and payment status
        content:
          application/json:
            schema:
              type: object
              properties:
                job_id:
                  type: string
                suggestions:
                  type: array
                  items:
                    type: string
      404:
        description: Job not found
    """
    job = Job.query.get_or_404(job_id)
    return jsonify({
        'job_id': str(job.id),
        'suggestions': get_job_suggestions(job)
    }), 200

@bp.route('/<uuid:job_id>', methods=['DELETE'])
def delete_job(job_id):
    """Delete job"""
    job = Job.query.get_or_404(job_id)
    db.session.delete(job)
    db.session.commit()
    return jsonify({'message': 'Job deleted'}), 200
