from decimal import Decimal, ROUND_HALF_UP
import logging

from flask import Blueprint, request, jsonify
from fieldservice import db
from fieldservice.models.job import Job
from fieldservice.models.time_entry import TimeEntry
from fieldservice.utils.helpers import (
    missing_fields, error_response, paginated_response, parse_uuid, parse_datetime,
    parse_decimal, ensure_utc, utcnow
)

bp = Blueprint('time_entries', __name__)
logger = logging.getLogger(__name__)

CENT = Decimal('0.01')

@bp.route('/', methods=['GET'])
def get_time_entries():
    """Get time entries with filters"""
    status = request.args.get('status')
    technician = request.args.get('technician')
    job_id = request.args.get('job_id')

    query = TimeEntry.query
    if status:
        query = query.filter_by(status=status)
    if technician:
        query = query.filter(TimeEntry.technician_name.ilike(f'%{technician}%'))
    if job_id:
        try:
            query = query.filter_by(job_id=parse_uuid(job_id))
        except ValueError:
            return error_response('Invalid job_id')

    return paginated_response(query.order_by(TimeEntry.start_time.desc()), 'time_entries')

@bp.route('/<uuid:entry_id>', methods=['GET'])
def get_time_entry(entry_id):
    """Get time entry by ID"""
    entry = TimeEntry.query.get_or_404(entry_id)
    return jsonify(entry.to_dict()), 200

@bp.route('/clock-in', methods=['POST'])
def clock_in():
    """
    Start a time entry
    ---
    tags:
      - Time Entries
    requestBody:
      required: true
      content:
        application/json:
          schema:
            type: object
            required:
              - technician_name
            properties:
              technician_name:
                type: string
              job_id:
                type: string
                format: uuid
              hourly_rate:
                type: number
              start_time:
                type: string
                format: date-time
                description: Defaults to now
    responses:
      201:
        description: Time entry started
      409:
        description: Technician already clocked in
    """
    data = request.get_json() or {}

    missing = missing_fields(data, ['technician_name'])
    if missing:
        return error_response(f"Missing required fields: {', '.join(missing)}")

    try:
        job_id = parse_uuid(data.get('job_id'))
        start_time = parse_datetime(data.get('start_time')) or utcnow()
        hourly_rate = parse_decimal(data['hourly_rate']) if data.get('hourly_rate') is not None else None
    except ValueError:
        return error_response('Invalid request data')

    if job_id and not db.session.get(Job, job_id):
        return error_response('Job not found', 404)

    open_entry = TimeEntry.query.filter_by(
        technician_name=data['technician_name'],
        status='active'
    ).first()
    if open_entry:
        return error_response('Technician is already clocked in', 409)

    entry = TimeEntry(
        job_id=job_id,
        technician_name=data['technician_name'],
        start_time=start_time,
        hourly_rate=hourly_rate,
        status='active',
        notes=data.get('notes')
    )

    db.session.add(entry)
    db.session.commit()

    return jsonify(entry.to_dict()), 201

@bp.route('/<uuid:entry_id>/clock-out', methods=['POST'])
def clock_out(entry_id):
    """Close a time entry and compute hours and amount"""
    entry = TimeEntry.query.get_or_404(entry_id)
    data = request.get_json(silent=True) or {}

    if entry.status != 'active':
        return error_response('Time entry is not active', 409)

    try:
        end_time = parse_datetime(data.get('end_time')) or utcnow()
    except ValueError:
        return error_response('Invalid end_time')

    start_time = ensure_utc(entry.start_time)
    if end_time <= start_time:
        return error_response('end_time must be after start_time')

    total_hours = (Decimal(str((end_time - start_time).total_seconds())) / Decimal('3600')).quantize(CENT, rounding=ROUND_HALF_UP)
    if data.get('billable_hours') is not None:
        try:
            billable_hours = parse_decimal(data['billable_hours']).quantize(CENT, rounding=ROUND_HALF_UP)
        except ValueError:
            return error_response('Invalid billable_hours')
        if billable_hours < 0:
            return error_response('billable_hours cannot be negative')
    else:
        billable_hours = total_hours

    entry.end_time = end_time
    entry.total_hours = total_hours
    entry.billable_hours = billable_hours
    if entry.hourly_rate is not None:
        entry.total_amount = (billable_hours * Decimal(str(entry.hourly_rate))).quantize(CENT, rounding=ROUND_HALF_UP)
    entry.status = 'completed'
    if data.get('notes'):
        entry.notes = data['notes']

    db.session.commit()
    logger.info(f"{entry.technician_name} clocked out after {total_hours} hours")

    return jsonify(entry.to_dict()), 200

@bp.route('/<uuid:entry_id>/approve', methods=['POST'])
def approve_time_entry(entry_id):
    """Approve a completed time entry"""
    return _review(entry_id, 'approved')

@bp.route('/<uuid:entry_id>/reject', methods=['POST'])
def reject_time_entry(entry_id):
    """Reject a completed time entry"""
    return _review(entry_id, 'rejected')

def _review(entry_id, status):
    entry = TimeEntry.query.get_or_404(entry_id)
    data = request.get_json(silent=True) or {}

    if entry.status != 'completed':
        return error_response('Only completed time entries can be reviewed', 409)

    entry.status = status
    entry.approval_notes = data.get('notes')
    if status == 'approved':
        entry.approved_at = utcnow()

    db.session.commit()
    return jsonify(entry.to_dict()), 200
