"""Helper utility functions"""
import uuid
from decimal import Decimal, InvalidOperation
from datetime import datetime, date, timezone

from flask import request, current_app, jsonify
from dateutil import parser as date_parser


def utcnow():
    return datetime.now(timezone.utc)


def ensure_utc(value):
    """
    Treat naive datetimes as UTC.

    PostgreSQL hands back aware datetimes; SQLite drops the offset.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_uuid(value):
    """Parse a UUID string; raises ValueError for malformed input"""
    if value is None or value == '':
        return None
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


def parse_datetime(value):
    """Parse an ISO-8601 (or similar) datetime string into an aware UTC datetime"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(date_parser.isoparse(value.replace('Z', '+00:00')))


def parse_date(value):
    """Parse a date string (YYYY-MM-DD or a full timestamp) into a date"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date_parser.isoparse(value).date()


def parse_decimal(value):
    """Parse a numeric request value into a finite Decimal; raises ValueError otherwise"""
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f'Invalid number: {value!r}')
    if not number.is_finite():
        raise ValueError(f'Invalid number: {value!r}')
    return number


def missing_fields(data, required):
    """Names of required fields that are absent or blank in a request body"""
    return [field for field in required if data.get(field) in (None, '')]


def error_response(message, status=400):
    return jsonify({'error': message}), status


def validate_coordinates(lat, lng):
    """Validate latitude and longitude values"""
    if lat is None or lng is None:
        return False
    if not (-90 <= lat <= 90) or not (-180 <= lng <= 180):
        return False
    return True


def next_document_number(model, column, prefix):
    """
    Next sequential human-readable number for jobs, invoices and estimates,
    e.g. JOB-00042. Counts up from the highest numeric suffix still in use
    for the prefix, so deleting a document never leads to a duplicate.
    """
    highest = 0
    rows = model.query.with_entities(column).filter(column.like(f'{prefix}-%')).all()
    for (number,) in rows:
        suffix = number[len(prefix) + 1:]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f'{prefix}-{highest + 1:05d}'


def paginated_response(query, key):
    """Paginate a query from ?page/&per_page and build the list envelope"""
    page = max(request.args.get('page', 1, type=int), 1)
    per_page = max(request.args.get('per_page', current_app.config.get('ITEMS_PER_PAGE', 20), type=int), 1)

    pagination = query.paginate(page=page, per_page=per_page, error_out=False)

    return jsonify({
        key: [item.to_dict() for item in pagination.items],
        'total': pagination.total,
        'page': page,
        'per_page': per_page,
        'pages': pagination.pages
    }), 200


def format_currency(amount):
    return f'${float(amount or 0):,.2f}'
