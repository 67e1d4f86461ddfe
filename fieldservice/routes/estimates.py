from decimal import Decimal

from flask import Blueprint, request, jsonify, current_app
from fieldservice import db
from fieldservice.models.client import Client
from fieldservice.models.estimate import Estimate, ESTIMATE_STATUSES
from fieldservice.utils.helpers import (
    missing_fields, error_response, paginated_response, parse_uuid, parse_date,
    parse_decimal, next_document_number, utcnow
)
from fieldservice.utils.pricing import (
    PricingError, ServiceItemNotFound, load_pricebook, get_service_item, get_all_service_items,
    get_service_categories, get_pricing_rules, calculate_estimate
)

bp = Blueprint('estimates', __name__)

def _line_items_total(line_items):
    total = Decimal('0')
    for item in line_items:
        total += parse_decimal(item.get('quantity', 1)) * parse_decimal(item.get('unit_price', 0))
    return total

def _pricebook():
    return load_pricebook(current_app.config.get('PRICEBOOK_PATH'))

def _priced_line(item):
    return {
        'service_id': item['service_id'],
        'code': item['code'],
        'name': item['name'],
        'quantity': float(item['quantity']),
        'tier': item['tier'],
        'labor_portion': float(item['labor_portion']),
        'materials_portion': float(item['materials_portion']),
        'line_total': float(item['line_total'])
    }

@bp.route('/pricebook', methods=['GET'])
def get_pricebook():
    """
    Flat-rate pricebook
    ---
    tags:
      - Estimates
    parameters:
      - in: query
        name: id
        schema:
          type: string
        description: Service item id or code; returns just that item
      - in: query
        name: section
        schema:
          type: string
          enum: [items, categories, rules]
    responses:
      200:
        description: Pricebook items, categories and pricing rules
      400:
        description: Unknown section
      404:
        description: Service item not found
    """
    pricebook = _pricebook()

    identifier = request.args.get('id')
    if identifier:
        item = get_service_item(int(identifier) if identifier.isdigit() else identifier, pricebook)
        if not item:
            return error_response(f'Service item not found: {identifier}', 404)
        return jsonify(item), 200

    sections = {
        'items': get_all_service_items(pricebook),
        'categories': get_service_categories(pricebook),
        'rules': get_pricing_rules(pricebook)
    }
    section = request.args.get('section')
    if section:
        if section not in sections:
            return error_response(f"Invalid section. Must be one of: {', '.join(sections)}")
        return jsonify(sections[section]), 200
    return jsonify(sections), 200

@bp.route('/price', methods=['POST'])
def price_estimate():
    """
    Price line items from the flat-rate pricebook
    ---
    tags:
      - Estimates
    requestBody:
      required: true
      content:
        application/json:
          schema:
            type: object
            required:
              - line_items
            properties:
              line_items:
                type: array
                items:
                  type: object
                  required:
                    - id
                  properties:
                    id:
                      type: string
                      description: Service item id or code
                    quantity:
                      type: number
                      default: 1
                    material_cost:
                      type: number
                      description: Overrides the pricebook material price
                    tier:
                      type: string
                      enum: [basic, standard, premium]
    responses:
      200:
        description: Priced line items, subtotal and total after the job minimum
      400:
        description: Invalid line items
      404:
        description: Service item not found
    """
    data = request.get_json() or {}
    line_items = data.get('line_items')

    if not isinstance(line_items, list):
        return error_response('line_items must be a list')
    if not line_items:
        return error_response('At least one line item is required')
    for item in line_items:
        if not isinstance(item, dict) or item.get('id') in (None, ''):
            return error_response('Each line item must have an id')

    try:
        result = calculate_estimate(line_items, _pricebook())
    except ServiceItemNotFound as e:
        return error_response(str(e), 404)
    except PricingError as e:
        return error_response(str(e))

    return jsonify({
        'line_items': [_priced_line(item) for item in result['line_items']],
        'subtotal': float(result['subtotal']),
        'adjusted_total': float(result['adjusted_total']),
        'applied_minimum': result['applied_minimum']
    }), 200

@bp.route('/', methods=['GET'])
def get_estimates():
    """Get estimates, optionally by status or client"""
    status = request.args.get('status')
    client_id = request.args.get('client_id')

    query = Estimate.query
    if status:
        query = query.filter_by(status=status)
    if client_id:
        try:
            query = query.filter_by(client_id=parse_uuid(client_id))
        except ValueError:
            return error_response('Invalid client_id')

    return paginated_response(query.order_by(Estimate.created_at.desc()), 'estimates')

@bp.route('/<uuid:estimate_id>', methods=['GET'])
def get_estimate(estimate_id):
    """Get estimate by ID"""
    estimate = Estimate.query.get_or_404(estimate_id)
    return jsonify(estimate.to_dict()), 200

@bp.route('/', methods=['POST'])
def create_estimate():
    """Create an estimate; total comes from line items when not given"""
    data = request.get_json() or {}

    missing = missing_fields(data, ['client_id', 'title'])
    if missing:
        return error_response(f"Missing required fields: {', '.join(missing)}")

    line_items = data.get('line_items') or []
    try:
        client_id = parse_uuid(data['client_id'])
        job_id = parse_uuid(data.get('job_id'))
        valid_until = parse_date(data.get('valid_until'))
        if data.get('total') is not None:
            total = parse_decimal(data['total'])
        else:
            total = _line_items_total(line_items)
    except (ValueError, AttributeError):
        return error_response('Invalid request data')

    if not db.session.get(Client, client_id):
        return error_response('Client not found', 404)

    estimate = Estimate(
        estimate_number=next_document_number(Estimate, Estimate.estimate_number, 'EST'),
        client_id=client_id,
        job_id=job_id,
        title=data['title'],
        description=data.get('description'),
        line_items=line_items,
        total=total,
        status='draft',
        valid_until=valid_until
    )

    db.session.add(estimate)
    db.session.commit()

    return jsonify(estimate.to_dict()), 201

@bp.route('/<uuid:estimate_id>', methods=['PUT'])
def update_estimate(estimate_id):
    """Update estimate"""
    estimate = Estimate.query.get_or_404(estimate_id)
    data = request.get_json() or {}

    if 'status' in data:
        if data['status'] not in ESTIMATE_STATUSES:
            return error_response(f"Invalid status. Must be one of: {', '.join(ESTIMATE_STATUSES)}")
        if data['status'] == 'sent' and estimate.status != 'sent':
            estimate.sent_at = utcnow()
        estimate.status = data['status']

    for field in ('title', 'description'):
        if field in data:
            setattr(estimate, field, data[field])

    try:
        if 'valid_until' in data:
            estimate.valid_until = parse_date(data['valid_until'])
        if 'line_items' in data:
            estimate.line_items = data['line_items'] or []
            if data.get('total') is None:
                estimate.total = _line_items_total(estimate.line_items)
        if data.get('total') is not None:
            estimate.total = parse_decimal(data['total'])
    except (ValueError, AttributeError):
        db.session.rollback()
        return error_response('Invalid request data')

    db.session.commit()
    return jsonify(estimate.to_dict()), 200

@bp.route('/<uuid:estimate_id>', methods=['DELETE'])
def delete_estimate(estimate_id):
    """Delete estimate"""
    estimate = Estimate.query.get_or_404(estimate_id)
    db.session.delete(estimate)
    db.session.commit()
    return jsonify({'message': 'Estimate deleted'}), 200
