from math import ceil
import logging

from flask import Blueprint, request, jsonify, current_app
from fieldservice import db
from fieldservice.models.client import Client
from fieldservice.models.lead import Lead, LEAD_SOURCES, LEAD_STATUSES, LEAD_PRIORITIES
from fieldservice.utils.helpers import missing_fields, error_response, paginated_response, utcnow
from fieldservice.utils.leads import calculate_urgency_score, lead_source_analytics

bp = Blueprint('leads', __name__)
logger = logging.getLogger(__name__)

LEAD_FIELDS = [
    'first_name', 'last_name', 'company_name', 'email', 'phone', 'address',
    'service_type', 'estimated_value', 'notes'
]

def _validate_choices(data):
    if 'source' in data and data['source'] not in LEAD_SOURCES:
        return f"Invalid source. Must be one of: {', '.join(LEAD_SOURCES)}"
    if 'status' in data and data['status'] not in LEAD_STATUSES:
        return f"Invalid status. Must be one of: {', '.join(LEAD_STATUSES)}"
    if 'priority' in data and data['priority'] not in LEAD_PRIORITIES:
        return f"Invalid priority. Must be one of: {', '.join(LEAD_PRIORITIES)}"
    return None

@bp.route('/', methods=['GET'])
def get_leads():
    """
    Get all leads
    ---
    tags:
      - Leads
    parameters:
      - in: query
        name: status
        schema:
          type: string
      - in: query
        name: source
        schema:
          type: string
      - in: query
        name: sort
        schema:
          type: string
          enum: [newest, urgency]
        description: urgency orders by computed urgency score
    responses:
      200:
        description: Paginated list of leads
    """
    status = request.args.get('status')
    source = request.args.get('source')
    sort = request.args.get('sort', 'newest')

    query = Lead.query
    if status:
        query = query.filter_by(status=status)
    if source:
        query = query.filter_by(source=source)

    if sort != 'urgency':
        return paginated_response(query.order_by(Lead.created_at.desc()), 'leads')

    # Urgency is computed, so ordering happens in Python
    page = max(request.args.get('page', 1, type=int), 1)
    per_page = max(request.args.get('per_page', current_app.config.get('ITEMS_PER_PAGE', 20), type=int), 1)

    now = utcnow()
    scored = []
    for lead in query.all():
        lead_dict = lead.to_dict()
        lead_dict['urgency_score'] = calculate_urgency_score(lead, now=now)
        scored.append(lead_dict)
    scored.sort(key=lambda l: l['urgency_score'], reverse=True)

    total = len(scored)
    start = (page - 1) * per_page
    return jsonify({
        'leads': scored[start:start + per_page],
        'total': total,
        'page': page,
        'per_page': per_page,
        'pages': ceil(total / per_page)
    }), 200

@bp.route('/analytics', methods=['GET'])
def get_lead_analytics():
    """Conversion statistics per lead source"""
    return jsonify({'sources': lead_source_analytics(Lead.query.all())}), 200

@bp.route('/<uuid:lead_id>', methods=['GET'])
def get_lead(lead_id):
    """Get lead by ID"""
    lead = Lead.query.get_or_404(lead_id)
    lead_dict = lead.to_dict()
    lead_dict['urgency_score'] = calculate_urgency_score(lead)
    return jsonify(lead_dict), 200

@bp.route('/', methods=['POST'])
def create_lead():
    """Create a new lead"""
    data = request.get_json() or {}

    missing = missing_fields(data, ['first_name', 'source'])
    if missing:
        return error_response(f"Missing required fields: {', '.join(missing)}")

    error = _validate_choices(data)
    if error:
        return error_response(error)

    lead = Lead(
        source=data['source'],
        status=data.get('status', 'new'),
        priority=data.get('priority', 'medium'),
        **{field: data[field] for field in LEAD_FIELDS if field in data}
    )

    db.session.add(lead)
    db.session.commit()

    return jsonify(lead.to_dict()), 201

@bp.route('/<uuid:lead_id>', methods=['PUT'])
def update_lead(lead_id):
    """Update lead"""
    lead = Lead.query.get_or_404(lead_id)
    data = request.get_json() or {}

    error = _validate_choices(data)
    if error:
        return error_response(error)

    for field in LEAD_FIELDS + ['source', 'status', 'priority']:
        if field in data:
            setattr(lead, field, data[field])

    if data.get('status') == 'converted' and not lead.converted_at:
        lead.converted_at = utcnow()

    db.session.commit()
    return jsonify(lead.to_dict()), 200

@bp.route('/<uuid:lead_id>/convert', methods=['POST'])
def convert_lead(lead_id):
    """
    Convert a lead into a client
    ---
    tags:
      - Leads
    parameters:
      - in: path
        name: lead_id
        required: true
        schema:
          type: string
          format: uuid
    requestBody:
      content:
        application/json:
          schema:
            type: object
            properties:
              last_name:
                type: string
                description: Required when the lead has no last name
    responses:
      201:
        description: Client created and lead marked converted
      400:
        description: Not enough contact data to create a client
      409:
        description: Lead already converted
    """
    lead = Lead.query.get_or_404(lead_id)
    data = request.get_json(silent=True) or {}

    if lead.status == 'converted' or lead.converted_client_id:
        return error_response('Lead already converted', 409)

    last_name = data.get('last_name') or lead.last_name
    if not last_name:
        return error_response('last_name is required to convert this lead')

    client = Client(
        first_name=data.get('first_name') or lead.first_name,
        last_name=last_name,
        company_name=lead.company_name,
        email=lead.email,
        phone=lead.phone,
        address_line_1=lead.address,
        source=lead.source,
        notes=lead.notes
    )
    db.session.add(client)
    db.session.flush()

    lead.converted_client_id = client.id
    lead.status = 'converted'
    lead.converted_at = utcnow()

    db.session.commit()
    logger.info(f"Converted lead {lead.id} to client {client.id}")

    return jsonify({
        'lead': lead.to_dict(),
        'client': client.to_dict()
    }), 201

@bp.route('/<uuid:lead_id>', methods=['DELETE'])
def delete_lead(lead_id):
    """Delete lead"""
    lead = Lead.query.get_or_404(lead_id)
    db.session.delete(lead)
    db.session.commit()
    return jsonify({'message': 'Lead deleted'}), 200
