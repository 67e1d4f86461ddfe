from flask import Blueprint, request, jsonify
from fieldservice import db
from fieldservice.models.client import Client
from fieldservice.models.property import Property
from fieldservice.utils.helpers import (
    missing_fields, error_response, paginated_response, parse_uuid, validate_coordinates
)

bp = Blueprint('properties', __name__)

PROPERTY_FIELDS = [
    'address_line_1', 'address_line_2', 'city', 'state', 'postal_code',
    'latitude', 'longitude', 'property_type', 'access_instructions',
    'custom_fields', 'notes', 'is_active'
]

def _check_coordinates(data):
    lat, lng = data.get('latitude'), data.get('longitude')
    if lat is None and lng is None:
        return True
    try:
        return validate_coordinates(float(lat), float(lng))
    except (TypeError, ValueError):
        return False

@bp.route('/', methods=['GET'])
def get_properties():
    """
    Get all properties
    ---
    tags:
      - Properties
    parameters:
      - in: query
        name: client_id
        schema:
          type: string
        description: Filter by client
      - in: query
        name: city
        schema:
          type: string
        description: Filter by city
      - in: query
        name: is_active
        schema:
          type: string
          default: 'true'
        description: Filter by active status
    responses:
      200:
        description: Paginated list of properties
    """
    client_id = request.args.get('client_id')
    city = request.args.get('city')
    is_active = request.args.get('is_active', 'true')  # Default to active only

    query = Property.query
    if client_id:
        try:
            query = query.filter_by(client_id=parse_uuid(client_id))
        except ValueError:
            return error_response('Invalid client_id')
    if city:
        query = query.filter(Property.city.ilike(f'%{city}%'))
    if is_active.lower() == 'true':
        query = query.filter_by(is_active=True)

    return paginated_response(query.order_by(Property.created_at.desc()), 'properties')

@bp.route('/<uuid:property_id>', methods=['GET'])
def get_property(property_id):
    """Get property by ID"""
    property_obj = Property.query.get_or_404(property_id)
    property_dict = property_obj.to_dict()
    property_dict['client'] = {
        'id': str(property_obj.client.id),
        'name': property_obj.client.full_name
    }
    return jsonify(property_dict), 200

@bp.route('/', methods=['POST'])
def create_property():
    """Create a property for a client"""
    data = request.get_json() or {}

    missing = missing_fields(data, ['client_id', 'address_line_1'])
    if missing:
        return error_response(f"Missing required fields: {', '.join(missing)}")

    try:
        client_id = parse_uuid(data['client_id'])
    except ValueError:
        return error_response('Invalid client_id')
    if not db.session.get(Client, client_id):
        return error_response('Client not found', 404)

    if not _check_coordinates(data):
        return error_response('Invalid latitude/longitude')

    property_obj = Property(
        client_id=client_id,
        **{field: data[field] for field in PROPERTY_FIELDS if field in data}
    )

    db.session.add(property_obj)
    db.session.commit()

    return jsonify(property_obj.to_dict()), 201

@bp.route('/<uuid:property_id>', methods=['PUT'])
def update_property(property_id):
    """Update property"""
    property_obj = Property.query.get_or_404(property_id)
    data = request.get_json() or {}

    if not _check_coordinates(data):
        return error_response('Invalid latitude/longitude')

    for field in PROPERTY_FIELDS:
        if field in data:
            setattr(property_obj, field, data[field])

    db.session.commit()
    return jsonify(property_obj.to_dict()), 200

@bp.route('/<uuid:property_id>', methods=['DELETE'])
def delete_property(property_id):
    """Soft delete - jobs keep pointing at the address"""
    property_obj = Property.query.get_or_404(property_id)
    property_obj.is_active = False
    db.session.commit()
    return jsonify({'message': 'Property deactivated'}), 200
