from flask import Blueprint, request, jsonify
from sqlalchemy import or_
from fieldservice import db
from fieldservice.models.client import Client
from fieldservice.utils.helpers import missing_fields, error_response, paginated_response

bp = Blueprint('clients', __name__)

CLIENT_FIELDS = [
    'first_name', 'last_name', 'company_name', 'email', 'phone',
    'address_line_1', 'address_line_2', 'city', 'state', 'postal_code',
    'source', 'status', 'tags', 'notes'
]

@bp.route('/', methods=['GET'])
def get_clients():
    """
    Get all clients
    ---
    tags:
      - Clients
    parameters:
      - in: query
        name: page
        schema:
          type: integer
          default: 1
        description: Page number
      - in: query
        name: per_page
        schema:
          type: integer
          default: 20
        description: Items per page
      - in: query
        name: search
        schema:
          type: string
        description: Match on name, company, email or phone
      - in: query
        name: status
        schema:
          type: string
        description: Filter by status (active, inactive)
    responses:
      200:
        description: Paginated list of clients
        content:
          application/json:
            schema:
              type: object
              properties:
                clients:
                  type: array
                  items:
                    type: object
                total:
                  type: integer
                page:
                  type: integer
                per_page:
                  type: integer
                pages:
                  type: integer
    """
    search = request.args.get('search')
    status = request.args.get('status')

    query = Client.query
    if search:
        pattern = f'%{search}%'
        query = query.filter(or_(
            Client.first_name.ilike(pattern),
            Client.last_name.ilike(pattern),
            Client.company_name.ilike(pattern),
            Client.email.ilike(pattern),
            Client.phone.ilike(pattern)
        ))
    if status:
        query = query.filter_by(status=status)

    return paginated_response(query.order_by(Client.created_at.desc()), 'clients')

@bp.route('/<uuid:client_id>', methods=['GET'])
def get_client(client_id):
    """Get client by ID, with properties and job count"""
    client = Client.query.get_or_404(client_id)
    client_dict = client.to_dict()
    client_dict['properties'] = [p.to_dict() for p in client.properties if p.is_active]
    client_dict['job_count'] = client.jobs.count()
    return jsonify(client_dict), 200

@bp.route('/', methods=['POST'])
def create_client():
    """
    Create a new client
    ---
    tags:
      - Clients
    requestBody:
      required: true
      content:
        application/json:
          schema:
            type: object
            required:
              - first_name
              - last_name
            properties:
              first_name:
                type: string
              last_name:
                type: string
              company_name:
                type: string
              email:
                type: string
                format: email
              phone:
                type: string
              source:
                type: string
    responses:
      201:
        description: Client created
      400:
        description: Missing required fields
    """
    data = request.get_json() or {}

    missing = missing_fields(data, ['first_name', 'last_name'])
    if missing:
        return error_response(f"Missing required fields: {', '.join(missing)}")

    client = Client(**{field: data[field] for field in CLIENT_FIELDS if field in data})

    db.session.add(client)
    db.session.commit()

    return jsonify(client.to_dict()), 201

@bp.route('/<uuid:client_id>', methods=['PUT'])
def update_client(client_id):
    """Update client"""
    client = Client.query.get_or_404(client_id)
    data = request.get_json() or {}

    for field in CLIENT_FIELDS:
        if field in data:
            setattr(client, field, data[field])

    if not client.first_name or not client.last_name:
        db.session.rollback()
        return error_response('first_name and last_name cannot be empty')

    db.session.commit()
    return jsonify(client.to_dict()), 200

@bp.route('/<uuid:client_id>', methods=['DELETE'])
def delete_client(client_id):
    """Delete client and everything it owns"""
    client = Client.query.get_or_404(client_id)
    db.session.delete(client)
    db.session.commit()
    return jsonify({'message': 'Client deleted'}), 200
