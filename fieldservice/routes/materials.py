from decimal import Decimal
import logging

from flask import Blueprint, request, jsonify
from fieldservice import db
from fieldservice.models.material import Material
from fieldservice.utils.helpers import missing_fields, error_response, paginated_response, parse_decimal

bp = Blueprint('materials', __name__)
logger = logging.getLogger(__name__)

MATERIAL_FIELDS = [
    'name', 'description', 'category', 'sku', 'unit_cost', 'current_stock',
    'min_stock', 'reorder_point', 'unit_of_measure', 'supplier_name',
    'supplier_contact', 'location', 'is_tool', 'tool_status', 'is_active'
]

@bp.route('/', methods=['GET'])
def get_materials():
    """
    Get inventory items
    ---
    tags:
      - Materials
    parameters:
      - in: query
        name: category
        schema:
          type: string
      - in: query
        name: low_stock
        schema:
          type: string
        description: When 'true', only items at or below their reorder point
      - in: query
        name: search
        schema:
          type: string
    responses:
      200:
        description: Paginated list of materials
    """
    category = request.args.get('category')
    low_stock = request.args.get('low_stock', 'false')
    search = request.args.get('search')

    query = Material.query.filter_by(is_active=True)
    if category:
        query = query.filter_by(category=category)
    if search:
        query = query.filter(Material.name.ilike(f'%{search}%'))
    if low_stock.lower() == 'true':
        query = query.filter(Material.current_stock <= Material.reorder_point)

    return paginated_response(query.order_by(Material.name), 'materials')

@bp.route('/summary', methods=['GET'])
def get_inventory_summary():
    """Stock value and low-stock counts across active inventory"""
    materials = Material.query.filter_by(is_active=True).all()

    categories = {}
    total_value = Decimal('0')
    for material in materials:
        total_value += (material.current_stock or 0) * (material.unit_cost or 0)
        categories[material.category] = categories.get(material.category, 0) + 1

    return jsonify({
        'total_items': len(materials),
        'total_value': float(total_value),
        'low_stock_count': sum(1 for m in materials if m.is_low_stock),
        'tool_count': sum(1 for m in materials if m.is_tool),
        'categories': categories
    }), 200

@bp.route('/<uuid:material_id>', methods=['GET'])
def get_material(material_id):
    """Get material by ID"""
    material = Material.query.get_or_404(material_id)
    return jsonify(material.to_dict()), 200

@bp.route('/', methods=['POST'])
def create_material():
    """Create an inventory item"""
    data = request.get_json() or {}

    missing = missing_fields(data, ['name', 'category'])
    if missing:
        return error_response(f"Missing required fields: {', '.join(missing)}")

    if data.get('sku') and Material.query.filter_by(sku=data['sku']).first():
        return error_response('SKU already exists', 409)

    material = Material(**{field: data[field] for field in MATERIAL_FIELDS if field in data})

    db.session.add(material)
    db.session.commit()

    return jsonify(material.to_dict()), 201

@bp.route('/<uuid:material_id>', methods=['PUT'])
def update_material(material_id):
    """Update material"""
    material = Material.query.get_or_404(material_id)
    data = request.get_json() or {}

    for field in MATERIAL_FIELDS:
        if field in data:
            setattr(material, field, data[field])

    db.session.commit()
    return jsonify(material.to_dict()), 200

@bp.route('/<uuid:material_id>/adjust', methods=['POST'])
def adjust_stock(material_id):
    """Add or remove stock; quantity is signed"""
    material = Material.query.get_or_404(material_id)
    data = request.get_json() or {}

    if data.get('quantity') in (None, ''):
        return error_response('Missing required fields: quantity')
    try:
        quantity = parse_decimal(data['quantity'])
    except ValueError:
        return error_response('Invalid quantity')

    new_stock = Decimal(str(material.current_stock or 0)) + quantity
    if new_stock < 0:
        return error_response('Insufficient stock')

    material.current_stock = new_stock
    db.session.commit()

    logger.info(f"Stock for {material.name} adjusted by {quantity} ({data.get('reason') or 'no reason given'})")
    if material.is_low_stock:
        logger.warning(f"{material.name} is at or below its reorder point")

    return jsonify(material.to_dict()), 200

@bp.route('/<uuid:material_id>', methods=['DELETE'])
def delete_material(material_id):
    """Soft delete"""
    material = Material.query.get_or_404(material_id)
    material.is_active = False
    db.session.commit()
    return jsonify({'message': 'Material deactivated'}), 200
