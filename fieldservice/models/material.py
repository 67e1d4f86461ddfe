from fieldservice import db
from fieldservice.models.types import GUID, iso, as_float
import uuid
from datetime import datetime, timezone

class Material(db.Model):
    """Inventory item (consumable material or tool)"""
    __tablename__ = 'materials'

    id = db.Column(GUID, primary_key=True, default=uuid.uuid4)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(100), nullable=False, index=True)
    sku = db.Column(db.String(100), unique=True)

    # Stock
    unit_cost = db.Column(db.Numeric(12, 2), default=0)
    current_stock = db.Column(db.Numeric(12, 2), default=0)
    min_stock = db.Column(db.Numeric(12, 2), default=0)
    reorder_point = db.Column(db.Numeric(12, 2), default=0)
    unit_of_measure = db.Column(db.String(50), default='each')

    # Sourcing
    supplier_name = db.Column(db.String(255))
    supplier_contact = db.Column(db.String(255))
    location = db.Column(db.String(255))

    # Tools
    is_tool = db.Column(db.Boolean, default=False)
    tool_status = db.Column(db.String(50))  # 'available', 'assigned', 'maintenance', 'lost', 'retired'

    is_active = db.Column(db.Boolean, default=True)

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    @property
    def is_low_stock(self):
        return (self.current_stock or 0) <= (self.reorder_point or 0)

    def to_dict(self):
        return {
            'id': str(self.id),
            'name': self.name,
            'description': self.description,
            'category': self.category,
            'sku': self.sku,
            'unit_cost': as_float(self.unit_cost) or 0.0,
            'current_stock': as_float(self.current_stock) or 0.0,
            'min_stock': as_float(self.min_stock) or 0.0,
            'reorder_point': as_float(self.reorder_point) or 0.0,
            'unit_of_measure': self.unit_of_measure,
            'supplier_name': self.supplier_name,
            'supplier_contact': self.supplier_contact,
            'location': self.location,
            'is_tool': self.is_tool,
            'tool_status': self.tool_status,
            'is_active': self.is_active,
            'is_low_stock': self.is_low_stock,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at)
        }

    def __repr__(self):
        return f'<Material {self.name}>'
