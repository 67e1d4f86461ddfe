"""
Flat-rate pricebook pricing

A line total is the service's labor price plus its marked-up material cost,
times the quantity, scaled by the price tier, the service's risk factor and
the shop-wide safety mode, then rounded to the nearest dollar. An estimate
whose subtotal falls below the minimum job total is lifted to that minimum.

The pricebook is a JSON document with ``categories``, ``items``, ``rules``
and ``material_prices``; see fieldservice/data/pricebook.json.
"""
from decimal import Decimal, ROUND_HALF_UP
from functools import lru_cache
from pathlib import Path
import json
import logging

from fieldservice.utils.helpers import parse_decimal

logger = logging.getLogger(__name__)

DEFAULT_PRICEBOOK_PATH = Path(__file__).resolve().parent.parent / 'data' / 'pricebook.json'

PRICE_TIERS = ('basic', 'standard', 'premium')
DEFAULT_RISK_FACTOR = 'medium'

DOLLAR = Decimal('1')
CENT = Decimal('0.01')


class PricingError(ValueError):
    pass


class ServiceItemNotFound(PricingError):
    pass


@lru_cache(maxsize=None)
def load_pricebook(path=None):
    """Read and cache a pricebook file; the bundled one when no path is given"""
    path = Path(path) if path else DEFAULT_PRICEBOOK_PATH
    with open(path, encoding='utf-8') as f:
        pricebook = json.load(f)
    logger.info(f"Loaded pricebook with {len(pricebook.get('items', []))} service items from {path}")
    return pricebook


def _dec(value):
    try:
        return parse_decimal(value or 0)
    except ValueError as e:
        raise PricingError(str(e))


def _round(value, to_dollar=True):
    return value.quantize(DOLLAR if to_dollar else CENT, rounding=ROUND_HALF_UP)


def get_service_item(identifier, pricebook=None):
    """
    Find a service item by numeric id or by code.

    Integers match ``id``; strings match ``code``. Returns None when there
    is no such item.
    """
    pricebook = pricebook or load_pricebook()
    if isinstance(identifier, bool):
        return None
    key = 'id' if isinstance(identifier, int) else 'code'
    for item in pricebook['items']:
        if item[key] == identifier:
            return item
    return None


def get_all_service_items(pricebook=None):
    return (pricebook or load_pricebook())['items']


def get_service_categories(pricebook=None):
    return (pricebook or load_pricebook())['categories']


def get_pricing_rules(pricebook=None):
    return (pricebook or load_pricebook())['rules']


def calculate_line_item_total(service, material_cost=0, quantity=1, tier='standard', pricebook=None):
    """Price one pricebook service at a quantity and tier"""
    pricebook = pricebook or load_pricebook()
    rules = pricebook['rules']
    round_to_dollar = rules.get('defaults', {}).get('round_to_nearest_dollar', True)

    if tier not in PRICE_TIERS:
        raise PricingError(f"Invalid tier. Must be one of: {', '.join(PRICE_TIERS)}")
    quantity = _dec(quantity)
    if quantity <= 0:
        raise PricingError('Quantity must be positive')
    material_cost = _dec(material_cost)
    if material_cost < 0:
        raise PricingError('Material cost cannot be negative')

    # An explicit material cost wins over the pricebook's stocked price
    if material_cost == 0 and service.get('materialKey'):
        material_cost = _dec(pricebook.get('material_prices', {}).get(service['materialKey']))

    materials_portion = Decimal('0')
    if material_cost > 0:
        materials_portion = _round(material_cost * (1 + _dec(rules['material_markup'])))

    labor_portion = _dec(service['standard_price'])

    risk_factor = service.get('riskFactor') or DEFAULT_RISK_FACTOR
    if risk_factor not in rules['risk_multipliers']:
        raise PricingError(f"Unknown risk factor '{risk_factor}' for service {service['code']}")
    safety = rules['flat_rate_safety_mode']

    line_total = (labor_portion + materials_portion) * quantity
    line_total *= _dec(rules['multipliers'][tier])
    line_total *= _dec(rules['risk_multipliers'][risk_factor])
    line_total *= _dec(safety['multipliers'][safety['current']])

    return {
        'service_id': service['id'],
        'code': service['code'],
        'name': service['name'],
        'quantity': quantity,
        'tier': tier,
        'labor_portion': _round(labor_portion * quantity),
        'materials_portion': materials_portion,
        'line_total': _round(line_total, round_to_dollar),
    }


def calculate_estimate(line_items, pricebook=None):
    """
    Price a list of line item requests.

    Each request is a dict with ``id`` (service id or code) and optional
    ``quantity``, ``material_cost`` and ``tier``. Raises ServiceItemNotFound
    for an id that is not in the pricebook.
    """
    pricebook = pricebook or load_pricebook()
    rules = pricebook['rules']
    default_tier = rules.get('defaults', {}).get('tier', 'standard')

    priced = []
    for request_item in line_items:
        quantity = request_item.get('quantity')
        service = get_service_item(request_item.get('id'), pricebook)
        if not service:
            raise ServiceItemNotFound(
                f"Service item not found: {request_item.get('id')}. "
                "Please use a valid service item ID or code from the price book."
            )
        priced.append(calculate_line_item_total(
            service,
            material_cost=request_item.get('material_cost') or 0,
            quantity=1 if quantity is None else quantity,
            tier=request_item.get('tier') or default_tier,
            pricebook=pricebook
        ))

    subtotal = sum((item['line_total'] for item in priced), Decimal('0'))

    adjusted_total = subtotal
    applied_minimum = False
    minimum = _dec(rules.get('minimum_job_total'))
    if rules.get('defaults', {}).get('apply_minimum_job_total', True) and subtotal < minimum:
        adjusted_total = minimum
        applied_minimum = True

    return {
        'line_items': priced,
        'subtotal': subtotal,
        'adjusted_total': adjusted_total,
        'applied_minimum': applied_minimum,
    }
