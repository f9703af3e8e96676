"""
Predefined vehicle parts offered at registration.

Catalog parts carry no stock and no warranty tracking. Their ids never use
the "product-" prefix that persisted product ids may carry.
"""

from decimal import Decimal

VEHICLE_PARTS = [
    {'id': 'engine-oil', 'name': 'Engine Oil', 'category': 'Engine', 'price': Decimal('850.00')},
    {'id': 'oil-filter', 'name': 'Oil Filter', 'category': 'Engine', 'price': Decimal('250.00')},
    {'id': 'air-filter', 'name': 'Air Filter', 'category': 'Engine', 'price': Decimal('350.00')},
    {'id': 'spark-plug', 'name': 'Spark Plug', 'category': 'Engine', 'price': Decimal('180.00')},
    {'id': 'coolant', 'name': 'Coolant', 'category': 'Engine', 'price': Decimal('450.00')},
    {'id': 'brake-pads', 'name': 'Brake Pads', 'category': 'Brakes', 'price': Decimal('1200.00')},
    {'id': 'brake-shoe', 'name': 'Brake Shoe', 'category': 'Brakes', 'price': Decimal('900.00')},
    {'id': 'brake-fluid', 'name': 'Brake Fluid', 'category': 'Brakes', 'price': Decimal('300.00')},
    {'id': 'clutch-plate', 'name': 'Clutch Plate', 'category': 'Transmission', 'price': Decimal('2500.00')},
    {'id': 'chain-sprocket', 'name': 'Chain Sprocket Kit', 'category': 'Transmission', 'price': Decimal('1800.00')},
    {'id': 'battery', 'name': 'Battery', 'category': 'Electrical', 'price': Decimal('4500.00')},
    {'id': 'headlight-bulb', 'name': 'Headlight Bulb', 'category': 'Electrical', 'price': Decimal('400.00')},
    {'id': 'wiper-blade', 'name': 'Wiper Blade', 'category': 'Body', 'price': Decimal('350.00')},
    {'id': 'tyre-front', 'name': 'Front Tyre', 'category': 'Tyres', 'price': Decimal('3200.00')},
    {'id': 'tyre-rear', 'name': 'Rear Tyre', 'category': 'Tyres', 'price': Decimal('3600.00')},
    {'id': 'shock-absorber', 'name': 'Shock Absorber', 'category': 'Suspension', 'price': Decimal('2800.00')},
    {'id': 'ac-filter', 'name': 'Cabin AC Filter', 'category': 'Air Conditioning', 'price': Decimal('500.00')},
]

_PARTS_BY_ID = {part['id']: part for part in VEHICLE_PARTS}


def get_part_by_id(part_id):
    return _PARTS_BY_ID.get(part_id)
