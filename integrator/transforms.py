from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from integrator.entities import CatalogPackage

GIGABYTE = 1024 * 1024 * 1024


def validate_package(raw):
    """Returns (is_valid, reason)."""
    package_id = raw.get('prepaidpackagetemplateid')
    if package_id in (None, ''):
        return False, "missing package id"

    cost = raw.get('cost')
    if cost is None:
        return False, f"{package_id}: null cost"
    if isinstance(cost, bool) or not isinstance(cost, (int, float, str)):
        return False, f"{package_id}: non-numeric cost"
    try:
        cost = Decimal(str(cost))
    except InvalidOperation:
        return False, f"{package_id}: non-numeric cost"
    if not cost.is_finite():
        return False, f"{package_id}: non-numeric cost"
    if cost < 0:
        return False, f"{package_id}: negative cost ({cost})"

    return True, ""


def to_minor_units(cost):
    amount = Decimal(str(cost)) * 100
    return int(amount.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def format_price(minor_units):
    return f"{minor_units // 100}.{minor_units % 100:02d}"


def _as_int(value):
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def parse_package(raw):
    country = raw.get('userUiName') or 'Unknown'
    sponsors = raw.get('sponsors') or {}
    sponsor_name = sponsors.get('sponsorname') if isinstance(sponsors, dict) else None

    return CatalogPackage(
        package_id=str(raw['prepaidpackagetemplateid']),
        name=raw.get('prepaidpackagetemplatename') or '',
        country_label=country.replace('_LZ', ''),
        cost_minor_units=to_minor_units(raw['cost']),
        data_bytes=_as_int(raw.get('databyte')),
        period_days=_as_int(raw.get('perioddays')),
        sponsor_name=sponsor_name or 'Unknown',
        deleted=bool(raw.get('deleted')),
    )


def deduplicate(packages):
    seen = {}
    for p in packages:
        seen[p.package_id] = p
    return list(seen.values())


def data_label(data_bytes):
    return f"{data_bytes / GIGABYTE:.2f}GB" if data_bytes else "0GB"


def build_product_payload(package):
    option = f"{data_label(package.data_bytes)} / {package.period_days} Days"
    return {
        'product': {
            'title': f"{package.country_label} eSIM Package",
            'body_html': (
                f"<strong>Country:</strong> {package.country_label}<br>"
                f"<strong>Sponsor:</strong> {package.sponsor_name}<br>"
                f"<p>{package.name}</p>"
            ),
            'vendor': package.sponsor_name,
            'product_type': 'eSIM',
            'status': 'active',
            'options': [{'name': 'Data Package', 'values': [option]}],
            'variants': [{
                'option1': option,
                'price': format_price(package.cost_minor_units),
                'sku': package.sku,
                'inventory_management': 'shopify',
                'inventory_policy': 'continue',
                'inventory_quantity': 999,
                'requires_shipping': False,
            }],
            'tags': ['eSIM', package.country_label, package.sponsor_name, 'auto-sync'],
        }
    }
