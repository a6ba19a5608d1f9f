from dataclasses import asdict, dataclass, field

SKU_PREFIX = 'ESIM-'


def sku_for(package_id):
    return f"{SKU_PREFIX}{package_id}"


def package_id_from_sku(sku):
    """Returns the package id carried by an `ESIM-<id>` SKU, or None."""
    if not sku or not sku.startswith(SKU_PREFIX):
        return None
    package_id = sku[len(SKU_PREFIX):]
    return package_id or None


@dataclass(frozen=True)
class CatalogPackage:
    package_id: str
    name: str
    country_label: str
    cost_minor_units: int
    data_bytes: int
    period_days: int
    sponsor_name: str
    deleted: bool = False

    @property
    def sku(self):
        return sku_for(self.package_id)

    def snapshot_fields(self):
        return {
            'cost_minor_units': self.cost_minor_units,
            'data_bytes': self.data_bytes,
            'period_days': self.period_days,
            'name': self.name,
            'country_label': self.country_label,
            'sponsor_name': self.sponsor_name,
            'deleted': self.deleted,
        }


@dataclass(frozen=True)
class ListingState:
    listing_id: int
    sku: str
    title: str = ''
    price: str = ''

    @property
    def package_id(self):
        return package_id_from_sku(self.sku)


@dataclass
class SyncOutcome:
    status: str = 'success'
    total: int = 0
    unchanged: int = 0
    skipped_invalid: int = 0
    created: list = field(default_factory=list)
    failed: list = field(default_factory=list)
    deleted: list = field(default_factory=list)
    delete_errors: list = field(default_factory=list)
    error_message: str | None = None

    @classmethod
    def skipped(cls):
        return cls(status='skipped', error_message='sync already running')

    @property
    def error_count(self):
        return len(self.failed) + len(self.delete_errors)

    def as_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class PurchaseResult:
    transaction_id: str
    esim_data: dict
