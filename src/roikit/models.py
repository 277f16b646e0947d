"""Record shapes shared by the metric, import and CRM layers.

Records are frozen dataclasses.  Edits go through :class:`WeeklyEntryPatch`
and :func:`apply_patch`, which hand back a new entry with the same identity.
Soft deletion is an explicit :class:`Active` / :class:`Trashed` lifecycle.

At the store boundary entries travel as flat camelCase field maps
(``weekOfMonth``, ``newCustomers``, ``deletedAt`` …); ``from_dict`` also
accepts snake_case keys.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from roikit.constants import ALL, CHANNELS
from roikit.errors import LifecycleError
from roikit.utils.numbers import safe_number


def new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Active:
    deleted_at: None = None


@dataclass(frozen=True)
class Trashed:
    at: str

    @property
    def deleted_at(self) -> str:
        return self.at


Lifecycle = Union[Active, Trashed]
ACTIVE = Active()


def lifecycle_from(deleted_at: Any) -> Lifecycle:
    if deleted_at in (None, ""):
        return ACTIVE
    return Trashed(at=str(deleted_at))


# ---------------------------------------------------------------------------
# Weekly entries
# ---------------------------------------------------------------------------

# python attribute -> boundary key
ENTRY_KEYS: Dict[str, str] = {
    "id": "id",
    "year": "year",
    "month": "month",
    "week_of_month": "weekOfMonth",
    "week_start_date": "weekStartDate",
    "week_end_date": "weekEndDate",
    "channel": "channel",
    "spend": "spend",
    "leads": "leads",
    "new_customers": "newCustomers",
    "number_of_sales": "numberOfSales",
    "revenue": "revenue",
    "notes": "notes",
}

ADDITIVE_FIELDS = ("spend", "revenue", "leads", "new_customers", "number_of_sales")


def _int_or_raw(value: Any) -> Any:
    """Return an ``int`` when *value* is integral, otherwise *value* untouched.

    Non-integral input is kept so the validator can flag it.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    try:
        n = float(str(value).strip())
    except (TypeError, ValueError):
        return value
    if n.is_integer():
        return int(n)
    return value


def _number(value: Any) -> float:
    return safe_number(value)


def _optional_number(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return safe_number(value)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _pick(data: Mapping[str, Any], attr: str, default: Any = None) -> Any:
    key = ENTRY_KEYS.get(attr, attr)
    if key in data:
        return data[key]
    if attr in data:
        return data[attr]
    return default


@dataclass(frozen=True)
class WeeklyEntry:
    id: str
    year: int
    month: int
    week_of_month: int = 1
    week_start_date: str = ""
    week_end_date: str = ""
    channel: str = CHANNELS[0]
    spend: float = 0.0
    leads: Optional[float] = None
    new_customers: float = 0.0
    number_of_sales: float = 0.0
    revenue: float = 0.0
    notes: str = ""
    lifecycle: Lifecycle = field(default=ACTIVE)

    @property
    def is_active(self) -> bool:
        return isinstance(self.lifecycle, Active)

    @property
    def deleted_at(self) -> Optional[str]:
        return self.lifecycle.deleted_at

    @property
    def natural_key(self) -> Tuple[float, float, float, str]:
        """``(year, month, week_of_month, channel)`` used to match imports."""
        return (
            safe_number(self.year),
            safe_number(self.month),
            safe_number(self.week_of_month),
            str(self.channel),
        )

    @property
    def sort_key(self) -> Tuple[float, float, float, str]:
        return (
            safe_number(self.year),
            safe_number(self.month),
            safe_number(self.week_of_month),
            str(self.week_start_date or ""),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WeeklyEntry":
        return cls(
            id=_text(_pick(data, "id")) or new_id(),
            year=_int_or_raw(_pick(data, "year", 0)),
            month=_int_or_raw(_pick(data, "month", 1)),
            week_of_month=_int_or_raw(_pick(data, "week_of_month", 1)),
            week_start_date=_text(_pick(data, "week_start_date", "")),
            week_end_date=_text(_pick(data, "week_end_date", "")),
            channel=_text(_pick(data, "channel", CHANNELS[0])),
            spend=_number(_pick(data, "spend")),
            leads=_optional_number(_pick(data, "leads")),
            new_customers=_number(_pick(data, "new_customers")),
            number_of_sales=_number(_pick(data, "number_of_sales")),
            revenue=_number(_pick(data, "revenue")),
            notes=_text(_pick(data, "notes", "")),
            lifecycle=lifecycle_from(data.get("deletedAt", data.get("deleted_at"))),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {key: getattr(self, attr) for attr, key in ENTRY_KEYS.items()}
        out["leads"] = "" if self.leads is None else self.leads
        out["deletedAt"] = self.deleted_at
        return out


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class WeeklyEntryPatch:
    """Partial update: only fields that are not ``UNSET`` are applied."""

    year: Any = UNSET
    month: Any = UNSET
    week_of_month: Any = UNSET
    week_start_date: Any = UNSET
    week_end_date: Any = UNSET
    channel: Any = UNSET
    spend: Any = UNSET
    leads: Any = UNSET
    new_customers: Any = UNSET
    number_of_sales: Any = UNSET
    revenue: Any = UNSET
    notes: Any = UNSET

    def changes(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not UNSET}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WeeklyEntryPatch":
        """Build a patch from boundary keys; ``id`` and ``deletedAt`` are ignored."""
        values: Dict[str, Any] = {}
        for f in fields(cls):
            key = ENTRY_KEYS[f.name]
            if key in data:
                values[f.name] = data[key]
            elif f.name in data:
                values[f.name] = data[f.name]
        return cls(**values)


def apply_patch(entry: WeeklyEntry, patch: WeeklyEntryPatch) -> WeeklyEntry:
    """Return a copy of *entry* with *patch* applied; identity is preserved."""
    changes = patch.changes()
    for name in ("year", "month", "week_of_month"):
        if name in changes:
            changes[name] = _int_or_raw(changes[name])
    for name in ("spend", "new_customers", "number_of_sales", "revenue"):
        if name in changes:
            changes[name] = _number(changes[name])
    if "leads" in changes:
        changes["leads"] = _optional_number(changes["leads"])
    for name in ("week_start_date", "week_end_date", "channel", "notes"):
        if name in changes:
            changes[name] = _text(changes[name])
    return replace(entry, **changes)


def trash(entry: WeeklyEntry, at: str) -> WeeklyEntry:
    if not entry.is_active:
        raise LifecycleError(f"Entry {entry.id} is already in the trash")
    return replace(entry, lifecycle=Trashed(at=at))


def restore(entry: WeeklyEntry) -> WeeklyEntry:
    if entry.is_active:
        raise LifecycleError(f"Entry {entry.id} is not in the trash")
    return replace(entry, lifecycle=ACTIVE)


def ensure_purgeable(entry: WeeklyEntry) -> None:
    """Hard deletes are only allowed from the trash."""
    if entry.is_active:
        raise LifecycleError(f"Entry {entry.id} must be trashed before it can be purged")


def sort_entries(entries):
    """Chronological order: year, month, week, then week start date."""
    return sorted(entries, key=lambda e: e.sort_key)


# ---------------------------------------------------------------------------
# CRM movements
# ---------------------------------------------------------------------------


class MovementType(str, Enum):
    SALE = "venta"
    REFUND = "reembolso"


class MovementStatus(str, Enum):
    CONFIRMED = "confirmado"
    PENDING = "pendiente"
    CANCELLED = "cancelado"


def _enum_or_none(enum_cls, value: Any):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return None


MOVEMENT_ALIASES = {
    "cliente_id": ("cliente_id", "clienteId"),
    "tipo_movimiento": ("tipo_movimiento", "tipoMovimiento"),
    "canal_atribucion": ("canal_atribucion", "canalAtribucion"),
    "created_at": ("created_at", "createdAt"),
    "deleted_at": ("deleted_at", "deletedAt"),
    "tipo_venta": ("tipo_venta", "tipoVenta"),
    "metodo_pago": ("metodo_pago", "metodoPago"),
}


def _movement_value(data: Mapping[str, Any], attr: str, default: Any = None) -> Any:
    for key in MOVEMENT_ALIASES.get(attr, (attr,)):
        if key in data:
            return data[key]
    return default


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value)
    return s if s.strip() else None


@dataclass(frozen=True)
class CrmMovement:
    id: str
    cliente_id: str
    fecha: str
    tipo_movimiento: Optional[MovementType]
    estado: Optional[MovementStatus]
    monto: float = 0.0
    canal_atribucion: str = ""
    created_at: str = ""
    lifecycle: Lifecycle = field(default=ACTIVE)
    tipo_venta: Optional[str] = None
    producto: Optional[str] = None
    metodo_pago: Optional[str] = None
    referencia: Optional[str] = None
    notas: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return isinstance(self.lifecycle, Active)

    @property
    def is_confirmed(self) -> bool:
        return self.estado is MovementStatus.CONFIRMED

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CrmMovement":
        return cls(
            id=_text(data.get("id")) or new_id(),
            cliente_id=_text(_movement_value(data, "cliente_id", "")),
            fecha=_text(data.get("fecha", "")),
            tipo_movimiento=_enum_or_none(MovementType, _movement_value(data, "tipo_movimiento", "")),
            estado=_enum_or_none(MovementStatus, data.get("estado", "")),
            monto=safe_number(data.get("monto")),
            canal_atribucion=_text(_movement_value(data, "canal_atribucion", "")),
            created_at=_text(_movement_value(data, "created_at", "")),
            lifecycle=lifecycle_from(_movement_value(data, "deleted_at")),
            tipo_venta=_optional_text(_movement_value(data, "tipo_venta")),
            producto=_optional_text(data.get("producto")),
            metodo_pago=_optional_text(_movement_value(data, "metodo_pago")),
            referencia=_optional_text(data.get("referencia")),
            notas=_optional_text(data.get("notas")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "cliente_id": self.cliente_id,
            "fecha": self.fecha,
            "tipo_movimiento": self.tipo_movimiento.value if self.tipo_movimiento else None,
            "estado": self.estado.value if self.estado else None,
            "monto": self.monto,
            "canal_atribucion": self.canal_atribucion,
            "created_at": self.created_at,
            "deleted_at": self.lifecycle.deleted_at,
            "tipo_venta": self.tipo_venta,
            "producto": self.producto,
            "metodo_pago": self.metodo_pago,
            "referencia": self.referencia,
            "notas": self.notas,
        }


# ---------------------------------------------------------------------------
# View selection & derived shapes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Filter:
    year: int
    month: Union[int, str] = ALL
    channel: str = ALL

    @property
    def all_months(self) -> bool:
        return self.month == ALL

    @property
    def all_channels(self) -> bool:
        return self.channel == ALL


@dataclass(frozen=True)
class Aggregate:
    spend: float = 0.0
    revenue: float = 0.0
    leads: float = 0.0
    new_customers: float = 0.0
    number_of_sales: float = 0.0
    roi: float = 0.0
    cac: float = 0.0
    avg_ticket: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "spend": self.spend,
            "revenue": self.revenue,
            "leads": self.leads,
            "newCustomers": self.new_customers,
            "numberOfSales": self.number_of_sales,
            "roi": self.roi,
            "cac": self.cac,
            "avgTicket": self.avg_ticket,
        }


@dataclass(frozen=True)
class CrmAggregate:
    revenue_gross: float = 0.0
    refunds: float = 0.0
    revenue_net: float = 0.0
    number_of_sales: int = 0
    new_customers: int = 0
    avg_ticket: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "revenueGross": self.revenue_gross,
            "refunds": self.refunds,
            "revenueNet": self.revenue_net,
            "numberOfSales": self.number_of_sales,
            "newCustomers": self.new_customers,
            "avgTicket": self.avg_ticket,
        }
