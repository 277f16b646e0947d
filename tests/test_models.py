import pytest

from roikit.constants import CHANNELS, PROFITABILITY_CONVENTION, Channel, Profitability, profitability_for
from roikit.errors import LifecycleError
from roikit.models import (
    ACTIVE,
    CrmMovement,
    MovementStatus,
    MovementType,
    Trashed,
    WeeklyEntry,
    WeeklyEntryPatch,
    apply_patch,
    ensure_purgeable,
    restore,
    sort_entries,
    trash,
)


def test_every_channel_has_a_convention():
    assert set(PROFITABILITY_CONVENTION) == set(Channel)
    assert profitability_for("REDES SOCIALES (META ADS)") is Profitability.ROAS
    assert profitability_for("redes sociales (meta ads)") is Profitability.ROI
    assert profitability_for("unknown") is Profitability.ROI
    assert len(CHANNELS) == 8


def test_channel_parse():
    assert Channel.parse("WHATSAPP") is Channel.WHATSAPP
    assert Channel.parse(" email-mkt ") is Channel.EMAIL_MKT
    assert Channel.parse("tv") is None


def test_from_dict_accepts_both_key_styles():
    camel = WeeklyEntry.from_dict({"id": "a", "year": "2025", "month": 3, "weekOfMonth": 2, "newCustomers": "4", "leads": ""})
    snake = WeeklyEntry.from_dict({"id": "a", "year": 2025, "month": "3", "week_of_month": "2", "new_customers": 4})
    assert camel == snake
    assert camel.leads is None
    assert camel.to_dict()["weekOfMonth"] == 2
    assert camel.to_dict()["deletedAt"] is None


def test_from_dict_keeps_bad_values_for_validation():
    entry = WeeklyEntry.from_dict({"id": "a", "year": 2025, "month": "2.5"})
    assert entry.month == "2.5"


def test_patch_returns_new_entry(make_entry):
    entry = make_entry(spend=10, notes="old")
    patched = apply_patch(entry, WeeklyEntryPatch(spend="25", notes=None))
    assert patched is not entry
    assert patched.id == entry.id
    assert patched.spend == 25
    assert patched.notes == ""
    assert entry.spend == 10
    assert WeeklyEntryPatch.from_dict({"newCustomers": 3, "id": "ignored"}).changes() == {"new_customers": 3}


def test_lifecycle_transitions(make_entry):
    entry = make_entry()
    assert entry.lifecycle == ACTIVE
    with pytest.raises(LifecycleError):
        restore(entry)
    with pytest.raises(LifecycleError):
        ensure_purgeable(entry)

    gone = trash(entry, "2025-01-01T00:00:00+00:00")
    assert gone.lifecycle == Trashed("2025-01-01T00:00:00+00:00")
    ensure_purgeable(gone)
    with pytest.raises(LifecycleError):
        trash(gone, "later")
    assert restore(gone) == entry


def test_sort_entries_is_chronological(make_entry):
    rows = [make_entry(month=10), make_entry(month=9, week_of_month=2), make_entry(month=9)]
    assert [(e.month, e.week_of_month) for e in sort_entries(rows)] == [(9, 1), (9, 2), (10, 1)]


def test_movement_parsing():
    m = CrmMovement.from_dict({"id": "m", "clienteId": "c", "fecha": "2025-01-01", "tipoMovimiento": "Venta", "estado": "CONFIRMADO", "monto": "10"})
    assert m.tipo_movimiento is MovementType.SALE
    assert m.estado is MovementStatus.CONFIRMED
    assert m.is_confirmed
    assert CrmMovement.from_dict({"estado": "??"}).estado is None
