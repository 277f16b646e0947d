import pytest
from pathlib import Path

from roikit.connectors.store.json_file import JsonFileStore
from roikit.models import CrmMovement, WeeklyEntry, new_id


@pytest.fixture()
def make_entry():
    """Factory for weekly entries with sensible defaults."""

    def _make(**overrides) -> WeeklyEntry:
        values = dict(
            id=new_id(),
            year=2025,
            month=3,
            week_of_month=1,
            channel="WHATSAPP",
            spend=0.0,
            revenue=0.0,
            new_customers=0.0,
            number_of_sales=0.0,
        )
        values.update(overrides)
        return WeeklyEntry(**values)

    return _make


@pytest.fixture()
def make_movement():
    """Factory for confirmed CRM sales; override tipo/estado for refunds and drafts."""

    def _make(cliente_id: str, fecha: str, monto: float, **overrides) -> CrmMovement:
        data = {
            "id": new_id(),
            "cliente_id": cliente_id,
            "fecha": fecha,
            "tipo_movimiento": "venta",
            "estado": "confirmado",
            "monto": monto,
            "canal_atribucion": "WHATSAPP",
            "created_at": f"{fecha}T10:00:00Z",
        }
        data.update(overrides)
        return CrmMovement.from_dict(data)

    return _make


@pytest.fixture()
def two_channel_entries(make_entry):
    """The two-row portfolio used by the aggregate scenario."""
    return [
        make_entry(spend=1000, revenue=1500, new_customers=5, number_of_sales=10, leads=50, channel="WHATSAPP"),
        make_entry(spend=500, revenue=400, new_customers=2, number_of_sales=4, leads=20, channel="EMAIL-MKT"),
    ]


@pytest.fixture()
def json_store(tmp_path: Path) -> JsonFileStore:
    return JsonFileStore(tmp_path / "store.json")


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.content = b"" if payload is None else b"x"
        self.text = "" if payload is None else str(payload)

    def json(self):
        return self._payload


class FakeSession:
    """Records every request and replays queued responses in order."""

    def __init__(self, responses=None):
        self.calls = []
        self.responses = list(responses or [])

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.responses:
            return self.responses.pop(0)
        return FakeResponse(201)


@pytest.fixture()
def fake_session():
    return FakeSession()


@pytest.fixture()
def fake_response():
    return FakeResponse
