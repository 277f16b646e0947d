import pytest

from roikit.cli import main
from roikit.connectors.store.json_file import JsonFileStore
from roikit.csv_io import CSV_COLUMNS

HEADER = ",".join(label for _, label in CSV_COLUMNS)


@pytest.fixture()
def cli_store(tmp_path, monkeypatch, make_entry):
    path = tmp_path / "store.json"
    monkeypatch.setenv("ROIKIT_STORE", "json")
    monkeypatch.setenv("ROIKIT_DATA_PATH", str(path))
    monkeypatch.setenv("ROIKIT_SAVE_DEBOUNCE_MS", "0")
    store = JsonFileStore(path)
    store.batch_upsert([
        make_entry(month=2, spend=100, revenue=200, new_customers=2, number_of_sales=2),
        make_entry(month=3, spend=100, revenue=300, new_customers=3, number_of_sales=3),
    ])
    return store


def run(tmp_path, *argv):
    return main(["--env", str(tmp_path / "missing.env"), *argv])


def test_dashboard_to_stdout(tmp_path, cli_store, capsys):
    assert run(tmp_path, "dashboard", "--year", "2025", "--month", "3") == 0
    out = capsys.readouterr().out
    assert "# ROI Dashboard – March 2025 · all channels" in out
    assert "## March vs February 2025" not in out
    assert "## February vs March 2025" in out


def test_compare_and_out_file(tmp_path, cli_store, capsys):
    target = tmp_path / "reports" / "cmp.md"
    assert run(tmp_path, "compare", "--year", "2025", "--m1", "3", "--m2", "2", "--out", str(target)) == 0
    assert target.read_text(encoding="utf-8").startswith("# March vs February 2025")
    assert "Saved to" in capsys.readouterr().out

    assert run(tmp_path, "compare", "--year", "2024") == 1


def test_export_import_round_trip(tmp_path, cli_store, capsys):
    csv_path = tmp_path / "export.csv"
    assert run(tmp_path, "export", "--out", str(csv_path)) == 0
    assert csv_path.read_text(encoding="utf-8").startswith(HEADER)

    assert run(tmp_path, "import", str(csv_path), "--year", "2025") == 0
    assert "Added: 0. Updated: 2." in capsys.readouterr().out


def test_import_commit(tmp_path, cli_store):
    csv_path = tmp_path / "new.csv"
    csv_path.write_text(HEADER + "\n2025,4,1,,,WHATSAPP,10,,1,1,20,\n", encoding="utf-8")

    assert run(tmp_path, "import", str(csv_path)) == 0
    assert len(cli_store.list_entries()) == 2

    assert run(tmp_path, "import", str(csv_path), "--commit") == 0
    assert len(cli_store.list_entries()) == 3


def test_invalid_import_is_not_committed(tmp_path, cli_store, capsys):
    csv_path = tmp_path / "bad.csv"
    csv_path.write_text(HEADER + "\n2025,4,8,,,WHATSAPP,10,,1,1,20,\n", encoding="utf-8")
    assert run(tmp_path, "import", str(csv_path), "--commit") == 1
    assert len(cli_store.list_entries()) == 2
    assert "week_of_month" in capsys.readouterr().out


def test_lifecycle_commands(tmp_path, cli_store, capsys):
    entry_id = cli_store.list_entries()[0].id

    assert run(tmp_path, "purge", entry_id) == 1
    assert run(tmp_path, "trash", entry_id) == 0
    assert not {e.id: e for e in cli_store.list_entries()}[entry_id].is_active
    assert run(tmp_path, "restore", entry_id) == 0
    assert run(tmp_path, "trash", entry_id) == 0
    assert run(tmp_path, "purge", entry_id) == 0
    assert entry_id not in {e.id for e in cli_store.list_entries()}
    assert run(tmp_path, "trash", "does-not-exist") == 1
    assert "No entry with id does-not-exist" in capsys.readouterr().out


def test_validate_crm_and_reconcile(tmp_path, cli_store, make_entry, make_movement, capsys):
    assert run(tmp_path, "validate", "--year", "2025") == 0
    cli_store.insert_movement(make_movement("c1", "2025-03-04", 250))
    assert run(tmp_path, "crm", "--year", "2025", "--month", "3", "--channel", "whatsapp") == 0
    assert run(tmp_path, "reconcile", "--year", "2025", "--month", "3") == 0
    out = capsys.readouterr().out
    assert "# CRM – March 2025 · WHATSAPP" in out
    assert "| WHATSAPP | $300.00 | $250.00 |" in out

    cli_store.upsert(make_entry(month=3, week_of_month=9))
    assert run(tmp_path, "validate", "--year", "2025") == 1


def test_records_default_to_latest_year_with_data(tmp_path, cli_store, make_entry, capsys):
    cli_store.upsert(make_entry(id="bad-week", month=3, week_of_month=9, channel="REDES SOCIALES (META ADS)", spend=50, revenue=200))
    assert run(tmp_path, "records", "--month", "3") == 0
    out = capsys.readouterr().out
    assert "# Weekly records – March 2025 · all channels" in out
    assert "200.0% ROI" in out
    assert "| bad-week | 2025 M3 · W9 |" in out
    assert "4.00x ROAS" in out
    assert "week_of_month: Invalid week (1-5)." in out


def test_customer_view(tmp_path, cli_store, make_movement, capsys):
    cli_store.insert_movement(make_movement("c1", "2025-03-04", 250))
    cli_store.insert_movement(make_movement("c1", "2025-05-01", 50, tipo_movimiento="reembolso"))
    cli_store.insert_movement(make_movement("c2", "2025-03-05", 999))

    assert run(tmp_path, "customer", "c1") == 0
    out = capsys.readouterr().out
    assert "# Customer c1" in out
    assert "| Net revenue | $200.00 |" in out
    assert "| Last purchase | 2025-03-04 |" in out
    assert "$999.00" not in out

    assert run(tmp_path, "customer", "nobody") == 1
    assert "No movements for customer nobody." in capsys.readouterr().out


def test_bad_arguments(tmp_path, cli_store, monkeypatch):
    with pytest.raises(SystemExit):
        run(tmp_path, "dashboard", "--channel", "fax")
    with pytest.raises(SystemExit):
        run(tmp_path, "dashboard", "--month", "13")

    monkeypatch.setenv("ROIKIT_STORE", "rest")
    monkeypatch.delenv("ROIKIT_REST_URL", raising=False)
    monkeypatch.delenv("ROIKIT_REST_KEY", raising=False)
    with pytest.raises(SystemExit):
        run(tmp_path, "dashboard")
