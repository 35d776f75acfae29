"""Tests for the command-line interface."""

import json
from datetime import date

import pytest

from shoplist.pricing.cli import main
from shoplist.pricing.db import PriceLedger, ShoppingListDB
from shoplist.pricing.models import ListItem


@pytest.fixture
def config_file(tmp_path):
    db_path = tmp_path / "cli.db"
    path = tmp_path / "pricing.toml"
    path.write_text(f'[database]\npath = "{db_path.as_posix()}"\n')
    return path, db_path


def test_no_command_exits(capsys):
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 1


def test_parse_size_json(capsys):
    main(["parse-size", "2 pints", "--price", "1.45", "--json"])
    data = json.loads(capsys.readouterr().out)
    assert data["display"] == "2pt"
    assert data["category"] == "volume"
    assert data["normalized_value"] == 1136
    assert data["price_per_unit"] == pytest.approx(0.13, abs=0.01)


def test_parse_size_unparseable(capsys):
    with pytest.raises(SystemExit):
        main(["parse-size", "a handful"])
    assert "Could not parse" in capsys.readouterr().err


def test_match_candidates(capsys):
    main(["match", "millk", "milk", "silk", "bread", "--json"])
    data = json.loads(capsys.readouterr().out)
    assert data[0]["name"] == "milk"
    assert all(m["name"] != "bread" for m in data)


def test_ingest_then_match_ledger(tmp_path, config_file, capsys):
    path, db_path = config_file
    receipt = tmp_path / "receipt.json"
    receipt.write_text(json.dumps({
        "store": "Tesco Express",
        "date": "2026-03-01",
        "receipt_id": "r1",
        "items": [
            {"name": "Semi Skimmed Milk 2 Pints", "price": 1.45},
            {"name": "Carrier Bag", "price": 0.10},
        ],
    }))

    main(["-c", str(path), "ingest", str(receipt), "--reporter", "u1", "--json"])
    summary = json.loads(capsys.readouterr().out)
    assert summary["upserted"] == 1
    assert summary["skipped"] == 1

    main(["-c", str(path), "match", "semi skimed milk", "--json"])
    matches = json.loads(capsys.readouterr().out)
    assert matches[0]["name"] == "semi skimmed milk"


def test_resolve_json(config_file, capsys):
    path, db_path = config_file
    ledger = PriceLedger(db_path)
    ledger.upsert("milk", "asda", 1.20, date(2026, 3, 1), "u2", size="2pt")
    ledger.close()

    main(["-c", str(path), "resolve", "milk", "caviar", "--json"])
    data = json.loads(capsys.readouterr().out)
    assert data["milk"]["price"] == 1.20
    assert data["milk"]["source"] == "crowdsourced"
    assert data["caviar"]["price"] is None


def test_switch_dry_run_and_commit(config_file, capsys):
    path, db_path = config_file
    ledger = PriceLedger(db_path)
    ledger.upsert("milk", "asda", 2.50, date(2026, 3, 1), "u2", size="4pt")
    ledger.close()
    lists = ShoppingListDB(db_path)
    list_id = lists.create_list("Weekly shop", store_id="tesco")
    lists.add_items(list_id, [ListItem(name="milk", size="2pt", estimated_price=1.45)])
    lists.close()

    main(["-c", str(path), "switch", str(list_id), "--to", "asda", "--dry-run"])
    assert "dry run" in capsys.readouterr().out
    lists = ShoppingListDB(db_path)
    assert lists.get_list(list_id)["store_id"] == "tesco"
    lists.close()

    main(["-c", str(path), "switch", str(list_id), "--to", "asda", "--json"])
    data = json.loads(capsys.readouterr().out)
    assert data["new_store"] == "asda"
    assert data["size_changes"] == [{"item": "milk", "from": "2pt", "to": "4pt"}]
    lists = ShoppingListDB(db_path)
    assert lists.get_list(list_id)["store_id"] == "asda"
    lists.close()


def test_compare_missing_list(config_file, capsys):
    path, _ = config_file
    with pytest.raises(SystemExit) as exc:
        main(["-c", str(path), "compare", "99", "--stores", "asda"])
    assert exc.value.code == 1
    assert "no shopping list" in capsys.readouterr().err
