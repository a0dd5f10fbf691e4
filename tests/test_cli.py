from __future__ import annotations

import json

import pytest
import responses

from crm_browser.cli import main
from crm_browser.entities import DEALS
from crm_browser.models import PageResult
from crm_browser.table_printer import page_summary, render_table


@pytest.fixture
def deals_file(tmp_path):
    records = [{"id": f"d{idx}", "name": f"Deal {idx}", "amount": idx * 100} for idx in range(1, 8)]
    path = tmp_path / "deals.json"
    path.write_text(json.dumps({"data": records}), encoding="utf-8")
    return path


def test_browse_json_output(deals_file, capsys: pytest.CaptureFixture[str]) -> None:
    main(
        [
            "browse",
            "deals",
            "--input",
            str(deals_file),
            "--filter",
            "amount:greater_than:150",
            "--sort",
            "amount",
            "--desc",
            "--page-size",
            "2",
            "--page",
            "9",
            "--json",
        ]
    )

    payload = json.loads(capsys.readouterr().out)
    assert payload["entity"] == "deals"
    assert payload["pagination"]["page"] == 3
    assert payload["pagination"]["total"] == 6
    assert [row["id"] for row in payload["data"]] == ["d3", "d2"]


def test_browse_table_output(deals_file, capsys: pytest.CaptureFixture[str]) -> None:
    main(["browse", "deals", "--input", str(deals_file), "--search", "deal 7"])

    out = capsys.readouterr().out
    assert "Deal name" in out
    assert "Deal 7" in out
    assert "Showing 1-1 of 1 (page 1 of 1)" in out


def test_browse_saves_and_restores_view(deals_file, tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("CRM_VIEW_STATE_PATH", str(tmp_path / "views.json"))
    main(["browse", "deals", "--input", str(deals_file), "--sort", "amount", "--desc", "--save-view", "--json"])
    capsys.readouterr()

    main(["browse", "deals", "--input", str(deals_file), "--restore-view", "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["data"][0]["id"] == "d7"


def test_restored_view_without_page_size_uses_configured_default(deals_file, tmp_path, monkeypatch, capsys) -> None:
    views = tmp_path / "views.json"
    views.write_text(
        json.dumps({"version": 1, "views": {"deals": {"sort": {"field": "amount", "direction": "desc"}}}}),
        encoding="utf-8",
    )
    monkeypatch.setenv("CRM_VIEW_STATE_PATH", str(views))
    monkeypatch.setenv("CRM_DEFAULT_PAGE_SIZE", "3")

    main(["browse", "deals", "--input", str(deals_file), "--restore-view", "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["pagination"]["page_size"] == 3
    assert [row["id"] for row in payload["data"]] == ["d7", "d6", "d5"]


def test_browse_exports_csv(deals_file, tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["browse", "deals", "--input", str(deals_file), "--export", str(tmp_path / "out")])

    assert "exported" in capsys.readouterr().out
    assert len(list((tmp_path / "out").glob("deals_*.csv"))) == 1


def test_invalid_filter_exits_with_usage_error(deals_file, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["browse", "deals", "--input", str(deals_file), "--filter", "amount:between:5"])

    assert exc_info.value.code == 2
    assert "error:" in capsys.readouterr().err


def test_missing_input_file_exits_with_usage_error(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["browse", "deals", "--input", str(tmp_path / "missing.json")])

    assert exc_info.value.code == 2
    assert "cannot read records file" in capsys.readouterr().err


def test_malformed_input_file_exits_with_usage_error(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    broken = tmp_path / "deals.json"
    broken.write_text("{not json", encoding="utf-8")

    with pytest.raises(SystemExit) as exc_info:
        main(["browse", "deals", "--input", str(broken)])

    assert exc_info.value.code == 2
    assert "invalid JSON" in capsys.readouterr().err


def test_unknown_entity_exits_with_usage_error(deals_file, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["browse", "invoices", "--input", str(deals_file)])

    assert exc_info.value.code == 2
    assert "Unknown entity type" in capsys.readouterr().err


@responses.activate
def test_api_errors_exit_with_json(monkeypatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setenv("CRM_API_BASE_URL", "https://crm.example.com")
    monkeypatch.setenv("CRM_RETRIES", "0")
    responses.add(
        responses.GET,
        "https://crm.example.com/api/crm/deals",
        json={"error": "Invalid or expired token"},
        status=401,
    )

    with pytest.raises(SystemExit) as exc_info:
        main(["browse", "deals", "--token", "stale"])

    assert exc_info.value.code == 1
    error = json.loads(capsys.readouterr().err)
    assert error["message"] == "Invalid or expired token"


def test_entities_command(capsys: pytest.CaptureFixture[str]) -> None:
    main(["entities"])

    out = capsys.readouterr().out
    assert out.splitlines()[0].startswith("companies: sortable=name")


def test_render_empty_and_clipped_cells() -> None:
    empty = PageResult(records=(), page=1, page_size=10, total_items=0, total_pages=0, requested_page=1)
    long_name = {"id": "d1", "name": "x" * 60}
    page = PageResult(records=(long_name,), page=1, page_size=10, total_items=1, total_pages=1, requested_page=1)

    assert render_table(empty, DEALS) == ["(no results)"]
    assert page_summary(empty) == "Showing 0 of 0"
    lines = render_table(page, DEALS, ["name"])
    assert lines[0].strip() == "Deal name"
    assert lines[2].strip() == "x" * 37 + "..."
