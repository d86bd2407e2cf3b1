from __future__ import annotations

import json

import pytest

from excel_autorun.config.constants import DEFAULT_MAX_WAIT_S
from excel_autorun.config.io import load_settings, split_args
from excel_autorun.excel.errors import DocumentOpenError, PathNotFound


def test_missing_settings_file_gives_defaults(tmp_path):
    s = load_settings(tmp_path / "settings.json")

    assert s.max_wait == DEFAULT_MAX_WAIT_S
    assert s.save_on_success is True
    assert s.visible is False
    assert s.required_folders is None
    assert s.jobs == {}


def test_malformed_settings_file_gives_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    assert load_settings(path).jobs == {}


def test_settings_are_parsed(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps(
            {
                "log_dir": "C:/logs",
                "visible": "yes",
                "save_on_success": False,
                "max_wait": 600,
                "settle_delay": 0,
                "required_folders": "C:/Windows/System32/config/systemprofile/Desktop",
                "jobs": {
                    "daily": {"label": "Daily refresh", "workbook_path": "C:/r/daily.xlsm", "procedure": "Refresh", "args": "a;b"},
                    "autorun": {"workbook_path": "C:/r/auto.xlsm"},
                    "broken": {"procedure": "NoWorkbook"},
                    "junk": 3,
                },
            }
        ),
        encoding="utf-8",
    )

    s = load_settings(path)

    assert s.log_dir == "C:/logs"
    assert s.visible is True
    assert s.save_on_success is False
    assert s.max_wait == 600
    assert s.settle_delay == 0
    assert s.required_folders == ["C:/Windows/System32/config/systemprofile/Desktop"]
    assert sorted(s.jobs) == ["autorun", "daily"]
    assert s.jobs["daily"].procedure == "Refresh"
    assert s.jobs["autorun"].label == "autorun"


def test_invalid_max_wait_falls_back(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"max_wait": -5}), encoding="utf-8")

    assert load_settings(path).max_wait == DEFAULT_MAX_WAIT_S


def test_split_args():
    assert split_args(" a; b;;c ") == ["a", "b", "c"]
    assert split_args("") == []


def test_validate_missing_document(make_config, tmp_path):
    config = make_config(document_path=tmp_path / "nope.xlsx")

    with pytest.raises(PathNotFound) as exc_info:
        config.validate()

    assert isinstance(exc_info.value, DocumentOpenError)


def test_validate_rejects_bad_ceiling(make_config):
    with pytest.raises(ValueError):
        make_config(max_wait=0).validate()


def test_waits_for_autorun(make_config):
    assert make_config(procedure=None).waits_for_autorun
    assert make_config(procedure="  ").waits_for_autorun
    assert not make_config(procedure="Main").waits_for_autorun


def test_run_config_is_immutable(make_config):
    config = make_config()

    with pytest.raises(AttributeError):
        config.save_on_success = False


def test_null_log_dir_falls_back_to_default(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"log_dir": None}), encoding="utf-8")

    assert load_settings(path).log_dir == ""
