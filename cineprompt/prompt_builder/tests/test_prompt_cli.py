import json
import logging
import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[3]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cineprompt.config_service import config_service
from cineprompt.prompt_builder.__main__ import build_parser, main


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("CINEPROMPT_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.delenv("CINEPROMPT_SETTINGS", raising=False)
    monkeypatch.delenv("CINEPROMPT_CATALOG", raising=False)
    for key in list(os.environ):
        if key.startswith("CINEPROMPT_") and key not in config_service.RESERVED_ENV_KEYS:
            monkeypatch.delenv(key)
    return tmp_path


def test_parser_rejects_two_output_modes():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--conflicts", "--json"])


def test_prints_prompt_for_changes(capsys):
    main(["--model", "midjourney", "--set", "subject=a lone wanderer"])
    assert capsys.readouterr().out == "a lone wanderer\n"


def test_empty_selection_prints_placeholder(capsys):
    main([])
    assert capsys.readouterr().out.strip() == "Start by adding a subject..."


def test_snapshot_file_and_json_output(tmp_path, capsys):
    snapshot = tmp_path / "snapshot.json"
    snapshot.write_text(json.dumps({"subject": "a fox", "aspect_ratio": "16:9"}), encoding="utf-8")

    main(["--snapshot", str(snapshot), "--model", "chatgpt", "--json"])
    payload = json.loads(capsys.readouterr().out)
    assert payload["model"] == "chatgpt"
    assert payload["prompt"] == "generate this: a fox, in 16:9 aspect ratio"
    assert payload["conflicts"]["has_conflicts"] is False


def test_conflict_report(capsys):
    main(["--set", "camera=VHS Camcorder", "--conflicts"])
    report = json.loads(capsys.readouterr().out)
    assert "studio" in report["blocked_atmospheres"]
    assert report["allowed_aspect_ratios"] == ["4:3"]


def test_blocked_change_is_logged(caplog, capsys):
    with caplog.at_level(logging.WARNING):
        main(["--model", "midjourney", "--set", "subject=a fox", "--set", "camera=VHS Camcorder", "--set", "atmosphere=studio"])
    assert "atmosphere=studio was not applied" in caplog.text
    assert "studio lighting" not in capsys.readouterr().out


def test_unknown_model_exits():
    with pytest.raises(SystemExit, match="Unsupported AI model: pixelart"):
        main(["--model", "pixelart"])


def test_malformed_change_exits():
    with pytest.raises(SystemExit, match="field=value"):
        main(["--set", "subject"])


def test_default_model_from_settings(tmp_path, capsys):
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"generator": {"default_model": "flux"}}), encoding="utf-8")
    main(["--settings", str(settings), "--set", "subject=a fox"])
    assert capsys.readouterr().out == "a fox.\n"
