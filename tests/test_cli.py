"""
Tests for the command-line interface.
"""

import json

import pytest

from tracery.main import main


@pytest.fixture
def snapshot_file(sample_snapshot, tmp_path):
    path = tmp_path / "contoso.json"
    path.write_text(json.dumps(sample_snapshot), encoding="utf-8")
    return str(path)


class TestMain:
    def test_quiet_run_prints_summary(self, snapshot_file, tmp_path, capsys) -> None:
        out_dir = tmp_path / "results"
        code = main([snapshot_file, "-o", str(out_dir), "-q"])
        output = capsys.readouterr().out

        assert code == 0
        assert "Analysis Complete" in output
        assert "  - Critical: 1" in output
        assert "External Endpoints: 2" in output
        assert "[*] Loading" not in output
        assert (out_dir / "tracery_results.json").exists()

    def test_verbose_run_prints_text_report(self, snapshot_file, tmp_path, capsys) -> None:
        code = main([snapshot_file, "-o", str(tmp_path), "-v"])
        output = capsys.readouterr().out

        assert code == 0
        assert "[+] Analysis complete!" in output
        assert "PIPELINE RISKS" in output

    def test_config_file_and_no_json(self, snapshot_file, tmp_path, capsys) -> None:
        config_path = tmp_path / "tracery.json"
        config_path.write_text(json.dumps({"trust": {"known_domains": []}}), encoding="utf-8")
        out_dir = tmp_path / "results"

        code = main([snapshot_file, "-c", str(config_path), "-o", str(out_dir), "--no-json", "-q"])

        assert code == 0
        assert not (out_dir / "tracery_results.json").exists()
        assert "JSON:" not in capsys.readouterr().out

    def test_missing_snapshot_returns_error(self, tmp_path, capsys) -> None:
        code = main([str(tmp_path / "absent.json"), "-o", str(tmp_path), "-q"])

        assert code == 1
        assert "[!] Error: Snapshot not found" in capsys.readouterr().out
