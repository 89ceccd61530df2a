"""Tests for the damaudit and diagnose command-line tools."""

import json
from datetime import datetime, timezone

import pytest

import damaudit
import diagnose
from conftest import U1, U2, U3, document, folder, node, prop


def run(argv) -> int:
    with pytest.raises(SystemExit) as exc_info:
        damaudit.main(argv)
    return exc_info.value.code


class TestCheckCommand:
    """Test ``damaudit check``."""

    def test_writes_three_reports(self, tmp_path, write_file, three_asset_export, capsys) -> None:
        assets = write_file("dam.xml", three_asset_export)
        pages = write_file("pages.xml", f"<site><a>{U1}</a><b>/dam/jcr:{U2}/x.png</b></site>")
        out_dir = tmp_path / "reports"

        code = run(["check", "-a", str(assets), "-p", str(pages), "-o", "cleanup",
                    "-f", "json", "--output-dir", str(out_dir)])

        assert code == 0
        unused = list(out_dir.glob("cleanup_unused_*.json"))
        referenced = list(out_dir.glob("cleanup_referenced_*.json"))
        all_assets = list(out_dir.glob("cleanup_all_assets_*.json"))
        assert len(unused) == len(referenced) == len(all_assets) == 1

        assert [r['uuid'] for r in json.loads(unused[0].read_text())] == [U3]
        assert [r['uuid'] for r in json.loads(referenced[0].read_text())] == [U1, U2]
        assert len(json.loads(all_assets[0].read_text())) == 3

        output = capsys.readouterr().out
        assert "Unused assets:           1" in output

    def test_reports_share_one_timestamp(self, tmp_path, write_file, three_asset_export,
                                         monkeypatch) -> None:
        """Test that all reports of a run carry the run's start time."""
        class FrozenDatetime(datetime):
            @classmethod
            def now(cls, tz=None):
                return cls(2024, 1, 31, 23, 59, 59, tzinfo=timezone.utc)

        monkeypatch.setattr(damaudit, "datetime", FrozenDatetime)
        assets = write_file("dam.xml", three_asset_export)
        pages = write_file("pages.xml", f"<site>{U1}</site>")

        code = run(["check", "-a", str(assets), "-p", str(pages), "-o", "run", "-q",
                    "--output-dir", str(tmp_path)])

        assert code == 0
        names = sorted(p.name for p in tmp_path.glob("run_*.csv"))
        assert names == [
            "run_all_assets_20240131_235959.csv",
            "run_referenced_20240131_235959.csv",
            "run_unused_20240131_235959.csv",
        ]

    def test_structural_mode_with_yaml(self, tmp_path, write_file, three_asset_export) -> None:
        assets = write_file("dam.xml", three_asset_export)
        pages = write_file("pages.yml", f"teaser:\n  image: /dam/jcr:{U3}/logo.svg\n")

        code = run(["check", "-a", str(assets), "-p", str(pages), "-o", "out",
                    "--mode", "structural", "--detailed", "-q",
                    "--output-dir", str(tmp_path)])

        assert code == 0
        csv_text = next(tmp_path.glob("out_referenced_*.csv")).read_text()
        assert csv_text.splitlines()[0] == "assetName,fileName,location,mimeType,size,uuid"
        assert U3 in csv_text

    def test_missing_asset_file(self, tmp_path, write_file, capsys) -> None:
        pages = write_file("pages.xml", "<site/>")
        code = run(["check", "-a", str(tmp_path / "nope.xml"), "-p", str(pages), "-o", "x"])

        assert code == 1
        assert "Asset file not found" in capsys.readouterr().err

    def test_wrong_page_extension(self, write_file, three_asset_export, capsys) -> None:
        assets = write_file("dam.xml", three_asset_export)
        pages = write_file("pages.json", "{}")
        code = run(["check", "-a", str(assets), "-p", str(pages), "-o", "x"])

        assert code == 1
        assert "Page file must be XML or YAML" in capsys.readouterr().err

    def test_invalid_config(self, write_file, three_asset_export, capsys) -> None:
        assets = write_file("dam.xml", three_asset_export)
        pages = write_file("pages.xml", "<site/>")
        config = write_file("bad.yaml", "colors: {}\n")
        code = run(["check", "-a", str(assets), "-p", str(pages), "-o", "x", "-c", str(config)])

        assert code == 1
        assert "Unknown configuration sections" in capsys.readouterr().err

    def test_unreadable_page_export_exits_nonzero(self, tmp_path, write_file, three_asset_export) -> None:
        assets = write_file("dam.xml", three_asset_export)
        pages = write_file("pages.xml", "<site>")
        code = run(["check", "-a", str(assets), "-p", str(pages), "-o", "x", "-q",
                    "--mode", "structural", "--output-dir", str(tmp_path)])

        assert code == 1
        assert len(list(tmp_path.glob("x_unused_*.csv"))) == 1


class TestExtractCommand:
    """Test ``damaudit extract``."""

    def test_writes_asset_list(self, tmp_path, write_file, three_asset_export, capsys) -> None:
        assets = write_file("dam.xml", three_asset_export)
        code = run(["extract", "-i", str(assets), "-o", "assets", "-f", "txt",
                    "--output-dir", str(tmp_path)])

        assert code == 0
        report = next(tmp_path.glob("assets_*.txt")).read_text()
        assert "Total assets: 3" in report
        assert "Extracted 3 asset files" in capsys.readouterr().out

    def test_no_assets(self, tmp_path, write_file) -> None:
        assets = write_file("dam.xml", document(folder("images")))
        code = run(["extract", "-i", str(assets), "-o", "assets", "--output-dir", str(tmp_path)])

        assert code == 1
        assert list(tmp_path.glob("assets_*")) == []


class TestDiagnose:
    """Test the export diagnostics tool."""

    def test_reports_types_and_unrecognized_nodes(self, write_file, capsys) -> None:
        export = write_file("dam.xml", document(folder(
            "images",
            node("hero", prop("jcr:primaryType", "mgnl:asset"), prop("jcr:uuid", U1)),
            node("doc", prop("jcr:primaryType", "acme:file"), prop("jcr:uuid", U2)),
            node("pdf", prop("jcr:primaryType", "mgnl:resource"), prop("jcr:uuid", U3)),
        )))

        diagnose.main([str(export)])
        output = capsys.readouterr().out

        assert "Asset nodes recognized: 2" in output
        assert "mgnl:asset: 1 (asset)" in output
        assert "marker: 1" in output
        assert "property_scan: 1" in output
        assert "not recognized as assets: 1" in output
        assert f"doc [acme:file] {U2}" in output
        assert '"acme:file"' in output

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            diagnose.main([str(tmp_path / "missing.xml")])
        assert exc_info.value.code == 1
