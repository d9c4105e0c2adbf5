#!/usr/bin/env python3
"""
Integration tests for the catalog CLI.

Runs the commands end to end against both backends in a temporary
directory.
"""
import json
import pytest
from click.testing import CliRunner

from flexlist.cli import cli


class TestCatalogCLI:
    """Test catalog commands on a temporary store."""

    @pytest.fixture
    def runner(self):
        """Create Click test runner."""
        return CliRunner()

    @pytest.fixture(params=["durable", "local"])
    def backend(self, request):
        return request.param

    @pytest.fixture
    def test_dirs(self, tmp_path):
        """Temporary locations for data and logs."""
        return {
            "db_path": tmp_path / "data" / "flexlist.db",
            "snapshot_path": tmp_path / "data" / "flexlist_db.json",
            "log_dir": tmp_path / "logs",
        }

    @pytest.fixture
    def invoke(self, runner, test_dirs, backend):
        """Invoke the CLI with the test backend and paths."""

        def _invoke(args, seed=False, **kwargs):
            base_args = [
                "--backend", backend,
                "--db-path", str(test_dirs["db_path"]),
                "--snapshot-path", str(test_dirs["snapshot_path"]),
                "--log-dir", str(test_dirs["log_dir"]),
                "--seed" if seed else "--no-seed",
            ]
            return runner.invoke(cli, base_args + args, **kwargs)

        return _invoke

    @pytest.fixture
    def collection_id(self, invoke):
        """Create a collection and return its id."""
        result = invoke(["collections", "create", "Standards", "-d", "Tunes to learn"])
        assert result.exit_code == 0, result.output
        listed = json.loads(invoke(["collections", "list", "--json"]).output)
        return listed[0]["id"]

    def _item_ids(self, invoke, collection_id):
        result = invoke(["items", "list", collection_id, "--json"])
        assert result.exit_code == 0, result.output
        return {item["title"]: item["id"] for item in json.loads(result.output)}

    def test_cli_help(self, runner):
        """Top-level help lists the command groups."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for group in ("collections", "items", "tags", "import"):
            assert group in result.output

    def test_seeded_catalog(self, invoke):
        result = invoke(["collections", "list"], seed=True)
        assert result.exit_code == 0, result.output
        assert "Sample (3 items)" in result.output

    def test_empty_catalog(self, invoke):
        result = invoke(["collections", "list"])
        assert result.exit_code == 0
        assert "No collections yet." in result.output

    def test_collection_lifecycle(self, invoke, collection_id):
        result = invoke(["collections", "rename", collection_id, "Set List"])
        assert result.exit_code == 0
        assert "Set List" in result.output

        result = invoke(["collections", "show", collection_id])
        assert "Set List" in result.output
        assert "Tunes to learn" in result.output

        result = invoke(["collections", "delete", collection_id, "--yes"])
        assert result.exit_code == 0
        assert invoke(["collections", "show", collection_id]).exit_code == 1

    def test_rename_requires_a_change(self, invoke, collection_id):
        result = invoke(["collections", "rename", collection_id])
        assert result.exit_code != 0

    def test_delete_asks_for_confirmation(self, invoke, collection_id):
        result = invoke(["collections", "delete", collection_id], input="n\n")
        assert result.exit_code != 0
        assert invoke(["collections", "show", collection_id]).exit_code == 0

    def test_add_show_and_filter_items(self, invoke, collection_id):
        result = invoke([
            "items", "add", collection_id, "Misty",
            "--key", "Eb", "--composer", "Erroll Garner",
            "--level", "knows", "--tag", "Tempo=Slow",
        ])
        assert result.exit_code == 0, result.output
        invoke(["items", "add", collection_id, "Autumn Leaves", "--key", "Bb"])

        ids = self._item_ids(invoke, collection_id)
        result = invoke(["items", "show", ids["Misty"]])
        assert "Key: Eb" in result.output
        assert "Tempo: Slow" in result.output

        result = invoke(["items", "filter", collection_id, "--tag", "Key=Eb", "--tag", "Key=Bb", "--json"])
        assert [i["title"] for i in json.loads(result.output)] == ["Misty", "Autumn Leaves"]

        result = invoke(["items", "filter", collection_id, "--level", "knows", "--json"])
        assert [i["title"] for i in json.loads(result.output)] == ["Misty"]

        result = invoke(["items", "filter", collection_id, "-s", "garner"])
        assert "Misty" in result.output
        assert "Autumn Leaves" not in result.output

    def test_edit_and_delete_item(self, invoke, collection_id):
        invoke(["items", "add", collection_id, "Solar", "--tag", "Tempo=Fast"])
        item_id = self._item_ids(invoke, collection_id)["Solar"]

        result = invoke(["items", "edit", item_id, "--title", "Solar (Miles)", "--style", "Bebop"])
        assert result.exit_code == 0, result.output

        result = invoke(["items", "show", item_id])
        assert "Solar (Miles)" in result.output
        assert "Style: Bebop" in result.output
        assert "Tempo: Fast" in result.output

        assert invoke(["items", "delete", item_id]).exit_code == 0
        assert invoke(["items", "show", item_id]).exit_code == 1

    def test_bad_tag_option(self, invoke, collection_id):
        result = invoke(["items", "add", collection_id, "Solar", "--tag", "Tempo"])
        assert result.exit_code != 0
        assert "KEY=VALUE" in result.output

    def test_unknown_collection_is_reported(self, invoke):
        result = invoke(["items", "add", "missing", "Solar"])
        assert result.exit_code == 1
        assert "ValidationError" in result.output

    def test_tag_commands(self, invoke, collection_id):
        invoke(["items", "add", collection_id, "Misty", "--composer", "Erroll Garner", "--tag", "Tempo=Slow"])
        invoke(["tags", "add", "Form", "AABA"])

        result = invoke(["tags", "available", collection_id, "--json"])
        assert json.loads(result.output) == {"Composer": ["Erroll Garner"], "Tempo": ["Slow"]}

        assert invoke(["tags", "keys"]).output.split() == ["Composer", "Form", "Tempo"]
        assert invoke(["tags", "values", "tempo"]).output.strip() == "Slow"
        assert invoke(["tags", "legacy", "composer"]).output.strip() == "Erroll Garner"

    def test_import_commands(self, invoke, collection_id, tmp_path):
        invoke(["items", "add", collection_id, "Misty", "--key", "Eb"])
        misty_id = self._item_ids(invoke, collection_id)["Misty"]

        invoke(["collections", "create", "Gig"])
        listed = json.loads(invoke(["collections", "list", "--json"]).output)
        gig_id = next(c["id"] for c in listed if c["name"] == "Gig")

        result = invoke(["import", "ids", gig_id, misty_id, "missing"])
        assert "Imported 1 of 2 items" in result.output

        titles = tmp_path / "titles.txt"
        titles.write_text("[  ] Solar\nmisty\n\nNardis\n", encoding="utf-8")
        result = invoke(["import", "titles", gig_id, str(titles)])
        assert result.exit_code == 0, result.output
        assert "Imported 2 items" in result.output
        assert "= misty" in result.output

        result = invoke(["import", "titles", gig_id], input="Blue Bossa\n")
        assert "+ Blue Bossa" in result.output
        assert list(self._item_ids(invoke, gig_id)) == ["Misty", "Solar", "Nardis", "Blue Bossa"]

    def test_log_files_written(self, invoke, test_dirs):
        invoke(["collections", "create", "Gig"])
        assert any(test_dirs["log_dir"].iterdir())
