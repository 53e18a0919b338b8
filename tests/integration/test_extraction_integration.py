"""
Integration tests for end-to-end extraction and the CLI.
"""
import json
import pytest
import yaml
from unittest.mock import patch
from click.testing import CliRunner

from tablesource.cli.main import cli
from tablesource.core.config import ConfigManager, ExtractionConfig
from tablesource.extraction import (
    ExtractionOrchestrator,
    JsonFileArgumentStore,
    LocalSplitRunner,
    SchemaPublisher,
    TableSchema,
)
from tablesource.extraction.exceptions import ExtractionQueryError
from tablesource.extraction.splitter import SplitPlanner


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep shell configuration out of the CLI runs."""
    for name in list(ConfigManager.ENV_OVERRIDES) + ['DEBUG']:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_config(tmp_path, sqlite_path):
    """Write a CLI configuration file for the sample database."""
    def _write(**extraction):
        path = tmp_path / "tablesource.yaml"
        path.write_text(yaml.safe_dump({
            "database": {"database_type": "sqlite", "database": str(sqlite_path), "password": "hunter2"},
            "extraction": extraction,
            "logging": {"level": "WARNING"},
        }))
        return str(path)
    return _write


def read_jsonl(path):
    with open(path, 'r', encoding='utf-8') as f:
        return [json.loads(line) for line in f if line.strip()]


@pytest.mark.integration
@pytest.mark.database
class TestExtractionPipeline:
    """Test the orchestrator, runner and a downstream schema reader together."""

    def test_schemas_visible_to_later_stage(self, source_db, tmp_path):
        """Test that a later stage reads the published schemas from the argument file."""
        path = tmp_path / "arguments.json"
        config = ExtractionConfig(mode="pattern", include_patterns=["ord*"], split_size=2)
        orchestrator = ExtractionOrchestrator(source_db, config, JsonFileArgumentStore(path))

        splits = orchestrator.plan()
        records = []
        results = LocalSplitRunner(orchestrator, max_workers=3).run(records.append)

        downstream = JsonFileArgumentStore(path)
        publisher = SchemaPublisher()
        for table in orchestrator.tables:
            published = publisher.read(downstream, table)
            assert isinstance(published, TableSchema)
            assert published == orchestrator.schemas[table]

        assert len(results) == len(splits)
        by_table = {}
        for record in records:
            row = record.to_dict()
            by_table.setdefault(row["tablename"], []).append(row["id"])
        assert {name: sorted(ids) for name, ids in by_table.items()} == {
            "ord_1": [1, 2], "ord_2": [10], "orders": [1, 2, 3],
        }


@pytest.mark.integration
@pytest.mark.database
class TestCLI:
    """Test the command line interface against SQLite."""

    def test_tables(self, write_config):
        """Test listing resolved tables."""
        result = CliRunner().invoke(cli, ["--config-file", write_config(include_patterns=["ord_*"]), "tables"])

        assert result.exit_code == 0, result.output
        assert "ord_1" in result.output
        assert "ord_2" in result.output
        assert "customer" not in result.output

    def test_plan_writes_arguments(self, write_config, tmp_path):
        """Test planning and schema publication to a file."""
        arguments = tmp_path / "out" / "arguments.json"
        config_file = write_config(mode="explicit", tables=["orders", "empty_tbl"], split_size=2)

        result = CliRunner().invoke(cli, ["--config-file", config_file, "plan", "--arguments", str(arguments)])

        assert result.exit_code == 0, result.output
        assert "3 splits" in result.output
        assert sorted(json.loads(arguments.read_text())) == ["multisink.empty_tbl", "multisink.orders"]

    def test_plan_twice_starts_fresh(self, write_config, tmp_path):
        """Test that each CLI run starts with a new argument file."""
        arguments = str(tmp_path / "arguments.json")
        config_file = write_config(mode="explicit", tables=["customer"])

        for _ in range(2):
            result = CliRunner().invoke(cli, ["--config-file", config_file, "plan", "--arguments", arguments])
            assert result.exit_code == 0, result.output

    def test_extract(self, write_config, tmp_path):
        """Test extracting rows to JSON lines."""
        output = tmp_path / "rows.jsonl"
        config_file = write_config(include_patterns=["orders", "events"], split_size=1)

        result = CliRunner().invoke(cli, ["--config-file", config_file, "extract", "--output", str(output),
                                          "--workers", "2"])

        assert result.exit_code == 0, result.output
        rows = read_jsonl(output)
        assert len(rows) == 6
        orders = sorted((r for r in rows if r["tablename"] == "orders"), key=lambda r: r["id"])
        assert [r["id"] for r in orders] == [1, 2, 3]
        assert orders[0]["created"] == "2024-01-05"
        assert orders[0]["amount"] == "19.99"

    def test_extract_reports_failed_split(self, write_config, execute_sql, tmp_path):
        """Test that a failing split gives a non-zero exit without losing other tables."""
        execute_sql(
            "CREATE TABLE readings (id INTEGER PRIMARY KEY, qty INTEGER)",
            "INSERT INTO readings (id, qty) VALUES (1, 'n/a')",
        )
        output = tmp_path / "rows.jsonl"
        config_file = write_config(mode="explicit", tables=["customer", "readings"])

        result = CliRunner().invoke(cli, ["--config-file", config_file, "extract", "--output", str(output)])

        assert result.exit_code == 1
        assert "readings" in result.output
        assert sorted(r["id"] for r in read_jsonl(output) if r["tablename"] == "customer") == [1, 2]

    def test_planning_failure(self, write_config, tmp_path):
        """Test that a resolution failure aborts before any output."""
        config_file = write_config(mode="explicit", tables=["missing_tbl"])

        result = CliRunner().invoke(cli, ["--config-file", config_file, "plan"])

        assert result.exit_code == 1
        assert "missing_tbl" in result.output

    def test_failed_plan_leaves_no_arguments(self, write_config, tmp_path):
        """Test that a run failing on a bad bound column writes no argument file."""
        arguments = tmp_path / "arguments.json"
        config_file = write_config(mode="explicit", tables=["customer", "orders"],
                                   split_columns={"orders": "nope"})

        result = CliRunner().invoke(cli, ["--config-file", config_file, "plan", "--arguments", str(arguments)])

        assert result.exit_code == 1
        assert "nope" in result.output
        assert not arguments.exists()

    def test_failure_after_publication_discards_schemas(self, write_config, tmp_path):
        """Test that schemas staged before a split planning failure never reach the file."""
        arguments = tmp_path / "arguments.json"
        config_file = write_config(mode="explicit", tables=["customer", "orders"])
        runner = CliRunner()
        first = runner.invoke(cli, ["--config-file", config_file, "plan", "--arguments", str(arguments)])
        assert first.exit_code == 0, first.output
        assert arguments.exists()

        with patch.object(SplitPlanner, 'plan', side_effect=ExtractionQueryError("bounds query timed out")):
            result = runner.invoke(cli, ["--config-file", config_file, "extract",
                                         "--output", str(tmp_path / "rows.jsonl"),
                                         "--arguments", str(arguments)])

        assert result.exit_code == 1
        assert not arguments.exists()

    def test_show_config_masks_password(self, write_config):
        """Test that the password is never printed."""
        result = CliRunner().invoke(cli, ["--config-file", write_config(), "show-config"])

        assert result.exit_code == 0, result.output
        assert "hunter2" not in result.output
        assert "********" in result.output

    def test_invalid_config(self, tmp_path):
        """Test that invalid configuration exits with an error."""
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"extraction": {"mode": "explicit"}}))

        result = CliRunner().invoke(cli, ["--config-file", str(path), "tables"])

        assert result.exit_code == 1
        assert "Error loading configuration" in result.output
