"""
Test the command line interface
"""
import json
import logging
import pytest
from click.testing import CliRunner
from shard_search.cli import cli
from shard_search.core.config import Config


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI reconfigures the root logger; undo it after each test"""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestCli:
    """Test CLI commands that need no running servers"""

    def test_init_config(self, runner, tmp_path):
        output = tmp_path / "search_config.json"

        result = runner.invoke(cli, ['init-config', '--output', str(output)])

        assert result.exit_code == 0
        config = Config.load_from_file(str(output))
        assert config.shard.shard_id == "shard-b"
        assert config.coordinator.search_timeout == 30.0

    def test_split_dataset(self, runner, data_file, tmp_path):
        out_dir = tmp_path / "shards"

        result = runner.invoke(cli, [
            'split-dataset', str(data_file), '--shards', '2', '--output-dir', str(out_dir)
        ])

        assert result.exit_code == 0
        assert "Wrote 2 shard files" in result.output
        first = json.loads((out_dir / "shard_1.json").read_text(encoding="utf-8"))
        second = json.loads((out_dir / "shard_2.json").read_text(encoding="utf-8"))
        assert len(first) + len(second) == 3

    def test_split_dataset_rejects_bad_input(self, runner, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("not json", encoding="utf-8")

        result = runner.invoke(cli, ['split-dataset', str(bad), '--output-dir', str(tmp_path)])

        assert result.exit_code == 1
        assert "not valid JSON" in result.output

    def test_start_shard_with_missing_data_file(self, runner, tmp_path):
        """Test a shard that cannot load its documents exits with an error"""
        result = runner.invoke(cli, [
            'start-shard', '--shard-id', 'shard-b', '--port', '8081',
            '--data-file', str(tmp_path / "missing.json")
        ])

        assert result.exit_code == 1
        assert "failed to load documents" in result.output

    def test_start_shard_requires_settings(self, runner):
        result = runner.invoke(cli, ['start-shard', '--shard-id', 'shard-b'])

        assert result.exit_code == 2
        assert "Invalid shard configuration" in result.output

    def test_start_coordinator_rejects_bad_shard_address(self, runner):
        result = runner.invoke(cli, ['start-coordinator', '--shard', 'not-an-address'])

        assert result.exit_code == 2
        assert "Invalid coordinator configuration" in result.output

    def test_search_rejects_blank_term(self, runner):
        result = runner.invoke(cli, ['search', '   '])

        assert result.exit_code == 2

    def test_interactive_session_without_queries(self, runner):
        """Test blank input is refused and 'quit' ends the session"""
        result = runner.invoke(cli, ['interactive'], input="\n   \nquit\n")

        assert result.exit_code == 0
        assert result.output.count("Please enter a valid search term.") == 2
        assert "Closing client..." in result.output

    def test_config_file_provides_defaults(self, runner, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({
            "shard": {"shard_id": "from-file", "port": 8085, "data_file": str(tmp_path / "none.json")}
        }), encoding="utf-8")

        result = runner.invoke(cli, ['-c', str(config_file), 'start-shard'])

        assert result.exit_code == 1
        assert "shard 'from-file' failed to load documents" in result.output


if __name__ == '__main__':
    pytest.main([__file__])
