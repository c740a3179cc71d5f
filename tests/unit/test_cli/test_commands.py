"""Unit tests for the snapshot-reader CLI."""

import json
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from snapshot_reader.cli.main import cli
from snapshot_reader.snapshot.context import SplitReadContext
from snapshot_reader.snapshot.errors import SourceUnavailable
from snapshot_reader.sources import SourceBundle
from tests.fixtures.fakes import ListRowCursorFactory, ScriptedPositionSource, SeqPosition

ROWS = [(10, "ann"), (50, "bob"), (90, "cyd")]


def make_bundle(*positions, rows=ROWS):
    return SourceBundle(
        kind="postgres",
        connection_manager=MagicMock(),
        position_source=ScriptedPositionSource(*positions),
        schema_provider=MagicMock(),
        cursor_factory=ListRowCursorFactory(rows),
    )


class CancelledContext(SplitReadContext):
    def __init__(self):
        super().__init__()
        self.cancel()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("snapshot_reader.cli.main.setup_logging") as mock_setup:
        yield mock_setup


READ_SPLIT_ARGS = ["read-split", "-t", "public.customers", "-k", "k", "--key-type", "integer"]


@pytest.mark.unit
class TestReadSplitCommand:
    """Test the read-split command."""

    def test_json_output(self, runner):
        """Test every event and the result are printed as JSON lines."""
        bundle = make_bundle(SeqPosition(1), SeqPosition(2))
        with patch("snapshot_reader.cli.commands.read_split.build_source", return_value=bundle):
            result = runner.invoke(cli, READ_SPLIT_ARGS + ["--end", "100", "--format", "json"])

        assert result.exit_code == 0, result.output
        lines = [json.loads(line) for line in result.output.strip().splitlines()]
        assert [line.get("type") for line in lines[:-1]] == [
            "watermark",
            "data",
            "data",
            "data",
            "watermark",
            "split_completed",
        ]
        assert lines[1]["row"] == [10, "ann"]
        assert lines[-1]["result"]["status"] == "completed"
        assert lines[-1]["result"]["high_watermark"] == {"seq": 2}
        bundle.connection_manager.close.assert_called_once()

    def test_table_output(self, runner):
        bundle = make_bundle(SeqPosition(1), SeqPosition(2))
        with patch("snapshot_reader.cli.commands.read_split.build_source", return_value=bundle):
            result = runner.invoke(cli, READ_SPLIT_ARGS + ["--split-id", "S1"])

        assert result.exit_code == 0, result.output
        assert "Emitted Events" in result.output
        assert "Split 'S1' completed" in result.output

    def test_bounds_are_typed(self, runner):
        bundle = make_bundle(SeqPosition(1), SeqPosition(2))
        with patch("snapshot_reader.cli.commands.read_split.build_source", return_value=bundle):
            result = runner.invoke(
                cli, READ_SPLIT_ARGS + ["--start", "0", "--end", "100", "--end-exclusive"]
            )

        assert result.exit_code == 0, result.output
        statement = bundle.cursor_factory.created[0].statement
        assert '"k" >= %s' in statement
        assert 'NOT ("k" = %s)' in statement

    def test_failed_split_exit_code(self, runner):
        bundle = make_bundle(SeqPosition(1), SourceUnavailable("connection lost"))
        with patch("snapshot_reader.cli.commands.read_split.build_source", return_value=bundle):
            result = runner.invoke(cli, READ_SPLIT_ARGS + ["--format", "json"])

        assert result.exit_code == 1
        summary = json.loads(result.output.strip().splitlines()[-1])["result"]
        assert summary["status"] == "failed"
        assert summary["error_type"] == "WatermarkAcquisitionFailed"

    def test_interrupted_split_exit_code(self, runner):
        bundle = make_bundle(SeqPosition(1), SeqPosition(2))
        with patch(
            "snapshot_reader.cli.commands.read_split.build_source", return_value=bundle
        ), patch("snapshot_reader.cli.commands.read_split.SplitReadContext", CancelledContext):
            result = runner.invoke(cli, READ_SPLIT_ARGS)

        assert result.exit_code == 130
        assert "interrupted" in result.output

    @patch("snapshot_reader.observability.metrics.start_http_server")
    def test_metrics_port_serves_metrics(self, mock_server, runner):
        bundle = make_bundle(SeqPosition(1), SeqPosition(2))
        with patch("snapshot_reader.cli.commands.read_split.build_source", return_value=bundle):
            result = runner.invoke(cli, READ_SPLIT_ARGS + ["--metrics-port", "9309"])

        assert result.exit_code == 0, result.output
        mock_server.assert_called_once_with(9309)

    @patch("snapshot_reader.observability.metrics.start_http_server")
    def test_metrics_server_off_by_default(self, mock_server, runner):
        bundle = make_bundle(SeqPosition(1), SeqPosition(2))
        with patch("snapshot_reader.cli.commands.read_split.build_source", return_value=bundle):
            result = runner.invoke(cli, READ_SPLIT_ARGS)

        assert result.exit_code == 0, result.output
        mock_server.assert_not_called()

    @pytest.mark.parametrize(
        "extra,message",
        [
            (["--key-type", "geometry"], "Unsupported split key type"),
            (["--start", "ten"], "Bound does not match integer"),
        ],
    )
    def test_invalid_split_options(self, runner, extra, message):
        with patch("snapshot_reader.cli.commands.read_split.build_source") as mock_build:
            result = runner.invoke(cli, READ_SPLIT_ARGS + extra)

        assert result.exit_code == 2
        assert message in result.output
        mock_build.assert_not_called()

    def test_invalid_table(self, runner):
        result = runner.invoke(
            cli, ["read-split", "-t", "a.b.c.d", "-k", "id", "--key-type", "integer"]
        )

        assert result.exit_code == 2
        assert "Invalid table identifier" in result.output


@pytest.mark.unit
class TestPositionCommand:
    """Test the position command."""

    def test_prints_position(self, runner):
        bundle = make_bundle(SeqPosition(42))
        with patch("snapshot_reader.cli.commands.position.build_source", return_value=bundle):
            result = runner.invoke(cli, ["position", "--source", "mysql"])

        assert result.exit_code == 0
        assert "P42" in result.output
        bundle.connection_manager.close.assert_called_once()

    def test_unavailable_source(self, runner):
        bundle = make_bundle(SourceUnavailable("Binary logging is disabled on the server"))
        with patch("snapshot_reader.cli.commands.position.build_source", return_value=bundle):
            result = runner.invoke(cli, ["position"])

        assert result.exit_code == 1
        assert "Could not determine position" in result.output


@pytest.mark.unit
def test_version(runner):
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "0.1.0" in result.output


@pytest.mark.unit
def test_log_level_option(runner, no_logging_setup):
    bundle = make_bundle(SeqPosition(1))
    with patch("snapshot_reader.cli.commands.position.build_source", return_value=bundle):
        runner.invoke(cli, ["--log-level", "DEBUG", "position"])

    no_logging_setup.assert_called_once_with("DEBUG")
