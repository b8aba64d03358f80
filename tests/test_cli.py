import importlib
import json

import pytest
from typer.testing import CliRunner

from scroll_gif_recorder.__about__ import __version__
from scroll_gif_recorder.cli.app import app
from scroll_gif_recorder.models import OutputRecord, RunResult, RunState, RunStatus

record_module = importlib.import_module("scroll_gif_recorder.cli.record")
api_cli_module = importlib.import_module("scroll_gif_recorder.cli.api")
common_module = importlib.import_module("scroll_gif_recorder.cli.common")

runner = CliRunner()


@pytest.fixture
def recorded_inputs(monkeypatch):
    inputs = []

    async def fake_run_recording(recording_input, config):
        inputs.append(recording_input)
        return RunResult(
            url=recording_input.url,
            status=RunStatus.SUCCEEDED,
            state=RunState.DONE,
            attempts=1,
            frame_count=4,
            record=OutputRecord(gif_url_original="file:///tmp/x.gif"),
        )

    monkeypatch.setattr(record_module, "run_recording", fake_run_recording)
    return inputs


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_record_from_options(recorded_inputs):
    result = runner.invoke(
        app,
        ["record", "https://example.com", "--frame-rate", "5", "--scroll-percentage", "25", "--no-lossy"],
    )

    assert result.exit_code == 0, result.stdout
    [recording_input] = recorded_inputs
    assert recording_input.frame_rate == 5
    assert recording_input.scroll_percentage == 25
    assert recording_input.lossy_compression is False
    assert "succeeded" in result.stdout


def test_command_line_overrides_input_file(recorded_inputs, tmp_path):
    input_file = tmp_path / "INPUT.json"
    input_file.write_text(
        json.dumps({"url": "https://example.com", "frameRate": 3, "loslessCompression": True})
    )

    result = runner.invoke(app, ["record", "--input", str(input_file), "--frame-rate", "9"])

    assert result.exit_code == 0, result.stdout
    [recording_input] = recorded_inputs
    assert recording_input.frame_rate == 9
    assert recording_input.lossless_compression is True


def test_invalid_input_is_rejected_before_recording(recorded_inputs):
    result = runner.invoke(app, ["record", "https://example.com", "--scroll-percentage", "0"])

    assert result.exit_code == 2
    assert recorded_inputs == []


def test_failed_run_exits_non_zero(monkeypatch):
    async def failing_run_recording(recording_input, config):
        return RunResult(
            url=recording_input.url,
            status=RunStatus.FAILED,
            state=RunState.FAILED,
            attempts=4,
            error="net::ERR_NAME_NOT_RESOLVED",
        )

    monkeypatch.setattr(record_module, "run_recording", failing_run_recording)
    result = runner.invoke(app, ["record", "https://nope.invalid"])

    assert result.exit_code == 1
    assert "ERR_NAME_NOT_RESOLVED" in result.stdout


def test_api_verbose_turns_on_logging(monkeypatch, config):
    logging_calls = []
    servers = []
    monkeypatch.setenv("ENV", "dev")
    monkeypatch.setattr(
        common_module,
        "setup_logging",
        lambda verbose=False: logging_calls.append(verbose),
    )
    monkeypatch.setattr(api_cli_module, "get_config", lambda: config)
    monkeypatch.setattr(
        api_cli_module.uvicorn, "run", lambda target, **kwargs: servers.append(kwargs)
    )

    result = runner.invoke(app, ["api", "--verbose", "run", "--env", "test"])

    assert result.exit_code == 0
    assert True in logging_calls
    assert servers == [
        {"host": config.api_server_host, "port": config.api_server_port}
    ]
