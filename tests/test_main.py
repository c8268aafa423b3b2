"""End-to-end runs of the command line entry point with a fake backend."""

import signal

import pandas as pd
import pytest

from conftest import two_slabs
from slabload import main as cli


@pytest.fixture
def no_signals(monkeypatch):
    monkeypatch.setattr(cli, "install_signal_handlers", lambda stop_event: {})


@pytest.fixture
def fake_backend(monkeypatch, scripted_client):
    created = {}

    def install(behaviour):
        def factory(indexer_url, app_key, factory_path=None):
            created["client"] = scripted_client(behaviour)
            created["args"] = (indexer_url, app_key, factory_path)
            return created["client"]

        monkeypatch.setattr(cli, "create_client", factory)
        return created

    return install


def test_protocol_errors_exit_nonzero_and_write_csv(tmp_path, capsys, no_signals, fake_backend):
    created = fake_backend(two_slabs)
    csv_path = tmp_path / "results" / "attempts.csv"

    code = cli.run(
        [
            "--app-secret", "s3cret",
            "--threads", "2",
            "--sector-size", "16",
            "--results-csv", str(csv_path),
            "--log-path", str(tmp_path / "slabload.log"),
        ]
    )

    assert code == 1
    assert created["client"].closed is True
    assert len(created["client"].calls) == 2
    df = pd.read_csv(csv_path)
    assert len(df) == 2
    assert set(df["status"]) == {"protocol_error"}
    out = capsys.readouterr()
    assert "protocol_error: 2" in out.out
    assert "expected 1 slab, got 2" in out.err
    assert "upload-thread-1" in (tmp_path / "slabload.log").read_text()


def test_missing_secret_exits_before_connecting(tmp_path, no_signals, fake_backend):
    created = fake_backend(two_slabs)
    code = cli.run(["--app-secret", "", "--log-path", str(tmp_path / "log.txt")])
    assert code == 1
    assert "client" not in created
    assert "app secret is required" in (tmp_path / "log.txt").read_text()


def test_unreachable_backend_exits_fatally(tmp_path, no_signals):
    code = cli.run(
        [
            "--app-secret", "s3cret",
            "--indexer-url", "http://localhost:9982",
            "--log-path", str(tmp_path / "log.txt"),
        ]
    )
    assert code == 1
    assert "failed to connect storage client" in (tmp_path / "log.txt").read_text()


def test_invalid_configuration_is_a_usage_error(capsys):
    assert cli.run(["--app-secret", "s3cret", "--threads", "0"]) == 2
    assert "threads must be > 0" in capsys.readouterr().err


def test_non_numeric_flag_is_rejected_by_argparse():
    with pytest.raises(SystemExit) as excinfo:
        cli.parse_args(["--threads", "many"])
    assert excinfo.value.code == 2


def test_environment_supplies_defaults(monkeypatch):
    monkeypatch.setenv("SLABLOAD_THREADS", "6")
    monkeypatch.setenv("SLABLOAD_BACKOFF_SECONDS", "1.5")
    monkeypatch.setenv("SLABLOAD_INDEXER_URL", "https://indexer.example")
    args = cli.parse_args([])
    config = cli.config_from_args(args)
    assert config.threads == 6
    assert config.backoff_s == 1.5
    assert args.indexer_url == "https://indexer.example"


def test_configure_logging_replaces_handlers(tmp_path):
    first = cli.configure_logging("debug", tmp_path / "a.log")
    second = cli.configure_logging("warning")
    assert first is second
    assert len(second.handlers) == 1
    assert second.level == 30
    assert second.propagate is False


def test_chart_written_for_failed_run(tmp_path, no_signals, fake_backend):
    fake_backend(two_slabs)
    chart_path = tmp_path / "chart.png"

    code = cli.run(
        [
            "--app-secret", "s3cret",
            "--sector-size", "16",
            "--chart-path", str(chart_path),
            "--log-path", str(tmp_path / "log.txt"),
        ]
    )

    assert code == 1
    assert chart_path.exists()


def test_run_restores_signal_handlers(tmp_path, fake_backend):
    fake_backend(two_slabs)
    before = (signal.getsignal(signal.SIGINT), signal.getsignal(signal.SIGTERM))

    code = cli.run(["--app-secret", "s3cret", "--sector-size", "16", "--log-path", str(tmp_path / "log.txt")])

    assert code == 1
    assert (signal.getsignal(signal.SIGINT), signal.getsignal(signal.SIGTERM)) == before
