import csv
import logging

import click
import pytest
from click.testing import CliRunner

from udplat.cli import DURATION, main


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.mark.parametrize("text, seconds", [
    ("20ms", 0.02),
    ("1s", 1.0),
    ("1.5s", 1.5),
    ("500us", 0.0005),
    ("2m", 120.0),
    ("0.25", 0.25),
])
def test_duration_parsing(text, seconds):
    assert DURATION.convert(text, None, None) == pytest.approx(seconds)


def test_duration_rejects_garbage():
    with pytest.raises(click.BadParameter):
        DURATION.convert("soon", None, None)


def test_client_against_responder(runner, echo_responder, tmp_path):
    csv_path = tmp_path / "run.csv"
    port = str(echo_responder.address[1])

    result = runner.invoke(main, [
        "client", "127.0.0.1", port,
        "--count", "3", "--interval", "10ms", "--grace", "200ms",
        "--packet-size", "32", "--csv", str(csv_path),
    ])

    assert result.exit_code == 0, result.output
    assert "Packet loss: 0.00% (0/3)" in result.output
    assert "sent 3/3" in result.output

    with open(csv_path, newline='') as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["packet", "sent", "received", "latency"]
    assert [row[0] for row in rows[1:]] == ["0", "1", "2"]
    assert all(row[3] for row in rows[1:])


def test_client_reports_total_loss(runner, silent_peer):
    port = str(silent_peer.getsockname()[1])
    result = runner.invoke(main, [
        "client", "127.0.0.1", port, "-c", "2", "-i", "10ms", "--grace", "100ms", "-q",
    ])

    assert result.exit_code == 0, result.output
    assert "Packet loss: 100.00% (2/2)" in result.output
    assert "Min latency: -" in result.output


def test_client_rejects_small_packets(runner):
    result = runner.invoke(main, ["client", "127.0.0.1", "9", "--packet-size", "4", "-q"])
    assert result.exit_code == 1
    assert "sequence number" in result.output


def test_client_uses_config_file(runner, echo_responder, tmp_path):
    config = tmp_path / "config.toml"
    config.write_text(
        "[probe]\n"
        'address = "127.0.0.1"\n'
        f"port = {echo_responder.address[1]}\n"
        "count = 2\n"
        "interval = 0.01\n"
        "grace_period = 0.1\n"
    )

    result = runner.invoke(main, ["-c", str(config), "client", "-q"])

    assert result.exit_code == 0, result.output
    assert "(0/2)" in result.output


def test_invalid_config_file(runner, tmp_path):
    config = tmp_path / "config.toml"
    config.write_text("[probe]\nunknown = 1\n")

    result = runner.invoke(main, ["-c", str(config), "client"])
    assert result.exit_code == 1
    assert "unknown" in result.output
