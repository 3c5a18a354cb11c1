"""Tests for the command line entry point."""

import json
import logging

import pytest

import cli
from adapters.scripted import ScriptedAdapter

from conftest import fixture_document, make_block, write_fixture


@pytest.fixture(autouse=True)
def restore_logging(monkeypatch):
    """main() reconfigures the root logger; undo it after each test."""
    for name in ("LOG_LEVEL", "LOG_FORMAT", "FIXTURES_DIR", "BITCOIN_RPC_URL"):
        monkeypatch.delenv(name, raising=False)
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


@pytest.fixture
def config_path(tmp_path):
    fixtures = tmp_path / "fixtures"
    fixtures.mkdir()
    write_fixture(fixtures, "bitcoin", fixture_document())
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "fixtures_dir": str(fixtures),
        "coins": {
            "bitcoin": {
                "rpc": {"url": "http://127.0.0.1:8332"},
                "tests": ["GetBlockHash", "GetBlock"],
            }
        },
        "logging": {"level": "WARNING", "format": "text"},
    }))
    return str(path)


class FakeAdapterFactory:
    """Stands in for BitcoindAdapter.from_config."""

    def __init__(self, adapter):
        self.adapter = adapter
        self.closed = False

    def from_config(self, rpc_config, retry_config=None):
        self.adapter.close = lambda: setattr(self, "closed", True)
        return self.adapter


def base_args(config_path, tmp_path):
    return ["--config", config_path, "--env-file", str(tmp_path / "missing.env"), "-q"]


def test_dry_run(config_path, tmp_path, capsys):
    """Test that a dry run validates without contacting a node."""
    assert cli.main(base_args(config_path, tmp_path) + ["--dry-run"]) == 0

    out = capsys.readouterr().out
    assert "Configuration validated successfully!" in out
    assert "bitcoin: GetBlockHash, GetBlock" in out


def test_missing_config(tmp_path, capsys):
    """Test the exit code when the configuration file is absent."""
    assert cli.main(["--config", str(tmp_path / "absent.json"), "-q"]) == 1
    assert "Error" in capsys.readouterr().err


def test_unknown_coin(config_path, tmp_path, capsys):
    """Test that selecting an unconfigured coin fails."""
    assert cli.main(base_args(config_path, tmp_path) + ["--coin", "dogecoin", "--dry-run"]) == 1
    assert "dogecoin" in capsys.readouterr().err


def test_passing_run(config_path, tmp_path, monkeypatch, capsys):
    """Test a run whose checks all pass."""
    factory = FakeAdapterFactory(ScriptedAdapter(blocks=[make_block("abc", 100, ["t1", "t2"])]))
    monkeypatch.setattr(cli, "BitcoindAdapter", factory)

    code = cli.main(base_args(config_path, tmp_path) + ["--json-output", "--run-id", "run-1"])

    assert code == 0
    assert factory.closed
    reports = json.loads(capsys.readouterr().out)
    assert reports[0]["coin"] == "bitcoin"
    assert reports[0]["run_id"] == "run-1"
    assert reports[0]["passed"] == 2


def test_failing_run(config_path, tmp_path, monkeypatch):
    """Test that a failed check gives exit code 1."""
    factory = FakeAdapterFactory(ScriptedAdapter(blocks=[make_block("other", 100)]))
    monkeypatch.setattr(cli, "BitcoindAdapter", factory)

    assert cli.main(base_args(config_path, tmp_path) + ["--tests", "GetBlockHash"]) == 1
    assert factory.closed


def test_missing_fixture(config_path, tmp_path, monkeypatch, capsys):
    """Test that a missing fixture aborts the run."""
    factory = FakeAdapterFactory(ScriptedAdapter())
    monkeypatch.setattr(cli, "BitcoindAdapter", factory)
    empty = tmp_path / "empty"
    empty.mkdir()

    assert cli.main(base_args(config_path, tmp_path) + ["--fixtures-dir", str(empty)]) == 1
    assert "Fixture for bitcoin not found" in capsys.readouterr().err


def test_select_coins_default_is_all(config_path, tmp_path):
    """Test that all configured coins run when none is selected."""
    from config import ConfigurationManager

    config = ConfigurationManager(config_path, str(tmp_path / "missing.env")).load_config()
    assert cli.select_coins(config, None) == ["bitcoin"]
    assert cli.select_coins(config, " bitcoin ,") == ["bitcoin"]


class BrokenParserAdapter(ScriptedAdapter):
    def get_chain_parser(self):
        raise RuntimeError("parser unavailable")


class GarbledBlockAdapter(ScriptedAdapter):
    def get_block(self, block_hash="", height=0):
        raise KeyError("txid")


def test_unexpected_error_exits_nonzero(config_path, tmp_path, monkeypatch, capsys):
    """Test that an unexpected exception outside any check gives exit code 1."""
    factory = FakeAdapterFactory(BrokenParserAdapter())
    monkeypatch.setattr(cli, "BitcoindAdapter", factory)

    assert cli.main(base_args(config_path, tmp_path)) == 1
    assert "Error: parser unavailable" in capsys.readouterr().err
    assert factory.closed


def test_unexpected_error_in_check_does_not_stop_run(config_path, tmp_path, monkeypatch, capsys):
    """Test that a check raising an unexpected exception fails alone."""
    factory = FakeAdapterFactory(GarbledBlockAdapter(blocks=[make_block("abc", 100, ["t1", "t2"])]))
    monkeypatch.setattr(cli, "BitcoindAdapter", factory)

    assert cli.main(base_args(config_path, tmp_path) + ["--json-output"]) == 1

    report = json.loads(capsys.readouterr().out)[0]
    outcomes = {r["name"]: r["outcome"] for r in report["results"]}
    assert outcomes == {"GetBlockHash": "passed", "GetBlock": "failed"}
