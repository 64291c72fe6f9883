from __future__ import annotations

import logging

import pytest

from marlin import build_info, cli


@pytest.fixture(autouse=True)
def keep_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def test_viewer_parser_accepts_positional_host():
    args = cli.build_viewer_parser().parse_args(["192.168.1.20", "--port", "5001", "--log-level", "debug"])
    assert args.host == "192.168.1.20"
    assert args.port == 5001
    assert args.log_level == "DEBUG"


def test_viewer_parser_rejects_unknown_level():
    with pytest.raises(SystemExit):
        cli.build_viewer_parser().parse_args(["--log-level", "chatty"])


def test_node_main_applies_overrides(monkeypatch):
    captured = {}

    def fake_run(app, host, port, log_config):
        captured.update(app=app, host=host, port=port, log_config=log_config)

    monkeypatch.setattr("uvicorn.run", fake_run)
    assert cli.node_main(["--host", "127.0.0.1", "--port", "5055", "--simulate"]) == 0

    settings = captured["app"].state.settings
    assert (captured["host"], captured["port"]) == ("127.0.0.1", 5055)
    assert settings.simulation.enabled is True
    assert captured["log_config"] is None


def test_node_main_refuses_simulation_in_prod(monkeypatch):
    monkeypatch.setattr(build_info, "BUILD_FLAVOR", "prod")
    with pytest.raises(SystemExit):
        cli.node_main(["--simulate"])


def test_viewer_main_honours_host_argument(monkeypatch, tmp_path):
    seen = {}

    class FakeSession:
        def __init__(self, settings):
            seen["settings"] = settings

        async def run(self):
            return 0

    monkeypatch.setattr("marlin.viewer.session.ViewerSession", FakeSession)
    log_file = tmp_path / "viewer.log"
    assert cli.viewer_main(["marlin.local", "--log-file", str(log_file)]) == 0
    assert (seen["settings"].host, seen["settings"].port, seen["settings"].ws_path) == ("marlin.local", 5000, "/ws")
    assert seen["settings"].log_file == str(log_file)
