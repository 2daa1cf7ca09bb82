"""Tests for MCP installer."""

import json

from context_continue.mcp.installer import (
    _inject_json_config,
    _remove_json_config,
    install_mcp_project,
    remove_mcp_project,
)


class TestInjectJsonConfig:
    def test_creates_new_config(self, tmp_path):
        config_path = tmp_path / "mcp.json"
        _inject_json_config(config_path, "/usr/bin/context-continue")

        config = json.loads(config_path.read_text())
        assert config["mcpServers"]["context-continue"]["command"] == "/usr/bin/context-continue"
        assert config["mcpServers"]["context-continue"]["args"] == ["serve"]

    def test_merges_existing_config(self, tmp_path):
        config_path = tmp_path / "mcp.json"
        config_path.write_text(
            json.dumps({"mcpServers": {"other-server": {"command": "other", "args": ["run"]}}})
        )

        _inject_json_config(config_path, "/usr/bin/context-continue")

        config = json.loads(config_path.read_text())
        assert "other-server" in config["mcpServers"]
        assert "context-continue" in config["mcpServers"]

    def test_replaces_corrupt_config(self, tmp_path):
        config_path = tmp_path / "mcp.json"
        config_path.write_text("{broken")

        _inject_json_config(config_path, "cc")

        config = json.loads(config_path.read_text())
        assert config == {"mcpServers": {"context-continue": {"command": "cc", "args": ["serve"]}}}


class TestRemoveJsonConfig:
    def test_removes_only_own_entry(self, tmp_path):
        config_path = tmp_path / "mcp.json"
        config_path.write_text(
            json.dumps(
                {
                    "mcpServers": {
                        "other-server": {"command": "other"},
                        "context-continue": {"command": "cc"},
                    }
                }
            )
        )

        assert _remove_json_config(config_path)
        config = json.loads(config_path.read_text())
        assert config["mcpServers"] == {"other-server": {"command": "other"}}

    def test_missing_entry(self, tmp_path):
        assert not _remove_json_config(tmp_path / "absent.json")


class TestProjectInstall:
    def test_install_and_remove(self, tmp_path, monkeypatch):
        monkeypatch.setattr(
            "context_continue.mcp.installer._resolve_executable",
            lambda: "/opt/bin/context-continue",
        )

        assert install_mcp_project(tmp_path) == {".mcp.json": True}
        config = json.loads((tmp_path / ".mcp.json").read_text())
        assert config["mcpServers"]["context-continue"]["command"] == "/opt/bin/context-continue"

        assert remove_mcp_project(tmp_path) == {".mcp.json": True}
        assert remove_mcp_project(tmp_path) == {".mcp.json": False}
