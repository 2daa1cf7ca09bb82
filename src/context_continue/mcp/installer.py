"""Register the context-continue MCP server in a project's .mcp.json."""

import json
import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

SERVER_NAME = "context-continue"
SERVER_ARGS = ["serve"]
PROJECT_MCP_CONFIG = ".mcp.json"


def _resolve_executable() -> str:
    """Resolve the full path to the context-continue executable."""
    path = shutil.which(SERVER_NAME)
    if path:
        return path
    for candidate in [
        Path.home() / ".local" / "bin" / SERVER_NAME,
        Path("/usr/local/bin") / SERVER_NAME,
    ]:
        if candidate.exists():
            return str(candidate)
    return SERVER_NAME


def _read_json_config(config_path: Path) -> dict:
    if not config_path.exists():
        return {}
    try:
        config = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring unreadable %s: %s", config_path, e)
        return {}
    return config if isinstance(config, dict) else {}


def _inject_json_config(config_path: Path, executable: str) -> bool:
    """Read/merge/write the server entry into a JSON MCP config file."""
    config = _read_json_config(config_path)
    config.setdefault("mcpServers", {})[SERVER_NAME] = {
        "command": executable,
        "args": SERVER_ARGS,
    }

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config, indent=2) + "\n")
    return True


def _remove_json_config(config_path: Path) -> bool:
    """Remove the server entry, leaving other servers in place."""
    config = _read_json_config(config_path)
    servers = config.get("mcpServers", {})
    if SERVER_NAME not in servers:
        return False
    del servers[SERVER_NAME]
    config_path.write_text(json.dumps(config, indent=2) + "\n")
    return True


def install_mcp_project(project_path: Path) -> dict[str, bool]:
    """Write the project-level MCP config read by Claude Code, Cursor and Windsurf."""
    executable = _resolve_executable()
    return {PROJECT_MCP_CONFIG: _inject_json_config(project_path / PROJECT_MCP_CONFIG, executable)}


def remove_mcp_project(project_path: Path) -> dict[str, bool]:
    return {PROJECT_MCP_CONFIG: _remove_json_config(project_path / PROJECT_MCP_CONFIG)}
