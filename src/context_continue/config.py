"""Configuration and directory management for context-continue."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

CONTEXT_DIR_NAME = ".context"
SESSIONS_DIR_NAME = "sessions"
PROGRESS_DIR_NAME = "progress"
ARTIFACTS_DIR_NAME = "artifacts"

CONFIG_FILE = "config.json"
README_FILE = "README.md"
PROJECT_SUMMARY_FILE = "project_summary.md"
CURRENT_SESSION_FILE = "current_session.md"
MILESTONES_FILE = "milestones.md"
DECISIONS_FILE = "decisions.md"

DEFAULT_MAX_TOKENS = 15000
DEFAULT_WARNING_THRESHOLD = 12000

LOG_LEVEL_ENV = "CONTEXT_CONTINUE_LOG_LEVEL"


class ContextConfig(BaseModel):
    """Per-project settings stored in ``.context/config.json``.

    Keys are camelCase on disk so the file stays readable by other tools
    that share the same ``.context`` layout.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    max_tokens_per_session: int = Field(default=DEFAULT_MAX_TOKENS, alias="maxTokensPerSession", gt=0)
    warning_threshold: int = Field(default=DEFAULT_WARNING_THRESHOLD, alias="warningThreshold")
    auto_summarize: bool = Field(default=True, alias="autoSummarize")
    summary_length: Literal["short", "medium", "long"] = Field(default="medium", alias="summaryLength")
    project_name: str | None = Field(default=None, alias="projectName")
    context_directory: str = Field(default=CONTEXT_DIR_NAME, alias="contextDirectory")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2) + "\n"


README_TEMPLATE = """# {project_name}

## Context Management

This project uses context-continue to keep conversation context across AI sessions.

### Structure

- `.context/sessions/` - Session transcripts and summaries
- `.context/progress/` - Milestones and decisions
- `.context/artifacts/` - Generated documents and diagrams

### Usage

Start the MCP server:

```bash
context-continue serve
```

Or register it with your AI client:

```json
{{
  "mcpServers": {{
    "context-continue": {{
      "command": "context-continue",
      "args": ["serve"]
    }}
  }}
}}
```

Set the current phase in `.context/project_summary.md` with a line like
`**Current Phase:** Beta hardening` and it will show up in restoration prompts.
"""


def context_dir(project_path: str | Path) -> Path:
    return Path(project_path) / CONTEXT_DIR_NAME


def sessions_dir(project_path: str | Path) -> Path:
    return context_dir(project_path) / SESSIONS_DIR_NAME


def progress_dir(project_path: str | Path) -> Path:
    return context_dir(project_path) / PROGRESS_DIR_NAME


def config_path(project_path: str | Path) -> Path:
    return context_dir(project_path) / CONFIG_FILE


def ensure_context_dirs(project_path: str | Path) -> Path:
    """Ensure the ``.context`` directory structure exists for a project."""
    root = context_dir(project_path)
    for sub in (SESSIONS_DIR_NAME, PROGRESS_DIR_NAME, ARTIFACTS_DIR_NAME):
        (root / sub).mkdir(parents=True, exist_ok=True)
    return root


def default_config(project_path: str | Path, project_name: str | None = None) -> ContextConfig:
    """Build the default config, naming the project after its directory."""
    return ContextConfig(project_name=project_name or Path(project_path).name)


def seed_config(project_path: str | Path, project_name: str | None = None) -> bool:
    """Write a default config.json unless one exists. Returns True if written."""
    path = config_path(project_path)
    if path.exists():
        return False
    config = default_config(project_path, project_name)
    config.created_at = datetime.now(timezone.utc)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config.to_json(), encoding="utf-8")
    logger.debug("Seeded %s", path)
    return True


def load_config(project_path: str | Path) -> ContextConfig:
    """Load config.json. Raises OSError, UnicodeDecodeError or ValidationError when missing or corrupt."""
    return ContextConfig.model_validate_json(config_path(project_path).read_text(encoding="utf-8"))


class ConfigStore:
    """Caches one ContextConfig per project.

    The first load wins, including the fallback default used when the file
    is missing or corrupt. Call ``invalidate`` to force a re-read.
    """

    def __init__(self):
        self._cache: dict[str, ContextConfig] = {}

    def get(self, project_path: str | Path) -> ContextConfig:
        key = str(project_path)
        if key not in self._cache:
            try:
                self._cache[key] = load_config(project_path)
            except (OSError, UnicodeDecodeError, ValidationError) as e:
                logger.debug("Using default config for %s: %s", project_path, e)
                self._cache[key] = default_config(project_path)
        return self._cache[key]

    def invalidate(self, project_path: str | Path | None = None) -> None:
        if project_path is None:
            self._cache.clear()
        else:
            self._cache.pop(str(project_path), None)


def init_project(project_path: str | Path, project_name: str | None = None) -> ContextConfig:
    """Create the context directory, config and usage guide for a project.

    Existing config.json is rewritten with the given name; the README is
    only written when absent.
    """
    root = ensure_context_dirs(project_path)
    config = default_config(project_path, project_name)
    config.created_at = datetime.now(timezone.utc)
    (root / CONFIG_FILE).write_text(config.to_json(), encoding="utf-8")

    readme = root / README_FILE
    if not readme.exists():
        readme.write_text(README_TEMPLATE.format(project_name=config.project_name), encoding="utf-8")
    return config
