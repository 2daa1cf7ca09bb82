"""Project summaries and restoration prompts built from the .context directory."""

import logging
import re
from pathlib import Path

from context_continue.config import PROJECT_SUMMARY_FILE, ConfigStore, context_dir
from context_continue.context.ledger import ProgressLedger
from context_continue.context.models import (
    Milestone,
    ProjectSummary,
    RestorationPrompt,
    Session,
    TechnicalDecision,
    utcnow,
)
from context_continue.context.tracker import SessionTracker

logger = logging.getLogger(__name__)

CURRENT_PHASE_RE = re.compile(r"\*\*Current Phase:\*\*\s*(.+)")

NO_SESSIONS_SUMMARY = "No previous sessions found"
DEFAULT_PHASE = "Initial development"
DEFAULT_PROMPT_PHASE = "Development"
DEFAULT_NEXT_STEPS = [
    "Review project status and set priorities",
    "Continue development work",
]
MAX_KEY_MILESTONES = 5
MAX_NEXT_STEPS = 5
RECENT_SESSIONS = 3
CONTEXT_DECISIONS = 3
NEXT_STEP_DECISIONS = 2


def summarize_session(session: Session) -> str:
    """One-line description of a session built from its recorded counters."""
    name = session.session_name or "development work"
    return (
        f"Last session focused on {name} with {session.message_count} exchanges "
        f"and {session.token_count} tokens used."
    )


def build_next_steps(milestones: list[Milestone], decisions: list[TechnicalDecision]) -> list[str]:
    """Next steps from in-progress milestones, then the newest decisions.

    ``decisions`` must be ordered newest first.
    """
    steps = [f"Continue work on: {m.title}" for m in milestones if m.status == "in-progress"]
    steps += [f"Implement decision: {d.title}" for d in decisions[:NEXT_STEP_DECISIONS]]
    if not steps:
        steps = list(DEFAULT_NEXT_STEPS)
    return steps[:MAX_NEXT_STEPS]


def render_restoration_prompt(
    project_name: str,
    current_phase: str,
    last_session_summary: str,
    key_context: list[str],
    next_steps: list[str],
) -> str:
    context_lines = "\n".join(f"- {item}" for item in key_context)
    step_lines = "\n".join(f"{i}. {step}" for i, step in enumerate(next_steps, start=1))
    return f"""# Context Restoration for {project_name}

## Project Status
**Current Phase:** {current_phase}

## Last Session Summary
{last_session_summary}

## Key Context
{context_lines}

## Recommended Next Steps
{step_lines}

## Instructions
You are continuing work on {project_name}. Please review the above context and let me know when you're ready to proceed with the next steps."""


class ContextManager:
    """Reconstructs project history from sessions, ledgers and config.

    Every read is best effort: missing or unreadable files count as empty.
    """

    def __init__(
        self,
        tracker: SessionTracker | None = None,
        ledger: ProgressLedger | None = None,
        config_store: ConfigStore | None = None,
    ):
        self.tracker = tracker or SessionTracker()
        self.ledger = ledger or ProgressLedger()
        self.config_store = config_store or ConfigStore()

    def get_current_phase(self, project_path: str | Path) -> str | None:
        path = context_dir(project_path) / PROJECT_SUMMARY_FILE
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Cannot read current phase from %s: %s", path, e)
            return None
        match = CURRENT_PHASE_RE.search(content)
        return match.group(1).strip() if match else None

    def get_recent_sessions(self, project_path: str | Path, count: int = RECENT_SESSIONS) -> list[Session]:
        """Most recent archived sessions, newest first."""
        sessions = self.tracker.get_sessions(str(project_path))
        return sessions[-count:][::-1]

    def get_project_summary(self, project_path: str | Path) -> ProjectSummary:
        config = self.config_store.get(project_path)
        sessions = self.tracker.get_sessions(str(project_path))
        milestones = self.ledger.get_milestones(project_path)

        return ProjectSummary(
            name=config.project_name or Path(project_path).name,
            path=str(project_path),
            total_sessions=len(sessions),
            total_tokens=sum(s.token_count for s in sessions),
            last_activity=max((s.start_time for s in sessions), default=utcnow()),
            current_phase=self.get_current_phase(project_path),
            key_milestones=milestones[-MAX_KEY_MILESTONES:][::-1],
        )

    def generate_restoration_prompt(self, project_path: str | Path) -> RestorationPrompt:
        summary = self.get_project_summary(project_path)
        recent_sessions = self.get_recent_sessions(project_path)
        milestones = self.ledger.get_milestones(project_path)
        decisions = self.ledger.get_decisions(project_path)[::-1]

        last_session_summary = summarize_session(recent_sessions[0]) if recent_sessions else NO_SESSIONS_SUMMARY

        key_context = [
            f"Project: {summary.name}",
            f"Total sessions: {summary.total_sessions}",
            f"Total tokens used: {summary.total_tokens}",
            f"Current phase: {summary.current_phase or DEFAULT_PHASE}",
        ]
        key_context += [f"Active milestone: {m.title}" for m in milestones if m.status == "in-progress"]
        key_context += [f"Decision: {d.title} - {d.decision}" for d in decisions[:CONTEXT_DECISIONS]]

        next_steps = build_next_steps(milestones, decisions)
        current_phase = summary.current_phase or DEFAULT_PROMPT_PHASE

        logger.debug(
            "Built restoration prompt for %s (%d sessions, %d milestones, %d decisions)",
            summary.name,
            summary.total_sessions,
            len(milestones),
            len(decisions),
        )
        return RestorationPrompt(
            project_name=summary.name,
            current_phase=current_phase,
            last_session_summary=last_session_summary,
            key_context=key_context,
            next_steps=next_steps,
            full_prompt=render_restoration_prompt(
                summary.name, current_phase, last_session_summary, key_context, next_steps
            ),
        )
