"""MCP server with session tracking and context restoration tools."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Literal

from mcp.server.fastmcp import FastMCP

from context_continue.context.ledger import status_icon
from context_continue.context.manager import ContextManager
from context_continue.context.models import utcnow
from context_continue.context.tokens import TokenCounter
from context_continue.context.tracker import SessionError, SessionTracker

logger = logging.getLogger(__name__)

mcp = FastMCP("context-continue")
tracker = SessionTracker()
token_counter = TokenCounter()
manager = ContextManager(tracker=tracker)


def _require(**values: object) -> None:
    missing = [name for name, value in values.items() if not value]
    if missing:
        verb = "is" if len(missing) == 1 else "are"
        raise ValueError(f"{', '.join(missing)} {verb} required")


@contextmanager
def _reporting(tool: str) -> Iterator[None]:
    """Log tool failures before FastMCP turns them into error results."""
    try:
        yield
    except (ValueError, SessionError) as e:
        logger.warning("%s rejected: %s", tool, e)
        raise
    except Exception:
        logger.exception("%s failed", tool)
        raise


@mcp.tool()
def context_start_session(project_path: str, session_name: str | None = None) -> str:
    """Start a new context tracking session for a project.

    Only one session can be active at a time. Creates the project's .context
    directory if needed.

    Args:
        project_path: Absolute path to the project directory
        session_name: Optional label for the session (e.g. "auth refactor")
    """
    with _reporting("context_start_session"):
        _require(project_path=project_path)
        session = tracker.start_session(project_path, session_name)
        config = manager.config_store.get(project_path)
        token_counter.max_tokens = config.max_tokens_per_session
        token_counter.warning_threshold = config.warning_threshold

    return (
        f"Started new session: {session.id}\n"
        f"Project: {project_path}\n"
        f"Session name: {session_name or 'Unnamed'}\n\n"
        "Context tracking is now active. Use context_track_message to log important conversations."
    )


@mcp.tool()
def context_end_session(summary: str | None = None) -> str:
    """End the current session and save its transcript to .context/sessions/.

    Args:
        summary: Optional summary of what the session accomplished
    """
    with _reporting("context_end_session"):
        session = tracker.end_session(summary)

    return (
        "Session ended successfully.\n"
        f"Total messages: {session.message_count}\n"
        f"Total tokens: {session.token_count}\n\n"
        "Session files have been saved to .context/sessions/"
    )


@mcp.tool()
def context_track_message(message: str, role: Literal["user", "assistant"]) -> str:
    """Track a message in the current session and report token usage.

    Args:
        message: Message content to track
        role: Who sent the message, "user" or "assistant"
    """
    with _reporting("context_track_message"):
        _require(message=message, role=role)
        if role not in ("user", "assistant"):
            raise ValueError(f"role must be 'user' or 'assistant', got {role!r}")

        tokens = token_counter.count_tokens(message)
        tracker.add_message(message, role, tokens)

    session = tracker.get_current_session()
    total = session.token_count if session else 0
    usage = token_counter.get_usage(total)
    suggestion = token_counter.should_suggest_break(total)

    response = f"Message tracked ({tokens} tokens)\nTotal session tokens: {total}\nToken usage: {usage.percentage}%"
    if suggestion:
        action = "Consider ending this session" if suggestion.suggested_action == "end_session" else "Create a checkpoint"
        response += f"\n\n⚠️ {suggestion.reason}\nRecommendation: {action}"
    return response


@mcp.tool()
def context_get_status() -> str:
    """Get the current session status and token usage."""
    session = tracker.get_current_session()
    if not session:
        return "No active session. Use context_start_session to begin tracking."

    usage = token_counter.get_usage(session.token_count)
    suggestion = token_counter.should_suggest_break(session.token_count)
    minutes = round((utcnow() - session.start_time).total_seconds() / 60)

    status = (
        "📊 Session Status\n"
        f"Session ID: {session.id}\n"
        f"Messages: {session.message_count}\n"
        f"Tokens: {session.token_count}/{usage.limit}\n"
        f"Usage: {usage.percentage}% ({usage.suggestion})\n"
        f"Duration: {minutes} minutes"
    )
    if suggestion:
        status += f"\n\n⚠️ {suggestion.reason}\nAction: {suggestion.summary}"
    return status


@mcp.tool()
def context_restore_session(project_path: str) -> str:
    """Generate a restoration prompt for continuing work on a project.

    Call this at the start of a new conversation to pick up where the last
    one left off.

    Args:
        project_path: Absolute path to the project directory
    """
    with _reporting("context_restore_session"):
        _require(project_path=project_path)
        restoration = manager.generate_restoration_prompt(project_path)
    return restoration.full_prompt


@mcp.tool()
def context_add_milestone(
    project_path: str,
    title: str,
    description: str = "",
    status: Literal["planned", "in-progress", "completed"] = "planned",
) -> str:
    """Add a project milestone to .context/progress/milestones.md.

    Args:
        project_path: Absolute path to the project directory
        title: Milestone title
        description: What the milestone covers
        status: "planned", "in-progress" or "completed"
    """
    with _reporting("context_add_milestone"):
        _require(project_path=project_path, title=title)
        manager.ledger.add_milestone(project_path, title, description or "", status)

    return f"Milestone added: {title}\nStatus: {status}\nDescription: {description or 'No description provided'}"


@mcp.tool()
def context_log_decision(
    project_path: str,
    title: str,
    decision: str,
    context: str = "",
    alternatives: list[str] | None = None,
    consequences: list[str] | None = None,
    status: Literal["proposed", "accepted", "rejected"] = "accepted",
) -> str:
    """Log a technical decision to .context/progress/decisions.md.

    Args:
        project_path: Absolute path to the project directory
        title: Decision title (e.g. "Use PostgreSQL for persistence")
        decision: The decision made
        context: Why the decision was needed
        alternatives: Options that were considered
        consequences: Expected consequences of the decision
        status: "proposed", "accepted" or "rejected"
    """
    with _reporting("context_log_decision"):
        _require(project_path=project_path, title=title, decision=decision)
        manager.ledger.log_decision(
            project_path,
            title,
            decision,
            context=context or "",
            alternatives=alternatives or [],
            consequences=consequences or [],
            status=status,
        )

    return f"Decision logged: {title}\nStatus: {status}\nDecision: {decision}"


@mcp.tool()
def context_get_project_summary(project_path: str) -> str:
    """Get a summary of a project's sessions, tokens and milestones.

    Args:
        project_path: Absolute path to the project directory
    """
    with _reporting("context_get_project_summary"):
        _require(project_path=project_path)
        summary = manager.get_project_summary(project_path)

    response = (
        f"📋 Project Summary: {summary.name}\n\n"
        f"📁 Path: {summary.path}\n"
        f"💬 Total Sessions: {summary.total_sessions}\n"
        f"🎯 Total Tokens: {summary.total_tokens}\n"
        f"⏰ Last Activity: {summary.last_activity:%Y-%m-%d}\n"
    )
    if summary.current_phase:
        response += f"🚀 Current Phase: {summary.current_phase}\n"
    if summary.key_milestones:
        response += "\n📍 Key Milestones:\n"
        for milestone in summary.key_milestones:
            response += f"{status_icon(milestone.status)} {milestone.title}\n"
    return response
