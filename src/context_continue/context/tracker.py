"""Single active-session tracking with markdown session archives."""

import logging
import re
import threading
from datetime import datetime, timezone
from pathlib import Path

from context_continue.config import (
    CURRENT_SESSION_FILE,
    ensure_context_dirs,
    seed_config,
    sessions_dir,
)
from context_continue.context.models import Role, Session, SessionMessage, utcnow

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
SESSION_FILE_RE = re.compile(r"^session_(?P<id>.+)_(?P<date>\d{4}-\d{2}-\d{2})\.md$")
FIELD_RE = re.compile(r"^\*\*(?P<label>[^*]+):\*\*\s*(?P<value>.*?)\s*$")

ROLE_LABELS = {"user": "👤 User", "assistant": "🤖 Assistant"}


class SessionError(RuntimeError):
    """Raised when the tracker is used outside its valid state."""


class SessionAlreadyActiveError(SessionError):
    def __init__(self, session_id: str):
        super().__init__(f"Session already active ({session_id}). End current session first.")
        self.session_id = session_id


class NoActiveSessionError(SessionError):
    def __init__(self, message: str = "No active session"):
        super().__init__(message)


def session_filename(session: Session) -> str:
    return f"session_{session.id}_{session.start_time:%Y-%m-%d}.md"


def render_session_markdown(
    session: Session,
    messages: list[SessionMessage],
    summary: str | None = None,
) -> str:
    """Render a session transcript with its header fields and statistics."""
    end_time = session.end_time.strftime(TIMESTAMP_FORMAT) if session.end_time else "Active"
    duration = 0
    if session.end_time:
        duration = round((session.end_time - session.start_time).total_seconds() / 60)

    lines = [
        f"# Session {session.id}",
        "",
        f"**Project:** {Path(session.project_path).name}",
        f"**Session Name:** {session.session_name or 'Unnamed Session'}",
        f"**Start Time:** {session.start_time.strftime(TIMESTAMP_FORMAT)}",
        f"**End Time:** {end_time}",
    ]
    if duration:
        lines.append(f"**Duration:** {duration} minutes")
    lines += [
        f"**Messages:** {session.message_count}",
        f"**Total Tokens:** {session.token_count}",
        f"**Status:** {session.status}",
        "",
    ]

    if summary:
        lines += ["## Session Summary", "", summary, ""]

    lines += ["## Conversation", ""]
    for message in messages:
        lines += [
            f"### {ROLE_LABELS[message.role]} ({message.timestamp:%H:%M:%S}) [{message.token_count} tokens]",
            "",
            message.content,
            "",
            "---",
            "",
        ]

    total_chars = sum(len(m.content) for m in messages)
    user_count = sum(1 for m in messages if m.role == "user")
    average_length = round(total_chars / len(messages)) if messages else 0
    efficiency = round(session.token_count / max(1, total_chars) * 1000)

    lines += [
        "## Session Statistics",
        "",
        f"- **Total Messages:** {len(messages)}",
        f"- **User Messages:** {user_count}",
        f"- **Assistant Messages:** {len(messages) - user_count}",
        f"- **Average Message Length:** {average_length} characters",
        f"- **Token Efficiency:** {efficiency} tokens per 1000 characters",
        "",
    ]
    return "\n".join(lines) + "\n"


def _parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def parse_session_markdown(content: str, filename: str, project_path: str) -> Session | None:
    """Rebuild a Session from an archived transcript.

    Only the header block (everything before the first ``## `` section) is
    read, so conversation text cannot shadow the header fields. Returns None
    when the start time is missing or a field is malformed.
    """
    match = SESSION_FILE_RE.match(filename)
    fields: dict[str, str] = {}
    for line in content.splitlines():
        if line.startswith("## "):
            break
        field = FIELD_RE.match(line)
        if field:
            fields[field["label"]] = field["value"]

    try:
        end_value = fields.get("End Time", "Active")
        session_name = fields.get("Session Name")
        return Session(
            id=match["id"] if match else filename,
            project_path=project_path,
            session_name=None if session_name in (None, "Unnamed Session") else session_name,
            start_time=_parse_timestamp(fields["Start Time"]),
            end_time=None if end_value == "Active" else _parse_timestamp(end_value),
            message_count=int(fields.get("Messages", 0)),
            token_count=int(fields.get("Total Tokens", 0)),
            status="active" if fields.get("Status") == "active" else "ended",
        )
    except (KeyError, ValueError) as e:
        logger.debug("Skipping unparseable session file %s: %s", filename, e)
        return None


class SessionTracker:
    """Owns the one active session and its message buffer.

    State changes are serialized with a lock, so callers sharing one
    tracker never interleave a read-modify-write of the counters.
    """

    def __init__(self):
        self._session: Session | None = None
        self._messages: list[SessionMessage] = []
        self._lock = threading.Lock()

    def start_session(self, project_path: str, session_name: str | None = None) -> Session:
        with self._lock:
            if self._session is not None:
                raise SessionAlreadyActiveError(self._session.id)

            ensure_context_dirs(project_path)
            seed_config(project_path)

            self._session = Session(project_path=str(project_path), session_name=session_name)
            self._messages = []
            logger.info("Started session %s for %s", self._session.id, project_path)
            return self._session.model_copy()

    def add_message(self, content: str, role: Role, token_count: int) -> None:
        with self._lock:
            if self._session is None:
                raise NoActiveSessionError()

            self._messages.append(SessionMessage(content=content, role=role, token_count=token_count))
            self._session.token_count += token_count
            self._session.message_count += 1

    def get_current_session(self) -> Session | None:
        with self._lock:
            return self._session.model_copy() if self._session else None

    def end_session(self, summary: str | None = None) -> Session:
        """End the active session and archive its transcript.

        If writing the archive fails the error propagates and the session
        stays active.
        """
        with self._lock:
            if self._session is None:
                raise NoActiveSessionError("No active session to end")

            ended = self._session.model_copy(update={"end_time": utcnow(), "status": "ended"})
            self._write_session_file(ended, self._messages, summary)

            self._session = None
            self._messages = []
            logger.info("Ended session %s (%d messages, %d tokens)", ended.id, ended.message_count, ended.token_count)
            return ended

    def get_sessions(self, project_path: str) -> list[Session]:
        """List archived sessions for a project, oldest first."""
        directory = sessions_dir(project_path)
        sessions = []
        try:
            paths = list(directory.iterdir())
        except OSError as e:
            logger.debug("Cannot read sessions from %s: %s", directory, e)
            return []

        for path in paths:
            if not (path.name.startswith("session_") and path.suffix == ".md"):
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.debug("Skipping unreadable session file %s: %s", path, e)
                continue
            session = parse_session_markdown(content, path.name, str(project_path))
            if session:
                sessions.append(session)
        return sorted(sessions, key=lambda s: s.start_time)

    def _write_session_file(self, session: Session, messages: list[SessionMessage], summary: str | None) -> Path:
        directory = sessions_dir(session.project_path)
        directory.mkdir(parents=True, exist_ok=True)

        markdown = render_session_markdown(session, messages, summary)
        path = directory / session_filename(session)
        path.write_text(markdown, encoding="utf-8")
        (directory / CURRENT_SESSION_FILE).write_text(markdown, encoding="utf-8")
        return path
