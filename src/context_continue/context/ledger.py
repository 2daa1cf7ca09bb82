"""Append-only markdown ledgers for project milestones and technical decisions.

Each ledger is a plain markdown file meant to be read and edited by people.
An entry is a ``###`` header followed by ``**Label:** value`` lines::

    ### 🔄 Auth service
    **Status:** in-progress
    **Created:** 2026-10-19
    **Description:** Token refresh and session expiry

    ### ADR-002: Use SQLite for local cache
    **Date:** 2026-10-19
    **Status:** accepted
    **Context:** Needs to work offline
    **Decision:** Embed SQLite
    **Alternatives:** LMDB, JSON files
    **Consequences:** No server to run, Single writer

Lines that are neither headers nor fields continue the previous field, so a
hand-wrapped description survives a re-read. Anything outside an entry is
ignored, and entries whose header does not match are skipped.
"""

import logging
import re
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from context_continue.config import DECISIONS_FILE, MILESTONES_FILE, progress_dir
from context_continue.context.models import (
    DecisionStatus,
    Milestone,
    MilestoneStatus,
    TechnicalDecision,
)

logger = logging.getLogger(__name__)

MILESTONES_HEADER = "# Project Milestones\n\n"
DECISIONS_HEADER = "# Technical Decisions\n\n"

STATUS_ICONS: dict[str, str] = {
    "completed": "✅",
    "in-progress": "🔄",
    "planned": "⏳",
}
ICON_STATUSES = {icon: status for status, icon in STATUS_ICONS.items()}

MILESTONE_HEADER_RE = re.compile(r"^### (?P<icon>✅|🔄|⏳)\s+(?P<title>.+?)\s*$")
DECISION_HEADER_RE = re.compile(r"^### ADR-(?P<number>\w+):\s*(?P<title>.+?)\s*$")
FIELD_RE = re.compile(r"^\*\*(?P<label>[^*]+):\*\*\s*(?P<value>.*?)\s*$")

DATE_FORMAT = "%Y-%m-%d"
DECISION_STATUSES = ("proposed", "accepted", "rejected")


def status_icon(status: str) -> str:
    return STATUS_ICONS.get(status, STATUS_ICONS["planned"])


def parse_entries(content: str, header_re: re.Pattern) -> list[tuple[re.Match, dict[str, str]]]:
    """Split ledger text into (header match, fields) pairs."""
    entries: list[tuple[re.Match, dict[str, str]]] = []
    fields: dict[str, str] | None = None
    last_label: str | None = None

    for line in content.splitlines():
        if line.startswith("#"):
            header = header_re.match(line)
            if header:
                fields = {}
                entries.append((header, fields))
            else:
                fields = None
            last_label = None
            continue
        if fields is None:
            continue
        if not line.strip():
            last_label = None
            continue

        field = FIELD_RE.match(line)
        if field:
            last_label = field["label"].strip()
            fields[last_label] = field["value"]
        elif last_label:
            fields[last_label] = f"{fields[last_label]}\n{line.strip()}".strip()

    return entries


def _parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def _split_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def render_milestone(milestone: Milestone) -> str:
    lines = [
        f"### {status_icon(milestone.status)} {milestone.title}",
        f"**Status:** {milestone.status}  ",
        f"**Created:** {milestone.created_at:{DATE_FORMAT}}  ",
    ]
    if milestone.completed_at:
        lines.append(f"**Completed:** {milestone.completed_at:{DATE_FORMAT}}  ")
    lines.append(f"**Description:** {milestone.description}")
    return "\n".join(lines)


def render_decision(decision: TechnicalDecision, number: int) -> str:
    return "\n".join(
        [
            f"### ADR-{number:03d}: {decision.title}",
            f"**Date:** {decision.created_at:{DATE_FORMAT}}  ",
            f"**Status:** {decision.status}  ",
            f"**Context:** {decision.context}  ",
            f"**Decision:** {decision.decision}  ",
            f"**Alternatives:** {', '.join(decision.alternatives)}  ",
            f"**Consequences:** {', '.join(decision.consequences)}",
        ]
    )


def parse_milestones(content: str) -> list[Milestone]:
    """Parse milestones in ledger order. Status comes from the header icon."""
    milestones = []
    for header, fields in parse_entries(content, MILESTONE_HEADER_RE):
        created = _parse_date(fields.get("Created"))
        milestone = Milestone(
            title=header["title"],
            description=fields.get("Description", ""),
            status=ICON_STATUSES[header["icon"]],
            completed_at=_parse_date(fields.get("Completed")),
        )
        if created:
            milestone.created_at = created
        milestones.append(milestone)
    return milestones


def parse_decisions(content: str) -> list[TechnicalDecision]:
    """Parse decisions in ledger order."""
    decisions = []
    for header, fields in parse_entries(content, DECISION_HEADER_RE):
        status = fields.get("Status", "accepted")
        decision = TechnicalDecision(
            title=header["title"],
            context=fields.get("Context", ""),
            decision=fields.get("Decision", ""),
            alternatives=_split_list(fields.get("Alternatives")),
            consequences=_split_list(fields.get("Consequences")),
            status=status if status in DECISION_STATUSES else "accepted",
        )
        created = _parse_date(fields.get("Date"))
        if created:
            decision.created_at = created
        decisions.append(decision)
    return decisions


class ProgressLedger:
    """Reads and appends the milestones and decisions ledgers of a project."""

    def milestones_path(self, project_path: str | Path) -> Path:
        return progress_dir(project_path) / MILESTONES_FILE

    def decisions_path(self, project_path: str | Path) -> Path:
        return progress_dir(project_path) / DECISIONS_FILE

    def add_milestone(
        self,
        project_path: str | Path,
        title: str,
        description: str = "",
        status: MilestoneStatus = "planned",
    ) -> Milestone:
        milestone = Milestone(title=title, description=description, status=status)
        if status == "completed":
            milestone.completed_at = milestone.created_at

        path = self.milestones_path(project_path)
        content = self._read_or_default(path, MILESTONES_HEADER)
        self._write(path, content + f"\n{render_milestone(milestone)}\n")
        logger.info("Added milestone %r (%s) to %s", title, status, path)
        return milestone

    def log_decision(
        self,
        project_path: str | Path,
        title: str,
        decision: str,
        context: str = "",
        alternatives: Iterable[str] = (),
        consequences: Iterable[str] = (),
        status: DecisionStatus = "accepted",
    ) -> TechnicalDecision:
        record = TechnicalDecision(
            title=title,
            context=context,
            decision=decision,
            alternatives=list(alternatives),
            consequences=list(consequences),
            status=status,
        )

        path = self.decisions_path(project_path)
        content = self._read_or_default(path, DECISIONS_HEADER)
        number = len(parse_entries(content, DECISION_HEADER_RE)) + 1
        self._write(path, content + f"\n{render_decision(record, number)}\n")
        logger.info("Logged decision ADR-%03d %r to %s", number, title, path)
        return record

    def get_milestones(self, project_path: str | Path) -> list[Milestone]:
        content = self._read(self.milestones_path(project_path))
        return parse_milestones(content) if content else []

    def get_decisions(self, project_path: str | Path) -> list[TechnicalDecision]:
        content = self._read(self.decisions_path(project_path))
        return parse_decisions(content) if content else []

    def _read(self, path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Cannot read ledger %s: %s", path, e)
            return None

    def _read_or_default(self, path: Path, header: str) -> str:
        # Only a missing ledger starts fresh; anything else would overwrite it.
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return header

    def _write(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
