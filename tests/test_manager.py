"""Tests for project summaries and restoration prompts."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from context_continue.config import ConfigStore, init_project, load_config
from context_continue.context.manager import ContextManager, build_next_steps
from context_continue.context.models import Milestone, Session, TechnicalDecision
from context_continue.context.tracker import render_session_markdown


@pytest.fixture
def manager():
    return ContextManager()


def _write_config(project, **values):
    context = project / ".context"
    context.mkdir(exist_ok=True)
    (context / "config.json").write_text(json.dumps(values))


def _archive(project, session: Session):
    directory = project / ".context" / "sessions"
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"session_{session.id}_{session.start_time:%Y-%m-%d}.md"
    path.write_text(render_session_markdown(session, []))


class TestProjectSummary:
    def test_empty_project(self, manager, project):
        summary = manager.get_project_summary(project)
        assert summary.name == "my-project"
        assert summary.path == str(project)
        assert summary.total_sessions == 0
        assert summary.total_tokens == 0
        assert summary.current_phase is None
        assert summary.key_milestones == []
        assert summary.last_activity.tzinfo is not None

    def test_name_from_config(self, manager, project):
        _write_config(project, projectName="Test Project")
        assert manager.get_project_summary(project).name == "Test Project"

    def test_corrupt_config_falls_back(self, manager, project):
        (project / ".context").mkdir()
        (project / ".context" / "config.json").write_text("{not json")
        assert manager.get_project_summary(project).name == "my-project"

    def test_session_totals(self, manager, project):
        base = datetime(2026, 4, 1, 8, 0, tzinfo=timezone.utc)
        _archive(project, Session(project_path=str(project), start_time=base, token_count=100))
        _archive(project, Session(project_path=str(project), start_time=base + timedelta(days=3), token_count=250))

        summary = manager.get_project_summary(project)
        assert summary.total_sessions == 2
        assert summary.total_tokens == 350
        assert summary.last_activity == base + timedelta(days=3)

    def test_current_phase(self, manager, project):
        (project / ".context").mkdir()
        (project / ".context" / "project_summary.md").write_text("# Summary\n\n**Current Phase:** Beta hardening\n")
        assert manager.get_project_summary(project).current_phase == "Beta hardening"

    def test_key_milestones_most_recent_first(self, manager, project):
        for i in range(7):
            manager.ledger.add_milestone(project, f"M{i}")
        titles = [m.title for m in manager.get_project_summary(project).key_milestones]
        assert titles == ["M6", "M5", "M4", "M3", "M2"]

    def test_undecodable_config_falls_back(self, manager, project):
        (project / ".context").mkdir()
        (project / ".context" / "config.json").write_bytes(b'{"projectName": "\xff\xfe"}')
        assert manager.get_project_summary(project).name == "my-project"

    def test_undecodable_phase_file(self, manager, project):
        (project / ".context").mkdir()
        (project / ".context" / "project_summary.md").write_bytes(b"**Current Phase:** \xff\xfe\x80\n")
        assert manager.get_project_summary(project).current_phase is None

    def test_unreadable_files_still_count_remaining_sessions(self, manager, project):
        base = datetime(2026, 4, 1, 8, 0, tzinfo=timezone.utc)
        _archive(project, Session(project_path=str(project), start_time=base, token_count=40))
        _archive(project, Session(project_path=str(project), start_time=base + timedelta(days=1), token_count=60))
        sessions = project / ".context" / "sessions"
        (sessions / "session_bad_2026-04-03.md").write_bytes(b"\xff\xfe\x80\x81")
        (sessions / "session_dir_2026-04-04.md").mkdir()

        summary = manager.get_project_summary(project)
        assert summary.total_sessions == 2
        assert summary.total_tokens == 100


class TestRestorationPrompt:
    def test_no_sessions(self, manager, project):
        prompt = manager.generate_restoration_prompt(project)
        assert prompt.project_name == "my-project"
        assert prompt.current_phase == "Development"
        assert prompt.last_session_summary == "No previous sessions found"
        assert prompt.next_steps == [
            "Review project status and set priorities",
            "Continue development work",
        ]
        assert prompt.key_context == [
            "Project: my-project",
            "Total sessions: 0",
            "Total tokens used: 0",
            "Current phase: Initial development",
        ]

    def test_last_session_summary_uses_newest(self, manager, project):
        base = datetime(2026, 4, 1, 8, 0, tzinfo=timezone.utc)
        _archive(project, Session(project_path=str(project), start_time=base, session_name="old work"))
        _archive(
            project,
            Session(
                project_path=str(project),
                start_time=base + timedelta(days=1),
                session_name="api design",
                message_count=12,
                token_count=4000,
            ),
        )

        prompt = manager.generate_restoration_prompt(project)
        assert prompt.last_session_summary == (
            "Last session focused on api design with 12 exchanges and 4000 tokens used."
        )

    def test_unnamed_session_summary(self, manager, project):
        _archive(project, Session(project_path=str(project), message_count=2, token_count=40))
        prompt = manager.generate_restoration_prompt(project)
        assert prompt.last_session_summary.startswith("Last session focused on development work")

    def test_undecodable_files_do_not_block_restoration(self, manager, project):
        base = datetime(2026, 4, 1, 8, 0, tzinfo=timezone.utc)
        _archive(project, Session(project_path=str(project), start_time=base, session_name="kept", token_count=30))
        (project / ".context" / "sessions" / "session_bad_2026-04-02.md").write_bytes(b"\xff\xfe\x80")
        progress = project / ".context" / "progress"
        progress.mkdir(parents=True)
        (progress / "milestones.md").write_bytes(b"### \xff\xfe Broken\n")
        (progress / "decisions.md").write_bytes(b"### ADR-001: \x80\x81\n")
        (project / ".context" / "project_summary.md").write_bytes(b"\xff\xfe")

        prompt = manager.generate_restoration_prompt(project)
        assert prompt.current_phase == "Development"
        assert "Total sessions: 1" in prompt.key_context
        assert "Total tokens used: 30" in prompt.key_context
        assert prompt.last_session_summary.startswith("Last session focused on kept")
        assert prompt.next_steps == [
            "Review project status and set priorities",
            "Continue development work",
        ]

    def test_milestones_and_decisions_in_context(self, manager, project):
        _write_config(project, projectName="Test Project")
        manager.ledger.add_milestone(project, "Auth service", status="in-progress")
        manager.ledger.add_milestone(project, "Landing page", status="completed")
        for i in range(4):
            manager.ledger.log_decision(project, f"D{i}", f"decided {i}")

        prompt = manager.generate_restoration_prompt(project)
        assert prompt.key_context[:4] == [
            "Project: Test Project",
            "Total sessions: 0",
            "Total tokens used: 0",
            "Current phase: Initial development",
        ]
        assert prompt.key_context[4:] == [
            "Active milestone: Auth service",
            "Decision: D3 - decided 3",
            "Decision: D2 - decided 2",
            "Decision: D1 - decided 1",
        ]
        assert prompt.next_steps == [
            "Continue work on: Auth service",
            "Implement decision: D3",
            "Implement decision: D2",
        ]

    def test_full_prompt_structure(self, manager, project):
        _write_config(project, projectName="Test Project")
        manager.ledger.add_milestone(project, "Auth service", status="in-progress")

        full = manager.generate_restoration_prompt(project).full_prompt
        assert full.startswith("# Context Restoration for Test Project")
        assert "## Project Status\n**Current Phase:** Development" in full
        assert "## Last Session Summary\nNo previous sessions found" in full
        assert "## Key Context\n- Project: Test Project\n" in full
        assert "## Recommended Next Steps\n1. Continue work on: Auth service" in full
        assert full.endswith(
            "You are continuing work on Test Project. Please review the above context "
            "and let me know when you're ready to proceed with the next steps."
        )

    def test_phase_from_summary_file(self, manager, project):
        (project / ".context").mkdir()
        (project / ".context" / "project_summary.md").write_text("**Current Phase:** MVP\n")
        prompt = manager.generate_restoration_prompt(project)
        assert prompt.current_phase == "MVP"
        assert "Current phase: MVP" in prompt.key_context


class TestBuildNextSteps:
    def test_capped_at_five(self):
        milestones = [Milestone(title=f"M{i}", status="in-progress") for i in range(6)]
        steps = build_next_steps(milestones, [])
        assert len(steps) == 5
        assert steps[0] == "Continue work on: M0"

    def test_decisions_only(self):
        decisions = [TechnicalDecision(title=f"D{i}", decision="x") for i in range(3)]
        assert build_next_steps([], decisions) == ["Implement decision: D0", "Implement decision: D1"]


class TestConfigStore:
    def test_first_load_wins_until_invalidated(self, project):
        store = ConfigStore()
        assert store.get(project).project_name == "my-project"

        _write_config(project, projectName="Renamed")
        assert store.get(project).project_name == "my-project"

        store.invalidate(project)
        assert store.get(project).project_name == "Renamed"

    def test_cache_is_per_project(self, tmp_path):
        a = tmp_path / "a"
        b = tmp_path / "b"
        a.mkdir()
        b.mkdir()
        _write_config(a, projectName="Alpha")

        store = ConfigStore()
        assert store.get(a).project_name == "Alpha"
        assert store.get(b).project_name == "b"

    def test_non_ascii_name_written_as_utf8(self, project):
        init_project(project, "Café Ünïcode")

        raw = (project / ".context" / "config.json").read_bytes()
        assert "Café Ünïcode".encode("utf-8") in raw
        assert "# Café Ünïcode".encode("utf-8") in (project / ".context" / "README.md").read_bytes()
        assert load_config(project).project_name == "Café Ünïcode"
        assert ConfigStore().get(project).project_name == "Café Ünïcode"
