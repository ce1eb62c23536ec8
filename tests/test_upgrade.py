"""Upgrading the stable mirror and a project's generic copies."""

from mvagnon_agents.conflicts import ConflictResolver
from mvagnon_agents.installer import run_install
from mvagnon_agents.mirror import MirrorReport, sync_stable_mirror
from mvagnon_agents.selection import Selection
from mvagnon_agents.upgrade import reconcile, run_upgrade

from tests.conftest import snapshot

BOTH = ("claudecode", "opencode")


class FakeTracker:
    def __init__(self):
        self.calls = []

    def start(self, key, detail=""):
        self.calls.append(("start", key))

    def complete(self, key, detail=""):
        self.calls.append(("complete", key))

    def skip(self, key, detail=""):
        self.calls.append(("skip", key))


def change_catalog(catalog_dir):
    (catalog_dir / "rules" / "generic" / "clean-code.md").write_text("# Clean code v2\n")
    (catalog_dir / "rules" / "project-sensitive" / "project.md").write_text("# Project v2\n")
    (catalog_dir / "agents" / "generic" / "code-reviewer.md").unlink()
    (catalog_dir / "AGENTS.md").write_text("# Agents v2\n")


class TestCopyModeUpgrade:
    def setup_project(self, project, settings):
        sync_stable_mirror(settings, version="1.0.0")
        run_install(project, Selection(tools=BOTH, link_mode="copy"), settings, ConflictResolver(assume_no=True))
        return settings.intermediate_base(project)

    def test_generic_copies_follow_catalog(self, project, settings, catalog_dir):
        inter = self.setup_project(project, settings)
        change_catalog(catalog_dir)

        result = run_upgrade(project, settings, version="1.1.0")

        assert result.mirror.version == "1.1.0"
        assert set(result.mirror.updated) == {
            "AGENTS.md",
            "rules/generic/clean-code.md",
            "rules/project-sensitive/project.md",
        }
        assert result.local.updated == ["rules/clean-code.md", "AGENTS.md"]
        assert result.local.removed == ["agents/code-reviewer.md"]
        assert (inter / "generic" / "rules" / "clean-code.md").read_text() == "# Clean code v2\n"
        assert (project / ".claude" / "rules" / "clean-code.md").read_text() == "# Clean code v2\n"
        assert (project / "CLAUDE.md").read_text() == "# Agents v2\n"

    def test_project_sensitive_copies_untouched(self, project, settings, catalog_dir):
        inter = self.setup_project(project, settings)
        (inter / "rules" / "project.md").write_text("# Customized\n")
        change_catalog(catalog_dir)

        run_upgrade(project, settings, version="1.1.0")

        assert (inter / "rules" / "project.md").read_text() == "# Customized\n"

    def test_dangling_links_pruned(self, project, settings, catalog_dir):
        self.setup_project(project, settings)
        change_catalog(catalog_dir)

        result = run_upgrade(project, settings, version="1.1.0")

        assert sorted(result.pruned) == [".claude/agents/code-reviewer.md", ".opencode/agents/code-reviewer.md"]
        assert not (project / ".claude" / "agents" / "code-reviewer.md").is_symlink()

    def test_second_upgrade_is_a_noop(self, project, settings, catalog_dir):
        self.setup_project(project, settings)
        change_catalog(catalog_dir)
        run_upgrade(project, settings, version="1.1.0")
        project_before = snapshot(project)
        stable_before = snapshot(settings.stable_base)

        result = run_upgrade(project, settings, version="1.1.0")

        assert not result.mirror.changed
        assert not result.local.changed
        assert result.pruned == []
        assert snapshot(project) == project_before
        assert snapshot(settings.stable_base) == stable_before

    def test_removed_root_file_prunes_its_links(self, project, settings, catalog_dir):
        inter = self.setup_project(project, settings)
        (catalog_dir / "AGENTS.md").unlink()

        result = run_upgrade(project, settings, version="1.1.0")

        assert result.local.removed == ["AGENTS.md"]
        assert not (inter / "AGENTS.md").exists()
        assert sorted(result.pruned) == ["AGENTS.md", "CLAUDE.md"]
        assert not (project / "CLAUDE.md").is_symlink()
        assert not (project / "AGENTS.md").is_symlink()


class TestSymlinkModeUpgrade:
    def test_links_follow_mirror_and_removed_items_are_pruned(self, project, synced, catalog_dir):
        run_install(project, Selection(tools=("claudecode",)), synced, ConflictResolver(assume_no=True))
        change_catalog(catalog_dir)

        result = run_upgrade(project, synced, version="1.1.0")

        assert (project / ".claude" / "rules" / "clean-code.md").read_text() == "# Clean code v2\n"
        assert result.pruned == [".claude/agents/code-reviewer.md"]
        assert result.local.updated == ["AGENTS.md"]


class TestRunUpgrade:
    def test_outside_a_project_only_syncs_mirror(self, settings):
        tracker = FakeTracker()
        result = run_upgrade(None, settings, version="1.0.0", tracker=tracker)

        assert result.local is None
        assert ("complete", "mirror") in tracker.calls
        assert ("skip", "reconcile") in tracker.calls
        assert (settings.stable_config_dir / "AGENTS.md").is_file()

    def test_project_without_intermediate_dir(self, project, settings):
        tracker = FakeTracker()
        result = run_upgrade(project, settings, version="1.0.0", tracker=tracker)

        assert result.local is None
        assert ("skip", "reconcile") in tracker.calls
        assert ("complete", "links") in tracker.calls


class TestReconcile:
    def test_only_installed_entries_are_visited(self, tmp_path, synced):
        inter = tmp_path / "inter"
        (inter / "generic" / "rules").mkdir(parents=True)
        (inter / "generic" / "rules" / "clean-code.md").write_text("old")

        report = reconcile(inter, synced.stable_config_dir)

        assert isinstance(report, MirrorReport)
        assert report.updated == ["rules/clean-code.md"]
        assert sorted(p.name for p in (inter / "generic" / "rules").iterdir()) == ["clean-code.md"]
        assert not (inter / "AGENTS.md").exists()

    def test_category_copies_are_never_visited(self, tmp_path, synced):
        inter = tmp_path / "inter"
        (inter / "rules").mkdir(parents=True)
        (inter / "rules" / "project.md").write_text("# Mine\n")
        (inter / "rules" / "clean-code.md").write_text("stale")

        report = reconcile(inter, synced.stable_config_dir)

        assert not report.changed
        assert (inter / "rules" / "project.md").read_text() == "# Mine\n"
        assert (inter / "rules" / "clean-code.md").read_text() == "stale"
