"""Tree mirroring and the stable mirror sync."""

from mvagnon_agents.config import read_stable_version
from mvagnon_agents.mirror import mirror_tree, sync_entry, sync_stable_mirror

from tests.conftest import write_tree


class TestMirrorTree:
    def test_initial_copy_reports_added(self, tmp_path):
        source = write_tree(tmp_path / "src", {"a.md": "a", "sub/b.md": "b"})
        report = mirror_tree(source, tmp_path / "dest")

        assert sorted(report.added) == ["a.md", "sub/b.md"]
        assert report.updated == [] and report.removed == []
        assert (tmp_path / "dest" / "sub" / "b.md").read_text() == "b"

    def test_second_run_is_a_noop(self, tmp_path):
        source = write_tree(tmp_path / "src", {"a.md": "a"})
        mirror_tree(source, tmp_path / "dest")
        report = mirror_tree(source, tmp_path / "dest")

        assert not report.changed
        assert report.summary() == "0 added, 0 updated, 0 removed"

    def test_updates_and_removals(self, tmp_path):
        source = write_tree(tmp_path / "src", {"a.md": "a", "old/gone.md": "x"})
        dest = tmp_path / "dest"
        mirror_tree(source, dest)

        (source / "a.md").write_text("a2")
        (source / "old" / "gone.md").unlink()
        (source / "old").rmdir()
        (source / "new.md").write_text("n")
        report = mirror_tree(source, dest)

        assert report.added == ["new.md"]
        assert report.updated == ["a.md"]
        assert report.removed == ["old/gone.md"]
        assert (dest / "a.md").read_text() == "a2"
        assert not (dest / "old").exists()

    def test_excluded_paths_are_untouched(self, tmp_path):
        source = write_tree(tmp_path / "src", {"keep/a.md": "new", "b.md": "b"})
        dest = write_tree(tmp_path / "dest", {"keep/a.md": "custom", "keep/extra.md": "mine"})

        report = mirror_tree(source, dest, exclude=lambda rel: rel.startswith("keep/"))

        assert report.added == ["b.md"]
        assert (dest / "keep" / "a.md").read_text() == "custom"
        assert (dest / "keep" / "extra.md").read_text() == "mine"


class TestSyncEntry:
    def test_file_replaced_by_directory_item(self, tmp_path):
        source = write_tree(tmp_path / "src", {"skill/SKILL.md": "s"}) / "skill"
        dest = tmp_path / "dest" / "skill"
        dest.parent.mkdir()
        dest.write_text("was a file")

        assert sync_entry(source, dest)
        assert (dest / "SKILL.md").read_text() == "s"
        assert not sync_entry(source, dest)


class TestStableMirror:
    def test_sync_writes_version_marker(self, settings):
        report = sync_stable_mirror(settings, version="2.1.0")

        assert report.version == "2.1.0"
        assert "AGENTS.md" in report.added
        assert read_stable_version(settings) == "2.1.0"
        assert (settings.stable_config_dir / "rules" / "generic" / "clean-code.md").is_file()

    def test_noop_sync_still_returns_report(self, settings):
        sync_stable_mirror(settings, version="1.0.0")
        report = sync_stable_mirror(settings, version="1.0.1")

        assert not report.changed
        assert report.summary() == "v1.0.1: 0 added, 0 updated, 0 removed"
        assert read_stable_version(settings) == "1.0.1"

    def test_catalog_removal_propagates(self, settings, catalog_dir):
        sync_stable_mirror(settings, version="1.0.0")
        (catalog_dir / "agents" / "generic" / "code-reviewer.md").unlink()

        report = sync_stable_mirror(settings, version="1.0.0")
        assert report.removed == ["agents/generic/code-reviewer.md"]
