"""Tag classification and eligibility of catalog item names."""

import pytest

from mvagnon_agents.selection import (
    ArchTagged,
    DualTagged,
    Generic,
    Selection,
    TechTagged,
    classify,
    is_eligible,
    split_segments,
)


class TestClassify:
    def test_extension_is_dropped(self):
        assert split_segments("react-hooks.md") == ("react", "hooks")

    def test_directory_name_without_extension(self):
        assert split_segments("ts-testing") == ("ts", "testing")

    def test_untagged_name_is_generic(self):
        assert classify("clean-code.md") == Generic()

    def test_tech_anywhere_in_name(self):
        assert classify("testing-react.md") == TechTagged(techs=("react",))

    def test_arch_only_counts_as_first_segment(self):
        assert classify("hexagonal-architecture.md") == ArchTagged(arch="hexagonal")
        assert classify("intro-to-hexagonal.md") == Generic()

    def test_dual_tag(self):
        assert classify("hexagonal-ts-ports.md") == DualTagged(techs=("ts",), arch="hexagonal")

    def test_tokens_must_match_whole_segments(self):
        assert classify("reactive-streams.md") == Generic()


class TestEligibility:
    @pytest.mark.parametrize("techs,archs", [
        ([], []),
        (["react"], []),
        (["ts"], ["hexagonal"]),
    ])
    def test_generic_always_eligible(self, techs, archs):
        assert is_eligible("clean-code.md", techs, archs)

    def test_tech_item_needs_its_tech(self):
        assert is_eligible("react-hooks.md", ["react"], [])
        assert not is_eligible("react-hooks.md", ["ts"], [])

    def test_arch_item_needs_its_arch(self):
        assert is_eligible("hexagonal-architecture.md", [], ["hexagonal"])
        assert not is_eligible("hexagonal-architecture.md", ["ts"], [])

    def test_none_architecture_is_not_a_tag(self):
        assert not is_eligible("hexagonal-architecture.md", [], ["none"])

    def test_dual_item_needs_both(self):
        assert is_eligible("hexagonal-ts-ports.md", ["ts"], ["hexagonal"])
        assert not is_eligible("hexagonal-ts-ports.md", ["ts"], [])
        assert not is_eligible("hexagonal-ts-ports.md", ["react"], ["hexagonal"])


class TestSelection:
    def test_defaults(self):
        selection = Selection(tools=("claudecode",))
        assert selection.archs == frozenset()
        assert not selection.copy_all
        assert selection.categories == ("rules", "skills", "agents")

    def test_none_arch_selects_nothing(self):
        assert Selection(tools=("opencode",), arch="none").archs == frozenset()

    def test_includes(self):
        selection = Selection(tools=("opencode",), techs=frozenset({"ts"}), arch="hexagonal", link_mode="copy")
        assert selection.copy_all
        assert selection.includes("hexagonal-ts-ports.md")
        assert selection.includes("ts-testing")
        assert not selection.includes("react-hooks.md")
