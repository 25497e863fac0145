"""Tests for PathSandbox — confinement, comparison and rebasing."""

from __future__ import annotations

import pytest

from sandfs.fs.sandbox import PathSandbox


@pytest.fixture
def sandbox() -> PathSandbox:
    return PathSandbox()


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


class TestNormalize:
    def test_preserves_case(self, sandbox: PathSandbox):
        assert sandbox.normalize("/Docs/Readme.MD/") == "/Docs/Readme.MD"

    def test_cannot_escape_root(self, sandbox: PathSandbox):
        assert sandbox.normalize("../../../etc/passwd") == "/etc/passwd"

    def test_key_folds_case(self, sandbox: PathSandbox):
        assert sandbox.key("/Docs/Readme.MD/") == "/docs/readme.md"

    def test_variants_share_key(self, sandbox: PathSandbox):
        variants = [
            "/Docs/Readme.md",
            "/docs/README.md/",
            "docs//readme.MD",
            "/DOCS/./x/../Readme.md",
        ]
        assert {sandbox.key(v) for v in variants} == {"/docs/readme.md"}

    def test_key_case_sensitive(self):
        sandbox = PathSandbox(case_sensitive=True)
        assert sandbox.key("/Docs/") == "/Docs"

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            pytest.param("/a", "/work/a", id="child"),
            pytest.param("/", "/work", id="root"),
            pytest.param("", "/work", id="empty"),
            pytest.param("../../etc", "/work/etc", id="escape-attempt"),
        ],
    )
    def test_rooted(self, path: str, expected: str):
        assert PathSandbox("/work/").rooted(path) == expected

    def test_rooted_default_root(self, sandbox: PathSandbox):
        assert sandbox.rooted("a/b") == "/a/b"


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------


class TestStructure:
    def test_parent_and_name(self, sandbox: PathSandbox):
        assert sandbox.parent("/a/b/c.txt") == "/a/b"
        assert sandbox.name("/a/b/c.txt") == "c.txt"

    def test_parent_of_top_level(self, sandbox: PathSandbox):
        assert sandbox.parent("/c.txt") == "/"

    def test_extension_lowercased(self, sandbox: PathSandbox):
        assert sandbox.extension("/x/Link.LNK") == ".lnk"
        assert sandbox.extension("/x/noext") == ""

    def test_segments(self, sandbox: PathSandbox):
        assert sandbox.segments("/A/b/") == ["a", "b"]
        assert sandbox.segments("/") == []

    @pytest.mark.parametrize(
        ("from_path", "to_path", "expected"),
        [
            pytest.param("/a", "/a/b/c", "b/c", id="descendant"),
            pytest.param("/a", "/a", "", id="same"),
            pytest.param("/a/b", "/a/c", "../c", id="sibling"),
        ],
    )
    def test_relative(self, sandbox: PathSandbox, from_path: str, to_path: str, expected: str):
        assert sandbox.relative(from_path, to_path) == expected


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------


class TestEquals:
    @pytest.mark.parametrize(
        ("a", "b"),
        [
            pytest.param("/a/b", "a//b/", id="separators"),
            pytest.param("/a/./b", "/a/c/../b", id="dots"),
            pytest.param("/A/B", "/a/b", id="mixed-case"),
            pytest.param("", "/", id="root-spellings"),
        ],
    )
    def test_equal(self, sandbox: PathSandbox, a: str, b: str):
        assert sandbox.equals(a, b)
        assert sandbox.equals(b, a)

    def test_not_equal(self, sandbox: PathSandbox):
        assert not sandbox.equals("/a/b", "/a/c")

    def test_case_sensitive_distinguishes(self):
        sandbox = PathSandbox(case_sensitive=True)
        assert not sandbox.equals("/A", "/a")


class TestIsAncestor:
    def test_never_reflexive(self, sandbox: PathSandbox):
        for path in ("/", "/a", "/a/b/"):
            assert sandbox.is_ancestor(path, path) is False

    @pytest.mark.parametrize("path", ["/a", "/a/b", "x/y/z"])
    def test_root_is_ancestor_of_everything(self, sandbox: PathSandbox, path: str):
        assert sandbox.is_ancestor("/", path) is True

    def test_strict_prefix(self, sandbox: PathSandbox):
        assert sandbox.is_ancestor("/a", "/a/b/c") is True
        assert sandbox.is_ancestor("/a/b/c", "/a") is False

    def test_segment_boundary(self, sandbox: PathSandbox):
        assert sandbox.is_ancestor("/a", "/ab") is False

    def test_case_folded(self, sandbox: PathSandbox):
        assert sandbox.is_ancestor("/A", "/a/b") is True


class TestRebase:
    def test_moves_descendant(self, sandbox: PathSandbox):
        assert sandbox.rebase("/a/b/c.txt", "/a", "/z") == "/z/b/c.txt"

    def test_from_root(self, sandbox: PathSandbox):
        assert sandbox.rebase("/a/b", "/", "/z") == "/z/a/b"

    def test_identity_when_not_ancestor(self, sandbox: PathSandbox):
        assert sandbox.rebase("/x/y", "/a", "/z") == "/x/y"

    def test_identity_for_same_path(self, sandbox: PathSandbox):
        assert sandbox.rebase("/a", "/a", "/z") == "/a"
