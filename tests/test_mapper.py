"""Tests for category expansion and repository walks.

Covers:
- walk_entries yields files and symlinks without descending into links
- expand_category: globs, literal directories, stale literals, excludes
- walk_repo_category pairs repository files with system paths
"""

from __future__ import annotations

import os
from pathlib import Path

from confect.core.category import Category
from confect.sync.mapper import (
    expand_category,
    walk_entries,
    walk_repo_category,
)


class TestWalkEntries:
    def test_yields_files_recursively(self, system_root, write_file):
        write_file(system_root / "a.conf")
        write_file(system_root / "sub" / "b.conf")
        assert sorted(walk_entries(system_root)) == [
            system_root / "a.conf",
            system_root / "sub" / "b.conf",
        ]

    def test_symlinked_directory_is_yielded_not_walked(
        self, system_root, tmp_path, write_file
    ):
        elsewhere = tmp_path / "elsewhere"
        write_file(elsewhere / "inner.conf")
        os.symlink(elsewhere, system_root / "link")

        entries = list(walk_entries(system_root))
        assert entries == [system_root / "link"]


class TestExpandCategory:
    def test_glob_skips_directories(self, system_root, write_file):
        write_file(system_root / "app" / "main.conf")
        (system_root / "app" / "conf.d").mkdir()
        cat = Category(name="app", paths=[f"{system_root}/app/*"])

        assert expand_category(cat) == [system_root / "app" / "main.conf"]

    def test_recursive_glob_includes_hidden(self, system_root, write_file):
        write_file(system_root / "app" / ".hidden")
        write_file(system_root / "app" / "deep" / "x.conf")
        cat = Category(name="app", paths=[f"{system_root}/app/**"])

        assert set(expand_category(cat)) == {
            system_root / "app" / ".hidden",
            system_root / "app" / "deep" / "x.conf",
        }

    def test_literal_directory_expands_to_files(self, system_root, write_file):
        write_file(system_root / "d" / "one")
        write_file(system_root / "d" / "two" / "three")
        cat = Category(name="d", paths=[str(system_root / "d")])

        assert set(expand_category(cat)) == {
            system_root / "d" / "one",
            system_root / "d" / "two" / "three",
        }

    def test_missing_literal_is_kept(self, system_root):
        """A stale literal include is returned so it can be reported."""
        missing = system_root / "gone.conf"
        cat = Category(name="x", paths=[str(missing)])
        assert expand_category(cat) == [missing]

    def test_excludes_applied(self, system_root, write_file):
        write_file(system_root / "keep.conf")
        write_file(system_root / "drop.bak")
        cat = Category(
            name="x", paths=[f"{system_root}/*"], exclude=["*.bak"]
        )
        assert expand_category(cat) == [system_root / "keep.conf"]

    def test_overlapping_patterns_deduplicated(self, system_root, write_file):
        target = write_file(system_root / "a.conf")
        cat = Category(
            name="x", paths=[str(target), f"{system_root}/*.conf"]
        )
        assert expand_category(cat) == [target]


class TestWalkRepoCategory:
    def test_pairs_repo_files_with_system_paths(self, repo, write_file):
        cat = Category(name="web")
        repo_file = write_file(repo.path / "web" / "etc" / "nginx" / "n.conf")

        assert walk_repo_category(repo.path, cat) == [
            (repo_file, Path("/etc/nginx/n.conf"))
        ]

    def test_missing_category_dir(self, repo):
        assert walk_repo_category(repo.path, Category(name="none")) == []
