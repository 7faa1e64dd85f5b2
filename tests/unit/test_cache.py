"""Tests for docloom.agents.cache."""

from __future__ import annotations

import os
import time
from pathlib import Path

from docloom.agents.cache import ArtifactCache


class TestArtifactCache:
    def test_run_directories_are_unique(self, tmp_path: Path):
        cache = ArtifactCache(tmp_path / "cache")

        runs = [cache.create_run_directory("repo-scout") for _ in range(5)]

        paths = {r.path for r in runs}
        assert len(paths) == 5
        assert all(p.is_dir() for p in paths)
        assert all(p.name.startswith("repo-scout-") for p in paths)
        assert all(r.pid == os.getpid() for r in runs)

    def test_unsafe_agent_names_are_sanitised(self, tmp_path: Path):
        cache = ArtifactCache(tmp_path)

        run = cache.create_run_directory("../../etc/passwd")

        assert run.path.parent == tmp_path
        assert run.agent_name == "../../etc/passwd"

    def test_clean_removes_only_expired(self, tmp_path: Path):
        cache = ArtifactCache(tmp_path, max_age_seconds=3600)
        old = cache.create_run_directory("a").path
        fresh = cache.create_run_directory("b").path
        (old / "artifact.json").write_text("{}")
        two_hours_ago = time.time() - 7200
        os.utime(old, (two_hours_ago, two_hours_ago))

        removed = cache.clean()

        assert removed == 1
        assert not old.exists()
        assert fresh.exists()

    def test_clean_with_injected_clock(self, tmp_path: Path):
        cache = ArtifactCache(tmp_path, max_age_seconds=60)
        run = cache.create_run_directory("a").path

        assert cache.clean(now=time.time()) == 0
        assert cache.clean(now=time.time() + 120) == 1
        assert not run.exists()

    def test_clean_missing_root(self, tmp_path: Path):
        assert ArtifactCache(tmp_path / "nope").clean() == 0

    def test_clean_ignores_plain_files(self, tmp_path: Path):
        cache = ArtifactCache(tmp_path, max_age_seconds=0)
        stray = tmp_path / "notes.txt"
        stray.write_text("keep me")

        cache.clean(now=time.time() + 10)

        assert stray.exists()

    def test_list_runs_oldest_first(self, tmp_path: Path):
        cache = ArtifactCache(tmp_path)
        first = cache.create_run_directory("a").path
        second = cache.create_run_directory("b").path
        os.utime(first, (1000, 1000))

        assert cache.list_runs() == [first, second]
