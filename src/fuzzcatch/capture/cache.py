"""Keyed store for the Go fuzz cache ($GOCACHE/fuzz) between runs.

Keys are ``go-fuzz-<os>-<package>-<regexp>-<commit>``. Restoring matches
the key without the commit as a prefix, so any earlier run of the same
fuzz test on the same OS seeds the next one.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote, unquote
import logging
import os
import tarfile
import tempfile

from fuzzcatch.capture.git import GitRepo
from fuzzcatch.capture.go_tool import GoTool
from fuzzcatch.common.types import FuzzRunRequest, RunContext

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".tar.gz"


def restore_key_prefix(runner_os: str, package_name: str, fuzz_regexp: str) -> str:
    return f"go-fuzz-{runner_os}-{package_name}-{fuzz_regexp}-"


def save_key(runner_os: str, package_name: str, fuzz_regexp: str, commit: str) -> str:
    return f"{restore_key_prefix(runner_os, package_name, fuzz_regexp)}{commit}"


@dataclass
class LocalCacheStore:
    """Cache entries stored as one tar.gz archive per key in a directory."""

    root: Path

    def __post_init__(self) -> None:
        self.root = Path(self.root)

    def _archive_path(self, key: str) -> Path:
        return self.root / f"{quote(key, safe='')}{ARCHIVE_SUFFIX}"

    def keys(self) -> list[str]:
        """All stored keys, most recently saved first."""
        if not self.root.is_dir():
            return []
        archives = sorted(
            (p for p in self.root.iterdir() if p.name.endswith(ARCHIVE_SUFFIX)),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )
        return [unquote(p.name[: -len(ARCHIVE_SUFFIX)]) for p in archives]

    def match(self, key: str, restore_keys: list[str] | None = None) -> str | None:
        if self._archive_path(key).exists():
            return key
        keys = self.keys()
        for prefix in restore_keys or []:
            for candidate in keys:
                if candidate.startswith(prefix):
                    return candidate
        return None

    def save(self, path: Path, key: str) -> bool:
        archive = self._archive_path(key)
        if archive.exists():
            logger.info("Cache entry %s already exists, not saving", key)
            return False
        if not path.is_dir():
            logger.info("Nothing to cache at %s", path)
            return False

        self.root.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, suffix=".tmp")
        os.close(fd)
        try:
            with tarfile.open(tmp_name, "w:gz") as tar:
                tar.add(path, arcname=path.name)
            os.replace(tmp_name, archive)
        finally:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
        logger.info("Saved cache entry %s", key)
        return True

    def restore(self, path: Path, key: str, restore_keys: list[str] | None = None) -> str | None:
        matched = self.match(key, restore_keys)
        if matched is None:
            logger.info("No cache entry found for %s", key)
            return None

        path.parent.mkdir(parents=True, exist_ok=True)
        with tarfile.open(self._archive_path(matched), "r:gz") as tar:
            tar.extractall(path.parent, filter="data")
        logger.info("Restored cache entry %s into %s", matched, path)
        return matched


def restore_fuzz_cache(go: GoTool, store: LocalCacheStore, request: FuzzRunRequest, ctx: RunContext) -> str | None:
    """Seed the fuzz cache from an earlier run. Never raises."""
    try:
        package_name = go.package_name(request.package)
        prefix = restore_key_prefix(ctx.runner_os, package_name, request.fuzz_regexp)
        return store.restore(go.gocache() / "fuzz", prefix, [prefix])
    except Exception as e:
        logger.warning("Error while restoring cache: %s", e)
        return None


def save_fuzz_cache(
    go: GoTool, git: GitRepo, store: LocalCacheStore, request: FuzzRunRequest, ctx: RunContext
) -> str | None:
    """Save the fuzz cache under the current commit. Never raises."""
    try:
        package_name = go.package_name(request.package)
        key = save_key(ctx.runner_os, package_name, request.fuzz_regexp, git.head_commit())
        if store.save(go.gocache() / "fuzz", key):
            return key
        return None
    except Exception as e:
        logger.warning("Error while saving cache: %s", e)
        return None
