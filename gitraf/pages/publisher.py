"""Stage-then-swap publication of built sites"""

import os
import shutil
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from gitraf.core.exceptions import PagesError
from gitraf.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DeploymentLayout:
    """On-disk locations for one repository's deployments"""

    root: Path

    @property
    def workspace(self) -> Path:
        return self.root / "build"

    @property
    def index_file(self) -> Path:
        return self.root / "build.index"

    @property
    def releases(self) -> Path:
        return self.root / "releases"

    @property
    def site(self) -> Path:
        """What the reverse proxy serves; a symlink to the current release"""
        return self.root / "site"


def new_release_id() -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    return f"{stamp}-{uuid.uuid4().hex[:8]}"


class SitePublisher:
    """Copies output into a fresh release and swaps the site link atomically

    The live path only ever changes through a single rename of the site
    symlink, so readers see the old release or the new one, never a mix.
    """

    STAGING_SUFFIX = ".tmp"

    def __init__(self, keep_releases: int = 3):
        self.keep_releases = max(1, keep_releases)

    def current_release(self, layout: DeploymentLayout) -> Optional[Path]:
        site = layout.site
        if site.is_symlink():
            target = site.resolve()
            return target if target.is_dir() else None
        if site.is_dir():
            return site
        return None

    def publish(self, source: Path, layout: DeploymentLayout) -> Path:
        """
        Publish source as the new site

        Args:
            source: Verified output directory
            layout: Deployment layout of the repository

        Returns:
            Path of the release now served

        Raises:
            PagesError: If staging or the swap fails; the live site is untouched
        """
        release_id = new_release_id()
        release = layout.releases / release_id
        staging = layout.releases / f".{release_id}{self.STAGING_SUFFIX}"
        link = layout.root / f".site-{release_id}{self.STAGING_SUFFIX}"

        try:
            layout.releases.mkdir(parents=True, exist_ok=True)
            shutil.copytree(source, staging, symlinks=True)
            os.rename(staging, release)

            self._adopt_legacy_site(layout)

            os.symlink(os.path.relpath(release, layout.root), link)
            os.replace(link, layout.site)
        except OSError as e:
            _remove_quietly(staging)
            _remove_quietly(link)
            if not self._is_current(release, layout):
                _remove_quietly(release)
            raise PagesError("publish", str(e))

        logger.info("site_published", release=release.name, site=str(layout.site))

        self.prune(layout)
        return release

    def prune(self, layout: DeploymentLayout) -> List[Path]:
        """Delete old and abandoned releases, keeping the newest ones"""
        if not layout.releases.is_dir():
            return []

        current = self.current_release(layout)
        removed: List[Path] = []
        finished: List[Path] = []

        for entry in layout.releases.iterdir():
            if entry.name.startswith(".") and entry.name.endswith(self.STAGING_SUFFIX):
                # Left behind by an interrupted deployment
                _remove_quietly(entry)
                removed.append(entry)
            elif entry.is_dir():
                finished.append(entry)

        finished.sort(key=lambda p: p.name, reverse=True)
        for entry in finished[self.keep_releases:]:
            if current is not None and entry.resolve() == current:
                continue
            _remove_quietly(entry)
            removed.append(entry)

        if removed:
            logger.debug("releases_pruned", count=len(removed))
        return removed

    def _adopt_legacy_site(self, layout: DeploymentLayout) -> None:
        """Move a plain site directory into releases so it can be swapped out"""
        site = layout.site
        if site.is_dir() and not site.is_symlink():
            legacy = layout.releases / f"0-legacy-{uuid.uuid4().hex[:8]}"
            os.rename(site, legacy)
            logger.warning("legacy_site_adopted", release=legacy.name)

    def _is_current(self, release: Path, layout: DeploymentLayout) -> bool:
        current = self.current_release(layout)
        return current is not None and current == release.resolve()


def _remove_quietly(path: Path) -> None:
    try:
        if path.is_symlink() or path.is_file():
            path.unlink()
        elif path.is_dir():
            shutil.rmtree(path)
    except OSError as e:
        logger.warning("cleanup_failed", path=str(path), error=str(e))
