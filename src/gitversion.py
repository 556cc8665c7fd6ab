"""Pseudo-versions for module source checkouts.

A source directory has no version of its own. When it is a git checkout we
build one the way the go command does for untagged commits:
``<latest semver tag>`` when HEAD is tagged, else
``<tag>-<UTC commit time>-<12 char hash>``.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from typing import List, Optional

from constants import Constants

logger = logging.getLogger(__name__)


def _git(git: str, directory: str, args: List[str]) -> Optional[str]:
    env = dict(os.environ, TZ="UTC")
    result = subprocess.run(  # noqa: S603
        [git, "-C", directory, "--no-pager"] + args,
        capture_output=True,
        text=True,
        env=env,
        check=False,
    )
    if result.returncode != 0:
        logger.warning("git %s failed in %s: %s", args[0], directory, result.stderr.strip())
        return None
    return result.stdout.strip()


def go_version(directory: str) -> str:
    """Compute a module version for a git checkout.

    Returns:
        The version string, or an empty string when git is unavailable or the
        directory is not a repository.
    """
    git = shutil.which(Constants.GIT_BINARY)
    if git is None:
        return ""

    tag = _git(git, directory, ["describe", "--match=v[0-9]*.[0-9]*.[0-9]*", "--abbrev=0", "--tags"])
    if not tag:
        tag = Constants.DEFAULT_PSEUDO_TAG

    commit_list = "HEAD" if tag == Constants.DEFAULT_PSEUDO_TAG else f"{tag}..HEAD"
    count = _git(git, directory, ["rev-list", commit_list, "--count"])
    if count is None:
        return ""
    if count == "0":
        return tag

    date_and_commit = _git(git, directory, [
        "show",
        "--quiet",
        "--abbrev=12",
        "--date=format-local:%Y%m%d%H%M%S",
        "--format=%cd-%h",
    ])
    if not date_and_commit:
        return ""
    return f"{tag}-{date_and_commit}"
