"""Build information embedded in Go binaries.

Reading the build info is delegated to the platform: ``go version -m``
prints the main module, the flattened dependency list and the build
settings recorded by the linker. This module parses that output and derives
a main-module version from ``-ldflags`` when the binary was built outside of
module mode (version ``(devel)``).

The build-flag patterns follow the approach of github.com/anchore/syft
(Apache-2.0).
"""

from __future__ import annotations

import json
import logging
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Protocol

from common.errors import BinaryReadError, BuildToolMissingError
from constants import Constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModuleRef:
    """A module recorded in build info; ``replace`` is its replacement, if any."""
    path: str
    version: str = ""
    sum: str = ""
    replace: Optional["ModuleRef"] = None


@dataclass
class BuildInfo:
    """Build information of one binary."""
    go_version: str = ""
    path: str = ""
    main: ModuleRef = field(default_factory=lambda: ModuleRef(""))
    deps: List[ModuleRef] = field(default_factory=list)
    settings: Dict[str, str] = field(default_factory=dict)


class BuildInfoReader(Protocol):  # pylint: disable=too-few-public-methods
    """Reads build info from an executable."""

    def read(self, path: str) -> BuildInfo:
        """Return the build info of ``path``; BinaryReadError if it has none."""


def _unquote(value: str) -> str:
    """Undo Go's strconv.Quote applied to settings containing spaces or quotes."""
    if len(value) >= 2 and value[0] == value[-1] == '"':
        try:
            return json.loads(value)
        except ValueError:
            return value[1:-1]
    return value


def _module_ref(fields: List[str]) -> ModuleRef:
    return ModuleRef(
        path=fields[0] if fields else "",
        version=fields[1] if len(fields) > 1 else "",
        sum=fields[2] if len(fields) > 2 else "",
    )


def parse_version_output(text: str) -> BuildInfo:
    """Parse the output of ``go version -m <binary>``.

    The first line is ``<file>: <go version>``; the following lines are tab
    separated records: ``path``, ``mod``, ``dep``, ``=>`` (replacement of
    the preceding module) and ``build`` (``key=value`` settings).
    """
    info = BuildInfo()
    lines = text.splitlines()
    if lines and ":" in lines[0]:
        info.go_version = lines[0].rsplit(":", 1)[1].strip()

    last: Optional[str] = None
    for line in lines[1:]:
        parts = line.strip("\n").lstrip("\t").split("\t")
        kind, rest = parts[0], [p for p in parts[1:] if p != ""]
        if kind == "path" and rest:
            info.path = rest[0]
        elif kind == "mod":
            info.main = _module_ref(rest)
            last = "mod"
        elif kind == "dep":
            info.deps.append(_module_ref(rest))
            last = "dep"
        elif kind == "=>":
            repl = _module_ref(rest)
            if last == "dep" and info.deps:
                dep = info.deps[-1]
                info.deps[-1] = ModuleRef(dep.path, dep.version, dep.sum, repl)
            elif last == "mod":
                main = info.main
                info.main = ModuleRef(main.path, main.version, main.sum, repl)
        elif kind == "build" and rest:
            setting = "\t".join(rest)
            if setting.startswith('"'):
                # quoted key: "key with space"=value
                end = setting.find('"=', 1)
                key, value = _unquote(setting[:end + 1]), setting[end + 2:]
            else:
                key, _, value = setting.partition("=")
            info.settings[key] = _unquote(value)
    return info


class GoToolBuildInfoReader:
    """BuildInfoReader backed by the ``go`` command."""

    def __init__(self, go_binary: str = Constants.GO_BINARY):
        self.go_binary = go_binary

    def read(self, path: str) -> BuildInfo:
        go = shutil.which(self.go_binary)
        if go is None:
            raise BuildToolMissingError(f"cannot read build info of {path}: {self.go_binary} not found on PATH")
        result = subprocess.run(  # noqa: S603
            [go, "version", "-m", path],
            capture_output=True,
            text=True,
            check=False,
        )
        has_info = "\tmod\t" in result.stdout or "\tpath\t" in result.stdout
        if result.returncode != 0 or not has_info:
            raise BinaryReadError(
                f"failed to read build info of {path}: {result.stderr.strip() or 'not a Go binary'}"
            )
        return parse_version_output(result.stdout)


KNOWN_BUILD_FLAG_PATTERNS: List[Pattern[str]] = [
    re.compile(r"(?m)\.([gG]it)?([bB]uild)?[vV]ersion=(\S+/)*(?P<version>v?\d+.\d+.\d+[-\w]*)"),
    re.compile(r"(?m)\.([tT]ag)=(\S+/)*(?P<version>v?\d+.\d+.\d+[-\w]*)"),
]


def match_named_capture_groups(pattern: Pattern[str], content: str) -> Dict[str, str]:
    """Return the named groups of the first match with any non-empty group."""
    results: Dict[str, str] = {}
    for match in pattern.finditer(content):
        results = {k: (v or "") for k, v in match.groupdict().items()}
        if any(results.values()):
            break
    return results


def parse_version_from_build_flags(settings: Dict[str, str]) -> str:
    """Derive a version from the ``-ldflags`` build setting.

    Returns:
        The first version captured by KNOWN_BUILD_FLAG_PATTERNS, prefixed
        with ``v`` when needed, or an empty string.
    """
    ldflags = settings.get(Constants.LDFLAGS_SETTING, "")
    if not ldflags:
        return ""
    for pattern in KNOWN_BUILD_FLAG_PATTERNS:
        version = match_named_capture_groups(pattern, ldflags).get("version", "")
        if not version:
            continue
        return version if version.startswith("v") else f"v{version}"
    return ""
