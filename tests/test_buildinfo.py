"""Tests for Go binary build info parsing and version derivation."""

from unittest.mock import MagicMock, patch

import pytest

from buildinfo import (
    GoToolBuildInfoReader,
    ModuleRef,
    parse_version_from_build_flags,
    parse_version_output,
)
from common.errors import BinaryReadError, BuildToolMissingError


VERSION_OUTPUT = (
    "/usr/local/bin/tool: go1.21.5\n"
    "\tpath\texample.com/tool/cmd/tool\n"
    "\tmod\texample.com/tool\t(devel)\t\n"
    "\tdep\tgithub.com/a/one\tv1.2.3\th1:abc=\n"
    "\tdep\tgithub.com/b/two\tv0.4.0\n"
    "\t=>\tgithub.com/fork/two\tv0.4.1\th1:def=\n"
    "\tbuild\t-buildmode=exe\n"
    "\tbuild\t-ldflags=\"-s -w -X main.version=1.4.0\"\n"
    "\tbuild\tCGO_ENABLED=0\n"
)


class TestParseVersionOutput:
    """``go version -m`` output."""

    def test_main_module_and_path(self):
        info = parse_version_output(VERSION_OUTPUT)
        assert info.go_version == "go1.21.5"
        assert info.path == "example.com/tool/cmd/tool"
        assert info.main == ModuleRef("example.com/tool", "(devel)")

    def test_deps_and_replacements(self):
        info = parse_version_output(VERSION_OUTPUT)
        assert [(d.path, d.version) for d in info.deps] == [
            ("github.com/a/one", "v1.2.3"),
            ("github.com/b/two", "v0.4.0"),
        ]
        assert info.deps[0].sum == "h1:abc="
        assert info.deps[1].replace == ModuleRef("github.com/fork/two", "v0.4.1", "h1:def=")

    def test_build_settings_are_unquoted(self):
        info = parse_version_output(VERSION_OUTPUT)
        assert info.settings["-ldflags"] == "-s -w -X main.version=1.4.0"
        assert info.settings["CGO_ENABLED"] == "0"
        assert info.settings["-buildmode"] == "exe"


class TestVersionFromBuildFlags:
    """Main-module version derived from -ldflags."""

    def test_devel_binary_scenario(self):
        info = parse_version_output(VERSION_OUTPUT)
        assert parse_version_from_build_flags(info.settings) == "v1.4.0"

    @pytest.mark.parametrize("ldflags,expected", [
        ("-X github.com/x/y/internal.Version=v2.3.4", "v2.3.4"),
        ("-X main.gitVersion=0.9.1-rc1", "v0.9.1-rc1"),
        ("-X main.buildVersion=3.0.0", "v3.0.0"),
        ("-X github.com/x/y/version.tag=1.2.3", "v1.2.3"),
        ("-s -w", ""),
        ("", ""),
    ])
    def test_patterns(self, ldflags, expected):
        assert parse_version_from_build_flags({"-ldflags": ldflags}) == expected

    def test_missing_setting(self):
        assert parse_version_from_build_flags({"CGO_ENABLED": "1"}) == ""


class TestGoToolBuildInfoReader:
    """Reading build info through the go command."""

    @patch("buildinfo.subprocess.run")
    @patch("buildinfo.shutil.which")
    def test_reads_binary(self, mock_which, mock_run):
        mock_which.return_value = "/usr/bin/go"
        mock_run.return_value = MagicMock(returncode=0, stdout=VERSION_OUTPUT, stderr="")
        info = GoToolBuildInfoReader().read("/usr/local/bin/tool")
        assert info.main.path == "example.com/tool"
        assert mock_run.call_args[0][0] == ["/usr/bin/go", "version", "-m", "/usr/local/bin/tool"]

    @patch("buildinfo.subprocess.run")
    @patch("buildinfo.shutil.which")
    def test_not_a_go_binary(self, mock_which, mock_run):
        mock_which.return_value = "/usr/bin/go"
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="could not read Go build info")
        with pytest.raises(BinaryReadError):
            GoToolBuildInfoReader().read("/etc/hosts")

    @patch("buildinfo.subprocess.run")
    @patch("buildinfo.shutil.which")
    def test_output_without_module_info(self, mock_which, mock_run):
        mock_which.return_value = "/usr/bin/go"
        mock_run.return_value = MagicMock(returncode=0, stdout="/bin/x: go1.21.0\n", stderr="")
        with pytest.raises(BinaryReadError):
            GoToolBuildInfoReader().read("/bin/x")

    @patch("buildinfo.shutil.which")
    def test_go_missing(self, mock_which):
        mock_which.return_value = None
        with pytest.raises(BuildToolMissingError):
            GoToolBuildInfoReader().read("/bin/x")
