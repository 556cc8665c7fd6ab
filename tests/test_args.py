"""Tests for command line parsing."""

import pytest

from args import parse_args


class TestParseArgs:
    """Subcommands, selectors and flags."""

    def test_licenses_module(self):
        args = parse_args(["licenses", "-m", "github.com/a/b", "-v", "v1.0.0"])
        assert args.COMMAND == "licenses"
        assert args.MODULE is True
        assert args.TARGET == "github.com/a/b"
        assert args.VERSION == "v1.0.0"
        assert args.OUT is None

    def test_aliases_are_canonicalised(self):
        assert parse_args(["license", "-s", "."]).COMMAND == "licenses"
        assert parse_args(["source", "-s", ".", "-o", "out"]).COMMAND == "sources"

    def test_sources_flags(self):
        args = parse_args([
            "sources", "--binary", "--find", "/usr/bin", "-o", "/tmp/out", "--prefix", "deps",
            "--template", "{module}", "-r", "--force-refresh", "--proxy", "https://p.example.com",
        ])
        assert args.BINARY and args.FIND and args.RECURSIVE and args.FORCE_REFRESH
        assert args.OUT == "/tmp/out"
        assert args.PREFIX == "deps"
        assert args.TEMPLATE == "{module}"
        assert args.PROXY == "https://p.example.com"

    def test_defaults_leave_settings_unset(self):
        args = parse_args(["licenses", "-l", "go.sum"])
        assert args.LOCKFILE is True
        assert args.PROXY is None
        assert args.TEMPLATE is None
        assert args.FORCE_REFRESH is False
        assert args.VERSION == ""

    def test_report_options(self):
        args = parse_args(["licenses", "-s", ".", "--report", "out.csv", "--format", "CSV", "--loglevel", "debug"])
        assert args.REPORT == "out.csv"
        assert args.REPORT_FORMAT == "csv"
        assert args.LOG_LEVEL == "DEBUG"

    def test_selectors_are_mutually_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["licenses", "-m", "-s", "x"])

    def test_selector_is_required(self):
        with pytest.raises(SystemExit):
            parse_args(["licenses", "github.com/a/b"])

    def test_out_only_on_sources(self):
        with pytest.raises(SystemExit):
            parse_args(["licenses", "-m", "github.com/a/b", "-o", "out"])

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            parse_args([])
