"""Error taxonomy shared by the parser, fetcher and walker.

Each error carries the process exit code the CLI reports when the error
ends a run.
"""
from __future__ import annotations

from constants import ExitCodes


class ModSourcesError(Exception):
    """Base class for all fatal errors raised by modsources."""

    exit_code = ExitCodes.FILE_ERROR.value


class MalformedManifestError(ModSourcesError):
    """A go.mod file violates the manifest grammar."""

    exit_code = ExitCodes.MANIFEST_ERROR.value


class NoManifestError(ModSourcesError):
    """A module tree that must carry a go.mod does not have one."""

    exit_code = ExitCodes.MANIFEST_ERROR.value


class FetchFailedError(ModSourcesError):
    """Transport or storage failure while retrieving a module."""

    exit_code = ExitCodes.CONNECTION_ERROR.value


class InvalidCoordinateError(ModSourcesError):
    """A module name/version cannot be resolved to anything fetchable."""

    exit_code = ExitCodes.USAGE_ERROR.value


class BinaryReadError(ModSourcesError):
    """The file is not a Go binary, or its build info cannot be read."""


class ConfigError(ModSourcesError):
    """Invalid configuration file or CLI combination."""

    exit_code = ExitCodes.USAGE_ERROR.value


class BuildToolMissingError(ConfigError):
    """The external tool that reads binary build info is not installed."""
