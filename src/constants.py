"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    MANIFEST_ERROR = 3
    USAGE_ERROR = 4


class Commands(Enum):
    """Subcommands exposed by the CLI.

    Args:
        Enum (string): Subcommand names.
    """

    LICENSES = "licenses"
    SOURCES = "sources"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    DEFAULT_PROXY_URL = "https://proxy.golang.org"
    MOD_FILE = "go.mod"
    SUM_FILE = "go.sum"
    MOD_HASH_SUFFIX = "/go.mod"
    DEVEL_VERSION = "(devel)"
    VENDOR_DIR = "vendor"
    GIT_DIR = ".git"

    COVERAGE_THRESHOLD = 75
    UNKNOWN_LICENSE = "UNKNOWN"

    DEFAULT_TEMPLATE = "{module} {version} {licenses} {path}"
    ARCHIVE_EXT = "zip"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "MODSOURCES_LOG_LEVEL"

    # None defers to the transport default; no per-request timeout is imposed.
    REQUEST_TIMEOUT = None

    ENV_GOPROXY = "GOPROXY"
    ENV_GOPATH = "GOPATH"
    ENV_GOMODCACHE = "GOMODCACHE"

    GO_BINARY = "go"
    GIT_BINARY = "git"
    LDFLAGS_SETTING = "-ldflags"
    DEFAULT_PSEUDO_TAG = "v0.0.0"
