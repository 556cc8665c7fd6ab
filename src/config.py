"""Runtime settings for one modsources invocation.

Settings are resolved once per process and passed explicitly to the fetcher,
walker and output sink. Precedence, highest first: CLI flags, the YAML config
file, Go environment variables (GOPROXY, GOMODCACHE, GOPATH), then the
defaults in ``constants.Constants``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

import yaml

from common.errors import ConfigError
from constants import Constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Configuration threaded through every component."""
    proxy_url: str = Constants.DEFAULT_PROXY_URL
    cache_dir: Optional[str] = None
    force_refresh: bool = False
    timeout: Optional[float] = Constants.REQUEST_TIMEOUT
    out: Optional[str] = None
    prefix: str = ""
    template: str = Constants.DEFAULT_TEMPLATE


# config-file key -> Settings field
_FILE_KEYS = {
    "proxy": "proxy_url",
    "cache_dir": "cache_dir",
    "force_refresh": "force_refresh",
    "timeout": "timeout",
    "out": "out",
    "prefix": "prefix",
    "template": "template",
}

# argparse dest -> Settings field
_CLI_KEYS = {
    "PROXY": "proxy_url",
    "CACHE_DIR": "cache_dir",
    "FORCE_REFRESH": "force_refresh",
    "OUT": "out",
    "PREFIX": "prefix",
    "TEMPLATE": "template",
}


def proxy_from_env(value: Optional[str]) -> Optional[str]:
    """Pick the first HTTP(S) proxy from a GOPROXY list.

    GOPROXY entries are separated by ``,`` or ``|``; the keywords ``direct``
    and ``off`` are not proxies and are skipped.
    """
    if not value:
        return None
    for part in value.replace("|", ",").split(","):
        part = part.strip()
        if part.startswith(("http://", "https://")):
            return part.rstrip("/")
    return None


def cache_from_env(environ: Mapping[str, str]) -> Optional[str]:
    """Locate the module cache the way the go command does."""
    modcache = environ.get(Constants.ENV_GOMODCACHE)
    if modcache:
        return modcache
    gopath = environ.get(Constants.ENV_GOPATH, "")
    first = next((p for p in gopath.split(os.pathsep) if p), None)
    if first:
        return os.path.join(first, "pkg", "mod")
    return None


def load_config_file(path: Optional[str]) -> Dict[str, Any]:
    """Load the YAML config file.

    Args:
        path: Path to a YAML file, or None.

    Returns:
        The settings-relevant mapping; empty when no file was given or the
        file does not exist.

    Raises:
        ConfigError: When the file cannot be read or is not a YAML mapping.
    """
    if not path:
        return {}
    if not os.path.isfile(path):
        logger.warning("Config file not found: %s", path)
        return {}
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"failed to load config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    unknown = sorted(set(data) - set(_FILE_KEYS))
    if unknown:
        logger.warning("Ignoring unknown config keys in %s: %s", path, ", ".join(unknown))
    return {_FILE_KEYS[k]: v for k, v in data.items() if k in _FILE_KEYS}


def _coerce(values: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(values)
    if out.get("timeout") is not None:
        try:
            out["timeout"] = float(out["timeout"])
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"invalid timeout {out['timeout']!r}") from exc
    if "force_refresh" in out:
        out["force_refresh"] = bool(out["force_refresh"])
    if out.get("proxy_url"):
        out["proxy_url"] = str(out["proxy_url"]).rstrip("/")
    return out


def load_settings(args: Any = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Resolve Settings from CLI args, config file and environment.

    Args:
        args: Parsed argparse namespace (attributes named as in args.py), or None.
        environ: Environment mapping; defaults to os.environ.

    Returns:
        Settings: The merged configuration.
    """
    environ = os.environ if environ is None else environ
    settings = Settings()

    env_values: Dict[str, Any] = {}
    proxy = proxy_from_env(environ.get(Constants.ENV_GOPROXY))
    if proxy:
        env_values["proxy_url"] = proxy
    cache = cache_from_env(environ)
    if cache:
        env_values["cache_dir"] = cache
    settings = replace(settings, **_coerce(env_values))

    file_values = load_config_file(getattr(args, "CONFIG", None))
    settings = replace(settings, **_coerce(file_values))

    cli_values = {}
    for dest, name in _CLI_KEYS.items():
        value = getattr(args, dest, None)
        if value is not None and value is not False:
            cli_values[name] = value
    settings = replace(settings, **_coerce(cli_values))

    logger.debug("Settings resolved: %s", {f.name: getattr(settings, f.name) for f in fields(settings)})
    return settings
