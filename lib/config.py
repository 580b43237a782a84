"""
Run configuration file support.

An optional YAML file supplies cluster endpoints and tuning values; any
option given on the command line wins over the file.

Example::

    source:
      host: cluster-a.example.com
      svm: svm_cifs_prod
      username: admin
    target:
      host: cluster-b.example.com
      svm: svm_cifs_dr
      verify_ssl: false
    poll_interval: 15
    settle_delay: 5
"""

import argparse
import getpass
import logging
import os
from typing import Any, Dict, Optional, Tuple

import yaml

from lib.constants import DEFAULT_USERNAME
from lib.exceptions import ConfigurationError

logger = logging.getLogger("svm_cutover")

CLUSTER_KEYS = ("host", "svm", "username", "verify_ssl")
TUNING_KEYS = (
    "poll_interval",
    "poll_timeout",
    "settle_delay",
    "request_timeout",
    "transient_retries",
    "apply_symlink_properties",
    "apply_vscan_profile",
)


def load_config_file(path: str) -> Dict[str, Any]:
    """
    Read a YAML run configuration.

    Raises:
        ConfigurationError: If the file cannot be read or has unknown keys
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Config file {path} is not valid YAML: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    for key, value in data.items():
        if key in ("source", "target"):
            if not isinstance(value, dict):
                raise ConfigurationError(f"'{key}' in {path} must be a mapping")
            unknown = set(value) - set(CLUSTER_KEYS)
            if unknown:
                raise ConfigurationError(f"Unknown keys under '{key}' in {path}: {', '.join(sorted(unknown))}")
        elif key not in TUNING_KEYS:
            raise ConfigurationError(f"Unknown key '{key}' in {path}")

    return data


def merge_config(args: argparse.Namespace, config: Dict[str, Any]) -> argparse.Namespace:
    """Fill unset CLI options from the config file."""
    for side in ("source", "target"):
        for key, value in (config.get(side) or {}).items():
            attr = f"{side}_{key}"
            if getattr(args, attr, None) is None:
                setattr(args, attr, value)

    for key in TUNING_KEYS:
        if key in config and getattr(args, key, None) is None:
            setattr(args, key, config[key])

    return args


def resolve_credentials(
    side: str,
    username: Optional[str],
    username_env: str,
    password_env: str,
    interactive: bool = True,
) -> Tuple[str, str]:
    """
    Find credentials for one cluster.

    Order: explicit username, environment, then an interactive prompt for
    the password.

    Raises:
        ConfigurationError: If no password is available and prompting is disabled
    """
    user = username or os.environ.get(username_env) or DEFAULT_USERNAME
    password = os.environ.get(password_env)

    if not password:
        if not interactive:
            raise ConfigurationError(f"No password for {side} cluster; set {password_env}")
        password = getpass.getpass(f"Password for {user} on {side} cluster: ")

    return user, password
