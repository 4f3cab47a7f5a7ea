"""Configuration management for svn-updater.

Settings are looked up through a fallback chain: environment variable,
then the options object handed to `initialize()`, then the INI file named
by `SVN_UPDATER_CONFIG`, then the built-in default.
"""

from __future__ import annotations

import configparser
import logging
import os
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

CONFIG_SECTION = "svn_updater"

# Module-level config cache
_config: Optional[Dict[str, Any]] = None
_options: Optional[Any] = None  # Options object of the embedding build worker


def initialize(options: Any) -> None:
    """Initialize config module with the build worker's options object.

    Args:
        options: Parsed options object; attributes named
            ``svn_updater_<key>`` override file settings.
    """
    global _options
    _options = options
    logger.debug("Config module initialized with options object")


def _parse_config_file(config_file: Optional[str] = None) -> Dict[str, Any]:
    """Parse the ``[svn_updater]`` section of an INI file.

    Args:
        config_file: Path to config file. If None or missing, no settings
            are read.

    Returns:
        Dict of raw string values from the section.
    """
    if not config_file:
        return {}

    parser = configparser.ConfigParser()
    try:
        read = parser.read(config_file)
    except configparser.Error as exc:
        logger.warning("Failed to parse config file %s: %s", config_file, exc)
        return {}

    if not read:
        logger.debug("Config file not found: %s", config_file)
        return {}

    if not parser.has_section(CONFIG_SECTION):
        logger.debug("Config file %s has no [%s] section", config_file, CONFIG_SECTION)
        return {}

    return dict(parser.items(CONFIG_SECTION))


def _get_config() -> Dict[str, Any]:
    """Get parsed config dict, initializing if needed."""
    global _config
    if _config is None:
        config_file = os.environ.get("SVN_UPDATER_CONFIG")
        _config = _parse_config_file(config_file)
    return _config


def _get_config_value(
    key: str,
    default: Any,
    env_var: Optional[str] = None,
    converter: Optional[Callable[[Any], Any]] = None,
) -> Any:
    """Get config value with fallback chain: env var, options, config file, default.

    Args:
        key: Config key name (in [svn_updater] section)
        default: Default value if not found
        env_var: Optional environment variable name (e.g., SVN_UPDATER_KEY)
        converter: Optional function to convert string value (e.g., int, bool)

    Returns:
        Config value (converted if converter provided)
    """
    if env_var:
        env_value = os.environ.get(env_var)
        if env_value is not None:
            if converter:
                try:
                    return converter(env_value)
                except (ValueError, TypeError):
                    logger.warning(
                        "Invalid value for %s: %s, using default", env_var, env_value
                    )
                    return default
            return env_value

    if _options is not None:
        option_key = f"svn_updater_{key}"
        if hasattr(_options, option_key):
            value = getattr(_options, option_key)
            if converter and value is not None:
                try:
                    return converter(value)
                except (ValueError, TypeError):
                    logger.warning("Invalid value for %s: %s, using default", key, value)
                    return default
            return value

    config = _get_config()
    value = config.get(key)
    if value is not None:
        if converter:
            try:
                return converter(value)
            except (ValueError, TypeError):
                logger.warning(
                    "Invalid value for config key %s: %s, using default", key, value
                )
                return default
        return value

    return default


def _parse_bool(value: Any) -> bool:
    """Parse boolean value from config (string or bool).

    Accepts: True, "true", "True", "1", "yes", "on" -> True
             False, "false", "False", "0", "no", "off" -> False
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


def _parse_timeout(value: Any) -> float:
    timeout = float(value)
    if timeout < 0:
        raise ValueError(f"negative timeout: {value}")
    return timeout


def svn_command() -> str:
    """Subversion command line client executable."""
    return _get_config_value(
        "svn_command",
        "svn",
        env_var="SVN_UPDATER_SVN_COMMAND",
    )


def peg_parameter() -> str:
    """Name of the job parameter that carries a peg revision override."""
    return _get_config_value(
        "peg_parameter",
        "SVN_PEG_PARAMETER",
        env_var="SVN_UPDATER_PEG_PARAMETER",
    )


def relay_join_timeout() -> Optional[float]:
    """Seconds to wait for the log relay to drain (0 waits forever)."""
    value = _get_config_value(
        "relay_join_timeout",
        0.0,
        env_var="SVN_UPDATER_RELAY_JOIN_TIMEOUT",
        converter=_parse_timeout,
    )
    return value or None


def working_copy_format() -> Optional[str]:
    """Working copy format passed to checkouts as a compatible version.

    Empty means the client default.
    """
    value = _get_config_value(
        "working_copy_format",
        "",
        env_var="SVN_UPDATER_WORKING_COPY_FORMAT",
    )
    if value is None:
        return None
    return str(value).strip() or None


def non_interactive() -> bool:
    return _get_config_value(
        "non_interactive",
        True,
        env_var="SVN_UPDATER_NON_INTERACTIVE",
        converter=_parse_bool,
    )


def event_timestamps() -> bool:
    """Prefix checkout progress lines with a timestamp."""
    return _get_config_value(
        "event_timestamps",
        True,
        env_var="SVN_UPDATER_EVENT_TIMESTAMPS",
        converter=_parse_bool,
    )


def reset_config() -> None:
    """Reset config cache (useful for testing)."""
    global _config, _options
    _config = None
    _options = None
