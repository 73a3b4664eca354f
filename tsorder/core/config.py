'''
Configuration management for tsorder.

Settings are layered:
1. Defaults built into the dataclasses below
2. A user configuration file (JSON)
3. Environment variables named ``TSORDER_<SECTION>_<OPTION>``
4. Runtime modifications through ``set_config``

Section names contain no underscores so that environment variable names
split unambiguously into section and option.
'''

import json
import logging
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union, get_args, get_origin, get_type_hints

from .exceptions import ConfigurationError
from .types import ConfigDict, LogLevel

logger = logging.getLogger("tsorder.core.config")

CONFIG_ENV_PREFIX = "TSORDER_"
DEFAULT_CONFIG_FILENAME = "tsorder_config.json"
USER_CONFIG_DIR_ENV = "TSORDER_CONFIG_DIR"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigSection(Enum):
    """Enumeration of configuration sections."""
    LOGGING = "logging"
    UNITROOT = "unitroot"
    SELECTION = "selection"
    DIAGNOSTICS = "diagnostics"
    ROOTS = "roots"


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Attributes:
        log_level: Level of the ``tsorder`` package logger
        log_format: Format string for log messages
        log_date_format: Format string for log message timestamps
        console_logging: Whether to attach a console handler
    """
    log_level: LogLevel = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"
    console_logging: bool = True


@dataclass
class UnitRootConfig:
    """
    Defaults for the augmented Dickey-Fuller tester.

    Attributes:
        max_lag: Largest lagged-difference order tried (4 suits quarterly data)
        trend: Whether to add the deterministic trend regressor
    """
    max_lag: int = 4
    trend: bool = False


@dataclass
class SelectionConfig:
    """
    Defaults for the ARMA grid search and nested model selection.

    Attributes:
        max_p: Largest AR order in the grid
        max_q: Largest MA order in the grid
        d: Differencing order
        n_jobs: Number of worker threads; 1 fits candidates sequentially
        estimation_method: Estimator method label ("default" or "ML")
        require_convergence: Treat optimizer non-convergence as a failure
        maxiter: Iteration cap passed to the likelihood optimizer
    """
    max_p: int = 5
    max_q: int = 5
    d: int = 1
    n_jobs: int = 1
    estimation_method: str = "default"
    require_convergence: bool = True
    maxiter: int = 500


@dataclass
class DiagnosticsConfig:
    """
    Defaults for residual diagnostics.

    Attributes:
        ljung_box_lags: Number of autocorrelations K in the Ljung-Box test
    """
    ljung_box_lags: int = 10


@dataclass
class RootsConfig:
    """
    Settings for common-root analysis.

    There is no canonical tolerance for declaring two roots equal, so the
    default is None and callers must supply one to obtain candidate pairs.

    Attributes:
        common_root_tolerance: Maximum distance between an AR and an MA root
    """
    common_root_tolerance: Optional[float] = None


@dataclass
class TSOrderConfig:
    """Complete configuration combining all sections."""
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    unitroot: UnitRootConfig = field(default_factory=UnitRootConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)
    roots: RootsConfig = field(default_factory=RootsConfig)


def _coerce(value: Any, annotation: Any, setting: str) -> Any:
    """Convert ``value`` (often a string) to the type named by ``annotation``."""
    target = annotation
    if get_origin(annotation) is Union:
        args = [a for a in get_args(annotation) if a is not type(None)]
        if value is None or (isinstance(value, str) and value.lower() in ("", "none", "null")):
            return None
        target = args[0]

    try:
        if target is bool:
            if isinstance(value, str):
                return value.lower() in ('true', 'yes', '1', 'y')
            return bool(value)
        if target is int:
            if isinstance(value, float) and not value.is_integer():
                raise ValueError(f"{value} is not an integer")
            return int(value)
        if target is float:
            return float(value)
        if target is Path:
            return Path(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Invalid value for {setting}",
            setting=setting,
            value=value,
            issue=str(e)
        ) from e
    return value


class ConfigManager:
    """
    Configuration manager for tsorder.

    Attributes:
        _config: The current configuration object
        _initialized: Whether the manager has loaded file and environment settings
        _config_file: Path to the user configuration file
    """

    def __init__(self):
        self._config = TSOrderConfig()
        self._initialized = False
        self._config_file: Optional[Path] = None
        self._modified_keys = set()

    def initialize(self) -> None:
        """
        Load the user configuration file, apply environment overrides,
        validate, and configure logging.
        """
        if self._initialized:
            return

        self._config_file = self.get_user_config_dir() / DEFAULT_CONFIG_FILENAME
        self._load_user_config()
        self._apply_env_overrides()
        self._validate_config()
        self._setup_logging()

        self._initialized = True
        logger.debug("Configuration manager initialized")

    def get_user_config_dir(self) -> Path:
        env_config_dir = os.environ.get(USER_CONFIG_DIR_ENV)
        if env_config_dir:
            return Path(env_config_dir)
        return Path.home() / ".tsorder"

    def _load_user_config(self) -> None:
        if not self._config_file or not self._config_file.exists():
            logger.debug("No user configuration file found")
            return

        try:
            with open(self._config_file, 'r') as f:
                user_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load user configuration: {e}")
            return

        self._update_from_dict(user_config)
        logger.debug(f"Loaded user configuration from {self._config_file}")

    def _apply_env_overrides(self) -> None:
        """Apply ``TSORDER_<SECTION>_<OPTION>`` environment variables."""
        for env_var, value in os.environ.items():
            if not env_var.startswith(CONFIG_ENV_PREFIX) or env_var == USER_CONFIG_DIR_ENV:
                continue

            key = env_var[len(CONFIG_ENV_PREFIX):]
            parts = key.lower().split('_', 1)
            if len(parts) != 2:
                continue

            section, option = parts

            # TSORDER_LOG_LEVEL is accepted as shorthand for the logging level
            if section == "log" and option == "level":
                section, option = "logging", "log_level"

            try:
                ConfigSection(section)
            except ValueError:
                continue

            section_obj = getattr(self._config, section)
            if not hasattr(section_obj, option):
                continue

            try:
                self._set_option(section_obj, section, option, value)
                logger.debug(f"Applied environment override: {env_var}={value}")
            except ConfigurationError as e:
                logger.warning(f"Failed to apply environment override {env_var}: {e.message}")

    def _setup_logging(self) -> None:
        """Configure the ``tsorder`` package logger from the logging section."""
        package_logger = logging.getLogger("tsorder")

        for handler in package_logger.handlers[:]:
            package_logger.removeHandler(handler)

        package_logger.setLevel(getattr(logging, self._config.logging.log_level))

        if self._config.logging.console_logging:
            formatter = logging.Formatter(
                fmt=self._config.logging.log_format,
                datefmt=self._config.logging.log_date_format
            )
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            package_logger.addHandler(console_handler)

    def _validate_config(self) -> None:
        cfg = self._config
        if cfg.logging.log_level not in _LOG_LEVELS:
            logger.warning(f"Invalid log level: {cfg.logging.log_level}, using INFO")
            cfg.logging.log_level = "INFO"
        if cfg.unitroot.max_lag < 0:
            logger.warning(f"Invalid max_lag: {cfg.unitroot.max_lag}, must be non-negative")
            cfg.unitroot.max_lag = UnitRootConfig.max_lag
        for option in ("max_p", "max_q", "d"):
            if getattr(cfg.selection, option) < 0:
                logger.warning(f"Invalid {option}: {getattr(cfg.selection, option)}, must be non-negative")
                setattr(cfg.selection, option, getattr(SelectionConfig, option))
        if cfg.selection.n_jobs < 1:
            logger.warning(f"Invalid n_jobs: {cfg.selection.n_jobs}, using 1")
            cfg.selection.n_jobs = 1
        if cfg.selection.estimation_method not in ("default", "ML"):
            logger.warning(f"Invalid estimation_method: {cfg.selection.estimation_method}, using default")
            cfg.selection.estimation_method = "default"
        if cfg.diagnostics.ljung_box_lags < 1:
            logger.warning(f"Invalid ljung_box_lags: {cfg.diagnostics.ljung_box_lags}, using 10")
            cfg.diagnostics.ljung_box_lags = 10
        tol = cfg.roots.common_root_tolerance
        if tol is not None and tol <= 0:
            logger.warning(f"Invalid common_root_tolerance: {tol}, must be positive")
            cfg.roots.common_root_tolerance = None

    def _update_from_dict(self, config_dict: Dict[str, Any]) -> None:
        for section_name, section_dict in config_dict.items():
            if not hasattr(self._config, section_name):
                logger.warning(f"Unknown configuration section: {section_name}")
                continue

            section = getattr(self._config, section_name)
            for option_name, option_value in section_dict.items():
                if not hasattr(section, option_name):
                    logger.warning(f"Unknown configuration option: {section_name}.{option_name}")
                    continue
                try:
                    self._set_option(section, section_name, option_name, option_value)
                except ConfigurationError as e:
                    logger.warning(f"Failed to set {section_name}.{option_name}: {e.message}")

    def _set_option(self, section_obj: Any, section: str, option: str, value: Any) -> None:
        hints = get_type_hints(type(section_obj))
        typed_value = _coerce(value, hints[option], f"{section}.{option}")
        setattr(section_obj, option, typed_value)

    def save_user_config(self) -> None:
        """Write the current configuration to the user configuration file."""
        if not self._config_file:
            self._config_file = self.get_user_config_dir() / DEFAULT_CONFIG_FILENAME

        self._config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self._config_file, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.debug(f"Saved user configuration to {self._config_file}")

    def to_dict(self) -> ConfigDict:
        result = {}
        for section_field in fields(self._config):
            section = getattr(self._config, section_field.name)
            result[section_field.name] = {
                f.name: getattr(section, f.name) for f in fields(section)
            }
        return result

    def get(self, section: str, option: str, default: Any = None) -> Any:
        if not hasattr(self._config, section):
            return default
        section_obj = getattr(self._config, section)
        if not hasattr(section_obj, option):
            return default
        return getattr(section_obj, option)

    def set(self, section: str, option: str, value: Any) -> None:
        """
        Set a configuration value.

        Raises:
            ConfigurationError: If the section or option is not found or the
                value cannot be converted to the option's type
        """
        if not hasattr(self._config, section):
            raise ConfigurationError(
                f"Unknown configuration section: {section}",
                setting=f"{section}.{option}",
                value=value,
                issue="Section not found"
            )

        section_obj = getattr(self._config, section)
        if not hasattr(section_obj, option):
            raise ConfigurationError(
                f"Unknown configuration option: {section}.{option}",
                setting=f"{section}.{option}",
                value=value,
                issue="Option not found"
            )

        self._set_option(section_obj, section, option, value)
        self._modified_keys.add(f"{section}.{option}")

        if section == "logging":
            self._setup_logging()

        logger.debug(f"Set configuration option: {section}.{option}={value}")

    def reset(self, section: Optional[str] = None) -> None:
        """
        Reset configuration to default values.

        Args:
            section: The section to reset, or None to reset everything

        Raises:
            ConfigurationError: If the section is not found
        """
        if section is None:
            self._config = TSOrderConfig()
            self._modified_keys.clear()
            logger.debug("Reset all configuration to defaults")
            return

        if not hasattr(self._config, section):
            raise ConfigurationError(
                f"Unknown configuration section: {section}",
                setting=section,
                issue="Section not found"
            )

        default_section = getattr(TSOrderConfig(), section)
        setattr(self._config, section, default_section)
        self._modified_keys = {k for k in self._modified_keys if not k.startswith(f"{section}.")}

    def get_modified_options(self) -> List[str]:
        return sorted(self._modified_keys)

    def get_sections(self) -> List[str]:
        return [s.value for s in ConfigSection]

    def get_section(self, section: str) -> Any:
        if not hasattr(self._config, section):
            raise ConfigurationError(
                f"Unknown configuration section: {section}",
                setting=section,
                issue="Section not found"
            )
        return getattr(self._config, section)

    def get_full_config(self) -> TSOrderConfig:
        return self._config


# Singleton instance of the configuration manager
_config_manager = ConfigManager()


def initialize_config() -> None:
    """Load user configuration and apply environment variable overrides."""
    _config_manager.initialize()


def get_config(section: str, option: str, default: Any = None) -> Any:
    """
    Get a configuration value.

    Args:
        section: The configuration section
        option: The configuration option
        default: Default value if the option is not found
    """
    if not _config_manager._initialized:
        initialize_config()
    return _config_manager.get(section, option, default)


def set_config(section: str, option: str, value: Any) -> None:
    """
    Set a configuration value.

    Raises:
        ConfigurationError: If the section or option is not found
    """
    if not _config_manager._initialized:
        initialize_config()
    _config_manager.set(section, option, value)


def reset_config(section: Optional[str] = None) -> None:
    """Reset a section, or the whole configuration, to defaults."""
    if not _config_manager._initialized:
        initialize_config()
    _config_manager.reset(section)


def save_config() -> None:
    """Save the current configuration to the user configuration file."""
    if not _config_manager._initialized:
        initialize_config()
    _config_manager.save_user_config()


def get_config_manager() -> ConfigManager:
    if not _config_manager._initialized:
        initialize_config()
    return _config_manager
