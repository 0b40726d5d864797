"""
Configuration Management System for GridSync

Typed configuration records for a table instance, plus a loader that supports
a 3-tier precedence hierarchy: explicit overrides → environment → YAML file
→ model defaults.
"""

import copy
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Literal, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

SortDirection = Literal["asc", "desc"]
HttpMethod = Literal["GET", "POST", "PUT", "PATCH"]

# Defaults
DEFAULT_PAGE_SIZE = 10
DEFAULT_DEBOUNCE_MS = 300
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY_MS = 1000


class ValidationLevel(Enum):
    """Configuration validation strictness levels"""
    STRICT = "strict"      # Fail fast on validation errors
    LENIENT = "lenient"    # Log warnings, use defaults


class ColumnConfig(BaseModel):
    """A table column; ``key`` may be a dotted path into nested rows"""
    model_config = ConfigDict(extra='forbid')

    key: str = Field(min_length=1, description="Row key or dotted path")
    title: Optional[str] = Field(default=None, description="Header title")
    searchable: bool = Field(default=True, description="Included in local search")
    sortable: bool = Field(default=True, description="Accepted by set_sort")
    type: Literal["text", "date", "currency", "number"] = Field(default="text")


class AjaxConfig(BaseModel):
    """Remote endpoint and resilience settings"""
    model_config = ConfigDict(extra='forbid')

    url: Optional[str] = Field(default=None, description="Server endpoint URL")
    method: HttpMethod = Field(default="GET")
    headers: Dict[str, str] = Field(default_factory=dict)

    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, ge=1, description="Per-attempt timeout")
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0, le=20, description="Retries after the first attempt")
    retry_base_delay_ms: int = Field(default=DEFAULT_RETRY_BASE_DELAY_MS, ge=0, description="Delay is attempt * base")
    debounce_ms: int = Field(default=DEFAULT_DEBOUNCE_MS, ge=0, description="Idle window for search input")


class ResponsePaths(BaseModel):
    """Dotted paths used to read a server response body"""
    model_config = ConfigDict(extra='forbid')

    rows_path: str = Field(default="data")
    total_path: str = Field(default="total")
    error_path: str = Field(default="error")
    token_path: Optional[str] = Field(default="draw", description="Echoed request token; None disables the check")


class RemoteHooks(BaseModel):
    """Optional callbacks for the remote request cycle.

    Every hook has a no-op default:

    - ``param_mapper(params) -> payload``: reshape the outgoing request.
      Default sends ``params`` unchanged.
    - ``pre_send(payload, params) -> bool | None``: return ``False`` to veto the
      request. A veto issues no token, cancels nothing and emits no event.
    - ``on_complete()``: called once a request line settles (accepted or
      terminally failed). Not called for cancelled or stale requests.
    - ``on_error(error, page, search)``: called on terminal failure, before the
      ``error`` event.
    """
    model_config = ConfigDict(extra='forbid', arbitrary_types_allowed=True)

    param_mapper: Optional[Callable[[Dict[str, Any]], Any]] = None
    pre_send: Optional[Callable[[Any, Dict[str, Any]], Optional[bool]]] = None
    on_complete: Optional[Callable[[], None]] = None
    on_error: Optional[Callable[[Exception, int, str], None]] = None

    def map_params(self, params: Dict[str, Any]) -> Any:
        if self.param_mapper is None:
            return dict(params)
        return self.param_mapper(dict(params))

    def allows(self, payload: Any, params: Dict[str, Any]) -> bool:
        if self.pre_send is None:
            return True
        return self.pre_send(payload, dict(params)) is not False

    def complete(self) -> None:
        if self.on_complete is not None:
            self.on_complete()

    def fail(self, error: Exception, page: int, search: str) -> None:
        if self.on_error is not None:
            self.on_error(error, page, search)


class SelectionConfig(BaseModel):
    """Row selection behaviour"""
    model_config = ConfigDict(extra='forbid')

    multi_select: bool = Field(default=False, description="Allow more than one selected row")
    id_field: Optional[str] = Field(default=None, description="Row field used as selection identity")
    retain_offpage: bool = Field(default=True, description="Keep ids that are not currently visible")


class GridConfig(BaseModel):
    """Complete table configuration"""
    model_config = ConfigDict(extra='forbid', arbitrary_types_allowed=True)

    mode: Literal["local", "remote"] = Field(default="local")
    columns: List[ColumnConfig] = Field(default_factory=list)
    data: List[Any] = Field(default_factory=list, description="Initial rows (local mode)")
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0)

    ajax: AjaxConfig = Field(default_factory=AjaxConfig)
    response: ResponsePaths = Field(default_factory=ResponsePaths)
    hooks: RemoteHooks = Field(default_factory=RemoteHooks)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)

    @model_validator(mode="after")
    def _check_remote_endpoint(self) -> "GridConfig":
        if self.mode == "remote" and not self.ajax.url:
            raise ValueError("remote mode requires ajax.url")
        return self

    @property
    def is_remote(self) -> bool:
        return self.mode == "remote"

    def column(self, key: str) -> Optional[ColumnConfig]:
        for col in self.columns:
            if col.key == key:
                return col
        return None

    def searchable_keys(self) -> List[str]:
        return [col.key for col in self.columns if col.searchable]


def build_grid_config(config: Union[GridConfig, Dict[str, Any], None] = None, **kwargs: Any) -> GridConfig:
    """Coerce a mapping (or keyword arguments) into a validated ``GridConfig``.

    Raises:
        ConfigurationError: If the configuration is not usable
    """
    if isinstance(config, GridConfig):
        if not kwargs:
            return config
        config = dict(config)
    try:
        return GridConfig(**{**(config or {}), **kwargs})
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation failed: {e}") from e


class ConfigManager:
    """Loads ``GridConfig`` with precedence: overrides → env → YAML → defaults"""

    ENV_PREFIX = "GRIDSYNC_"

    # env suffix -> (section or None, key, converter)
    ENV_MAP: Dict[str, tuple] = {
        "MODE": (None, "mode", str),
        "PAGE_SIZE": (None, "page_size", int),
        "AJAX_URL": ("ajax", "url", str),
        "AJAX_METHOD": ("ajax", "method", lambda v: v.upper()),
        "AJAX_TIMEOUT_MS": ("ajax", "timeout_ms", int),
        "AJAX_MAX_RETRIES": ("ajax", "max_retries", int),
        "AJAX_RETRY_BASE_DELAY_MS": ("ajax", "retry_base_delay_ms", int),
        "AJAX_DEBOUNCE_MS": ("ajax", "debounce_ms", int),
        "SELECTION_MULTI_SELECT": ("selection", "multi_select", lambda v: v.lower() in ('true', '1', 'yes', 'on')),
        "SELECTION_ID_FIELD": ("selection", "id_field", str),
    }

    def __init__(
        self,
        config_path: Optional[Path] = None,
        env_file: Optional[Path] = None,
        use_env: bool = True,
    ):
        self.config_path = Path(config_path) if config_path else None
        self.use_env = use_env
        self._file_config: Optional[Dict[str, Any]] = None

        if use_env:
            if env_file is not None:
                load_dotenv(dotenv_path=env_file)
            else:
                load_dotenv()

    def _load_yaml_file(self, file_path: Optional[Path]) -> Dict[str, Any]:
        """Load YAML configuration file"""
        if file_path is None or not file_path.exists():
            return {}

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.warning(f"Failed to load {file_path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {file_path}: top level is not a mapping")
            return {}
        return data

    def _load_file_config(self) -> Dict[str, Any]:
        if self._file_config is None:
            self._file_config = self._load_yaml_file(self.config_path)
        return self._file_config

    def _get_env_overrides(self) -> Dict[str, Any]:
        """Extract configuration overrides from environment variables"""
        overrides: Dict[str, Any] = {}
        if not self.use_env:
            return overrides

        for suffix, (section, key, convert) in self.ENV_MAP.items():
            value = os.getenv(self.ENV_PREFIX + suffix)
            if value is None:
                continue
            try:
                converted = convert(value)
            except ValueError:
                logger.warning(f"Ignoring {self.ENV_PREFIX + suffix}={value!r}: not a valid {key}")
                continue
            if section is None:
                overrides[key] = converted
            else:
                overrides.setdefault(section, {})[key] = converted

        return overrides

    def _deep_merge(self, base: Dict[str, Any], updates: Dict[str, Any]) -> None:
        """Deep merge configuration dictionaries"""
        for key, value in updates.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def merged(self, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Merge configurations with precedence: overrides → env → file"""
        merged: Dict[str, Any] = {}
        self._deep_merge(merged, copy.deepcopy(self._load_file_config()))
        self._deep_merge(merged, self._get_env_overrides())
        self._deep_merge(merged, overrides or {})
        return merged

    def get_config(
        self,
        overrides: Optional[Dict[str, Any]] = None,
        validation_level: ValidationLevel = ValidationLevel.STRICT,
    ) -> GridConfig:
        """Get merged configuration with validation"""
        try:
            return build_grid_config(self.merged(overrides))
        except ConfigurationError:
            if validation_level == ValidationLevel.STRICT:
                raise
            logger.warning("Configuration validation failed, using defaults", exc_info=True)
            return GridConfig()

    def reload_config(self) -> None:
        """Clear the cached file configuration"""
        self._file_config = None
