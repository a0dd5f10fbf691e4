from .browser import RecordBrowser
from .config import ClientConfig, ConfigError, load_config
from .data_source import CrmApiDataSource, DataSource, StaticDataSource
from .entities import BUILTIN_ACCESSORS, default_registry, get_accessor
from .exceptions import (
    ApiError,
    AuthError,
    ClientValidationError,
    NotFoundError,
    PermissionError,
    ServerError,
    TransportError,
    ValidationError,
    ValidationIssue,
)
from .export import export_view
from .fields import AccessorRegistry, FieldAccessor
from .filter_validation import parse_filter_expression, validate_filter, validate_filters
from .http_client import HttpClient
from .models import (
    BrowserState,
    FilterCondition,
    FilterOperator,
    PageResult,
    PaginationState,
    SortDirection,
    SortSpec,
)
from .pipeline import apply_filters, apply_search, paginate, run_pipeline, sort_records
from .view_store import ViewStateStore, hydrate_state, serialize_state

__all__ = [
    "AccessorRegistry",
    "ApiError",
    "AuthError",
    "BUILTIN_ACCESSORS",
    "BrowserState",
    "ClientConfig",
    "ClientValidationError",
    "ConfigError",
    "CrmApiDataSource",
    "DataSource",
    "FieldAccessor",
    "FilterCondition",
    "FilterOperator",
    "HttpClient",
    "NotFoundError",
    "PageResult",
    "PaginationState",
    "PermissionError",
    "RecordBrowser",
    "ServerError",
    "SortDirection",
    "SortSpec",
    "StaticDataSource",
    "TransportError",
    "ValidationError",
    "ValidationIssue",
    "ViewStateStore",
    "apply_filters",
    "apply_search",
    "default_registry",
    "export_view",
    "get_accessor",
    "hydrate_state",
    "load_config",
    "paginate",
    "parse_filter_expression",
    "run_pipeline",
    "serialize_state",
    "sort_records",
    "validate_filter",
    "validate_filters",
]
