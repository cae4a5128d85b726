# Domain Layer
# ============
# Vendor-neutral models and the error taxonomy. No I/O, no third-party imports.

from .exceptions import (
    ApiError,
    AuthError,
    CredentialsError,
    DispatchError,
    MalformedIdError,
    NoCredentialsError,
    NotSupportedError,
    ReviewFetchError,
    StorageError,
    UnresolvableQueryError,
    VendorNotConfiguredError,
)
from .models import (
    AppListResult,
    AppRecord,
    DeveloperResponse,
    Pagination,
    ResolvedTarget,
    Review,
    ReviewPage,
    ReviewRequest,
    ReviewSortOrder,
    ScopedId,
    Vendor,
)

__all__ = [
    "ApiError",
    "AppListResult",
    "AppRecord",
    "AuthError",
    "CredentialsError",
    "DeveloperResponse",
    "DispatchError",
    "MalformedIdError",
    "NoCredentialsError",
    "NotSupportedError",
    "Pagination",
    "ResolvedTarget",
    "Review",
    "ReviewFetchError",
    "ReviewPage",
    "ReviewRequest",
    "ReviewSortOrder",
    "ScopedId",
    "StorageError",
    "UnresolvableQueryError",
    "Vendor",
    "VendorNotConfiguredError",
]
