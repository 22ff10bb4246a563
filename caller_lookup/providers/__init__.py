"""External lookup providers queried for numbers unknown locally."""

from .base import (  # noqa: F401
    BrowserProvider,
    BrowserProviderConfig,
    DisabledLookupProvider,
    LookupProvider,
    fetch_with_deadline,
)
from .static import StaticLookupProvider  # noqa: F401

__all__ = [
    "BrowserProvider",
    "BrowserProviderConfig",
    "DisabledLookupProvider",
    "LookupProvider",
    "StaticLookupProvider",
    "fetch_with_deadline",
]

try:  # pragma: no cover - optional dependency
    from .true_people_search import TruePeopleSearchConfig, TruePeopleSearchProvider  # noqa: F401
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    TruePeopleSearchConfig = None  # type: ignore[assignment]
    TruePeopleSearchProvider = None  # type: ignore[assignment]
else:  # pragma: no cover - optional dependency
    __all__ += ["TruePeopleSearchConfig", "TruePeopleSearchProvider"]
