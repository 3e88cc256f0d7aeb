"""Version selectors."""

from .nuget import resolve_best_match, resolve_best_match_metadata

__all__ = [
    "resolve_best_match",
    "resolve_best_match_metadata",
]
