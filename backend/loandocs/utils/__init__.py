"""
Utility functions - Pure functions with no dependencies.
These can be used across all layers.
"""
from .search_terms import extract_search_terms, matches_term
from .validators import UnsafePathError, validate_filename, validate_folder_path, validate_loan_id

__all__ = [
    "extract_search_terms",
    "matches_term",
    "UnsafePathError",
    "validate_filename",
    "validate_folder_path",
    "validate_loan_id"
]
