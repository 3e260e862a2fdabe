"""
Search term extraction for document records.
"""
import re
from typing import Iterable, List, Optional

_MIN_TERM_LENGTH = 3
_FILENAME_SPLIT = re.compile(r"[\s.\-_]+")


def _tokens(value: Optional[str], pattern: Optional[re.Pattern] = None) -> List[str]:
    if not value:
        return []
    parts = pattern.split(value) if pattern else value.split()
    return [part.lower() for part in parts if len(part) >= _MIN_TERM_LENGTH]


def extract_search_terms(
    loan_id: Optional[str] = None,
    uploader_name: Optional[str] = None,
    description: Optional[str] = None,
    file_name: Optional[str] = None,
    extra: Optional[Iterable[str]] = None
) -> List[str]:
    """
    Build the lowercase term list stored with a document.

    The loan id is kept whole; names and descriptions split on whitespace;
    file names also split on dots, hyphens and underscores. Terms shorter
    than three characters are dropped. Order of first appearance is kept.

    Example:
        >>> extract_search_terms("BIZLN-4189", "Asha Rao", None, "bank-statement.pdf")
        ['bizln-4189', 'asha', 'rao', 'bank', 'statement', 'pdf']
    """
    terms: List[str] = []
    if loan_id and len(loan_id) >= _MIN_TERM_LENGTH:
        terms.append(loan_id.lower())
    terms.extend(_tokens(uploader_name))
    terms.extend(_tokens(description))
    terms.extend(_tokens(file_name, _FILENAME_SPLIT))
    for value in extra or []:
        terms.extend(_tokens(value))

    seen = set()
    unique = []
    for term in terms:
        if term not in seen:
            seen.add(term)
            unique.append(term)
    return unique


def matches_term(search_terms: Iterable[str], query: str) -> bool:
    """Substring match of a query against stored terms."""
    needle = (query or "").strip().lower()
    if not needle:
        return False
    return any(needle in term for term in search_terms)
