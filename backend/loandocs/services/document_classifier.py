"""
Best-effort document categorisation from file names.
"""
from typing import Iterable, List, Optional, Sequence, Tuple

from ..domain.value_objects import DocumentType

# Checked in order; the first rule with a matching keyword wins
DEFAULT_RULES: List[Tuple[DocumentType, Sequence[str]]] = [
    (DocumentType.KYC_DOCUMENT, ("kyc", "aadhar", "aadhaar", "pan")),
    (DocumentType.BANK_STATEMENT, ("bank", "statement")),
    (DocumentType.LOAN_AGREEMENT, ("agreement", "loan")),
    (DocumentType.FINANCIAL_STATEMENT, ("financial", "balance")),
    (DocumentType.INVOICE, ("invoice", "bill")),
    (DocumentType.PAYMENT_SCHEDULE, ("payment", "schedule")),
]


class DocumentClassifier:
    """
    Maps a file name to a DocumentType by keyword rules.

    Swap the rule table to change behaviour; anything unmatched is
    ``DocumentType.OTHER``.
    """

    def __init__(self, rules: Optional[Iterable[Tuple[DocumentType, Sequence[str]]]] = None):
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)

    def classify(self, file_name: str) -> DocumentType:
        name = (file_name or "").lower()
        for document_type, keywords in self.rules:
            if any(keyword in name for keyword in keywords):
                return document_type
        return DocumentType.OTHER


default_classifier = DocumentClassifier()
