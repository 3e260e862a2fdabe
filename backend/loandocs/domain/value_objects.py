"""
Value Objects - Immutable objects that represent domain concepts.
These have no identity and are compared by value.
"""
from enum import Enum
from typing import NewType

# Value objects for type safety and domain clarity
LoanId = NewType("LoanId", str)
StorageKey = NewType("StorageKey", str)
FolderPath = NewType("FolderPath", str)


class StorageConvention(Enum):
    """Object-store layout a storage key belongs to."""
    LEGACY = "legacy"          # {customerId}_{CUSTOMER NAME}/{file}
    STRUCTURED = "structured"  # documents/{loanId}/[{folderPath}/]{file}

    @property
    def label(self) -> str:
        """Label shown to clients for documents stored under this convention."""
        if self is StorageConvention.LEGACY:
            return "existing-structure"
        return "new-structure"


class DocumentType(Enum):
    """Business category of a loan document."""
    LOAN_AGREEMENT = "Loan Agreement"
    PAYMENT_SCHEDULE = "Payment Schedule"
    FINANCIAL_STATEMENT = "Financial Statement"
    KYC_DOCUMENT = "KYC Document"
    BANK_STATEMENT = "Bank Statement"
    INVOICE = "Invoice"
    OTHER = "Other"


class UserRole(Enum):
    ADMIN = "admin"
    USER = "user"
