"""
Per-document-type extraction and validation rules.

Each DocumentType maps to one immutable RuleSet:
- required_fields:   fields that must be present and non-empty for completeness
- format_patterns:   fields whose value must fully match a regex
- extraction_rules:  ordered (field, pattern, confidence) rules run against OCR text
- identifier_keys:   prioritised keys for the canonical identifier
- mock_text:         deterministic OCR stand-in used when no engine is available

The registry is built once at import and never mutated. Adding a document type
means adding an entry here, nothing else.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from docverify.models.enums import DocumentType


class RuleSetNotFoundError(LookupError):
    """No rule set is registered for a document type."""


@dataclass(frozen=True)
class FieldRule:
    """One extraction rule. First match wins; group 1 if present, else the whole match."""
    field_name: str
    pattern: re.Pattern
    confidence: float
    # Remove all whitespace from the value (space-grouped numbers)
    compact: bool = False


@dataclass(frozen=True)
class RuleSet:
    document_type: DocumentType
    required_fields: frozenset[str]
    format_patterns: Mapping[str, re.Pattern]
    extraction_rules: tuple[FieldRule, ...]
    identifier_keys: tuple[str, ...]
    mock_text: str = ""


def _rule(field_name: str, pattern: str, confidence: float, compact: bool = False) -> FieldRule:
    return FieldRule(field_name, re.compile(pattern), confidence, compact)


def _labelled(labels: str, value: str = r"[^\n]+") -> str:
    """`Label: value` on a single line, label anchored at line start."""
    return rf"(?im)^[ \t]*(?:{labels})[ \t]*:[ \t]*({value})[ \t]*$"


# ── Shared patterns ──────────────────────────────────────────
DATE_DD_MM_YYYY = re.compile(r"^(0[1-9]|[12][0-9]|3[01])/(0[1-9]|1[0-2])/[0-9]{4}$")

_NAME = r"name|नाम"
_DOB = r"(?i)(?:DOB|Date of Birth|जन्म तिथि)[ \t]*[:/]?[ \t]*(\d{2}/\d{2}/\d{4})"
_ADDRESS = r"(?i)(?:Address|पता)[ \t]*:[ \t]*([\s\S]+?)(?:\n\n|\d{6}|$)"

GENERIC_IDENTIFIER_KEYS = ("document_number", "documentNumber", "number")


# ── Aadhaar ──────────────────────────────────────────────────
_AADHAAR = RuleSet(
    document_type=DocumentType.AADHAAR,
    required_fields=frozenset({"aadhaar_number", "name", "date_of_birth", "gender", "address"}),
    format_patterns=MappingProxyType({
        "aadhaar_number": re.compile(r"^[0-9]{12}$"),
        "date_of_birth": DATE_DD_MM_YYYY,
    }),
    extraction_rules=(
        _rule("aadhaar_number", r"(?<!\d)(\d{4}[ ]?\d{4}[ ]?\d{4})(?!\d)", 0.90, compact=True),
        _rule("name", _labelled(_NAME), 0.85),
        _rule("date_of_birth", _DOB, 0.85),
        _rule("gender", r"(?i)\b(male|female|transgender)\b", 0.90),
        _rule("address", _ADDRESS, 0.75),
    ),
    identifier_keys=("aadhaar_number", "aadhaarNumber"),
    mock_text=(
        "Government of India\n"
        "Unique Identification Authority of India\n"
        "Name: John Doe\n"
        "DOB: 01/01/1990\n"
        "Gender: MALE\n"
        "Address: 123 Main Street, Apartment 4B, Bangalore, Karnataka, 560001\n"
        "Aadhaar: 1234 5678 9012"
    ),
)

# ── PAN ──────────────────────────────────────────────────────
_PAN = RuleSet(
    document_type=DocumentType.PAN,
    required_fields=frozenset({"pan_number", "name", "fathers_name", "date_of_birth"}),
    format_patterns=MappingProxyType({
        "pan_number": re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$"),
        "date_of_birth": DATE_DD_MM_YYYY,
    }),
    extraction_rules=(
        _rule("pan_number", r"\b([A-Z]{5}\d{4}[A-Z])\b", 0.90),
        _rule("name", _labelled(_NAME), 0.85),
        _rule("fathers_name", _labelled(r"father(?:'s)?(?:[ \t]+name)?|पिता(?:[ \t]+का[ \t]+नाम)?"), 0.80),
        _rule("date_of_birth", _DOB, 0.85),
    ),
    identifier_keys=("pan_number", "panNumber"),
    mock_text=(
        "INCOME TAX DEPARTMENT\n"
        "GOVT. OF INDIA\n"
        "Permanent Account Number\n"
        "ABCDE1234F\n"
        "Name: John Doe\n"
        "Father's Name: James Doe\n"
        "Date of Birth: 01/01/1990"
    ),
)

# ── Driving license ──────────────────────────────────────────
_DRIVING_LICENSE = RuleSet(
    document_type=DocumentType.DRIVING_LICENSE,
    required_fields=frozenset({
        "license_number", "name", "date_of_birth", "address", "valid_from", "valid_until",
    }),
    format_patterns=MappingProxyType({
        "date_of_birth": DATE_DD_MM_YYYY,
        "valid_from": DATE_DD_MM_YYYY,
        "valid_until": DATE_DD_MM_YYYY,
    }),
    extraction_rules=(
        _rule("license_number", r"(?i)(?:DL|Licen[cs]e)[ \t]*No[ \t]*[.:]*[ \t]*(\w+(?:[ \t]?\w+)?)", 0.90),
        _rule("name", _labelled(_NAME), 0.85),
        _rule("date_of_birth", _DOB, 0.85),
        _rule("address", _ADDRESS, 0.75),
        _rule("valid_from", r"(?i)(?:Valid From|Issue Date)[ \t]*:[ \t]*(\d{2}/\d{2}/\d{4})", 0.85),
        _rule("valid_until", r"(?i)(?:Valid Until|Valid Till|Expiry Date)[ \t]*:[ \t]*(\d{2}/\d{2}/\d{4})", 0.85),
    ),
    identifier_keys=("license_number", "licenseNumber", *GENERIC_IDENTIFIER_KEYS),
    mock_text=(
        "DRIVING LICENSE\n"
        "License No: KA01 20120012345\n"
        "Name: John Doe\n"
        "DOB: 01/01/1990\n"
        "Address: 123 Main Street, Apartment 4B, Bangalore, Karnataka, 560001\n"
        "Valid From: 01/01/2020\n"
        "Valid Until: 31/12/2030\n"
        "Blood Group: O+\n"
        "Issuing Authority: RTO Bangalore"
    ),
)

# ── Bank statement ───────────────────────────────────────────
_BANK_STATEMENT = RuleSet(
    document_type=DocumentType.BANK_STATEMENT,
    required_fields=frozenset({
        "account_number", "account_holder_name", "bank_name", "statement_period",
        "opening_balance", "closing_balance",
    }),
    format_patterns=MappingProxyType({
        "account_number": re.compile(r"^[0-9]{9,18}$"),
    }),
    extraction_rules=(
        _rule("account_number", r"(?i)(?:A/C No|Account No|Account Number)[ \t]*[.:]+[ \t]*(\d[\d ]*\d)", 0.90, compact=True),
        _rule("account_holder_name", _labelled(r"account name|customer name|name"), 0.85),
        _rule("bank_name", r"(?i)\b(HDFC|SBI|ICICI|AXIS|KOTAK|PNB|BANK OF BARODA|CANARA|UNION BANK)\b", 0.90),
        _rule("statement_period", r"(?i)(?:Statement Period|Period)[ \t]*:[ \t]*([\d/ \-]+to[\d/ \-]+)", 0.80),
        _rule("opening_balance", r"(?i)Opening Balance[ \t]*:[ \t]*([$₹]?[\d,.]+)", 0.80),
        _rule("closing_balance", r"(?i)Closing Balance[ \t]*:[ \t]*([$₹]?[\d,.]+)", 0.80),
    ),
    identifier_keys=("account_number", "accountNumber", *GENERIC_IDENTIFIER_KEYS),
    mock_text=(
        "HDFC BANK\n"
        "Statement of Account\n"
        "Account Name: John Doe\n"
        "A/C No: 12345678901234\n"
        "Statement Period: 01/01/2023 to 31/01/2023\n"
        "Opening Balance: ₹50,000.00\n"
        "Closing Balance: ₹65,432.10\n"
        "Date       Description                 Debit      Credit     Balance\n"
        "05/01/2023 Salary                                20,000.00  70,000.00\n"
        "10/01/2023 Rent Payment               15,000.00            55,000.00\n"
        "31/01/2023 Deposit                                20,000.00  65,432.10"
    ),
)


RULE_SETS: Mapping[DocumentType, RuleSet] = MappingProxyType({
    rs.document_type: rs
    for rs in (_AADHAAR, _PAN, _DRIVING_LICENSE, _BANK_STATEMENT)
})


def get_rule_set(document_type: DocumentType) -> RuleSet:
    """Look up the rule set for a document type; raises RuleSetNotFoundError."""
    try:
        return RULE_SETS[document_type]
    except KeyError:
        raise RuleSetNotFoundError(f"No rule set registered for document type: {document_type}") from None


def find_rule_set(document_type: Optional[DocumentType]) -> Optional[RuleSet]:
    if document_type is None:
        return None
    return RULE_SETS.get(document_type)
