"""
Identifier cross-check: the identifier read off the document must equal the
identifier the caller expects.
"""

import re
from typing import Mapping, Optional

from docverify.models.enums import DocumentType
from docverify.rules.registry import GENERIC_IDENTIFIER_KEYS, find_rule_set
from docverify.schemas.contracts import FieldValue

_WHITESPACE = re.compile(r"\s+")


def canonicalize(identifier: str) -> str:
    return _WHITESPACE.sub("", identifier).upper()


def extract_canonical_id(
    fields: Mapping[str, FieldValue], document_type: Optional[DocumentType]
) -> Optional[str]:
    """First non-empty value among the document type's identifier keys."""
    rules = find_rule_set(document_type)
    keys = rules.identifier_keys if rules else GENERIC_IDENTIFIER_KEYS
    for key in keys:
        field = fields.get(key)
        if field is not None and field.value.strip():
            return field.value
    return None


def compare(expected: Optional[str], extracted: Optional[str]) -> bool:
    """Whitespace- and case-insensitive equality; a missing side never matches."""
    if expected is None or extracted is None:
        return False
    return canonicalize(expected) == canonicalize(extracted)
