from typing import Any, Dict, List

from .models import SponsorRecord

OPTIONAL_BOOL_FIELDS = ["isActive"]


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def validate_sponsor_document(doc: Any) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.

    Documents follow the sponsor directory layout:
    {"_id", "companyName", "searchableNames"?, "isActive"?, "h1bData"?: {"isActive"?}}
    """
    if not isinstance(doc, dict):
        return ["Sponsor document must be an object"]

    errors: List[str] = []

    doc_id = doc.get("_id")
    if doc_id is None:
        errors.append("Missing required field: _id")
    elif not (_is_non_empty_str(doc_id) or (isinstance(doc_id, int) and not isinstance(doc_id, bool))):
        errors.append("Field '_id' must be a non-empty string or an integer")

    if "companyName" not in doc:
        errors.append("Missing required field: companyName")
    elif not _is_non_empty_str(doc["companyName"]):
        errors.append("Field 'companyName' must be a non-empty string")

    names = doc.get("searchableNames")
    if names is not None:
        if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
            errors.append("Field 'searchableNames' must be a list of strings if provided")

    for f in OPTIONAL_BOOL_FIELDS:
        if f in doc and not isinstance(doc[f], bool):
            errors.append(f"Field '{f}' must be a boolean if provided")

    h1b = doc.get("h1bData")
    if h1b is not None:
        if not isinstance(h1b, dict):
            errors.append("Field 'h1bData' must be an object if provided")
        elif "isActive" in h1b and not isinstance(h1b["isActive"], bool):
            errors.append("Field 'h1bData.isActive' must be a boolean if provided")

    return errors


def is_active_document(doc: Dict[str, Any]) -> bool:
    """Active means the record and its sponsorship data are both flagged active."""
    h1b = doc.get("h1bData") or {}
    return bool(doc.get("isActive", True)) and bool(h1b.get("isActive", True))


def sponsor_from_document(doc: Dict[str, Any], include_secondary: bool = True) -> SponsorRecord:
    names = tuple(doc.get("searchableNames") or ()) if include_secondary else ()
    return SponsorRecord(
        id=str(doc["_id"]),
        name=doc["companyName"].strip(),
        secondary_names=names,
        active=is_active_document(doc),
    )
