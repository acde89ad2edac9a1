"""
Company identity resolution.

The same company reaches us under different ids, names, casing and accents,
and "no company" arrives in half a dozen spellings. Everything that groups by
company goes through resolve_company() so those variants collapse into one
CompanyIdentity.
"""

import re
import unicodedata

from core.config import (
    DEFAULT_GROUP_SLUG,
    UNASSIGNED_COMPANY_ID,
    UNASSIGNED_COMPANY_ID_PLACEHOLDERS,
    UNASSIGNED_COMPANY_LABEL,
    UNASSIGNED_COMPANY_NAME_VARIANTS,
)
from models.hours import CompanyIdentity

UNASSIGNED_COMPANY = CompanyIdentity(id=UNASSIGNED_COMPANY_ID, name=UNASSIGNED_COMPANY_LABEL)


def strip_diacritics(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _as_text(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def slugify(value: str | None) -> str:
    """'Construcciones Pérez, S.L.' -> 'construcciones-perez-s-l'."""
    if not value:
        return DEFAULT_GROUP_SLUG
    slug = strip_diacritics(value.lower())
    slug = re.sub(r"[^a-z0-9]+", "-", slug).strip("-")
    return slug or DEFAULT_GROUP_SLUG


def normalize_key_part(value) -> str | None:
    """Trim an id for use in lookup keys. The sentinel id is case-folded."""
    text = _as_text(value)
    if text is None:
        return None
    if text.lower() == UNASSIGNED_COMPANY_ID:
        return UNASSIGNED_COMPANY_ID
    return text


def normalize_company_label(value) -> str | None:
    """Lowercase, accent-free, single-spaced form of a company name."""
    text = _as_text(value)
    if text is None:
        return None
    return " ".join(strip_diacritics(text.lower()).split())


def is_unassigned_company_id(value) -> bool:
    text = _as_text(value)
    if text is None:
        return True
    lowered = text.lower()
    return (
        lowered == UNASSIGNED_COMPANY_ID
        or lowered.startswith(f"{UNASSIGNED_COMPANY_ID}-")
        or lowered in UNASSIGNED_COMPANY_ID_PLACEHOLDERS
    )


def is_unassigned_company_name(value) -> bool:
    label = normalize_company_label(value)
    if label is None:
        return True
    return label in UNASSIGNED_COMPANY_NAME_VARIANTS


def is_unassigned_company(company_id=None, company_name=None) -> bool:
    return resolve_company(company_id, company_name) == UNASSIGNED_COMPANY


def resolve_company(company_id=None, company_name=None) -> CompanyIdentity:
    """
    Collapse an (id, name) pair into a canonical CompanyIdentity.

    Rules, in order:
    1. Both id and name unassigned -> sentinel
    2. Both present -> trimmed id and name
    3. Only id -> id doubles as the name
    4. Only name -> slug of the name as id
    5. Otherwise -> sentinel

    A name that is itself an "unassigned" spelling counts as absent, so a real
    id never ends up labelled "Sin empresa".
    """
    id_text = _as_text(company_id)
    name_text = _as_text(company_name)

    id_missing = is_unassigned_company_id(id_text)
    name_missing = is_unassigned_company_name(name_text)

    if id_missing and name_missing:
        return UNASSIGNED_COMPANY
    if not id_missing and not name_missing:
        return CompanyIdentity(id=id_text, name=name_text)
    if not id_missing:
        return CompanyIdentity(id=id_text, name=id_text)
    if not name_missing:
        return CompanyIdentity(id=slugify(name_text), name=name_text)
    return UNASSIGNED_COMPANY


def company_hours_keys(company_id=None, company_name=None) -> list[str]:
    """Lookup keys under which tracked hours for a company are indexed."""
    keys = []
    normalized_id = normalize_key_part(company_id)
    if normalized_id:
        keys.append(f"id:{normalized_id}")
    normalized_name = normalize_company_label(company_name)
    if normalized_name:
        keys.append(f"name:{normalized_name}")
    return keys


def company_key(company_id=None, company_name=None) -> str:
    """Single bucket key for grouping by company (id first, then name)."""
    return (
        normalize_key_part(company_id)
        or normalize_company_label(company_name)
        or (company_name or "")
    )


def normalize_company_lookup(lookup: dict[str, str] | None) -> dict[str, str]:
    """Re-key an id -> name map by resolved identity. Always has the sentinel."""
    normalized: dict[str, str] = {}
    for raw_id, raw_name in (lookup or {}).items():
        identity = resolve_company(raw_id, raw_name)
        normalized[identity.id] = identity.name
    normalized.setdefault(UNASSIGNED_COMPANY_ID, UNASSIGNED_COMPANY_LABEL)
    return normalized


def lookup_company_name(lookup: dict[str, str] | None, company_id) -> str | None:
    """Find a name for an id, trying the raw id first and then its normalized form."""
    if not lookup:
        return None
    text = _as_text(company_id)
    if text is None:
        return None
    direct = _as_text(lookup.get(text))
    if direct:
        return direct
    normalized = normalize_key_part(text)
    if normalized and normalized != text:
        return _as_text(lookup.get(normalized))
    return None
