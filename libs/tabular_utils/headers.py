# =============================================================================
# Tabular Headers Module
# =============================================================================
# Provides deterministic header normalization for uploaded spreadsheets.
# Ensures column and table names conform to Postgres identifier rules.
# =============================================================================

import logging
import re
import unicodedata
from typing import Dict, List, Set, Tuple

__all__ = [
    "MAX_IDENTIFIER_LENGTH",
    "normalize_identifier",
    "normalize_headers",
    "deduplicate_words",
    "is_valid_identifier",
]

log = logging.getLogger(__name__)

# Postgres truncates identifiers to NAMEDATALEN - 1 bytes
MAX_IDENTIFIER_LENGTH = 63

_SPECIAL_CHAR_PATTERN = re.compile(r"[^a-z0-9]+")
_MULTI_UNDERSCORE_PATTERN = re.compile(r"_+")
_POSTGRES_IDENTIFIER_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")


def is_valid_identifier(name: str) -> bool:
    """Check that ``name`` is a lower-case, unquoted Postgres identifier."""
    return (
        len(name) <= MAX_IDENTIFIER_LENGTH
        and _POSTGRES_IDENTIFIER_PATTERN.match(name) is not None
    )


def deduplicate_words(text: str) -> str:
    """
    Remove redundant words in a string while preserving order.

    Args:
        text: Underscore-separated string (e.g., "fecha_ingreso_fecha").

    Returns:
        String with duplicate words removed (e.g., "fecha_ingreso").

    Examples:
        >>> deduplicate_words("user_id_user")
        'user_id'
        >>> deduplicate_words("date_date_date")
        'date'
    """
    words = text.split("_")
    seen: Set[str] = set()
    result: List[str] = []
    for word in words:
        if word and word not in seen:
            seen.add(word)
            result.append(word)
    return "_".join(result)


def _strip_accents(text: str) -> str:
    # "Año" -> "Ano", "Región" -> "Region"
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def _compress(candidate: str) -> str:
    if len(candidate) > MAX_IDENTIFIER_LENGTH:
        candidate = deduplicate_words(candidate)
    if len(candidate) > MAX_IDENTIFIER_LENGTH:
        candidate = candidate[:MAX_IDENTIFIER_LENGTH].rstrip("_")
    return candidate


def normalize_identifier(text: str, fallback: str = "") -> str:
    """
    Normalize free text into a valid Postgres identifier.

    Steps:
        1. Strip accents, whitespace and lower-case
        2. Replace every run of non-alphanumeric characters with "_"
        3. Collapse and strip underscores
        4. Prefix "_" when the result starts with a digit
        5. Compress names longer than 63 chars (dedupe words, then truncate)

    Args:
        text: Raw header cell or file name.
        fallback: Returned when nothing usable remains after cleanup.

    Returns:
        Normalized identifier, or ``fallback`` when the text normalizes to
        an empty string.

    Examples:
        >>> normalize_identifier("  Fecha de Ingreso ")
        'fecha_de_ingreso'
        >>> normalize_identifier("1st Quarter")
        '_1st_quarter'
        >>> normalize_identifier("%%%", fallback="column_3")
        'column_3'
    """
    normalized = _strip_accents(text).strip().lower()
    normalized = _SPECIAL_CHAR_PATTERN.sub("_", normalized)
    normalized = _MULTI_UNDERSCORE_PATTERN.sub("_", normalized).strip("_")

    if not normalized:
        return fallback

    if normalized[0].isdigit():
        normalized = f"_{normalized}"

    return _compress(normalized)


def normalize_headers(headers: List[str]) -> Tuple[Dict[str, str], List[str]]:
    """
    Normalize a header row into unique Postgres column identifiers.

    Each header goes through :func:`normalize_identifier`; headers that are
    empty after cleanup become positional placeholders ``column_N`` (1-based).
    Collisions are resolved deterministically with numeric suffixes
    (``_1``, ``_2``, ...) in header order, keeping the result within 63 chars.

    Args:
        headers: List of original header strings.

    Returns:
        Tuple of:
        - header_mapping: Dict mapping original header -> cleaned header
        - cleaned_headers: List of cleaned header strings (in original order)

    Examples:
        >>> mapping, cleaned = normalize_headers(["First Name", "Last Name"])
        >>> cleaned
        ['first_name', 'last_name']

        >>> mapping, cleaned = normalize_headers(["Name", "Name", "Name"])
        >>> cleaned
        ['name', 'name_1', 'name_2']

        >>> mapping, cleaned = normalize_headers(["", "Amount"])
        >>> cleaned
        ['column_1', 'amount']
    """
    header_mapping: Dict[str, str] = {}
    cleaned_headers: List[str] = []
    seen_cleaned: Dict[str, int] = {}  # cleaned_name -> collision count
    taken: Set[str] = set()

    for idx, original_header in enumerate(headers):
        candidate = normalize_identifier(
            original_header or "", fallback=f"column_{idx + 1}"
        )

        final_name = candidate
        if candidate in taken:
            count = seen_cleaned.get(candidate, 0)
            while final_name in taken:
                count += 1
                suffix = f"_{count}"
                base = candidate[: MAX_IDENTIFIER_LENGTH - len(suffix)].rstrip("_")
                final_name = f"{base}{suffix}"
            seen_cleaned[candidate] = count
            log.debug(f"Header '{original_header}' collides with '{candidate}', using '{final_name}'")

        taken.add(final_name)
        header_mapping[original_header] = final_name
        cleaned_headers.append(final_name)

    return header_mapping, cleaned_headers
