"""Column lookup for organizer-edited spreadsheet rows."""
from typing import Dict, Iterable, Mapping, Optional, Tuple

# Accepted header aliases per logical field, tried in order.
# Headers are matched case-insensitively (Norwegian first, then English).
PROGRAM_FIELDS: Dict[str, Tuple[str, ...]] = {
    'day': ('dag', 'day'),
    'start_time': ('start',),
    'end_time': ('end',),
    'title': ('tittel', 'title'),
    'description': ('beskrivelse', 'description'),
    'location': ('sted', 'location'),
    'category': ('category', 'kategori'),
}

PARTICIPANT_FIELDS: Dict[str, Tuple[str, ...]] = {
    'name': ('navn', 'name'),
    'company': ('bedrift', 'company'),
}

EXHIBITOR_FIELDS: Dict[str, Tuple[str, ...]] = {
    'company_name': ('bedriftsnavn', 'company'),
    'stand_number': ('standnummer', 'stand'),
}


def _normalize_header(header: Optional[str]) -> str:
    return (header or '').strip().lower()


def extract_field(row: Mapping[str, Optional[str]], aliases: Iterable[str]) -> Optional[str]:
    """
    Return the first non-empty value for any of the given header aliases.

    Args:
        row: Mapping of column header to cell text
        aliases: Accepted header names, in priority order

    Returns:
        Stripped cell value, or None when every alias is absent or blank
    """
    values: Dict[str, str] = {}
    for header, value in row.items():
        if value is None:
            continue
        text = str(value).strip()
        if text:
            # Two headers can collapse to the same key ("Dag" and "dag"); first one wins
            values.setdefault(_normalize_header(header), text)

    for alias in aliases:
        value = values.get(_normalize_header(alias))
        if value:
            return value

    return None


def extract_fields(
    row: Mapping[str, Optional[str]],
    field_aliases: Mapping[str, Iterable[str]]
) -> Dict[str, Optional[str]]:
    """Extract every logical field described by an alias table."""
    return {
        name: extract_field(row, aliases)
        for name, aliases in field_aliases.items()
    }


def normalize_categories(value: Optional[str]) -> Optional[str]:
    """
    Clean up a comma-separated category cell.

    "Fagprogram,  transport , Fagprogram" becomes "Fagprogram, transport".
    """
    if not value:
        return None

    seen = set()
    categories = []
    for part in value.split(','):
        label = part.strip()
        if not label or label.lower() in seen:
            continue
        seen.add(label.lower())
        categories.append(label)

    return ', '.join(categories) or None
