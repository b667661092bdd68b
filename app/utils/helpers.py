# app/utils/helpers.py
from typing import Iterable, List


def unique_ids(values: Iterable) -> List[str]:
    """Normalize identifiers to stripped strings, dropping blanks and duplicates but keeping first-seen order."""
    seen = {}
    for value in values or []:
        if value is None:
            continue
        key = str(value).strip()
        if key:
            seen.setdefault(key, None)
    return list(seen)
