"""Static term dictionary.

The dictionary is loaded once at startup from a JSON object of
``{"term": "definition", ...}`` and then shared read-only by every
handler invocation.
"""

import json
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Union

import structlog
from pydantic import TypeAdapter, ValidationError

from .exceptions import DictionaryLoadError

logger = structlog.get_logger("cocbot.store")

_ENTRIES = TypeAdapter(Dict[str, str])


def build_dictionary(entries: Mapping[str, str]) -> Mapping[str, str]:
    """Freeze entries into a lowercase-keyed, read-only mapping.

    When two keys only differ by case the later one wins.
    """
    terms: Dict[str, str] = {}
    for term, definition in entries.items():
        key = term.lower()
        if key in terms:
            logger.warning("dictionary_duplicate_term", term=key)
        terms[key] = definition
    return MappingProxyType(terms)


def load_dictionary(path: Union[str, Path]) -> Mapping[str, str]:
    """Load and validate the dictionary JSON file.

    Args:
        path: Location of the JSON data file.

    Returns:
        Read-only mapping of lowercased term to definition.

    Raises:
        DictionaryLoadError: If the file is missing, is not JSON, or
            is not a flat object of strings.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DictionaryLoadError(
            "cannot read dictionary file", path=str(path), error=str(e)
        ) from e

    try:
        entries = _ENTRIES.validate_python(json.loads(raw))
    except json.JSONDecodeError as e:
        raise DictionaryLoadError(
            "dictionary file is not valid JSON", path=str(path), error=str(e)
        ) from e
    except ValidationError as e:
        raise DictionaryLoadError(
            "dictionary must map strings to strings",
            path=str(path),
            errors=e.error_count(),
        ) from e

    dictionary = build_dictionary(entries)
    logger.info("dictionary_loaded", path=str(path), terms=len(dictionary))
    return dictionary
