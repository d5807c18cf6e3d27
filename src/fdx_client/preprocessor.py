# Feedonomics FDX Client
# File: preprocessor.py
# Version: v3

"""URL builder for the Feedonomics BigCommerce preprocessor.

The preprocessor reads its settings from the query string of the import URL
using PHP-style bracket keys::

    connection_info[store_hash]=...&connection_info[filters][is_visible]=...

Every value is percent-encoded twice before the query string itself is
form-encoded. Feedonomics decodes the URL once when it stores the import and
the preprocessor decodes it again; both value-level layers must be present.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote, quote_plus

from .config import DEFAULT_IMPORT_URL

# Characters JavaScript's encodeURIComponent leaves untouched.
_URI_COMPONENT_SAFE = "-_.!~*'()"

_FIXED_CONNECTION_PARAMS = (("client", "bigcommerce"), ("protocol", "api"))


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_stringify(v) for v in value)
    return str(value)


def encode_value(value: Any) -> str:
    """Apply the two value-level encoding passes."""
    once = quote(_stringify(value), safe=_URI_COMPONENT_SAFE)
    return quote(once, safe=_URI_COMPONENT_SAFE)


def _form_encode(text: str) -> str:
    # application/x-www-form-urlencoded as browsers serialise it.
    return quote_plus(text, safe="*").replace("~", "%7E")


class _QueryBuilder:
    """Ordered key/value store with "set" semantics (last write wins in place)."""

    def __init__(self) -> None:
        self._pairs: List[Tuple[str, str]] = []
        self._index: Dict[str, int] = {}

    def set(self, key: str, value: Any) -> None:
        if value is None:
            return
        encoded = encode_value(value)
        if key in self._index:
            self._pairs[self._index[key]] = (key, encoded)
            return
        self._index[key] = len(self._pairs)
        self._pairs.append((key, encoded))

    def add_section(self, prefix: str, values: Mapping[str, Any]) -> None:
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                value = dict(enumerate(value))
            if isinstance(value, Mapping):
                for sub_key, sub_value in value.items():
                    self.set(f"{prefix}[{key}][{sub_key}]", sub_value)
            else:
                self.set(f"{prefix}[{key}]", value)

    def encode(self) -> str:
        return "&".join(
            f"{_form_encode(key)}={_form_encode(value)}" for key, value in self._pairs
        )


def build_preprocessor_url(
    connection_info: Mapping[str, Any],
    file_info: Optional[Mapping[str, Any]] = None,
    base_url: str = DEFAULT_IMPORT_URL,
) -> str:
    """Build the preprocessor URL for a BigCommerce import.

    ``None`` values are left out, empty strings are kept. Nested mappings
    (``filters``, ``price_list``, ``location_inventory``) become
    ``connection_info[key][sub_key]`` entries and lists become
    ``connection_info[key][0]``, ``connection_info[key][1]``, ...
    """
    query = _QueryBuilder()

    for key, value in _FIXED_CONNECTION_PARAMS:
        query.set(f"connection_info[{key}]", value)

    query.add_section("connection_info", connection_info)
    if file_info:
        query.add_section("file_info", file_info)

    return f"{base_url}?{query.encode()}"
