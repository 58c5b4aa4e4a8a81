"""Identifier encoding for reference storage.

Identifiers are stored as a compact JSON object so that composite keys compare
as a single opaque string in equality filters and can be part of a key.
"""

import json
from typing import Any, Mapping

from django.core.serializers.json import DjangoJSONEncoder

from .exceptions import InvalidArgument


def encode_identifiers(identifiers: Mapping[str, Any]) -> str:
    """Encode an identifier mapping, keeping the mapping's key order.

    >>> encode_identifiers({"id": 1})
    '{"id":1}'
    """
    try:
        return json.dumps(
            dict(identifiers),
            cls=DjangoJSONEncoder,
            separators=(",", ":"),
        )
    except (TypeError, ValueError) as e:
        raise InvalidArgument(f"Cannot encode identifiers {identifiers!r}: {e}")


def decode_identifiers(value: str) -> dict[str, Any]:
    """Decode a stored identifier string back into an ordered dict."""
    try:
        identifiers = json.loads(value)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(f"Malformed identifiers {value!r}: {e}")

    if not isinstance(identifiers, dict):
        raise InvalidArgument(f"Identifiers must encode a JSON object, got {value!r}")

    return identifiers
