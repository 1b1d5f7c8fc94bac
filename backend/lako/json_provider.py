# Overview: JSON encoding/decoding that keeps money in Decimal end to end.

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any

from flask.json.provider import DefaultJSONProvider


class DecimalJSONProvider(DefaultJSONProvider):
    """
    Request bodies decode non-integer numbers as Decimal so totals are never
    computed in binary floating point. Decimal values are written back out
    as strings (the DefaultJSONProvider behaviour).
    """

    def loads(self, s: str | bytes, **kwargs: Any) -> Any:
        kwargs.setdefault("parse_float", Decimal)
        return json.loads(s, **kwargs)
