"""
Shippo `metadata` normalization.

Shippo hands back whatever string was attached when the label was bought, so
the field may be a JSON-encoded object, free text (e.g. "Order #1042"), or
missing entirely. Each shape gets its own type so callers handle all three.
"""
import json
from dataclasses import dataclass


@dataclass(frozen=True)
class Structured:
    fields: dict
    raw: str | None = None

    def field(self, name):
        value = self.fields.get(name)
        if value is None or isinstance(value, (dict, list, bool)):
            return None
        value = str(value).strip()
        return value or None

    def text(self):
        return self.raw


@dataclass(frozen=True)
class Freeform:
    raw: str

    def field(self, name):
        return None

    def text(self):
        return self.raw


@dataclass(frozen=True)
class Absent:
    def field(self, name):
        return None

    def text(self):
        return None


def parse_metadata(raw):
    """Classify a raw `data.metadata` value; malformed JSON never raises"""
    if isinstance(raw, dict):
        return Structured(fields=raw)

    if not isinstance(raw, str) or not raw.strip():
        return Absent()

    try:
        parsed = json.loads(raw)
    except ValueError:
        return Freeform(raw=raw)

    if isinstance(parsed, dict):
        return Structured(fields=parsed, raw=raw)
    return Freeform(raw=raw)
