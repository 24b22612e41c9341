"""Flat relation files: one "<id> <value>" line per entry, split at the first space.

Values are not escaped; a value containing a newline does not survive a reload.
"""

from typing import Dict, Mapping


def parse_relation(data: bytes) -> Dict[str, str]:
    """Parse relation file content. Lines without a space or with an empty id are skipped."""
    result: Dict[str, str] = {}
    for line in data.decode("utf-8").split("\n"):
        key, sep, value = line.partition(" ")
        if sep and key:
            result[key] = value
    return result


def format_relation(mapping: Mapping[str, str]) -> bytes:
    """Serialize a relation for a full rewrite of its file."""
    return "".join(f"{key} {value}\n" for key, value in mapping.items()).encode("utf-8")
