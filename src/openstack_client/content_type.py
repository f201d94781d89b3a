"""Parsing of Content-Type and Accept style header values."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

JSON_MEDIA_TYPE = "application/json"


@dataclass
class MediaType:
    """One media type with its parameters, e.g. ``text/plain; charset=utf-8``."""

    name: str
    parameters: Dict[str, str] = field(default_factory=dict)

    @property
    def charset(self) -> Optional[str]:
        return self.parameters.get("charset")

    def is_json(self) -> bool:
        return self.name.startswith(JSON_MEDIA_TYPE)


def parse_media_types(value: Optional[str]) -> List[MediaType]:
    """Parse a comma separated header value into media types.

    Type names and parameter names are lowercased; parameter values keep
    their case with surrounding quotes removed. Empty segments are skipped.
    """
    if not value:
        return []

    media_types = []
    for part in value.split(","):
        name, *attributes = [piece.strip() for piece in part.split(";")]
        if not name:
            continue

        parameters = {}
        for attribute in attributes:
            if not attribute:
                continue
            key, _, param_value = attribute.partition("=")
            parameters[key.strip().lower()] = param_value.strip().strip('"')

        media_types.append(MediaType(name=name.lower(), parameters=parameters))

    return media_types


def parse_content_type(value: Optional[str]) -> Optional[MediaType]:
    """Return the first media type of a Content-Type header, or None."""
    media_types = parse_media_types(value)
    return media_types[0] if media_types else None


def is_json_content_type(value: Optional[str]) -> bool:
    """Case-insensitive prefix match of a Content-Type against application/json."""
    media_type = parse_content_type(value)
    return media_type is not None and media_type.is_json()
