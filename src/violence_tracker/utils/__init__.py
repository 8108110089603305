from .field_aliases import FIELD_ALIASES, canonical_field, map_headers, normalize_header

__all__ = [
    "FIELD_ALIASES",
    "canonical_field",
    "map_headers",
    "normalize_header",
]
