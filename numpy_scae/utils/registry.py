"""
registry.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Helpers to resolve kind tags (layer, unit, pooler and transform kinds) given either as
             enum members or as strings coming from a configuration file or the command line.
Published: 10-19-2026
"""

from enum import Enum

from numpy_scae.utils.exceptions import ConfigurationError


def _normalize_tag(text):
    return text.strip().lower().replace("-", "_").replace(" ", "_")

def parse_kind(kind_enum, value, aliases=None):
    """
    Resolve a kind tag.

    Args:
        kind_enum (type[Enum]): Enumeration to resolve into.
        value (Enum or str): Member, member value or member name (case-insensitive).
        aliases (dict): Optional extra {tag: member} spellings.

    Returns:
        Enum: The matching member.

    Raises:
        ConfigurationError: If the tag is unknown.
    """
    if isinstance(value, kind_enum):
        return value
    if isinstance(value, Enum) or not isinstance(value, str):
        raise ConfigurationError(f"expected a {kind_enum.__name__} tag, got {value!r}")

    tag = _normalize_tag(value)
    for member in kind_enum:
        if tag in (_normalize_tag(member.name), _normalize_tag(str(member.value))):
            return member
    if aliases:
        for alias, member in aliases.items():
            if tag == _normalize_tag(alias):
                return member

    known = ", ".join(member.value for member in kind_enum)
    raise ConfigurationError(f"unknown {kind_enum.__name__} '{value}' (known: {known})")
