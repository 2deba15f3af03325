"""Identifier casing helpers shared by the backends."""

import re

_BOUNDARY = re.compile(r"[A-Z]+(?=[A-Z][a-z0-9])|[A-Z]?[a-z0-9]+|[A-Z]+|[0-9]+")


def split_words(name: str) -> list[str]:
    """Split an identifier in any common casing into lowercase words.

    >>> split_words("DirectoryItem")
    ['directory', 'item']
    >>> split_words("HTTPServer_port")
    ['http', 'server', 'port']
    """
    words: list[str] = []
    for chunk in re.split(r"[^A-Za-z0-9]+", name):
        words.extend(match.group(0).lower() for match in _BOUNDARY.finditer(chunk))
    return words


def to_camel_case(name: str) -> str:
    words = split_words(name)
    if not words:
        return ""
    return words[0] + "".join(word.capitalize() for word in words[1:])


def to_pascal_case(name: str) -> str:
    return "".join(word.capitalize() for word in split_words(name))


def to_snake_case(name: str) -> str:
    return "_".join(split_words(name))


def to_upper_snake_case(name: str) -> str:
    return "_".join(split_words(name)).upper()


def to_kebab_case(name: str) -> str:
    return "-".join(split_words(name))


def to_flat_case(name: str) -> str:
    """Lowercase with no separators, as used for Go package names."""
    return "".join(split_words(name))
