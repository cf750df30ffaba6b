"""
Name derivation rules for generated accessors and types.

Schema names are UPPER_SNAKE_CASE (e.g. "AST_NODE"). Generated code uses:
- lowerCamelCase for accessors: camel_case("AST_NODE") == "astNode"
- UpperCamelCase for type and constant names: camel_case_caps("AST_NODE") == "AstNode"

Names starting with an underscore denote internal keys. The leading underscore
is stripped before case conversion: camel_case("_KEY") == "key".

The reserved-word escape is applied last, after case conversion.
"""

from __future__ import annotations

import keyword
from typing import AbstractSet, Iterable

# Python keywords plus soft keywords and builtins that would shadow common names
# in generated classes.
RESERVED_WORDS: frozenset[str] = frozenset(keyword.kwlist) | frozenset(
    ("match", "case", "type", "_", "self", "cls", "property", "id")
)


def camel_case(snake_case: str) -> str:
    """Convert a schema name to lowerCamelCase.

    Example:
        >>> camel_case("AST_NODE")
        'astNode'
        >>> camel_case("_KEY")
        'key'
    """
    corrected = snake_case[1:] if snake_case.startswith("_") else snake_case
    parts = [p.lower() for p in corrected.split("_") if p]
    if not parts:
        return ""
    return parts[0] + "".join(p.capitalize() for p in parts[1:])


def camel_case_caps(snake_case: str) -> str:
    """Convert a schema name to UpperCamelCase."""
    name = camel_case(snake_case)
    return name[:1].upper() + name[1:]


def escape_if_keyword(name: str, reserved: AbstractSet[str] = RESERVED_WORDS) -> str:
    """Append an underscore to names that collide with a reserved word."""
    if name in reserved:
        return f"{name}_"
    return name


def reserved_words(extra: Iterable[str] = ()) -> frozenset[str]:
    """The default reserved-word table extended with caller-supplied names."""
    return RESERVED_WORDS | frozenset(extra)


def accessor_name(schema_name: str, reserved: AbstractSet[str] = RESERVED_WORDS) -> str:
    """lowerCamelCase accessor name with the reserved-word escape applied."""
    return escape_if_keyword(camel_case(schema_name), reserved)


def constant_name(schema_name: str) -> str:
    """UPPER_SNAKE_CASE constant name, stripping the internal-key underscore."""
    corrected = schema_name[1:] if schema_name.startswith("_") else schema_name
    return corrected.upper()


def category_class_name(category: str) -> str:
    """UpperCamelCase name for a constants category.

    Categories may be declared as UPPER_SNAKE ("DISPATCH_TYPES") or
    lowerCamel ("dispatchTypes"); both become "DispatchTypes".
    """
    if "_" in category or category.isupper():
        return camel_case_caps(category)
    return category[:1].upper() + category[1:]
