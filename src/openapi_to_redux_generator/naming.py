"""Naming helpers for TypeScript identifiers, domains, and schema names."""

from __future__ import annotations

import re
from typing import Optional

HTTP_METHODS: tuple[str, ...] = (
    "get",
    "post",
    "put",
    "patch",
    "delete",
)

_WORD_SPLIT_RE = re.compile(r"[^0-9a-zA-Z]+")
_CAMEL_BOUNDARY_RE = re.compile(r"([a-z0-9])([A-Z])")
_IDENTIFIER_SANITIZE_RE = re.compile(r"[^0-9a-zA-Z_$]+")
_MULTIPLE_UNDERSCORES_RE = re.compile(r"_+")
_TAG_SANITIZE_RE = re.compile(r"[^a-z0-9]+")
_PATH_PARAM_RE = re.compile(r"^\{(?P<name>[^{}]+)\}$")
_TS_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

_STRING_ESCAPES = {code: f"\\x{code:02x}" for code in range(0x20)}
_STRING_ESCAPES.update(
    {
        ord("\\"): "\\\\",
        ord("'"): "\\'",
        ord("\n"): "\\n",
        ord("\r"): "\\r",
        ord("\t"): "\\t",
        0x2028: "\\u2028",
        0x2029: "\\u2029",
    }
)

_TS_RESERVED = frozenset(
    {
        "break",
        "case",
        "catch",
        "class",
        "const",
        "continue",
        "default",
        "delete",
        "do",
        "else",
        "enum",
        "export",
        "extends",
        "false",
        "finally",
        "for",
        "function",
        "if",
        "import",
        "in",
        "instanceof",
        "new",
        "null",
        "return",
        "super",
        "switch",
        "this",
        "throw",
        "true",
        "try",
        "typeof",
        "var",
        "void",
        "while",
        "with",
    }
)


def split_words(raw: str) -> list[str]:
    """Split text on separators and lower-to-upper camel boundaries."""
    spaced = _CAMEL_BOUNDARY_RE.sub(r"\1 \2", raw)
    return [word for word in _WORD_SPLIT_RE.split(spaced) if word]


def to_pascal_case(raw: str) -> str:
    """Convert ``snake_case``, ``kebab-case``, or free text to PascalCase.

    Existing capitals inside a word are kept, so ``leadNotes`` becomes
    ``LeadNotes`` rather than ``Leadnotes``.
    """
    return "".join(word[0].upper() + word[1:] for word in split_words(raw))


def to_camel_case(raw: str) -> str:
    """Convert ``snake_case``, ``kebab-case``, or free text to camelCase."""
    pascal = to_pascal_case(raw)
    if not pascal:
        return ""
    return pascal[0].lower() + pascal[1:]


def capitalize(raw: str) -> str:
    """Upper-case the first character only."""
    return raw[:1].upper() + raw[1:]


def verb_suffix(verb: str) -> str:
    """HTTP verb as a PascalCase suffix: ``get`` -> ``Get``."""
    return verb[:1].upper() + verb[1:].lower()


def normalize_tag(tag: str) -> str:
    """Normalize an operation tag to a lowercase, hyphenated domain name.

    Examples:
        >>> normalize_tag("Billing Automation")
        'billing-automation'
        >>> normalize_tag("  --Member_Analytics-- ")
        'member-analytics'
    """
    return _TAG_SANITIZE_RE.sub("-", tag.lower()).strip("-")


def sanitize_identifier(raw: str) -> str:
    """Convert arbitrary text into a valid TypeScript identifier."""
    text = _IDENTIFIER_SANITIZE_RE.sub("_", raw)
    text = _MULTIPLE_UNDERSCORES_RE.sub("_", text).strip("_")
    if not text:
        text = "value"
    if text[0].isdigit():
        text = f"_{text}"
    if text in _TS_RESERVED:
        text = f"{text}_"
    return text


def is_ts_identifier(raw: str) -> bool:
    """Whether text can be used unquoted as a TypeScript property name."""
    return bool(_TS_IDENTIFIER_RE.match(raw))


def quote_string(value: str) -> str:
    r"""Render text as a single-quoted TypeScript string literal.

    Examples:
        >>> quote_string("it's")
        "'it\\'s'"
        >>> quote_string("line\nbreak")
        "'line\\nbreak'"
    """
    return f"'{value.translate(_STRING_ESCAPES)}'"


def property_key(raw: str) -> str:
    """Render an object key, quoting it when it is not a plain identifier."""
    if is_ts_identifier(raw):
        return raw
    return quote_string(raw)


def property_access(target: str, raw: str) -> str:
    """Render member access, switching to bracket syntax when needed."""
    if is_ts_identifier(raw):
        return f"{target}.{raw}"
    return f"{target}[{property_key(raw)}]"


def enum_member_name(value: str) -> str:
    """Convert an enum literal into an UPPER_SNAKE member name."""
    words = split_words(value)
    name = "_".join(word.upper() for word in words) or "EMPTY"
    if name[0].isdigit():
        name = f"_{name}"
    return name


def path_param_name(segment: str) -> Optional[str]:
    """Return the bare parameter name of a ``{param}`` segment."""
    match = _PATH_PARAM_RE.match(segment)
    if match is None:
        return None
    return match.group("name")


def ref_name(ref: str) -> str:
    """Last JSON pointer token of a ``$ref``."""
    return ref.rsplit("/", maxsplit=1)[-1].replace("~1", "/").replace("~0", "~")


def strip_api_base_path(schema_name: str, api_base_path: str) -> str:
    """Strip the API path portion from framework-generated schema names.

    Body schemas generated from route handlers embed the route in their
    name, e.g. ``Body_upload_photo_api_v1_project_photos__post``. With base
    path ``api/v1`` this becomes ``Body_upload_photo_post``.

    Args:
        schema_name (str): Declared schema name.
        api_base_path (str): Base path such as ``api/v1``; empty disables.

    Returns:
        str: The shortened name, or ``schema_name`` unchanged.
    """
    if not api_base_path:
        return schema_name

    marker = "_" + api_base_path.strip("/").replace("/", "_") + "_"
    parts = re.split(re.escape(marker), schema_name, flags=re.IGNORECASE)
    if len(parts) != 2:
        return schema_name

    prefix, suffix = parts
    suffix_parts = suffix.split("_")
    method_index = -1
    for index in range(len(suffix_parts) - 1, -1, -1):
        if suffix_parts[index].lower() in HTTP_METHODS:
            method_index = index
            break

    if method_index > 0:
        return f"{prefix}_{'_'.join(suffix_parts[method_index:])}"
    return f"{prefix}_{suffix}"


def clean_schema_name(schema_name: str, api_base_path: str) -> str:
    """Shortened PascalCase alias of a schema name."""
    return to_pascal_case(strip_api_base_path(schema_name, api_base_path))
