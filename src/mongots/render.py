"""
Renders inferred schemas as TypeScript class declarations.
"""

import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from .types import Kind, TypeScriptType

logger = logging.getLogger(__name__)

INDENT = "  "

TOKENS = {
    Kind.NUMBER: "number",
    Kind.BIGINT: "bigint",
    Kind.NULL: "null",
    Kind.STRING: "string",
    Kind.BUFFER: "Buffer",
    Kind.BOOLEAN: "boolean",
    Kind.ANY: "any",
    Kind.OBJECT_ID: "ObjectId",
    Kind.TIMESTAMP: "Timestamp",
    Kind.DATETIME: "DateTime",
    Kind.MAX_KEY: "MaxKey",
    Kind.MIN_KEY: "MinKey",
    Kind.UNDEFINED: "undefined",
    Kind.MAP: "Map<string, any>",
}

IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def property_name(name: str) -> str:
    """Quote field names that are not valid identifiers."""
    if IDENTIFIER.match(name):
        return name
    return json.dumps(name)


def class_name(collection: str) -> str:
    """PascalCase class name for a collection, e.g. ``user_events`` -> ``UserEvents``."""
    name = "".join(x[:1].upper() + x[1:] for x in re.split(r"[^0-9A-Za-z]+", collection))
    if not name:
        return "Collection"
    if name[0].isdigit():
        name = f"_{name}"
    return name


def render_type(t: TypeScriptType, depth: int = 1) -> str:
    """
    Render one descriptor. ``depth`` is the nesting level of the field that
    holds it, used to indent the lines of object literals.
    """
    if t.kind is Kind.ARRAY:
        inner = render_type(t.element, depth)
        if t.element.is_union:
            inner = f"({inner})"
        return f"{inner}[]"

    if t.kind is Kind.OBJECT:
        if not t.fields:
            return "{}"
        lines = ["{"]
        for name, field_type in t.fields:
            lines.append(f"{INDENT * (depth + 1)}{property_name(name)}: {render_type(field_type, depth + 1)};")
        lines.append(f"{INDENT * depth}}}")
        return "\n".join(lines)

    if t.kind is Kind.UNION:
        return " | ".join(render_type(m, depth) for m in t.members)

    return TOKENS[t.kind]


def render_collection(collection: str, fields: Mapping[str, TypeScriptType]) -> str:
    lines = [f"export class {class_name(collection)} {{"]
    for name in sorted(fields):
        lines.append(f"{INDENT}{property_name(name)}!: {render_type(fields[name])};")
    lines.append("}")
    return "\n".join(lines) + "\n"


def render(schema: Mapping[str, Mapping[str, TypeScriptType]]) -> List[Tuple[str, str]]:
    """Render every collection, ordered by collection name."""
    return [(name, render_collection(name, schema[name])) for name in sorted(schema)]


def output_file_name(collection: str) -> str:
    safe_name = "".join(c for c in collection if c.isalnum() or c in ('-', '_', '.')).strip(".")
    if not safe_name:
        safe_name = "unknown"
    return f"{safe_name}.ts"


def write_declarations(rendered: List[Tuple[str, str]], output_dir: Optional[str | Path] = None) -> Dict[str, Path]:
    """
    Send each rendered declaration to its sink.

    With ``output_dir`` every collection is written to ``<collection>.ts``
    in that directory; a collection whose file name is already taken gets a
    numbered suffix. Without it the declarations are logged. Returns the
    files written, keyed by collection name.
    """
    written: Dict[str, Path] = {}

    if output_dir is None:
        for collection, text in rendered:
            logger.info("TypeScript type for collection %s\n%s", collection, text)
        return written

    output_dir = Path(output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error("Unable to create the directories required by operation: %s", e)
        return written

    claimed: Dict[str, str] = {}
    for collection, text in rendered:
        file_name = output_file_name(collection)
        if file_name in claimed:
            stem = file_name[:-len(".ts")]
            suffix = 2
            while f"{stem}_{suffix}.ts" in claimed:
                suffix += 1
            logger.warning("Collections %s and %s both map to %s, writing %s to %s_%d.ts instead",
                           claimed[file_name], collection, file_name, collection, stem, suffix)
            file_name = f"{stem}_{suffix}.ts"
        claimed[file_name] = collection
        path = output_dir / file_name
        try:
            with open(path, 'w', encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            logger.error("Unable to produce collection %s's type definition to %s: %s", collection, path, e)
            continue
        logger.info("Collection %s's type definition has been saved to %s.", collection, path)
        written[collection] = path

    return written
