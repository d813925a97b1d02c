"""lsp value helpers shared by the aggregator and the operations

this module contains:
- uri/path conversion
- position encoding translation and request params builders
- normalization of locations, symbols, hierarchy calls and hover contents
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from lsp_fanout.errors import ValidationError
from lsp_fanout.lsp.types import Client, PositionEncoding, Position, RequestContext, Selection


SYMBOL_KINDS = {
    1: "File",
    2: "Module",
    3: "Namespace",
    4: "Package",
    5: "Class",
    6: "Method",
    7: "Property",
    8: "Field",
    9: "Constructor",
    10: "Enum",
    11: "Interface",
    12: "Function",
    13: "Variable",
    14: "Constant",
    15: "String",
    16: "Number",
    17: "Boolean",
    18: "Array",
    19: "Object",
    20: "Key",
    21: "Null",
    22: "EnumMember",
    23: "Struct",
    24: "Event",
    25: "Operator",
    26: "TypeParameter",
}


@dataclass(frozen=True)
class LocationItem:
    """one location, 1-based line/character as shown in editors

    `character` is counted in the originating client's offset encoding,
    `range` is the untouched LSP range.
    """

    uri: str
    path: str
    line: int
    character: int
    range: Dict[str, Any]
    offset_encoding: str = PositionEncoding.UTF16.value
    text: str = ""


# ═══════════════════════════════════════════════════════════════════════════
# uri / path
# ═══════════════════════════════════════════════════════════════════════════


def path_to_uri(file_path: str) -> str:
    """convert file path to LSP URI format"""
    if file_path.startswith("file://"):
        return file_path
    path = file_path.replace("\\", "/")
    if len(path) >= 2 and path[1] == ":":
        path = "/" + path
    return f"file://{path}"


def uri_to_path(uri: str) -> str:
    """convert LSP URI to file path"""
    path = uri.replace("file://", "")
    if len(path) >= 3 and path[0] == "/" and path[2] == ":":
        path = path[1:]
    return path


def symbol_kind_to_string(kind: int) -> str:
    """convert LSP SymbolKind to human-readable string"""
    return SYMBOL_KINDS.get(kind, f"Unknown({kind})")


# ═══════════════════════════════════════════════════════════════════════════
# position encoding
# ═══════════════════════════════════════════════════════════════════════════


def character_offset(line_text: str, index: int, encoding: str) -> int:
    """translate a code-point column into `encoding` units

    Args:
        line_text: text of the line
        index: code-point column (clamped to the line length)
        encoding: utf-8, utf-16 or utf-32

    Returns:
        column in bytes (utf-8), code units (utf-16) or code points (utf-32)
    """
    prefix = line_text[:max(0, index)]
    if encoding == PositionEncoding.UTF8.value:
        return len(prefix.encode("utf-8"))
    if encoding == PositionEncoding.UTF16.value:
        return sum(2 if ord(ch) > 0xFFFF else 1 for ch in prefix)
    return len(prefix)


def _lsp_position(
    position: Position,
    line_text: Optional[str],
    encoding: str,
) -> Dict[str, int]:
    character = position.character
    if line_text is not None:
        character = character_offset(line_text, character, encoding)
    return {"line": position.line, "character": character}


def text_document_params(context: RequestContext) -> Dict[str, Any]:
    return {"uri": path_to_uri(context.document)}


def position_params(context: RequestContext, client: Client) -> Dict[str, Any]:
    """TextDocumentPositionParams for `client`, in its offset encoding"""
    return {
        "textDocument": text_document_params(context),
        "position": _lsp_position(context.position, context.line_text, client.offset_encoding),
    }


def range_params(
    context: RequestContext,
    client: Client,
    selection: Optional[Selection] = None,
) -> Dict[str, Any]:
    """{textDocument, range} for the given selection (default: cursor)

    column translation uses the cursor line text, so it applies only to
    positions on the cursor line.
    """
    selection = selection or context.selection or Selection(context.position, context.position)
    return {
        "textDocument": text_document_params(context),
        "range": make_range(context, client, selection),
    }


def make_range(context: RequestContext, client: Client, selection: Selection) -> Dict[str, Any]:
    def convert(position: Position) -> Dict[str, int]:
        text = context.line_text if position.line == context.position.line else None
        return _lsp_position(position, text, client.offset_encoding)

    return {"start": convert(selection.start), "end": convert(selection.end)}


def is_empty_range(range_: Dict[str, Any]) -> bool:
    start, end = range_["start"], range_["end"]
    return start["line"] == end["line"] and start["character"] == end["character"]


def selection_from_range(range_: Dict[str, Any]) -> Selection:
    """Selection from a host range spec {start: (line, col), end: (line, col)}

    lines and columns are zero-based.
    """
    try:
        start = range_["start"]
        end = range_["end"]
        return Selection(Position(*start), Position(*end))
    except (KeyError, TypeError):
        raise ValidationError("range", "range must have `start` and `end` as (line, col)")


# ═══════════════════════════════════════════════════════════════════════════
# normalization
# ═══════════════════════════════════════════════════════════════════════════


def as_list(result) -> List[Any]:
    """wrap single results, drop None"""
    if result is None:
        return []
    if isinstance(result, list):
        return result
    return [result]


def normalize_locations(result, offset_encoding: str = PositionEncoding.UTF16.value) -> List[LocationItem]:
    """normalize Location | Location[] | LocationLink[] results"""
    locations = []
    for loc in as_list(result):
        uri = loc.get("uri", loc.get("targetUri", ""))
        range_data = loc.get("range", loc.get("targetSelectionRange", loc.get("targetRange", {})))
        start = range_data.get("start", {})

        locations.append(
            LocationItem(
                uri=uri,
                path=uri_to_path(uri),
                line=start.get("line", 0) + 1,
                character=start.get("character", 0) + 1,
                range=range_data,
                offset_encoding=offset_encoding,
            )
        )
    return locations


def normalize_symbols(
    result,
    document_uri: Optional[str] = None,
    offset_encoding: str = PositionEncoding.UTF16.value,
) -> List[LocationItem]:
    """flatten DocumentSymbol trees and SymbolInformation lists"""
    symbols = []
    for sym in as_list(result):
        kind = symbol_kind_to_string(sym.get("kind", 0))
        text = f"[{kind}] {sym.get('name', '')}"
        if "selectionRange" in sym:
            uri = document_uri or ""
            range_data = sym["selectionRange"]
        elif "location" in sym:
            uri = sym["location"].get("uri", "")
            range_data = sym["location"].get("range", {})
        else:
            continue

        start = range_data.get("start", {})
        symbols.append(
            LocationItem(
                uri=uri,
                path=uri_to_path(uri),
                line=start.get("line", 0) + 1,
                character=start.get("character", 0) + 1,
                range=range_data,
                offset_encoding=offset_encoding,
                text=text,
            )
        )
        symbols.extend(normalize_symbols(sym.get("children", []), document_uri, offset_encoding))

    return symbols


def normalize_call_hierarchy(
    result,
    direction: str,
    offset_encoding: str = PositionEncoding.UTF16.value,
) -> List[LocationItem]:
    """normalize incoming ("from") / outgoing ("to") call results

    incoming call sites live in the caller's document, outgoing call sites
    in the document of the item that was queried, so outgoing items point
    at the callee definition.
    """
    calls = []
    for item in as_list(result):
        call_item = item.get(direction, {})
        uri = call_item.get("uri", "")
        name = call_item.get("name", "")
        ranges = item.get("fromRanges", []) if direction == "from" else []
        if not ranges:
            ranges = [call_item.get("selectionRange", {"start": {}})]

        for range_data in ranges:
            start = range_data.get("start", {})
            calls.append(
                LocationItem(
                    uri=uri,
                    path=uri_to_path(uri),
                    line=start.get("line", 0) + 1,
                    character=start.get("character", 0) + 1,
                    range=range_data,
                    offset_encoding=offset_encoding,
                    text=name,
                )
            )

    return calls


def normalize_type_hierarchy(result, offset_encoding: str = PositionEncoding.UTF16.value) -> List[LocationItem]:
    """normalize TypeHierarchyItem[] results"""
    items = []
    for item in as_list(result):
        uri = item.get("uri", "")
        range_data = item.get("selectionRange", item.get("range", {}))
        start = range_data.get("start", {})
        items.append(
            LocationItem(
                uri=uri,
                path=uri_to_path(uri),
                line=start.get("line", 0) + 1,
                character=start.get("character", 0) + 1,
                range=range_data,
                offset_encoding=offset_encoding,
                text=format_hierarchy_item(item),
            )
        )
    return items


def format_hierarchy_item(item: Dict[str, Any]) -> str:
    """`name detail`, or just `name` without detail"""
    detail = item.get("detail")
    if not detail:
        return item.get("name", "")
    return f"{item.get('name', '')} {detail}"


# ═══════════════════════════════════════════════════════════════════════════
# hover contents
# ═══════════════════════════════════════════════════════════════════════════


def hover_text(contents) -> str:
    """extract readable text from MarkedString | MarkedString[] | MarkupContent"""
    if contents is None:
        return ""
    if isinstance(contents, str):
        return contents
    if isinstance(contents, dict):
        return contents.get("value") or ""
    if isinstance(contents, list):
        return "\n".join(hover_text(c) for c in contents)
    return str(contents)


def is_plaintext(contents) -> bool:
    return isinstance(contents, dict) and contents.get("kind") == "plaintext"


def markdown_lines(contents) -> List[str]:
    """convert hover contents to markdown lines

    MarkedString objects with a language become fenced code blocks.
    """
    if contents is None:
        return []
    if isinstance(contents, str):
        return contents.splitlines()
    if isinstance(contents, dict):
        value = contents.get("value") or ""
        language = contents.get("language")
        if language is not None and "kind" not in contents:
            return [f"```{language}"] + value.splitlines() + ["```"]
        return value.splitlines()
    if isinstance(contents, list):
        lines: List[str] = []
        for part in contents:
            lines.extend(markdown_lines(part))
        return lines
    return str(contents).splitlines()


def split_nonempty(text: str) -> List[str]:
    """split lines, dropping leading and trailing empty lines"""
    lines = text.split("\n")
    while lines and lines[0] == "":
        lines.pop(0)
    while lines and lines[-1] == "":
        lines.pop()
    return lines
