"""merging per-client responses into one outcome

every policy walks FanoutResult.entries, which are already in client
registration order, so ties never depend on arrival order. Candidates keep
their originating client; fields of different clients are never merged.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from lsp_fanout.lsp import lsp_utils
from lsp_fanout.lsp.types import Candidate, Client, ClientError, FanoutResult, Outcome
from lsp_fanout.utils.logging_utils import Logger


ItemFilter = Callable[[Any], bool]

CODE_ACTION_TRIGGER_INVOKED = 1
CODE_ACTION_TRIGGER_AUTOMATIC = 2


def _errors(result: FanoutResult) -> List[ClientError]:
    return [
        ClientError(entry.client.id, entry.client.name, entry.error)
        for entry in result.errors
    ]


# ═══════════════════════════════════════════════════════════════════════════
# location-like
# ═══════════════════════════════════════════════════════════════════════════


def aggregate_locations(result: FanoutResult) -> Outcome:
    """flatten definition/declaration/implementation/reference results

    items are LocationItem values, ordered by client then by per-client order.
    """
    items = []
    for entry in result.successes:
        for location in lsp_utils.normalize_locations(entry.result, entry.client.offset_encoding):
            items.append(Candidate(entry.client, location, entry.context))
    return Outcome.classify(items, _errors(result), len(result.entries))


def aggregate_symbols(result: FanoutResult, document_uri: Optional[str] = None) -> Outcome:
    """flatten documentSymbol / workspace/symbol results"""
    items = []
    for entry in result.successes:
        symbols = lsp_utils.normalize_symbols(entry.result, document_uri, entry.client.offset_encoding)
        for symbol in symbols:
            items.append(Candidate(entry.client, symbol, entry.context))
    return Outcome.classify(items, _errors(result), len(result.entries))


# ═══════════════════════════════════════════════════════════════════════════
# hover-like
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class HoverResult:
    """concatenated hover text of every contributing client"""

    outcome: Outcome
    lines: List[str] = field(default_factory=list)
    format: str = "markdown"
    empty_response: bool = False

    @property
    def ranges(self) -> List[Tuple[Client, Dict[str, Any]]]:
        """hover ranges to highlight, with the client whose encoding they use"""
        return [
            (c.client, c.item["range"])
            for c in self.outcome.items
            if c.item.get("range")
        ]


def aggregate_hover(result: FanoutResult) -> HoverResult:
    """keep every non-empty hover block, in client order

    a block is empty when its text is blank after trimming. Each block is
    headed by `# <client name>` only when more than one client contributed.
    """
    blocks = []
    empty_response = False
    for entry in result.successes:
        hover = entry.result
        if not hover or "contents" not in hover:
            continue
        if lsp_utils.hover_text(hover["contents"]).strip():
            blocks.append(Candidate(entry.client, hover, entry.context))
        else:
            empty_response = True

    outcome = Outcome.classify(blocks, _errors(result), len(result.entries))
    hover_result = HoverResult(outcome=outcome, empty_response=empty_response)
    if outcome.is_empty:
        return hover_result

    labelled = len(blocks) > 1
    lines: List[str] = []
    for block in blocks:
        contents = block.item["contents"]
        if labelled:
            lines.append(f"# {block.client.name}")
        if lsp_utils.is_plaintext(contents):
            text_lines = lsp_utils.split_nonempty(contents.get("value") or "")
            if not labelled:
                hover_result.format = "plaintext"
                lines.extend(text_lines)
            else:
                lines.append("```")
                lines.extend(text_lines)
                lines.append("```")
        else:
            lines.extend(lsp_utils.markdown_lines(contents))
        lines.append("---")

    # drop trailing separator
    lines.pop()
    hover_result.lines = lines
    return hover_result


# ═══════════════════════════════════════════════════════════════════════════
# action-like
# ═══════════════════════════════════════════════════════════════════════════


def code_action_filter(
    only: Optional[List[str]] = None,
    trigger_kind: Optional[int] = None,
    predicate: Optional[ItemFilter] = None,
) -> ItemFilter:
    """build the code action filter

    - only: accepted kinds, hierarchical ("refactor" accepts "refactor.extract")
    - disabled actions are kept only for an Invoked trigger
    - predicate: user filter applied last
    """

    def accept(action: Dict[str, Any]) -> bool:
        if only:
            kind = action.get("kind")
            if not kind:
                return False
            if not any(kind == o or kind.startswith(o + ".") for o in only):
                return False
        if action.get("disabled") and trigger_kind is not None and trigger_kind != CODE_ACTION_TRIGGER_INVOKED:
            return False
        if predicate is not None and not predicate(action):
            return False
        return True

    return accept


def aggregate_actions(result: FanoutResult, item_filter: Optional[ItemFilter] = None) -> Outcome:
    """flatten list results (code actions, hierarchy items), filtering first

    a filter rejecting every item yields an Empty outcome.
    """
    items = []
    for entry in result.successes:
        for item in lsp_utils.as_list(entry.result):
            if item_filter is None or item_filter(item):
                items.append(Candidate(entry.client, item, entry.context))
    outcome = Outcome.classify(items, _errors(result), len(result.entries))
    if outcome.is_empty and result.successes:
        Logger.instance().debug(f"{result.method}: no candidates left after filtering")
    return outcome


# ═══════════════════════════════════════════════════════════════════════════
# signatures
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class SignatureHelpResult:
    """flattened signatures with the index of the active one"""

    outcome: Outcome
    active: int = 0

    @property
    def total(self) -> int:
        return len(self.outcome.items)


def aggregate_signatures(result: FanoutResult) -> SignatureHelpResult:
    """flatten signatureHelp results

    each signature inherits the response activeParameter when it has none;
    the activeSignature of the last client that has signatures is mapped
    to its index in the flattened list.
    """
    items: List[Candidate] = []
    active = None
    for entry in result.successes:
        help_ = entry.result or {}
        signatures = help_.get("signatures") or []
        active_signature = help_.get("activeSignature") or 0
        for i, sig in enumerate(signatures):
            if sig.get("activeParameter") is None and help_.get("activeParameter") is not None:
                sig = dict(sig, activeParameter=help_["activeParameter"])
            if i == active_signature:
                active = len(items)
            items.append(Candidate(entry.client, sig, entry.context))

    outcome = Outcome.classify(items, _errors(result), len(result.entries))
    return SignatureHelpResult(outcome=outcome, active=active or 0)


# ═══════════════════════════════════════════════════════════════════════════
# workspace folders
# ═══════════════════════════════════════════════════════════════════════════


def collect_workspace_folders(clients: List[Client]) -> List[str]:
    """workspace folder names of every client, in registration order"""
    folders = []
    for client in clients:
        for folder in getattr(client, "workspace_folders", None) or ():
            folders.append(folder.get("name", lsp_utils.uri_to_path(folder.get("uri", ""))))
    return folders
