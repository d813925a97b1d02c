"""document and range formatting

every matching client formats in turn, one after the other, so that each
one sees the edits of the previous ones applied.
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Union

from lsp_fanout.lsp import lsp_utils
from lsp_fanout.lsp.effects import ApplyTextEdits, OperationResult, Status, error_message
from lsp_fanout.lsp.types import Client, RequestContext

if TYPE_CHECKING:
    from lsp_fanout.lsp.manager import FanoutManager


FORMATTING = "textDocument/formatting"
RANGE_FORMATTING = "textDocument/rangeFormatting"
RANGES_FORMATTING = "textDocument/rangesFormatting"

RangeSpec = Dict[str, Any]


def formatting_method(range: Union[None, RangeSpec, List[RangeSpec]]) -> str:
    if isinstance(range, list) and range:
        return RANGES_FORMATTING
    if range:
        return RANGE_FORMATTING
    return FORMATTING


def formatting_options(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """FormattingOptions with tabSize 4 / insertSpaces unless overridden"""
    options: Dict[str, Any] = {"tabSize": 4, "insertSpaces": True}
    options.update(overrides or {})
    return options


def formatting_params(
    context: RequestContext,
    client: Client,
    range: Union[None, RangeSpec, List[RangeSpec]],
    options: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    params: Dict[str, Any] = {
        "textDocument": lsp_utils.text_document_params(context),
        "options": formatting_options(options),
    }
    if isinstance(range, list) and range:
        params["ranges"] = [
            lsp_utils.make_range(context, client, lsp_utils.selection_from_range(r)) for r in range
        ]
    elif range:
        params["range"] = lsp_utils.make_range(context, client, lsp_utils.selection_from_range(range))
    return params


async def format_document(
    manager: "FanoutManager",
    context: RequestContext,
    range: Union[None, RangeSpec, List[RangeSpec]] = None,
    async_: bool = True,
    timeout_ms: Optional[int] = None,
    formatting_options: Optional[Dict[str, Any]] = None,
    client_id: Optional[int] = None,
    name: Optional[str] = None,
    filter: Optional[Callable[[Client], bool]] = None,
) -> OperationResult:
    """format the document with every matching client

    Args:
        manager: owning manager
        context: document context
        range: one {start, end} range, or a list of them
               (rangeFormatting / rangesFormatting)
        async_: False bounds each client by `timeout_ms`
        timeout_ms: per-client limit when async_ is False
                    (defaults to [dispatch] sync_timeout_ms)
        formatting_options: extra FormattingOptions
        client_id: only use this client
        name: only use clients with this name
        filter: predicate on clients

    Returns:
        APPLIED with one ApplyTextEdits per client that answered with edits
    """
    method = formatting_method(range)
    clients = manager.dispatcher.candidates(
        method, context.document, client_id=client_id, name=name, predicate=filter
    )
    if not clients:
        return manager.finish(
            OperationResult(Status.NO_CAPABILITY, "[LSP] Format request failed, no matching language servers.")
        )

    effects = []
    failures = []
    for client in clients:
        params = formatting_params(context, client, range, formatting_options)
        if async_:
            entry = await manager.dispatcher.request(client, method, params, context)
        else:
            entry = await manager.dispatcher.request_sync(client, method, params, context, timeout_ms)
        if entry is None:
            continue
        if not manager.is_current(context):
            return OperationResult.stale()
        if entry.error is not None:
            failures.append(f"[LSP][{client.name}] {error_message(entry.error)}")
            continue
        if entry.result:
            effect = ApplyTextEdits(context.document, entry.result, client)
            # applied now so the next client formats the updated text
            if manager.applier is not None:
                manager.applier.apply(effect)
            effects.append(effect)

    if effects:
        status = Status.APPLIED
    elif failures:
        status = Status.FAILED
    else:
        status = Status.EMPTY
    # edits were applied per client above
    return manager.finish(
        OperationResult(status, "; ".join(failures) or None, effects=effects, value=effects),
        apply=False,
    )
