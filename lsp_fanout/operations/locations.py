"""location and symbol operations

definition, declaration, typeDefinition and implementation jump straight to
a single location and list several. references and symbols always list.
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from lsp_fanout.lsp import aggregator, lsp_utils
from lsp_fanout.lsp.effects import JumpTo, LocationList, OperationResult, Status
from lsp_fanout.lsp.types import Outcome, OutcomeKind, RequestContext, RequestEnvelope
from lsp_fanout.operations.common import capable_clients, empty_result

if TYPE_CHECKING:
    from lsp_fanout.lsp.manager import FanoutManager


DECLARATION = "textDocument/declaration"
DEFINITION = "textDocument/definition"
TYPE_DEFINITION = "textDocument/typeDefinition"
IMPLEMENTATION = "textDocument/implementation"
REFERENCES = "textDocument/references"
DOCUMENT_SYMBOL = "textDocument/documentSymbol"
WORKSPACE_SYMBOL = "workspace/symbol"

OnList = Callable[[LocationList], None]


def _list_result(
    outcome: Outcome,
    title: str,
    method: str,
    context: RequestContext,
    loclist: bool = False,
    on_list: Optional[OnList] = None,
) -> OperationResult:
    effect = LocationList(
        title=title,
        items=[c.item for c in outcome.items],
        method=method,
        document=context.document,
        loclist=loclist,
    )
    if on_list is not None:
        on_list(effect)
        return OperationResult(Status.LISTED, errors=outcome.errors, value=effect)
    return OperationResult(Status.LISTED, effects=[effect], errors=outcome.errors, value=effect)


async def get_locations(
    manager: "FanoutManager",
    method: str,
    context: RequestContext,
    on_list: Optional[OnList] = None,
    loclist: bool = False,
    reuse_win: bool = False,
) -> OperationResult:
    """fan a location request out and jump or list

    Args:
        manager: owning manager
        method: one of the location methods
        context: cursor context
        on_list: replaces the default list effect for any non-empty result
        loclist: list into the location list instead of quickfix
        reuse_win: jump into an existing window showing the target
    """
    clients, report = capable_clients(manager, method, context.document)
    if report is not None:
        return report

    envelope = RequestEnvelope(method, lambda client: lsp_utils.position_params(context, client))
    result = await manager.dispatcher.request_all(envelope, clients, context)
    if not manager.is_current(context):
        return OperationResult.stale()

    outcome = aggregator.aggregate_locations(result)
    if outcome.is_empty:
        return manager.finish(empty_result(outcome, "No locations found"))

    if on_list is not None or outcome.kind is OutcomeKind.MULTIPLE:
        return manager.finish(
            _list_result(outcome, "LSP locations", method, context, loclist, on_list)
        )

    chosen = outcome.single
    effect = JumpTo(chosen.item, chosen.client, origin=context, reuse_win=reuse_win)
    return manager.finish(
        OperationResult(Status.APPLIED, effects=[effect], errors=outcome.errors, value=chosen)
    )


async def references(
    manager: "FanoutManager",
    context: RequestContext,
    reference_context: Optional[Dict[str, Any]] = None,
    on_list: Optional[OnList] = None,
    loclist: bool = False,
) -> OperationResult:
    """list references; includeDeclaration defaults to True"""
    clients, report = capable_clients(manager, REFERENCES, context.document)
    if report is not None:
        return report

    def params(client):
        ret = lsp_utils.position_params(context, client)
        ret["context"] = reference_context or {"includeDeclaration": True}
        return ret

    result = await manager.dispatcher.request_all(RequestEnvelope(REFERENCES, params), clients, context)
    if not manager.is_current(context):
        return OperationResult.stale()

    outcome = aggregator.aggregate_locations(result)
    if outcome.is_empty:
        return manager.finish(empty_result(outcome, "No references found"))
    return manager.finish(_list_result(outcome, "References", REFERENCES, context, loclist, on_list))


async def document_symbol(
    manager: "FanoutManager",
    context: RequestContext,
    on_list: Optional[OnList] = None,
    loclist: bool = True,
) -> OperationResult:
    """list the symbols of the context document (location list by default)"""
    clients, report = capable_clients(manager, DOCUMENT_SYMBOL, context.document)
    if report is not None:
        return report

    envelope = RequestEnvelope(
        DOCUMENT_SYMBOL,
        lambda client: {"textDocument": lsp_utils.text_document_params(context)},
    )
    result = await manager.dispatcher.request_all(envelope, clients, context)
    if not manager.is_current(context):
        return OperationResult.stale()

    document_uri = lsp_utils.path_to_uri(context.document)
    outcome = aggregator.aggregate_symbols(result, document_uri)
    if outcome.is_empty:
        return manager.finish(empty_result(outcome, "No symbols found"))
    title = f"Symbols in {lsp_utils.uri_to_path(document_uri)}"
    return manager.finish(_list_result(outcome, title, DOCUMENT_SYMBOL, context, loclist, on_list))


async def workspace_symbol(
    manager: "FanoutManager",
    context: RequestContext,
    query: Optional[str] = None,
    on_list: Optional[OnList] = None,
    loclist: bool = False,
) -> OperationResult:
    """list workspace symbols; an empty query means no filtering

    when `query` is None the prompter is asked; dismissing it cancels.
    """
    clients, report = capable_clients(manager, WORKSPACE_SYMBOL, context.document)
    if report is not None:
        return report

    if query is None:
        query = await manager.require_prompter().prompt("Query: ")
        if query is None:
            return OperationResult.cancelled()

    envelope = RequestEnvelope(WORKSPACE_SYMBOL, lambda client: {"query": query})
    result = await manager.dispatcher.request_all(envelope, clients, context)
    if not manager.is_current(context):
        return OperationResult.stale()

    outcome = aggregator.aggregate_symbols(result)
    if outcome.is_empty:
        return manager.finish(empty_result(outcome, "No symbols found"))
    title = f"Symbols matching '{query}'"
    return manager.finish(_list_result(outcome, title, WORKSPACE_SYMBOL, context, loclist, on_list))
