"""call and type hierarchies

the prepare request fans out to every client; the chosen item is then sent
to the client that produced it.
"""

from typing import TYPE_CHECKING

from lsp_fanout.errors import ValidationError
from lsp_fanout.lsp import aggregator, lsp_utils
from lsp_fanout.lsp.effects import LocationList, OperationResult, Status, error_message
from lsp_fanout.lsp.types import Candidate, RequestContext, RequestEnvelope
from lsp_fanout.operations.common import capable_clients

if TYPE_CHECKING:
    from lsp_fanout.lsp.manager import FanoutManager


PREPARE_CALL_HIERARCHY = "textDocument/prepareCallHierarchy"
PREPARE_TYPE_HIERARCHY = "textDocument/prepareTypeHierarchy"
INCOMING_CALLS = "callHierarchy/incomingCalls"
OUTGOING_CALLS = "callHierarchy/outgoingCalls"
SUBTYPES = "typeHierarchy/subtypes"
SUPERTYPES = "typeHierarchy/supertypes"

HIERARCHY_METHODS = {
    INCOMING_CALLS: "call",
    OUTGOING_CALLS: "call",
    SUBTYPES: "type",
    SUPERTYPES: "type",
}

TITLES = {
    INCOMING_CALLS: "Incoming calls",
    OUTGOING_CALLS: "Outgoing calls",
    SUBTYPES: "Subtypes",
    SUPERTYPES: "Supertypes",
}


def _render(candidate: Candidate) -> str:
    return lsp_utils.format_hierarchy_item(candidate.item)


async def follow_up(
    manager: "FanoutManager",
    method: str,
    candidate: Candidate,
) -> OperationResult:
    """send the hierarchy request for one item to its own client"""
    client = manager.registry.client_by_id(candidate.client.id)
    if client is None:
        return manager.finish(
            OperationResult(
                Status.FAILED,
                f"Client with id={candidate.client.id} disappeared during hierarchy request",
            )
        )

    entry = await manager.dispatcher.request(client, method, {"item": candidate.item}, candidate.context)
    if entry is None:
        return manager.finish(
            OperationResult(
                Status.FAILED,
                f"Client with id={client.id} disappeared during hierarchy request",
            )
        )
    if candidate.context is not None and not manager.is_current(candidate.context):
        return OperationResult.stale()
    if entry.error is not None:
        return manager.finish(OperationResult(Status.FAILED, error_message(entry.error)))

    if method == INCOMING_CALLS:
        items = lsp_utils.normalize_call_hierarchy(entry.result, "from", client.offset_encoding)
    elif method == OUTGOING_CALLS:
        items = lsp_utils.normalize_call_hierarchy(entry.result, "to", client.offset_encoding)
    else:
        items = lsp_utils.normalize_type_hierarchy(entry.result, client.offset_encoding)

    if not items:
        return manager.finish(OperationResult(Status.EMPTY, f"No {TITLES[method].lower()} found"))

    effect = LocationList(
        title=f"{TITLES[method]}: {_render(candidate)}",
        items=items,
        method=method,
        document=candidate.context.document if candidate.context else None,
    )
    return manager.finish(OperationResult(Status.LISTED, effects=[effect], value=effect))


async def hierarchy(manager: "FanoutManager", method: str, context: RequestContext) -> OperationResult:
    """prepare hierarchy items on every client, pick one, query its client

    Args:
        manager: owning manager
        method: one of INCOMING_CALLS, OUTGOING_CALLS, SUBTYPES, SUPERTYPES
        context: cursor context
    """
    kind = HIERARCHY_METHODS.get(method)
    if kind is None:
        raise ValidationError("method", f"not a hierarchy method: {method}")
    prepare_method = PREPARE_TYPE_HIERARCHY if kind == "type" else PREPARE_CALL_HIERARCHY

    clients, report = capable_clients(manager, prepare_method, context.document)
    if report is not None:
        return report

    envelope = RequestEnvelope(prepare_method, lambda client: lsp_utils.position_params(context, client))
    result = await manager.dispatcher.request_all(envelope, clients, context)
    if not manager.is_current(context):
        return OperationResult.stale()

    outcome = aggregator.aggregate_actions(result)
    if outcome.is_empty:
        status = Status.FAILED if outcome.is_error else Status.EMPTY
        return manager.finish(OperationResult(status, "No item resolved", errors=outcome.errors))

    choice = await manager.disambiguator.choose(
        outcome,
        _render,
        prompt=f"Select a {kind} hierarchy item:",
        kind=f"{kind}hierarchy",
    )
    if choice is None:
        return OperationResult.cancelled()
    return await follow_up(manager, method, choice)


async def typehierarchy(manager: "FanoutManager", context: RequestContext, kind: str) -> OperationResult:
    """subtypes or supertypes of the symbol under the cursor"""
    if kind not in ("subtypes", "supertypes"):
        raise ValidationError("kind", "must be 'subtypes' or 'supertypes'")
    method = SUBTYPES if kind == "subtypes" else SUPERTYPES
    return await hierarchy(manager, method, context)
