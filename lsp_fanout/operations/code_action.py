"""code action aggregation, selection and resolution

actions of every client are shown in one picker; each keeps a link to its
client so that codeAction/resolve and command execution go back to it.
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from lsp_fanout.lsp import aggregator, lsp_utils
from lsp_fanout.lsp.effects import (
    ApplyWorkspaceEdit,
    Effect,
    OperationResult,
    RunCommand,
    Status,
    error_message,
)
from lsp_fanout.lsp.types import Candidate, RequestContext, RequestEnvelope
from lsp_fanout.operations.common import capable_clients, empty_result

if TYPE_CHECKING:
    from lsp_fanout.lsp.manager import FanoutManager


CODE_ACTION = "textDocument/codeAction"
CODE_ACTION_RESOLVE = "codeAction/resolve"


def is_command(action: Dict[str, Any]) -> bool:
    """a bare Command (title + command string) rather than a CodeAction"""
    return isinstance(action.get("title"), str) and isinstance(action.get("command"), str)


def action_effects(action: Dict[str, Any], candidate: Candidate) -> List[Effect]:
    """edit first, then command"""
    effects: List[Effect] = []
    if action.get("edit"):
        effects.append(ApplyWorkspaceEdit(action["edit"], candidate.client))
    command = action.get("command")
    if command:
        command = command if isinstance(command, dict) else action
        effects.append(RunCommand(command, candidate.client, origin=candidate.context))
    return effects


def make_label(attached_clients: int) -> Callable[[Candidate], str]:
    """picker label: escaped title, disabled marker, client name when several"""

    def label(candidate: Candidate) -> str:
        action = candidate.item
        title = action.get("title", "").replace("\r\n", "\\r\\n").replace("\n", "\\n")
        if action.get("disabled"):
            title += " (disabled)"
        if attached_clients == 1:
            return title
        return f"{title} [{candidate.client.name}]"

    return label


async def apply_choice(manager: "FanoutManager", candidate: Candidate) -> OperationResult:
    """apply one chosen action, resolving it first when needed"""
    action = candidate.item

    if is_command(action):
        return manager.finish(
            OperationResult(Status.APPLIED, effects=action_effects(action, candidate), value=candidate)
        )

    if action.get("disabled"):
        reason = action["disabled"].get("reason", "code action is disabled")
        return manager.finish(OperationResult(Status.FAILED, reason))

    client = manager.registry.client_by_id(candidate.client.id)
    if client is None:
        return manager.finish(
            OperationResult(Status.FAILED, f"Client with id={candidate.client.id} disappeared")
        )

    if not (action.get("edit") and action.get("command")) and client.supports(CODE_ACTION_RESOLVE):
        entry = await manager.dispatcher.request(client, CODE_ACTION_RESOLVE, action, candidate.context)
        if entry is None:
            return manager.finish(
                OperationResult(Status.FAILED, f"Client with id={client.id} disappeared")
            )
        if entry.error is not None:
            if action.get("edit") or action.get("command"):
                applied = action
            else:
                return manager.finish(OperationResult(Status.FAILED, error_message(entry.error)))
        else:
            applied = entry.result or action
        resolved = Candidate(candidate.client, applied, candidate.context)
        return manager.finish(
            OperationResult(Status.APPLIED, effects=action_effects(applied, resolved), value=resolved)
        )

    return manager.finish(
        OperationResult(Status.APPLIED, effects=action_effects(action, candidate), value=candidate)
    )


async def code_action(
    manager: "FanoutManager",
    context: RequestContext,
    action_context: Optional[Dict[str, Any]] = None,
    filter: Optional[Callable[[Dict[str, Any]], bool]] = None,
    apply: bool = False,
    range: Optional[Dict[str, Any]] = None,
    diagnostics: Optional[Callable[[Any], List[Dict[str, Any]]]] = None,
) -> OperationResult:
    """request code actions from every client and apply the chosen one

    Args:
        manager: owning manager
        context: cursor context (its selection, if any, is the request range)
        action_context: CodeActionContext (only, diagnostics, triggerKind)
        filter: predicate on each action
        apply: apply directly when exactly one action survives filtering
        range: explicit {start: (line, col), end: (line, col)} range
        diagnostics: per-client diagnostics provider, used when
                     action_context carries none
    """
    selection = lsp_utils.selection_from_range(range) if range is not None else context.selection

    clients, report = capable_clients(manager, CODE_ACTION, context.document)
    if report is not None:
        return report

    request_context = dict(action_context or {})
    request_context.setdefault("triggerKind", aggregator.CODE_ACTION_TRIGGER_INVOKED)

    def params(client):
        ret = lsp_utils.range_params(context, client, selection)
        if "diagnostics" in request_context:
            ret["context"] = request_context
        else:
            found = diagnostics(client) if diagnostics is not None else []
            ret["context"] = dict(request_context, diagnostics=found)
        return ret

    result = await manager.dispatcher.request_all(RequestEnvelope(CODE_ACTION, params), clients, context)
    if not manager.is_current(context):
        return OperationResult.stale()

    item_filter = aggregator.code_action_filter(
        only=request_context.get("only"),
        trigger_kind=request_context.get("triggerKind"),
        predicate=filter,
    )
    outcome = aggregator.aggregate_actions(result, item_filter)
    if outcome.is_empty:
        return manager.finish(empty_result(outcome, "No code actions available"))

    if apply and outcome.single is not None:
        return await apply_choice(manager, outcome.single)

    attached = len(manager.dispatcher.candidates(None, context.document))
    choice = await manager.disambiguator.choose(
        outcome,
        make_label(attached),
        prompt="Code actions:",
        kind="codeaction",
        auto_single=False,
    )
    if choice is None:
        return OperationResult.cancelled()
    return await apply_choice(manager, choice)
