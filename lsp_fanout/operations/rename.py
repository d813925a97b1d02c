"""rename through the first client willing to do it

clients are tried one at a time in registration order. A client whose
prepareRename fails or returns null is skipped; the first one that accepts
owns the rest of the operation, prompt included. Only that client ever
receives textDocument/rename.
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from lsp_fanout.lsp import lsp_utils
from lsp_fanout.lsp.effects import ApplyWorkspaceEdit, OperationResult, Status, error_message
from lsp_fanout.lsp.types import Client, RequestContext
from lsp_fanout.operations.common import capable_clients
from lsp_fanout.utils.logging_utils import Logger

if TYPE_CHECKING:
    from lsp_fanout.lsp.manager import FanoutManager


RENAME = "textDocument/rename"
PREPARE_RENAME = "textDocument/prepareRename"

TextAtRange = Callable[[Dict[str, Any], str], Optional[str]]


def default_name(
    prepare_result: Any,
    client: Client,
    context: RequestContext,
    text_at_range: Optional[TextAtRange] = None,
) -> Optional[str]:
    """prompt default from a prepareRename result

    result shapes: {placeholder, range} | Range | {range} | {defaultBehavior}
    """
    if isinstance(prepare_result, dict):
        if prepare_result.get("placeholder"):
            return prepare_result["placeholder"]
        range_ = None
        if "start" in prepare_result:
            range_ = prepare_result
        elif "range" in prepare_result:
            range_ = prepare_result["range"]
        if range_ is not None and text_at_range is not None:
            text = text_at_range(range_, client.offset_encoding)
            if text:
                return text
    return context.word


async def _commit(
    manager: "FanoutManager",
    client: Client,
    context: RequestContext,
    new_name: Optional[str],
    default: Optional[str],
) -> OperationResult:
    if new_name is None:
        new_name = await manager.require_prompter().prompt("New Name: ", default)
        if not new_name:
            return OperationResult.cancelled()

    params = lsp_utils.position_params(context, client)
    params["newName"] = new_name
    entry = await manager.dispatcher.request(client, RENAME, params, context)
    if entry is None:
        return manager.finish(
            OperationResult(Status.FAILED, f"Client with id={client.id} disappeared during rename")
        )
    if not manager.is_current(context):
        return OperationResult.stale()
    if entry.error is not None:
        return manager.finish(
            OperationResult(Status.FAILED, f"[{client.name}] rename failed: {error_message(entry.error)}")
        )
    if not entry.result:
        return manager.finish(OperationResult(Status.EMPTY, "Nothing to rename", value=client))

    effect = ApplyWorkspaceEdit(entry.result, client)
    return manager.finish(OperationResult(Status.APPLIED, effects=[effect], value=client))


async def rename(
    manager: "FanoutManager",
    context: RequestContext,
    new_name: Optional[str] = None,
    name: Optional[str] = None,
    filter: Optional[Callable[[Client], bool]] = None,
    text_at_range: Optional[TextAtRange] = None,
) -> OperationResult:
    """rename the symbol under the cursor

    Args:
        manager: owning manager
        context: cursor context; `word` is the last-resort prompt default
        new_name: new name, prompted for when None
        name: only use clients with this name
        filter: predicate on clients
        text_at_range: reads document text for a prepareRename range, used
                       as the prompt default
    """
    clients, report = capable_clients(manager, RENAME, context.document, name=name, predicate=filter)
    if report is not None:
        return report

    last_error = None
    for client in clients:
        if not client.supports(PREPARE_RENAME):
            return await _commit(manager, client, context, new_name, context.word)

        params = lsp_utils.position_params(context, client)
        entry = await manager.dispatcher.request(client, PREPARE_RENAME, params, context)
        if entry is None:
            continue
        if entry.error is not None or entry.result is None:
            last_error = entry.error
            Logger.instance().debug(f"[{client.name}] declined rename, trying next client")
            continue

        if not manager.is_current(context):
            return OperationResult.stale()
        default = default_name(entry.result, client, context, text_at_range)
        return await _commit(manager, client, context, new_name, default)

    if last_error is not None:
        return manager.finish(
            OperationResult(Status.FAILED, f"Error on prepareRename: {last_error.message}")
        )
    return manager.finish(OperationResult(Status.EMPTY, "Nothing to rename"))
