"""hover aggregation across clients"""

from typing import TYPE_CHECKING

from lsp_fanout.lsp import aggregator, lsp_utils
from lsp_fanout.lsp.effects import OperationResult, ShowText, Status
from lsp_fanout.lsp.types import RequestContext, RequestEnvelope
from lsp_fanout.operations.common import capable_clients, error_summary

if TYPE_CHECKING:
    from lsp_fanout.lsp.manager import FanoutManager


HOVER = "textDocument/hover"


async def hover(manager: "FanoutManager", context: RequestContext, silent: bool = False) -> OperationResult:
    """show the hover text of every client that had something to say

    Args:
        manager: owning manager
        context: cursor context
        silent: report nothing when no client had content
    """
    clients, report = capable_clients(manager, HOVER, context.document)
    if report is not None:
        return report

    envelope = RequestEnvelope(HOVER, lambda client: lsp_utils.position_params(context, client))
    result = await manager.dispatcher.request_all(envelope, clients, context)
    if not manager.is_current(context):
        return OperationResult.stale()

    hover_result = aggregator.aggregate_hover(result)
    outcome = hover_result.outcome
    if outcome.is_empty:
        if outcome.is_error:
            return manager.finish(OperationResult(Status.FAILED, error_summary(outcome), errors=outcome.errors))
        if silent:
            message = None
        elif hover_result.empty_response:
            message = "Empty hover response"
        else:
            message = "No information available"
        return manager.finish(OperationResult(Status.EMPTY, message, errors=outcome.errors))

    effect = ShowText(
        lines=hover_result.lines,
        format=hover_result.format,
        highlights=hover_result.ranges,
    )
    return manager.finish(
        OperationResult(Status.APPLIED, effects=[effect], errors=outcome.errors, value=hover_result)
    )
