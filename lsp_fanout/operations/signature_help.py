"""signature help aggregation and overload cycling"""

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from lsp_fanout.lsp import aggregator, lsp_utils
from lsp_fanout.lsp.effects import OperationResult, ShowText, Status
from lsp_fanout.lsp.types import RequestContext, RequestEnvelope
from lsp_fanout.operations.common import capable_clients, empty_result, error_summary

if TYPE_CHECKING:
    from lsp_fanout.lsp.manager import FanoutManager


SIGNATURE_HELP = "textDocument/signatureHelp"


class SignatureCycle:
    """steps through the flattened signatures of a SignatureHelpResult"""

    def __init__(self, help_result: aggregator.SignatureHelpResult):
        self.help_result = help_result
        self.index = help_result.active

    @property
    def total(self) -> int:
        return self.help_result.total

    def current(self) -> ShowText:
        candidate = self.help_result.outcome.items[self.index]
        return render_signature(
            candidate.item,
            candidate.client.name,
            self.index + 1,
            self.total,
        )

    def next(self) -> ShowText:
        """advance to the next overload (wrapping) and render it"""
        self.index = (self.index + 1) % self.total
        return self.current()


def _documentation_lines(documentation) -> List[str]:
    if documentation is None:
        return []
    return lsp_utils.markdown_lines(documentation)


def render_signature(signature: Dict[str, Any], client_name: str, index: int, total: int) -> ShowText:
    """markdown block for one signature, with the active parameter range

    Args:
        signature: SignatureInformation
        client_name: originating client name
        index: 1-based index among all signatures
        total: number of signatures
    """
    suffix = f" ({index}/{total})" if total > 1 else ""
    title = f"Signature Help: {client_name}{suffix}"
    label = signature.get("label", "")
    lines = [f"# {title}", "```", label, "```"]

    highlight: Optional[List[int]] = None
    active = signature.get("activeParameter")
    parameters = signature.get("parameters") or []
    if active is not None and 0 <= active < len(parameters):
        param_label = parameters[active].get("label")
        if isinstance(param_label, list) and len(param_label) == 2:
            highlight = [2, param_label[0], 2, param_label[1]]
        elif isinstance(param_label, str):
            start = label.find(param_label)
            if start >= 0:
                highlight = [2, start, 2, start + len(param_label)]
        doc = parameters[active].get("documentation")
        if doc:
            lines.extend(_documentation_lines(doc))

    doc_lines = _documentation_lines(signature.get("documentation"))
    if doc_lines:
        lines.append("---")
        lines.extend(doc_lines)

    return ShowText(lines=lines, title=title, highlights=[highlight] if highlight else [])


async def signature_help(
    manager: "FanoutManager",
    context: RequestContext,
    silent: bool = False,
) -> OperationResult:
    """show the active signature; value holds a SignatureCycle for overloads

    per-client errors are reported alongside the signatures of the others.
    """
    clients, report = capable_clients(manager, SIGNATURE_HELP, context.document)
    if report is not None:
        return report

    envelope = RequestEnvelope(SIGNATURE_HELP, lambda client: lsp_utils.position_params(context, client))
    result = await manager.dispatcher.request_all(envelope, clients, context)
    if not manager.is_current(context):
        return OperationResult.stale()

    help_result = aggregator.aggregate_signatures(result)
    outcome = help_result.outcome
    if outcome.is_empty:
        return manager.finish(empty_result(outcome, "No signature help available", silent))

    cycle = SignatureCycle(help_result)
    return manager.finish(
        OperationResult(
            Status.APPLIED,
            error_summary(outcome) or None,
            effects=[cycle.current()],
            errors=outcome.errors,
            value=cycle,
        )
    )
