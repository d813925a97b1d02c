"""helpers shared by the operation modules"""

from typing import TYPE_CHECKING, List, Optional, Tuple

from lsp_fanout.errors import NoCapabilityError
from lsp_fanout.lsp.effects import OperationResult, Status
from lsp_fanout.lsp.types import Client, Outcome

if TYPE_CHECKING:
    from lsp_fanout.lsp.manager import FanoutManager


def capable_clients(
    manager: "FanoutManager",
    method: str,
    document: Optional[str],
    **filters,
) -> Tuple[List[Client], Optional[OperationResult]]:
    """clients for `method`, or a finished no-capability result

    the no-capability report is made here, before anything is dispatched.
    """
    try:
        return manager.dispatcher.require_candidates(method, document, **filters), None
    except NoCapabilityError as e:
        return [], manager.finish(OperationResult(Status.NO_CAPABILITY, e.message))


def error_summary(outcome: Outcome) -> str:
    return "; ".join(str(e) for e in outcome.errors)


def empty_result(outcome: Outcome, empty_message: str, silent: bool = False) -> OperationResult:
    """result for an empty outcome

    every responder failing gives FAILED with the error summary; anything
    else is a clean EMPTY whose message `silent` suppresses.
    """
    if outcome.is_error:
        return OperationResult(Status.FAILED, error_summary(outcome), errors=outcome.errors)
    return OperationResult(
        Status.EMPTY,
        None if silent else empty_message,
        errors=outcome.errors,
    )
