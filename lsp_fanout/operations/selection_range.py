"""incremental selection from textDocument/selectionRange

the first call asks the first capable client for the range chain at the
cursor and returns a SelectionRangeSession; later calls with a valid
session only step through the chain. Hosts call `invalidate()` when the
selection is abandoned (e.g. leaving visual mode).
"""

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from lsp_fanout.lsp import lsp_utils
from lsp_fanout.lsp.effects import OperationResult, SelectRange, Status, error_message
from lsp_fanout.lsp.types import Client, RequestContext
from lsp_fanout.operations.common import capable_clients

if TYPE_CHECKING:
    from lsp_fanout.lsp.manager import FanoutManager


SELECTION_RANGE = "textDocument/selectionRange"


def _clamp(index: int, size: int) -> int:
    return min(size, max(1, index))


class SelectionRangeSession:
    """ranges from innermost to outermost, with a 1-based current index"""

    def __init__(self, ranges: List[Dict[str, Any]], index: int, client: Client, document: Optional[str]):
        self.ranges = ranges
        self.index = _clamp(index, len(ranges))
        self.client = client
        self.document = document
        self._valid = True

    @property
    def valid(self) -> bool:
        return self._valid and bool(self.ranges)

    @property
    def current(self) -> Dict[str, Any]:
        return self.ranges[self.index - 1]

    def step(self, direction: int) -> SelectRange:
        """move `direction` ranges outward (negative: inward), clamped"""
        self.index = _clamp(self.index + direction, len(self.ranges))
        return self.effect()

    def effect(self) -> SelectRange:
        return SelectRange(self.current, self.client.offset_encoding, self.document)

    def invalidate(self):
        self._valid = False


def range_chain(response: Any) -> List[Dict[str, Any]]:
    """flatten the parent chain of the first SelectionRange, skipping empty ranges"""
    ranges = []
    node = lsp_utils.as_list(response)[0] if response else None
    while node:
        range_ = node.get("range")
        if range_ and not lsp_utils.is_empty_range(range_):
            ranges.append(range_)
        node = node.get("parent")
    return ranges


async def selection_range(
    manager: "FanoutManager",
    context: RequestContext,
    direction: int,
    session: Optional[SelectionRangeSession] = None,
) -> OperationResult:
    """expand (direction > 0) or shrink (direction < 0) the selection

    Returns:
        APPLIED with a SelectRange effect; value is the session to pass on
        the next call
    """
    if session is not None and session.valid:
        effect = session.step(direction)
        return manager.finish(OperationResult(Status.APPLIED, effects=[effect], value=session))

    clients, report = capable_clients(manager, SELECTION_RANGE, context.document)
    if report is not None:
        return report
    client = clients[0]

    position = lsp_utils.position_params(context, client)
    params = {"textDocument": position["textDocument"], "positions": [position["position"]]}
    entry = await manager.dispatcher.request(client, SELECTION_RANGE, params, context)
    if entry is None:
        return manager.finish(
            OperationResult(Status.FAILED, f"Client with id={client.id} disappeared during selection range")
        )
    if not manager.is_current(context):
        return OperationResult.stale()
    if entry.error is not None:
        return manager.finish(OperationResult(Status.FAILED, error_message(entry.error)))

    ranges = range_chain(entry.result)
    if not ranges:
        return manager.finish(OperationResult(Status.EMPTY))

    session = SelectionRangeSession(ranges, direction, client, context.document)
    return manager.finish(OperationResult(Status.APPLIED, effects=[session.effect()], value=session))
