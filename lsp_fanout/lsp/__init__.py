"""request fan-out, aggregation and disambiguation over LSP clients"""

from lsp_fanout.lsp.types import (
    Candidate,
    Client,
    ClientError,
    ClientInfo,
    FanoutResult,
    Outcome,
    OutcomeKind,
    Position,
    PositionEncoding,
    RequestContext,
    RequestEnvelope,
    ResponseEntry,
    Selection,
)
from lsp_fanout.lsp.registry import ClientRegistry, InMemoryRegistry
from lsp_fanout.lsp import lsp_utils, aggregator
from lsp_fanout.lsp.dispatcher import RequestDispatcher, Transport
from lsp_fanout.lsp.disambiguator import Disambiguator, Selector
from lsp_fanout.lsp.effects import (
    ApplyTextEdits,
    ApplyWorkspaceEdit,
    Effect,
    EffectKind,
    EditApplier,
    JumpTo,
    LocationList,
    OperationResult,
    Prompter,
    RunCommand,
    SelectRange,
    ShowText,
    Status,
)
from lsp_fanout.lsp.manager import FanoutManager

__all__ = [
    "Candidate",
    "Client",
    "ClientError",
    "ClientInfo",
    "FanoutResult",
    "Outcome",
    "OutcomeKind",
    "Position",
    "PositionEncoding",
    "RequestContext",
    "RequestEnvelope",
    "ResponseEntry",
    "Selection",
    "ClientRegistry",
    "InMemoryRegistry",
    "lsp_utils",
    "aggregator",
    "RequestDispatcher",
    "Transport",
    "Disambiguator",
    "Selector",
    "ApplyTextEdits",
    "ApplyWorkspaceEdit",
    "Effect",
    "EffectKind",
    "EditApplier",
    "JumpTo",
    "LocationList",
    "OperationResult",
    "Prompter",
    "RunCommand",
    "SelectRange",
    "ShowText",
    "Status",
    "FanoutManager",
]
