"""kind-tagged results handed to the host, and the host collaborators

the core never touches documents; it builds one of these effects and the
host's EditApplier performs it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Dict, List, Optional, Protocol

from lsp_fanout.errors import ResponseError
from lsp_fanout.lsp.lsp_utils import LocationItem
from lsp_fanout.lsp.types import Client, ClientError, RequestContext


class EffectKind(str, Enum):
    LOCATION = "location"
    TEXT_EDIT = "text-edit"
    TEXT_BLOCK = "text-block"
    COMMAND = "command"
    SELECTION = "selection"


class Effect:
    """base class of every effect"""

    kind: EffectKind


@dataclass
class JumpTo(Effect):
    """navigate to one location (push the jump list first)"""

    location: LocationItem
    client: Client
    origin: Optional[RequestContext] = None
    reuse_win: bool = False
    kind: EffectKind = field(default=EffectKind.LOCATION, init=False)


@dataclass
class LocationList(Effect):
    """show several locations (quickfix, or the location list)"""

    title: str
    items: List[LocationItem]
    method: str
    document: Optional[str] = None
    loclist: bool = False
    kind: EffectKind = field(default=EffectKind.LOCATION, init=False)


@dataclass
class ApplyWorkspaceEdit(Effect):
    """apply a WorkspaceEdit using `client`'s offset encoding"""

    edit: Dict[str, Any]
    client: Client
    kind: EffectKind = field(default=EffectKind.TEXT_EDIT, init=False)


@dataclass
class ApplyTextEdits(Effect):
    """apply TextEdit[] to one document"""

    document: str
    edits: List[Dict[str, Any]]
    client: Client
    kind: EffectKind = field(default=EffectKind.TEXT_EDIT, init=False)


@dataclass
class ShowText(Effect):
    """display a text block (hover, signature help)

    highlights holds (client, range) pairs to mark in the origin document.
    """

    lines: List[str]
    format: str = "markdown"
    title: Optional[str] = None
    highlights: List[Any] = field(default_factory=list)
    kind: EffectKind = field(default=EffectKind.TEXT_BLOCK, init=False)


@dataclass
class RunCommand(Effect):
    """execute an LSP Command through `client`"""

    command: Dict[str, Any]
    client: Client
    origin: Optional[RequestContext] = None
    kind: EffectKind = field(default=EffectKind.COMMAND, init=False)


@dataclass
class SelectRange(Effect):
    """select an LSP range in the origin document"""

    range: Dict[str, Any]
    offset_encoding: str
    document: Optional[str] = None
    kind: EffectKind = field(default=EffectKind.SELECTION, init=False)


# ═══════════════════════════════════════════════════════════════════════════
# operation result
# ═══════════════════════════════════════════════════════════════════════════


class Status(str, Enum):
    APPLIED = "applied"
    LISTED = "listed"
    EMPTY = "empty"
    FAILED = "failed"
    NO_CAPABILITY = "no_capability"
    CANCELLED = "cancelled"
    STALE = "stale"


@dataclass
class OperationResult:
    """terminal outcome of one logical operation

    message is what the host should report, None means report nothing
    (silent empty result, user cancellation, stale context).
    """

    status: Status
    message: Optional[str] = None
    effects: List[Effect] = field(default_factory=list)
    errors: List[ClientError] = field(default_factory=list)
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.status in (Status.APPLIED, Status.LISTED)

    @classmethod
    def stale(cls) -> "OperationResult":
        return cls(Status.STALE)

    @classmethod
    def cancelled(cls) -> "OperationResult":
        return cls(Status.CANCELLED)


# ═══════════════════════════════════════════════════════════════════════════
# host collaborators
# ═══════════════════════════════════════════════════════════════════════════


class EditApplier(Protocol):
    """performs effects on the host side"""

    def apply(self, effect: Effect) -> None:
        ...


class Prompter(Protocol):
    """asks the user for free text; resolves to None when dismissed"""

    def prompt(self, prompt: str, default: Optional[str] = None) -> Awaitable[Optional[str]]:
        ...


def error_message(error: ResponseError) -> str:
    return f"{error.lsp_code}: {error.message}"
