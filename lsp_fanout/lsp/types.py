"""core data model for multi-client dispatch

Client           : protocol peer handle (id, name, encoding, capabilities)
RequestContext   : document/position snapshot taken at operation start
RequestEnvelope  : method + per-client params factory
ResponseEntry    : one client's answer (result or error)
FanoutResult     : entries of one fan-out, in registration order
Candidate        : one item returned by one client
Outcome          : Empty / Single / Multiple classification of candidates
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    runtime_checkable,
)

from lsp_fanout.errors import ResponseError


class PositionEncoding(str, Enum):
    """offset encodings a client may negotiate"""

    UTF8 = "utf-8"
    UTF16 = "utf-16"
    UTF32 = "utf-32"


# ═══════════════════════════════════════════════════════════════════════════
# Client
# ═══════════════════════════════════════════════════════════════════════════


@runtime_checkable
class Client(Protocol):
    """protocol peer as seen by the dispatcher"""

    id: int
    name: str
    offset_encoding: str

    def supports(self, method: str) -> bool:
        ...


@dataclass(frozen=True)
class ClientInfo:
    """plain Client implementation for hosts without their own client type"""

    id: int
    name: str
    methods: FrozenSet[str] = frozenset()
    offset_encoding: str = PositionEncoding.UTF16.value
    workspace_folders: Tuple[Dict[str, str], ...] = ()
    server_capabilities: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def supports(self, method: str) -> bool:
        return method in self.methods


# ═══════════════════════════════════════════════════════════════════════════
# Request side
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Position:
    """zero-based line and code-point column"""

    line: int
    character: int


@dataclass(frozen=True)
class Selection:
    """zero-based, end-exclusive selection in code points"""

    start: Position
    end: Position


@dataclass(frozen=True)
class RequestContext:
    """editor state captured once when an operation starts

    Attributes:
        document: document id (usually a file:// uri)
        position: cursor position
        selection: active selection, if any
        line_text: text of the cursor line, used for encoding translation
        word: word under the cursor, used as a default rename text
    """

    document: str
    position: Position = Position(0, 0)
    selection: Optional[Selection] = None
    line_text: Optional[str] = None
    word: Optional[str] = None


ParamsFactory = Callable[[Client], Any]


@dataclass(frozen=True)
class RequestEnvelope:
    """one logical request: method and per-client parameters"""

    method: str
    params_factory: ParamsFactory

    def params_for(self, client: Client) -> Any:
        return self.params_factory(client)


# ═══════════════════════════════════════════════════════════════════════════
# Response side
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ResponseEntry:
    """answer of one client to one request"""

    client: Client
    result: Any = None
    error: Optional[ResponseError] = None
    context: Optional[RequestContext] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class FanoutResult:
    """all entries of one fan-out

    entries are ordered by client registration order; arrival keeps the
    order in which responses actually came back (client ids).
    """

    method: str
    context: Optional[RequestContext]
    entries: List[ResponseEntry] = field(default_factory=list)
    arrival: List[int] = field(default_factory=list)
    requested: int = 0

    @property
    def errors(self) -> List[ResponseEntry]:
        return [e for e in self.entries if e.error is not None]

    @property
    def successes(self) -> List[ResponseEntry]:
        return [e for e in self.entries if e.error is None]

    @property
    def all_failed(self) -> bool:
        """every client that answered returned an error"""
        return bool(self.entries) and not self.successes

    def get(self, client_id: int) -> Optional[ResponseEntry]:
        for entry in self.entries:
            if entry.client.id == client_id:
                return entry
        return None


@dataclass(frozen=True)
class ClientError:
    """per-client failure summary"""

    client_id: int
    client_name: str
    error: ResponseError

    def __str__(self) -> str:
        return f"{self.client_name}: {self.error.lsp_code}: {self.error.message}"


@dataclass(frozen=True)
class Candidate:
    """one item produced by one client"""

    client: Client
    item: Any
    context: Optional[RequestContext] = None


class OutcomeKind(str, Enum):
    EMPTY = "empty"
    SINGLE = "single"
    MULTIPLE = "multiple"


@dataclass
class Outcome:
    """classification of aggregated candidates

    errors lists every client that failed, even when other clients produced
    candidates. An empty outcome with errors and no successful responder is
    "empty with error"; otherwise an empty outcome is "empty clean".
    """

    kind: OutcomeKind
    items: List[Candidate] = field(default_factory=list)
    errors: List[ClientError] = field(default_factory=list)
    responded: int = 0

    @classmethod
    def classify(
        cls,
        items: Sequence[Candidate],
        errors: Sequence[ClientError] = (),
        responded: int = 0,
    ) -> "Outcome":
        items = list(items)
        if not items:
            kind = OutcomeKind.EMPTY
        elif len(items) == 1:
            kind = OutcomeKind.SINGLE
        else:
            kind = OutcomeKind.MULTIPLE
        return cls(kind=kind, items=items, errors=list(errors), responded=responded)

    @property
    def is_empty(self) -> bool:
        return self.kind is OutcomeKind.EMPTY

    @property
    def is_error(self) -> bool:
        """empty because every responding client failed"""
        return self.is_empty and bool(self.errors) and len(self.errors) >= self.responded

    @property
    def single(self) -> Optional[Candidate]:
        if self.kind is OutcomeKind.SINGLE:
            return self.items[0]
        return None

    @property
    def clients(self) -> List[Client]:
        """distinct contributing clients, in item order"""
        seen: List[Client] = []
        for candidate in self.items:
            if all(c.id != candidate.client.id for c in seen):
                seen.append(candidate.client)
        return seen
