"""shared fakes for the host collaborators

- FakeTransport: scripted per-client replies (result, error, delay, gone)
- RecordingSelector / RecordingPrompter / RecordingApplier: host side
- Harness: registry + transport + collaborators wired into a FanoutManager
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from lsp_fanout.errors import ClientGoneError, ResponseError
from lsp_fanout.lsp import ClientInfo, FanoutManager, InMemoryRegistry, Position, RequestContext
from lsp_fanout.utils.config_utils import reset_config
from lsp_fanout.utils.logging_utils import Logger


DOC = "file:///project/main.py"


# ═══════════════════════════════════════════════════════════════════════════
# transport
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class Reply:
    result: Any = None
    error: Optional[Exception] = None
    delay: float = 0.0
    gone: bool = False
    before_reply: Optional[Callable[[], None]] = None


class FakeTransport:
    """answers requests from a script keyed by (client id, method)"""

    def __init__(self):
        self.script: Dict[Tuple[int, str], Reply] = {}
        self.sent: List[Tuple[int, str, Any]] = []

    def reply(self, client, method: str, result=None, **kwargs) -> Reply:
        reply = Reply(result=result, **kwargs)
        self.script[(client.id, method)] = reply
        return reply

    def fail(self, client, method: str, code: int = -32603, message: str = "boom", **kwargs) -> Reply:
        return self.reply(client, method, error=ResponseError(code, message), **kwargs)

    def sent_to(self, method: str) -> List[int]:
        return [client_id for client_id, m, _ in self.sent if m == method]

    def params_of(self, client_id: int, method: str) -> Any:
        for cid, m, params in self.sent:
            if cid == client_id and m == method:
                return params
        return None

    async def send(self, client, method: str, params: Any) -> Any:
        self.sent.append((client.id, method, params))
        reply = self.script.get((client.id, method), Reply())
        if reply.delay:
            await asyncio.sleep(reply.delay)
        if reply.before_reply is not None:
            reply.before_reply()
        if reply.gone:
            raise ClientGoneError(client.id)
        if reply.error is not None:
            raise reply.error
        return reply.result


# ═══════════════════════════════════════════════════════════════════════════
# host collaborators
# ═══════════════════════════════════════════════════════════════════════════


class RecordingSelector:
    """picks `choice` (an index, or None to dismiss) and records the call"""

    def __init__(self, choice: Optional[int] = 0):
        self.choice = choice
        self.calls: List[Dict[str, Any]] = []

    async def select(self, candidates, render, prompt="", kind=""):
        self.calls.append({
            "candidates": list(candidates),
            "labels": [render(c) for c in candidates],
            "prompt": prompt,
            "kind": kind,
        })
        if self.choice is None:
            return None
        return candidates[self.choice]


class RecordingPrompter:
    """answers prompts from a queue of replies"""

    def __init__(self, *answers: Optional[str]):
        self.answers = list(answers)
        self.calls: List[Tuple[str, Optional[str]]] = []

    async def prompt(self, prompt: str, default: Optional[str] = None) -> Optional[str]:
        self.calls.append((prompt, default))
        return self.answers.pop(0) if self.answers else None


class RecordingApplier:
    def __init__(self):
        self.applied = []

    def apply(self, effect):
        self.applied.append(effect)


class Harness:
    """FanoutManager over an in-memory registry and the fakes above"""

    def __init__(self, current: Optional[str] = DOC):
        self.registry = InMemoryRegistry()
        self.transport = FakeTransport()
        self.selector = RecordingSelector()
        self.prompter = RecordingPrompter()
        self.applier = RecordingApplier()
        self.current = current
        self.manager = FanoutManager(
            self.registry,
            self.transport,
            selector=self.selector,
            prompter=self.prompter,
            applier=self.applier,
            current_document=lambda: self.current,
        )

    def add_client(
        self,
        client_id: int,
        name: str,
        methods=(),
        encoding: str = "utf-16",
        documents=(),
        folders=(),
    ) -> ClientInfo:
        client = ClientInfo(
            id=client_id,
            name=name,
            methods=frozenset(methods),
            offset_encoding=encoding,
            workspace_folders=tuple(folders),
        )
        self.registry.register(client, documents)
        return client

    def context(self, line: int = 0, character: int = 0, **kwargs) -> RequestContext:
        return RequestContext(DOC, Position(line, character), **kwargs)


# ═══════════════════════════════════════════════════════════════════════════
# fixtures
# ═══════════════════════════════════════════════════════════════════════════


@pytest.fixture(autouse=True)
def reset_singletons():
    """fresh logger and config for every test"""
    reset_config()
    Logger.reset_instance()
    yield
    Logger.reset_instance()
    reset_config()


@pytest.fixture
def harness():
    return Harness()


@pytest.fixture
def ctx(harness):
    return harness.context(3, 4, word="value")
