"""request fan-out over several protocol clients

one logical request is sent to every candidate client concurrently on the
running event loop. Responses are gathered into a FanoutResult ordered by
client registration order, independent of arrival order.
"""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Sequence

from lsp_fanout.errors import ClientGoneError, ErrorCodes, NoCapabilityError, ResponseError
from lsp_fanout.lsp.registry import ClientRegistry
from lsp_fanout.lsp.types import (
    Client,
    FanoutResult,
    RequestContext,
    RequestEnvelope,
    ResponseEntry,
)
from lsp_fanout.utils.config_utils import get_config_float, get_config_int
from lsp_fanout.utils.logging_utils import Logger


class Transport(Protocol):
    """wire layer owned by the host

    `send` resolves to the response result, raises ResponseError for a
    protocol-level error and ClientGoneError when the client went away.
    """

    def send(self, client: Client, method: str, params: Any) -> Awaitable[Any]:
        ...


ClientFilter = Callable[[Client], bool]
CompletionCallback = Callable[[FanoutResult], None]


class RequestDispatcher:
    """sends requests to client sets and collects their answers

    this dispatcher:
    1. snapshots candidate clients from the registry (read only)
    2. fans one request out as concurrent tasks on the current loop
    3. completes once, after the last client answered (or the timeout hit)
    4. drops answers of clients deregistered while in flight
    """

    def __init__(
        self,
        registry: ClientRegistry,
        transport: Transport,
        request_timeout: Optional[float] = None,
        sync_timeout_ms: Optional[int] = None,
    ):
        """initialize dispatcher

        Args:
            registry: client registry
            transport: wire transport
            request_timeout: fan-out timeout in seconds ([dispatch] request_timeout),
                             None waits for every client
            sync_timeout_ms: default request_sync timeout ([dispatch] sync_timeout_ms)
        """
        self.registry = registry
        self.transport = transport
        self.request_timeout = (
            request_timeout
            if request_timeout is not None
            else get_config_float("dispatch", "request_timeout")
        )
        self.sync_timeout_ms = (
            sync_timeout_ms
            if sync_timeout_ms is not None
            else get_config_int("dispatch", "sync_timeout_ms", 1000)
        )

    # ═══════════════════════════════════════════════════════════════════
    # candidate selection
    # ═══════════════════════════════════════════════════════════════════

    def candidates(
        self,
        method: Optional[str],
        document: Optional[str],
        client_id: Optional[int] = None,
        name: Optional[str] = None,
        predicate: Optional[ClientFilter] = None,
    ) -> List[Client]:
        """snapshot of clients for `method` on `document`, in registration order"""
        clients = self.registry.clients_for(method, document)
        if method is not None:
            clients = [c for c in clients if c.supports(method)]
        if client_id is not None:
            clients = [c for c in clients if c.id == client_id]
        if name is not None:
            clients = [c for c in clients if c.name == name]
        if predicate is not None:
            clients = [c for c in clients if predicate(c)]
        return clients

    def require_candidates(self, method: str, document: Optional[str], **filters) -> List[Client]:
        """like candidates() but raises NoCapabilityError on an empty set"""
        clients = self.candidates(method, document, **filters)
        if not clients:
            raise NoCapabilityError(method)
        return clients

    # ═══════════════════════════════════════════════════════════════════
    # fan-out
    # ═══════════════════════════════════════════════════════════════════

    async def request_all(
        self,
        envelope: RequestEnvelope,
        clients: Sequence[Client],
        context: Optional[RequestContext] = None,
        timeout: Optional[float] = None,
    ) -> FanoutResult:
        """send `envelope` to every client and wait for all of them

        Args:
            envelope: method + params factory
            clients: candidate snapshot (registration order)
            context: originating context, attached to each entry
            timeout: seconds to wait before giving up on slow clients
                     (defaults to the configured request_timeout)

        Returns:
            FanoutResult with one entry per answering client
        """
        snapshot = list(clients)
        outcome = FanoutResult(method=envelope.method, context=context, requested=len(snapshot))
        if not snapshot:
            return outcome

        Logger.instance().debug(
            f"fan-out {envelope.method} -> {', '.join(c.name for c in snapshot)}"
        )

        answers = {}

        async def run(client: Client):
            try:
                params = envelope.params_for(client)
            except Exception as e:
                Logger.instance().error(f"[{client.name}] {envelope.method} params failed: {e}")
                entry = ResponseEntry(
                    client=client,
                    error=ResponseError(ErrorCodes.INTERNAL_ERROR, str(e)),
                    context=context,
                )
            else:
                entry = await self._request_one(client, envelope.method, params, context)
            if entry is not None:
                answers[client.id] = entry
                outcome.arrival.append(client.id)

        tasks = [asyncio.ensure_future(run(client)) for client in snapshot]
        timeout = timeout if timeout is not None else self.request_timeout
        done, pending = await asyncio.wait(tasks, timeout=timeout)

        for task in done:
            if task.exception() is not None:
                Logger.instance().error(f"{envelope.method}: fan-out task failed: {task.exception()}")

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            Logger.instance().warning(
                f"{envelope.method}: {len(pending)} client(s) did not answer within {timeout}s"
            )

        outcome.entries = [answers[c.id] for c in snapshot if c.id in answers]
        return outcome

    def request_all_nowait(
        self,
        envelope: RequestEnvelope,
        clients: Sequence[Client],
        context: Optional[RequestContext],
        on_complete: CompletionCallback,
        timeout: Optional[float] = None,
    ) -> "asyncio.Task[FanoutResult]":
        """schedule a fan-out; `on_complete` fires exactly once with the result"""

        async def runner() -> FanoutResult:
            result = await self.request_all(envelope, clients, context, timeout)
            on_complete(result)
            return result

        return asyncio.ensure_future(runner())

    # ═══════════════════════════════════════════════════════════════════
    # single client
    # ═══════════════════════════════════════════════════════════════════

    async def request(
        self,
        client: Client,
        method: str,
        params: Any,
        context: Optional[RequestContext] = None,
    ) -> Optional[ResponseEntry]:
        """send one request to one client

        Returns:
            ResponseEntry, or None if the client went away before answering
        """
        return await self._request_one(client, method, params, context)

    async def request_sync(
        self,
        client: Client,
        method: str,
        params: Any,
        context: Optional[RequestContext] = None,
        timeout_ms: Optional[int] = None,
    ) -> Optional[ResponseEntry]:
        """send one request and wait at most `timeout_ms` for the answer

        a timeout is reported as a per-client error entry.
        """
        timeout_ms = timeout_ms if timeout_ms is not None else self.sync_timeout_ms
        try:
            return await asyncio.wait_for(
                self._request_one(client, method, params, context),
                timeout=timeout_ms / 1000.0,
            )
        except asyncio.TimeoutError:
            Logger.instance().warning(f"[{client.name}] {method} timed out after {timeout_ms}ms")
            return ResponseEntry(
                client=client,
                error=ResponseError(ErrorCodes.REQUEST_FAILED, "timeout"),
                context=context,
            )

    async def _request_one(
        self,
        client: Client,
        method: str,
        params: Any,
        context: Optional[RequestContext],
    ) -> Optional[ResponseEntry]:
        try:
            result = await self.transport.send(client, method, params)
            entry = ResponseEntry(client=client, result=result, context=context)
        except ClientGoneError:
            Logger.instance().debug(f"[{client.name}] gone before answering {method}")
            return None
        except ResponseError as e:
            Logger.instance().error(f"[{client.name}] {method} failed: {e}")
            entry = ResponseEntry(client=client, error=e, context=context)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            Logger.instance().error(f"[{client.name}] {method} transport error: {e}")
            entry = ResponseEntry(
                client=client,
                error=ResponseError(ErrorCodes.INTERNAL_ERROR, str(e)),
                context=context,
            )

        if self.registry.client_by_id(client.id) is None:
            Logger.instance().debug(f"[{client.name}] deregistered while {method} was in flight")
            return None
        return entry
