"""FanoutManager - entry point for editor-level LSP operations

the manager bundles the host collaborators (registry, transport, picker,
prompt, applier) with one RequestDispatcher and exposes every operation as
a coroutine taking an explicit RequestContext.

Usage:
    manager = FanoutManager(registry, transport, selector=picker, applier=host)
    result = await manager.definition(RequestContext("file:///a.py", Position(3, 7)))
"""

from typing import Any, Callable, Dict, List, Optional

from lsp_fanout.errors import FanoutError
from lsp_fanout.lsp.disambiguator import Disambiguator, Selector
from lsp_fanout.lsp.dispatcher import RequestDispatcher, Transport
from lsp_fanout.lsp.effects import EditApplier, OperationResult, Prompter, Status
from lsp_fanout.lsp.registry import ClientRegistry
from lsp_fanout.lsp.types import RequestContext
from lsp_fanout.operations import (
    code_action,
    formatting,
    hierarchy,
    hover,
    locations,
    rename,
    selection_range,
    signature_help,
    workspace,
)
from lsp_fanout.utils.logging_utils import Logger, logging_func


class FanoutManager:
    """runs LSP operations against every client attached to a document

    this manager ensures:
    1. clients are snapshotted once per operation, in registration order
    2. results of an operation whose document is no longer current are dropped
    3. every operation ends with one OperationResult; effects are handed to
       the applier, nothing is raised for per-client failures
    """

    def __init__(
        self,
        registry: ClientRegistry,
        transport: Transport,
        selector: Optional[Selector] = None,
        prompter: Optional[Prompter] = None,
        applier: Optional[EditApplier] = None,
        current_document: Optional[Callable[[], Optional[str]]] = None,
        request_timeout: Optional[float] = None,
        sync_timeout_ms: Optional[int] = None,
    ):
        """initialize manager

        Args:
            registry: client registry
            transport: wire transport
            selector: picker used for disambiguation
            prompter: free-text input (rename, workspace symbol query)
            applier: receives the effects of finished operations
            current_document: returns the host's current document id, used to
                              drop stale results (None disables the check)
            request_timeout: fan-out timeout in seconds
            sync_timeout_ms: default timeout of synchronous requests
        """
        self.registry = registry
        self.dispatcher = RequestDispatcher(
            registry,
            transport,
            request_timeout=request_timeout,
            sync_timeout_ms=sync_timeout_ms,
        )
        self.selector = selector
        self.prompter = prompter
        self.applier = applier
        self._current_document = current_document

    # ═══════════════════════════════════════════════════════════════════
    # shared plumbing
    # ═══════════════════════════════════════════════════════════════════

    @property
    def disambiguator(self) -> Disambiguator:
        if self.selector is None:
            raise FanoutError("this operation needs a selector", "NO_SELECTOR")
        return Disambiguator(self.selector)

    def require_prompter(self) -> Prompter:
        if self.prompter is None:
            raise FanoutError("this operation needs a prompter", "NO_PROMPTER")
        return self.prompter

    def is_current(self, context: Optional[RequestContext]) -> bool:
        """check the context document is still the host's current document"""
        if context is None or self._current_document is None:
            return True
        return self._current_document() == context.document

    def finish(self, result: OperationResult, apply: bool = True) -> OperationResult:
        """hand effects to the applier and log the report

        Args:
            result: terminal result of an operation
            apply: False when the operation already applied its effects
        """
        if result.status is Status.STALE:
            Logger.instance().debug("result dropped: context changed")
            return result
        if apply and self.applier is not None:
            for effect in result.effects:
                self.applier.apply(effect)
        if result.message:
            if result.status in (Status.FAILED, Status.NO_CAPABILITY):
                Logger.instance().warning(result.message)
            else:
                Logger.instance().info(result.message)
        return result

    # ═══════════════════════════════════════════════════════════════════
    # locations
    # ═══════════════════════════════════════════════════════════════════

    async def declaration(self, context: RequestContext, **opts) -> OperationResult:
        """jump to the declaration of the symbol under the cursor"""
        return await locations.get_locations(self, locations.DECLARATION, context, **opts)

    async def definition(self, context: RequestContext, **opts) -> OperationResult:
        """jump to the definition of the symbol under the cursor"""
        return await locations.get_locations(self, locations.DEFINITION, context, **opts)

    async def type_definition(self, context: RequestContext, **opts) -> OperationResult:
        """jump to the definition of the type of the symbol under the cursor"""
        return await locations.get_locations(self, locations.TYPE_DEFINITION, context, **opts)

    async def implementation(self, context: RequestContext, **opts) -> OperationResult:
        """list the implementations of the symbol under the cursor"""
        return await locations.get_locations(self, locations.IMPLEMENTATION, context, **opts)

    async def references(
        self,
        context: RequestContext,
        reference_context: Optional[Dict[str, Any]] = None,
        **opts,
    ) -> OperationResult:
        """list every reference to the symbol under the cursor"""
        return await locations.references(self, context, reference_context, **opts)

    async def document_symbol(self, context: RequestContext, **opts) -> OperationResult:
        """list the symbols of the current document"""
        return await locations.document_symbol(self, context, **opts)

    async def workspace_symbol(
        self,
        context: RequestContext,
        query: Optional[str] = None,
        **opts,
    ) -> OperationResult:
        """list workspace symbols matching `query` (prompted when omitted)"""
        return await locations.workspace_symbol(self, context, query, **opts)

    # ═══════════════════════════════════════════════════════════════════
    # text blocks
    # ═══════════════════════════════════════════════════════════════════

    async def hover(self, context: RequestContext, silent: bool = False) -> OperationResult:
        """hover information of every client for the symbol under the cursor"""
        return await hover.hover(self, context, silent=silent)

    async def signature_help(self, context: RequestContext, silent: bool = False) -> OperationResult:
        """signature overloads of every client at the cursor"""
        return await signature_help.signature_help(self, context, silent=silent)

    # ═══════════════════════════════════════════════════════════════════
    # actions and hierarchies
    # ═══════════════════════════════════════════════════════════════════

    @logging_func("code action")
    async def code_action(self, context: RequestContext, **opts) -> OperationResult:
        """pick and apply one code action among all clients"""
        return await code_action.code_action(self, context, **opts)

    async def incoming_calls(self, context: RequestContext) -> OperationResult:
        """list the callers of the symbol under the cursor"""
        return await hierarchy.hierarchy(self, hierarchy.INCOMING_CALLS, context)

    async def outgoing_calls(self, context: RequestContext) -> OperationResult:
        """list the callees of the symbol under the cursor"""
        return await hierarchy.hierarchy(self, hierarchy.OUTGOING_CALLS, context)

    async def typehierarchy(self, context: RequestContext, kind: str) -> OperationResult:
        """list the subtypes or supertypes of the symbol under the cursor"""
        return await hierarchy.typehierarchy(self, context, kind)

    # ═══════════════════════════════════════════════════════════════════
    # edits
    # ═══════════════════════════════════════════════════════════════════

    @logging_func("rename")
    async def rename(
        self,
        context: RequestContext,
        new_name: Optional[str] = None,
        **opts,
    ) -> OperationResult:
        """rename the symbol under the cursor through the first willing client"""
        return await rename.rename(self, context, new_name, **opts)

    @logging_func("format")
    async def format(self, context: RequestContext, **opts) -> OperationResult:
        """format the document (or the selection) with every matching client"""
        return await formatting.format_document(self, context, **opts)

    # ═══════════════════════════════════════════════════════════════════
    # selection and workspace
    # ═══════════════════════════════════════════════════════════════════

    async def selection_range(
        self,
        context: RequestContext,
        direction: int,
        session: Optional[selection_range.SelectionRangeSession] = None,
    ) -> OperationResult:
        """expand (direction > 0) or shrink the selection"""
        return await selection_range.selection_range(self, context, direction, session)

    def list_workspace_folders(self, document: Optional[str] = None) -> List[str]:
        """workspace folder names of every client attached to `document`"""
        return workspace.list_workspace_folders(self, document)
