"""workspace folder listing"""

from typing import TYPE_CHECKING, List, Optional

from lsp_fanout.lsp import aggregator

if TYPE_CHECKING:
    from lsp_fanout.lsp.manager import FanoutManager


def list_workspace_folders(manager: "FanoutManager", document: Optional[str] = None) -> List[str]:
    """folder names of every client attached to `document` (all clients when None)"""
    clients = manager.dispatcher.candidates(None, document)
    return aggregator.collect_workspace_folders(clients)
