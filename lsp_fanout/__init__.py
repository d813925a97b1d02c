"""lsp-fanout: run editor LSP operations against every attached language server"""

from lsp_fanout.lsp import FanoutManager, InMemoryRegistry, RequestContext, Position, Selection

__version__ = "0.1.0"

__all__ = ["FanoutManager", "InMemoryRegistry", "RequestContext", "Position", "Selection"]
