"""client registry interface and an in-memory implementation

the registry is owned by the host; the dispatcher only reads snapshots of it.
"""

from threading import Lock
from typing import Dict, Iterable, List, Optional, Protocol, Set

from lsp_fanout.lsp.types import Client


class ClientRegistry(Protocol):
    """source of clients attached to documents"""

    def clients_for(self, method: Optional[str], document: Optional[str]) -> List[Client]:
        """clients attached to `document` supporting `method`, in registration order

        `method=None` returns every attached client, `document=None` every
        registered client.
        """
        ...

    def client_by_id(self, client_id: int) -> Optional[Client]:
        ...


class InMemoryRegistry:
    """ordered registry of clients and their document attachments

    a client registered without documents is global and serves every
    document. a client registered with documents serves only those; detaching
    its last document leaves it attached to nothing.
    """

    def __init__(self, clients: Iterable[Client] = ()):
        self._clients: Dict[int, Client] = {}
        # None marks a global client
        self._attached: Dict[int, Optional[Set[str]]] = {}
        self._lock = Lock()
        for client in clients:
            self.register(client)

    def register(self, client: Client, documents: Iterable[str] = ()) -> None:
        """register a client; with no documents it applies to every document"""
        documents = set(documents)
        with self._lock:
            self._clients[client.id] = client
            self._attached[client.id] = documents or None

    def unregister(self, client_id: int) -> Optional[Client]:
        with self._lock:
            self._attached.pop(client_id, None)
            return self._clients.pop(client_id, None)

    def attach(self, client_id: int, document: str) -> None:
        """attach a document; global clients are already attached to it"""
        with self._lock:
            documents = self._attached.get(client_id, set())
            if documents is not None:
                documents.add(document)
                self._attached[client_id] = documents

    def detach(self, client_id: int, document: str) -> None:
        """detach a document from a client registered with documents"""
        with self._lock:
            documents = self._attached.get(client_id)
            if documents is not None:
                documents.discard(document)

    def is_global(self, client_id: int) -> bool:
        with self._lock:
            return client_id in self._attached and self._attached[client_id] is None

    def clients_for(self, method: Optional[str], document: Optional[str]) -> List[Client]:
        with self._lock:
            # dicts keep insertion order, which is registration order
            clients = list(self._clients.values())
            attached = {
                cid: None if docs is None else set(docs) for cid, docs in self._attached.items()
            }

        result = []
        for client in clients:
            documents = attached.get(client.id)
            if document is not None and documents is not None and document not in documents:
                continue
            if method is not None and not client.supports(method):
                continue
            result.append(client)
        return result

    def client_by_id(self, client_id: int) -> Optional[Client]:
        with self._lock:
            return self._clients.get(client_id)

    def __len__(self) -> int:
        return len(self._clients)
