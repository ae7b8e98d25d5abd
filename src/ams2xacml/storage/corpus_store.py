"""
Corpus Structure Store - Read access to archive node metadata.

The converter needs, per node: its type, its descendants, whether its
access data is authoritative here (on-site), its raw read/write rights
and its handle. MetadataStore is that interface; SQLiteCorpusStore reads
it from an SQLite export of the corpus structure database and
InMemoryCorpusStore keeps it in dictionaries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional
import logging
import sqlite3
import threading

from ams2xacml.exceptions import UnknownNodeError

logger = logging.getLogger(__name__)

# Stored type names of leaf nodes (archived resources)
OBJECT_TYPE_NAMES = frozenset({
    "object",
    "resource",
    "media",
    "mediafile",
    "written-resource",
    "writtenresource",
    "info",
    "infofile",
})


class NodeType(Enum):
    """Corpus node types as far as policy generation cares."""
    CATALOGUE = "catalogue"
    SESSION = "session"
    CORPUS = "corpus"
    UNKNOWN = "unknown"
    OBJECT = "object"

    @classmethod
    def from_store(cls, value: Optional[str]) -> "NodeType":
        """Map a stored type name; unrecognized names are UNKNOWN."""
        if value is None:
            return cls.UNKNOWN
        name = str(value).strip().lower()
        if name in OBJECT_TYPE_NAMES:
            return cls.OBJECT
        try:
            return cls(name)
        except ValueError:
            logger.debug(f"Unrecognized node type {value!r}, treating as unknown")
            return cls.UNKNOWN

    @property
    def is_container(self) -> bool:
        return self is not NodeType.OBJECT


class MetadataStore(ABC):
    """Read-only view of the corpus structure needed for conversion."""

    @abstractmethod
    def resolve_node_type(self, node_id: str) -> NodeType:
        """Return the node's type, UNKNOWN if the node does not exist."""

    @abstractmethod
    def list_descendants(self, node_ids: Iterable[str]) -> List[str]:
        """Return all descendants of the given nodes, without duplicates."""

    @abstractmethod
    def is_on_site(self, node_id: str) -> bool:
        """Whether access data for the node is authoritative in this archive."""

    @abstractmethod
    def raw_read_acl(self, node_id: str) -> str:
        """Raw read rights string. Raises UnknownNodeError."""

    @abstractmethod
    def raw_write_acl(self, node_id: str) -> str:
        """Raw write rights string. Raises UnknownNodeError."""

    @abstractmethod
    def resolve_handle(self, node_id: str) -> Optional[str]:
        """Handle (PID) of the node, None if it has none."""

    @abstractmethod
    def resolve_node_id(self, handle: str) -> Optional[str]:
        """Node ID for a handle, None if unknown."""

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


@dataclass
class CorpusNode:
    """In-memory record of a corpus node."""
    node_id: str
    node_type: NodeType = NodeType.OBJECT
    handle: Optional[str] = None
    on_site: bool = True
    read_rights: Optional[str] = None
    write_rights: Optional[str] = None
    children: List[str] = field(default_factory=list)


class InMemoryCorpusStore(MetadataStore):
    """
    Dictionary-backed metadata store.

    Example:
        >>> store = InMemoryCorpusStore()
        >>> store.add(CorpusNode("MPI1#", NodeType.CORPUS, children=["MPI2#"]))
    """

    def __init__(self, nodes: Optional[Iterable[CorpusNode]] = None):
        self.nodes: Dict[str, CorpusNode] = {}
        for node in nodes or []:
            self.add(node)

    def add(self, node: CorpusNode) -> CorpusNode:
        self.nodes[node.node_id] = node
        return node

    def _node(self, node_id: str) -> CorpusNode:
        node = self.nodes.get(node_id)
        if node is None:
            raise UnknownNodeError(node_id)
        return node

    def resolve_node_type(self, node_id: str) -> NodeType:
        node = self.nodes.get(node_id)
        return node.node_type if node else NodeType.UNKNOWN

    def list_descendants(self, node_ids: Iterable[str]) -> List[str]:
        pending = list(node_ids)
        seen = set(pending)
        descendants = []
        while pending:
            node = self.nodes.get(pending.pop(0))
            if node is None:
                continue
            for child in node.children:
                if child not in seen:
                    seen.add(child)
                    descendants.append(child)
                    pending.append(child)
        return descendants

    def is_on_site(self, node_id: str) -> bool:
        node = self.nodes.get(node_id)
        return bool(node and node.on_site)

    def raw_read_acl(self, node_id: str) -> str:
        return self._node(node_id).read_rights

    def raw_write_acl(self, node_id: str) -> str:
        return self._node(node_id).write_rights

    def resolve_handle(self, node_id: str) -> Optional[str]:
        node = self.nodes.get(node_id)
        return node.handle if node else None

    def resolve_node_id(self, handle: str) -> Optional[str]:
        for node in self.nodes.values():
            if node.handle == handle:
                return node.node_id
        return None


class SQLiteCorpusStore(MetadataStore):
    """
    SQLite-backed corpus structure store.

    Tables:
    - corpusnodes: node id, type name and on-site flag
    - corpusstructure: parent/child links
    - archiveobjects: node id to handle (PID)
    - accessinfo: raw read and write rights per node
    """

    def __init__(self, db_path: str = "corpusstructure.db", timeout: float = 30.0):
        """
        Initialize the store.

        Args:
            db_path: Path to the SQLite database file
            timeout: Seconds to wait on a locked database before failing
        """
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._lock = threading.Lock()
        self._init_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """Get the calling thread's connection."""
        conn = getattr(self._local, "connection", None)
        if conn is None:
            conn = sqlite3.connect(
                str(self.db_path),
                timeout=self.timeout,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            self._local.connection = conn
            with self._lock:
                self._connections.append(conn)
        return conn

    @contextmanager
    def transaction(self):
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def _init_schema(self):
        """Create the corpus structure tables if they do not exist."""
        with self.transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS corpusnodes (
                    nodeid TEXT PRIMARY KEY,
                    nodetype TEXT NOT NULL DEFAULT 'unknown',
                    onsite INTEGER NOT NULL DEFAULT 1
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS corpusstructure (
                    parent TEXT NOT NULL,
                    child TEXT NOT NULL,
                    position INTEGER DEFAULT 0,
                    PRIMARY KEY (parent, child)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS archiveobjects (
                    nodeid TEXT PRIMARY KEY,
                    pid TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS accessinfo (
                    nodeid TEXT PRIMARY KEY,
                    readrights TEXT,
                    writerights TEXT
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_archiveobjects_pid
                ON archiveobjects(pid)
            """)

    # ---- loading ----

    def add_node(
        self,
        node_id: str,
        node_type: NodeType = NodeType.OBJECT,
        handle: Optional[str] = None,
        on_site: bool = True,
        read_rights: Optional[str] = None,
        write_rights: Optional[str] = None,
    ) -> None:
        """Insert or replace a node with its handle and access rights."""
        with self.transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO corpusnodes (nodeid, nodetype, onsite) VALUES (?, ?, ?)",
                (node_id, node_type.value, int(on_site)),
            )
            if handle is not None:
                conn.execute(
                    "INSERT OR REPLACE INTO archiveobjects (nodeid, pid) VALUES (?, ?)",
                    (node_id, handle),
                )
            if read_rights is not None or write_rights is not None:
                conn.execute(
                    "INSERT OR REPLACE INTO accessinfo (nodeid, readrights, writerights) VALUES (?, ?, ?)",
                    (node_id, read_rights, write_rights),
                )

    def add_child(self, parent: str, child: str, position: int = 0) -> None:
        with self.transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO corpusstructure (parent, child, position) VALUES (?, ?, ?)",
                (parent, child, position),
            )

    # ---- MetadataStore ----

    def resolve_node_type(self, node_id: str) -> NodeType:
        row = self._get_connection().execute(
            "SELECT nodetype FROM corpusnodes WHERE nodeid = ?", (node_id,)
        ).fetchone()
        return NodeType.from_store(row["nodetype"]) if row else NodeType.UNKNOWN

    def list_descendants(self, node_ids: Iterable[str]) -> List[str]:
        conn = self._get_connection()
        start = list(node_ids)
        seen = set(start)
        descendants = []
        for node_id in start:
            # Breadth first: by depth, then by the sibling order of each
            # ancestor. The path column stops the walk at cycles.
            cursor = conn.execute("""
                WITH RECURSIVE descendants(nodeid, depth, sortkey, path) AS (
                    SELECT child, 1,
                           printf('%010d.%010d/', position, rowid),
                           '|' || parent || '|' || child || '|'
                    FROM corpusstructure WHERE parent = ?
                    UNION ALL
                    SELECT cs.child, d.depth + 1,
                           d.sortkey || printf('%010d.%010d/', cs.position, cs.rowid),
                           d.path || cs.child || '|'
                    FROM corpusstructure cs
                    JOIN descendants d ON cs.parent = d.nodeid
                    WHERE instr(d.path, '|' || cs.child || '|') = 0
                )
                SELECT nodeid FROM descendants ORDER BY depth, sortkey
            """, (node_id,))
            for row in cursor.fetchall():
                if row["nodeid"] not in seen:
                    seen.add(row["nodeid"])
                    descendants.append(row["nodeid"])
        return descendants

    def is_on_site(self, node_id: str) -> bool:
        row = self._get_connection().execute(
            "SELECT onsite FROM corpusnodes WHERE nodeid = ?", (node_id,)
        ).fetchone()
        return bool(row and row["onsite"])

    def _access_row(self, node_id: str) -> sqlite3.Row:
        row = self._get_connection().execute(
            "SELECT readrights, writerights FROM accessinfo WHERE nodeid = ?", (node_id,)
        ).fetchone()
        if row is None:
            raise UnknownNodeError(node_id)
        return row

    def raw_read_acl(self, node_id: str) -> str:
        return self._access_row(node_id)["readrights"]

    def raw_write_acl(self, node_id: str) -> str:
        return self._access_row(node_id)["writerights"]

    def resolve_handle(self, node_id: str) -> Optional[str]:
        row = self._get_connection().execute(
            "SELECT pid FROM archiveobjects WHERE nodeid = ?", (node_id,)
        ).fetchone()
        return row["pid"] if row else None

    def resolve_node_id(self, handle: str) -> Optional[str]:
        row = self._get_connection().execute(
            "SELECT nodeid FROM archiveobjects WHERE pid = ?", (handle,)
        ).fetchone()
        return row["nodeid"] if row else None

    def close(self) -> None:
        """Close every connection opened by this store."""
        with self._lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()
