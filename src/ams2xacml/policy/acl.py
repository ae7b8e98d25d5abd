"""
Access Lists - Normalized access-control lists for archived objects.

The corpus structure store encodes who may read or write a node as a
single string: one of a few sentinel values, or a space separated list
of user names preceded by a legacy marker entry. This module turns that
encoding into an AccessList that the expander can consume without
re-deriving the sentinels at every call site.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple
import logging

from ams2xacml.exceptions import UnknownNodeError

if TYPE_CHECKING:
    from ams2xacml.storage.corpus_store import MetadataStore

logger = logging.getLogger(__name__)


# Raw sentinel values used by the corpus structure store
RAW_EVERYBODY = "everybody"
RAW_NOBODY = "nobody"
RAW_CLEARED = "cleared"
RAW_ALL_AUTHENTICATED = "all-authenticated"


class AccessMode(Enum):
    """Kind of access a generated policy speaks to."""
    READ = "read"
    WRITE = "write"


class EntryKind(Enum):
    """Kind of a subject entry in an access list."""
    EVERYBODY = "everybody"
    ALL_AUTHENTICATED = "all_authenticated"
    NO_ONE = "no_one"
    USER = "user"


@dataclass(frozen=True)
class SubjectEntry:
    """One subject of an access list."""
    kind: EntryKind
    identifier: Optional[str] = None

    @classmethod
    def user(cls, identifier: str) -> "SubjectEntry":
        if not identifier:
            raise ValueError("User entries need a non-empty identifier")
        return cls(EntryKind.USER, identifier)

    @property
    def is_special(self) -> bool:
        return self.kind is not EntryKind.USER

    def __str__(self) -> str:
        return self.identifier if self.kind is EntryKind.USER else self.kind.value


EVERYBODY = SubjectEntry(EntryKind.EVERYBODY)
ALL_AUTHENTICATED = SubjectEntry(EntryKind.ALL_AUTHENTICATED)
NO_ONE = SubjectEntry(EntryKind.NO_ONE)


@dataclass(frozen=True)
class AccessList:
    """
    Normalized access-control list.

    Either exactly one special entry (everybody, all authenticated users,
    no-one) or a sequence of user entries in the order the store returned
    them. Special entries stand for the whole list and never appear next
    to users.
    """
    entries: Tuple[SubjectEntry, ...]

    def __post_init__(self):
        specials = [e for e in self.entries if e.is_special]
        if specials and len(self.entries) > 1:
            raise ValueError(
                f"Special entry {specials[0]} cannot be combined with other entries"
            )

    @classmethod
    def everybody(cls) -> "AccessList":
        return cls((EVERYBODY,))

    @classmethod
    def all_authenticated(cls) -> "AccessList":
        return cls((ALL_AUTHENTICATED,))

    @classmethod
    def no_one(cls) -> "AccessList":
        return cls((NO_ONE,))

    @classmethod
    def of_users(cls, identifiers: Iterable[str]) -> "AccessList":
        return cls(tuple(SubjectEntry.user(i) for i in identifiers))

    @property
    def is_everybody(self) -> bool:
        return self.entries == (EVERYBODY,)

    @property
    def is_all_authenticated(self) -> bool:
        return self.entries == (ALL_AUTHENTICATED,)

    @property
    def is_no_one(self) -> bool:
        return self.entries == (NO_ONE,)

    @property
    def users(self) -> List[str]:
        """User identifiers, in list order."""
        return [e.identifier for e in self.entries if e.kind is EntryKind.USER]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __str__(self) -> str:
        return " ".join(str(e) for e in self.entries)


def normalize_acl(raw: Optional[str]) -> AccessList:
    """
    Translate a raw store ACL string into an AccessList.

    Args:
        raw: Read or write rights string as stored for a node

    Returns:
        The normalized AccessList

    Example:
        >>> normalize_acl("corpman alice bob").users
        ['alice', 'bob']
    """
    if raw is None or not raw.strip():
        return AccessList.no_one()

    if raw == RAW_EVERYBODY:
        return AccessList.everybody()
    if raw in (RAW_NOBODY, RAW_CLEARED):
        return AccessList.no_one()
    if raw == RAW_ALL_AUTHENTICATED:
        return AccessList.all_authenticated()

    tokens = [token for token in raw.split(" ") if token]
    if len(tokens) > 1:
        # First entry is the legacy marker slot, not a user
        tokens = tokens[1:]
    return AccessList.of_users(tokens)


class AccessListResolver:
    """
    Fetch and normalize node ACLs from a metadata store.

    Unknown nodes are not fatal: they resolve to a no-one list and a
    warning is logged so the batch can move on to the next node.
    """

    def __init__(self, store: "MetadataStore"):
        self.store = store

    def read_acl(self, node_id: str) -> AccessList:
        return self._fetch(node_id, AccessMode.READ)

    def write_acl(self, node_id: str) -> AccessList:
        return self._fetch(node_id, AccessMode.WRITE)

    def acl_for(self, node_id: str, mode: AccessMode) -> AccessList:
        return self._fetch(node_id, mode)

    def _fetch(self, node_id: str, mode: AccessMode) -> AccessList:
        try:
            if mode is AccessMode.READ:
                raw = self.store.raw_read_acl(node_id)
            else:
                raw = self.store.raw_write_acl(node_id)
        except UnknownNodeError:
            logger.warning(f"Unknown node {node_id}, treating {mode.value} rights as no-one")
            return AccessList.no_one()

        acl = normalize_acl(raw)
        logger.debug(f"{mode.value} rights for {node_id}: {acl}")
        return acl
