"""
Policy Generator - Build the policy document for one archived object.

Container nodes (catalogue, session, corpus, unknown) only get write
rights: their metadata is always readable. Every other node gets read
rights on its OBJ datastream.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple
import logging
import xml.etree.ElementTree as ET

from ams2xacml.policy.acl import AccessList, AccessListResolver, AccessMode
from ams2xacml.policy.expander import UsernameFormat, expand_access_list
from ams2xacml.policy.locator import locate
from ams2xacml.policy.template import PolicyTemplate
from ams2xacml.storage.corpus_store import NodeType

logger = logging.getLogger(__name__)


def access_mode_for(node_type: NodeType) -> AccessMode:
    """Access mode a node's policy speaks to."""
    return AccessMode.WRITE if node_type.is_container else AccessMode.READ


@dataclass
class GeneratedPolicy:
    """A working document built for one node."""
    node_id: str
    node_type: NodeType
    mode: AccessMode
    acl: AccessList
    document: ET.ElementTree
    subject_count: int


class PolicyGenerator:
    """
    Build XACML policy documents from node access lists.

    Example:
        >>> generator = PolicyGenerator(load_template(), AccessListResolver(store))
        >>> policy = generator.generate("MPI1234#", NodeType.SESSION)
    """

    def __init__(
        self,
        template: PolicyTemplate,
        resolver: Optional[AccessListResolver] = None,
        username_format: UsernameFormat = UsernameFormat.KEEP,
        max_users_per_group: Optional[int] = None,
    ):
        """
        Initialize the generator.

        Args:
            template: Loaded policy template, shared read-only
            resolver: ACL source, only needed by generate()
            username_format: Rendering of user identifiers
            max_users_per_group: Collapse threshold, None to disable
        """
        self.template = template
        self.resolver = resolver
        self.username_format = username_format
        self.max_users_per_group = max_users_per_group

    def build(self, mode: AccessMode, acl: AccessList) -> Tuple[ET.ElementTree, int]:
        """
        Build a policy document for an access mode and list.

        Returns:
            The working document and the number of subjects it names
        """
        doc = self.template.fresh_copy()
        target = locate(doc, mode)
        count = expand_access_list(
            doc,
            target.clone_source,
            target.other_branch,
            acl,
            username_format=self.username_format,
            max_users_per_group=self.max_users_per_group,
        )
        return doc, count

    def generate(self, node_id: str, node_type: NodeType) -> GeneratedPolicy:
        """Fetch the relevant ACL for a node and build its policy."""
        if self.resolver is None:
            raise RuntimeError("PolicyGenerator.generate() needs an AccessListResolver")

        mode = access_mode_for(node_type)
        acl = self.resolver.acl_for(node_id, mode)
        doc, count = self.build(mode, acl)

        logger.debug(
            f"Built {mode.value} policy for {node_id} ({node_type.value}) "
            f"with {count} subject(s)"
        )
        return GeneratedPolicy(
            node_id=node_id,
            node_type=node_type,
            mode=mode,
            acl=acl,
            document=doc,
            subject_count=count,
        )
