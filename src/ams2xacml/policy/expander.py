"""
Access-List Expander - Turn an AccessList into policy subject nodes.

Given a working document, the prototype subject node of the rule that
applies and the rule that does not, the expander:

1. Clones the prototype once per subject (or once for the synthetic
   "anonymous" / "authenticated" subjects), appending the clones to the
   prototype's parent in list order.
2. Collapses large user lists to a single "authenticated" subject.
3. Removes the prototype and the rule that does not apply.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Union
import copy
import logging
import xml.etree.ElementTree as ET

from ams2xacml.exceptions import EmptyAccessListError, TemplateStructureError
from ams2xacml.policy.acl import AccessList

logger = logging.getLogger(__name__)

ANONYMOUS_SUBJECT = "anonymous"
AUTHENTICATED_SUBJECT = "authenticated"

# Legacy value for "no collapse threshold"
UNLIMITED_USERS = -1


class UsernameFormat(Enum):
    """How user identifiers are rendered in the policy."""
    KEEP = "keep"
    STRIP = "strip"
    BOTH = "both"


def strip_domain(identifier: str) -> str:
    """Drop everything from the first '@' onward."""
    return identifier.split("@", 1)[0]


def format_username(identifier: str, username_format: UsernameFormat) -> List[str]:
    """
    Render a user identifier.

    Returns:
        The subject values to emit for this user, in order. BOTH yields the
        identifier as stored followed by its stripped form.
    """
    if username_format is UsernameFormat.KEEP:
        return [identifier]
    if username_format is UsernameFormat.STRIP:
        return [strip_domain(identifier)]
    return [identifier, strip_domain(identifier)]


def collapse_enabled(max_users_per_group: Optional[int]) -> bool:
    return max_users_per_group is not None and max_users_per_group != UNLIMITED_USERS


def subject_values(
    acl: AccessList,
    username_format: UsernameFormat = UsernameFormat.KEEP,
    max_users_per_group: Optional[int] = None,
) -> List[str]:
    """
    Compute the subject values an AccessList expands to.

    Raises:
        EmptyAccessListError: If the list has no entries
    """
    if len(acl) == 0:
        raise EmptyAccessListError("Cannot expand an empty access list")

    if acl.is_everybody:
        return [ANONYMOUS_SUBJECT]
    if acl.is_all_authenticated:
        return [AUTHENTICATED_SUBJECT]
    if acl.is_no_one:
        return []

    users = acl.users
    if collapse_enabled(max_users_per_group) and len(users) >= max_users_per_group:
        logger.debug(
            f"Collapsing {len(users)} users to '{AUTHENTICATED_SUBJECT}' "
            f"(limit {max_users_per_group})"
        )
        return [AUTHENTICATED_SUBJECT]

    values = []
    for user in users:
        values.extend(format_username(user, username_format))
    return values


def _parent_of(root: ET.Element, node: ET.Element) -> ET.Element:
    for candidate in root.iter():
        for child in candidate:
            if child is node:
                return candidate
    raise TemplateStructureError(f"Node <{node.tag}> is not part of the working document")


def expand_access_list(
    doc: Union[ET.ElementTree, ET.Element],
    clone_source: ET.Element,
    other_branch: ET.Element,
    acl: AccessList,
    username_format: UsernameFormat = UsernameFormat.KEEP,
    max_users_per_group: Optional[int] = None,
) -> int:
    """
    Expand an access list into a working document, in place.

    Args:
        doc: Working document to mutate
        clone_source: Prototype subject AttributeValue to clone
        other_branch: Rule element for the access mode that does not apply
        acl: Normalized access list
        username_format: Rendering of user identifiers
        max_users_per_group: Collapse threshold, None or -1 to disable

    Returns:
        Number of subject nodes added
    """
    root = doc.getroot() if isinstance(doc, ET.ElementTree) else doc

    values = subject_values(acl, username_format, max_users_per_group)

    parent = _parent_of(root, clone_source)
    for value in values:
        subject = copy.deepcopy(clone_source)
        subject.text = value
        parent.append(subject)
    parent.remove(clone_source)

    _parent_of(root, other_branch).remove(other_branch)

    return len(values)
