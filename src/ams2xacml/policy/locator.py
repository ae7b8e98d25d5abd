"""
Rule Locator - Find the template nodes a policy is built from.

The policy template carries two deny rules. Each rule's condition compares
the subject login ID against a bag of AttributeValue nodes; the first of
those values is the prototype that gets cloned once per subject. The rule
that does not match the object's access mode is removed as a whole.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple, Union
import xml.etree.ElementTree as ET

from ams2xacml.exceptions import TemplateStructureError
from ams2xacml.policy.acl import AccessMode

XACML_NS = "urn:oasis:names:tc:xacml:1.0:policy"
LOGIN_ID_ATTRIBUTE = "urn:fedora:names:fedora:2.1:subject:loginId"

READ_RULE_ID = "deny-read-object-datastream"
MANAGEMENT_RULE_ID = "deny-management-functions"

NAMESPACES = {"xacml": XACML_NS}

# mode -> (rule holding the prototype, rule to remove)
RULES_BY_MODE: Dict[AccessMode, Tuple[str, str]] = {
    AccessMode.READ: (READ_RULE_ID, MANAGEMENT_RULE_ID),
    AccessMode.WRITE: (MANAGEMENT_RULE_ID, READ_RULE_ID),
}

_SUBJECT_DESIGNATOR_TAG = f"{{{XACML_NS}}}SubjectAttributeDesignator"


@dataclass(frozen=True)
class RuleTarget:
    """Nodes of a working document the expander operates on."""
    clone_source: ET.Element
    other_branch: ET.Element


def _root(doc: Union[ET.ElementTree, ET.Element]) -> ET.Element:
    return doc.getroot() if isinstance(doc, ET.ElementTree) else doc


def find_rule(doc: Union[ET.ElementTree, ET.Element], rule_id: str) -> ET.Element:
    """Return the top-level Rule element with the given RuleId."""
    rule = _root(doc).find(f"xacml:Rule[@RuleId='{rule_id}']", NAMESPACES)
    if rule is None:
        raise TemplateStructureError(f"Policy template has no rule '{rule_id}'")
    return rule


def find_subject_value(rule: ET.Element) -> ET.Element:
    """
    Return the first subject AttributeValue of a rule's condition.

    That is the first AttributeValue child of the elements following the
    login ID SubjectAttributeDesignator, searched anywhere below the
    rule's Condition.
    """
    rule_id = rule.get("RuleId")
    condition = rule.find("xacml:Condition", NAMESPACES)
    if condition is None:
        raise TemplateStructureError(f"Rule '{rule_id}' has no Condition")

    for parent in condition.iter():
        children = list(parent)
        for index, child in enumerate(children):
            if child.tag != _SUBJECT_DESIGNATOR_TAG:
                continue
            if child.get("AttributeId") != LOGIN_ID_ATTRIBUTE:
                continue
            for sibling in children[index + 1:]:
                value = sibling.find("xacml:AttributeValue", NAMESPACES)
                if value is not None:
                    return value

    raise TemplateStructureError(
        f"Rule '{rule_id}' has no subject AttributeValue after the login ID designator"
    )


def locate(doc: Union[ET.ElementTree, ET.Element], mode: AccessMode) -> RuleTarget:
    """
    Locate the clone prototype and the branch to remove for an access mode.

    Args:
        doc: Working document (a fresh copy of the policy template)
        mode: Access mode the generated policy speaks to

    Returns:
        RuleTarget with the prototype subject node and the other rule

    Raises:
        TemplateStructureError: If either node is missing
    """
    keep_rule_id, remove_rule_id = RULES_BY_MODE[mode]
    clone_source = find_subject_value(find_rule(doc, keep_rule_id))
    other_branch = find_rule(doc, remove_rule_id)
    return RuleTarget(clone_source=clone_source, other_branch=other_branch)
