"""
Unit tests for access list expansion.

Tests:
- Special lists (everybody, all authenticated, no-one)
- User enumeration with each username format
- Collapse of large user lists
- Removal of the prototype and the unrelated rule
"""

import xml.etree.ElementTree as ET

import pytest

from ams2xacml.exceptions import EmptyAccessListError
from ams2xacml.policy.acl import AccessList, AccessMode
from ams2xacml.policy.expander import (
    ANONYMOUS_SUBJECT,
    AUTHENTICATED_SUBJECT,
    UsernameFormat,
    expand_access_list,
    format_username,
    strip_domain,
    subject_values,
)
from ams2xacml.policy.generator import PolicyGenerator
from ams2xacml.policy.locator import MANAGEMENT_RULE_ID, NAMESPACES, READ_RULE_ID, find_rule, locate
from ams2xacml.storage.corpus_store import NodeType


def _expand(template, mode, acl, **kwargs):
    doc = template.fresh_copy()
    target = locate(doc, mode)
    count = expand_access_list(doc, target.clone_source, target.other_branch, acl, **kwargs)
    return doc, count


class TestFormatUsername:
    """Tests for username rendering."""

    def test_keep(self):
        assert format_username("alice@mpi.nl", UsernameFormat.KEEP) == ["alice@mpi.nl"]

    def test_strip(self):
        assert format_username("alice@mpi.nl", UsernameFormat.STRIP) == ["alice"]

    def test_strip_from_first_at(self):
        assert strip_domain("a@b@c") == "a"

    def test_strip_without_domain(self):
        assert format_username("alice", UsernameFormat.STRIP) == ["alice"]

    def test_both(self):
        assert format_username("alice@mpi.nl", UsernameFormat.BOTH) == ["alice@mpi.nl", "alice"]


class TestSpecialLists:
    """Tests for everybody / all authenticated / no-one."""

    def test_everybody(self, template, subjects):
        doc, count = _expand(template, AccessMode.READ, AccessList.everybody())

        assert count == 1
        assert subjects(doc, READ_RULE_ID) == [ANONYMOUS_SUBJECT]

    def test_all_authenticated(self, template, subjects):
        doc, count = _expand(template, AccessMode.WRITE, AccessList.all_authenticated())

        assert count == 1
        assert subjects(doc, MANAGEMENT_RULE_ID) == [AUTHENTICATED_SUBJECT]

    def test_special_lists_ignore_threshold(self, template, subjects):
        doc, _ = _expand(
            template, AccessMode.READ, AccessList.everybody(), max_users_per_group=1
        )
        assert subjects(doc, READ_RULE_ID) == [ANONYMOUS_SUBJECT]

    def test_no_one(self, template, subjects):
        doc, count = _expand(template, AccessMode.READ, AccessList.no_one())

        assert count == 0
        assert subjects(doc, READ_RULE_ID) == []
        assert subjects(doc, MANAGEMENT_RULE_ID) is None

    def test_empty_list(self, template):
        with pytest.raises(EmptyAccessListError):
            _expand(template, AccessMode.READ, AccessList(()))

    def test_empty_list_leaves_document_alone(self, template, subjects):
        doc = template.fresh_copy()
        target = locate(doc, AccessMode.READ)

        with pytest.raises(EmptyAccessListError):
            expand_access_list(doc, target.clone_source, target.other_branch, AccessList(()))

        assert subjects(doc, MANAGEMENT_RULE_ID) is not None


class TestUserLists:
    """Tests for user enumeration and collapse."""

    USERS = ["carol@mpi.nl", "alice@mpi.nl", "bob"]

    def test_keep_order(self, template, subjects):
        doc, count = _expand(template, AccessMode.READ, AccessList.of_users(self.USERS))

        assert count == 3
        assert subjects(doc, READ_RULE_ID) == self.USERS

    def test_strip(self, template, subjects):
        doc, _ = _expand(
            template, AccessMode.READ, AccessList.of_users(self.USERS),
            username_format=UsernameFormat.STRIP,
        )
        assert subjects(doc, READ_RULE_ID) == ["carol", "alice", "bob"]

    def test_both(self, template, subjects):
        doc, count = _expand(
            template, AccessMode.WRITE, AccessList.of_users(self.USERS),
            username_format=UsernameFormat.BOTH,
        )

        assert count == 2 * len(self.USERS)
        assert subjects(doc, MANAGEMENT_RULE_ID) == [
            "carol@mpi.nl", "carol",
            "alice@mpi.nl", "alice",
            "bob", "bob",
        ]

    def test_below_threshold(self, template, subjects):
        doc, _ = _expand(
            template, AccessMode.READ, AccessList.of_users(self.USERS),
            max_users_per_group=4,
        )
        assert subjects(doc, READ_RULE_ID) == self.USERS

    @pytest.mark.parametrize("threshold", [1, 2, 3])
    def test_collapse_at_threshold(self, template, subjects, threshold):
        doc, count = _expand(
            template, AccessMode.READ, AccessList.of_users(self.USERS),
            max_users_per_group=threshold,
        )

        assert count == 1
        assert subjects(doc, READ_RULE_ID) == [AUTHENTICATED_SUBJECT]

    def test_collapse_counts_users_not_clones(self, template, subjects):
        """BOTH doubles the clones but the threshold applies to users."""
        doc, _ = _expand(
            template, AccessMode.READ, AccessList.of_users(["a@x", "b@x"]),
            username_format=UsernameFormat.BOTH,
            max_users_per_group=3,
        )
        assert subjects(doc, READ_RULE_ID) == ["a@x", "a", "b@x", "b"]

    def test_unlimited_sentinel(self, template, subjects):
        users = [f"user{i}" for i in range(50)]
        doc, _ = _expand(
            template, AccessMode.READ, AccessList.of_users(users),
            max_users_per_group=-1,
        )
        assert subjects(doc, READ_RULE_ID) == users

    def test_subject_values_without_document(self):
        acl = AccessList.of_users(["a", "b"])
        assert subject_values(acl) == ["a", "b"]
        assert subject_values(acl, max_users_per_group=2) == [AUTHENTICATED_SUBJECT]


class TestDocumentShape:
    """Tests for what the expansion leaves in the document."""

    def test_other_branch_removed(self, template, subjects):
        read_doc, _ = _expand(template, AccessMode.READ, AccessList.everybody())
        write_doc, _ = _expand(template, AccessMode.WRITE, AccessList.everybody())

        assert subjects(read_doc, MANAGEMENT_RULE_ID) is None
        assert subjects(write_doc, READ_RULE_ID) is None

    def test_prototype_removed(self, template):
        doc, _ = _expand(template, AccessMode.READ, AccessList.of_users(["alice"]))
        assert "subject-placeholder" not in ET.tostring(doc.getroot(), encoding="unicode")

    def test_rule_structure_untouched(self, template):
        """Target and designator of the kept rule are unchanged."""
        original = find_rule(template.fresh_copy(), READ_RULE_ID)
        doc, _ = _expand(template, AccessMode.READ, AccessList.of_users(["alice", "bob"]))
        rule = find_rule(doc, READ_RULE_ID)

        original_target = original.find("xacml:Target", NAMESPACES)
        target = rule.find("xacml:Target", NAMESPACES)
        assert ET.tostring(target) == ET.tostring(original_target)
        assert rule.find(".//xacml:SubjectAttributeDesignator", NAMESPACES) is not None
        assert rule.get("Effect") == "Deny"

    def test_clones_keep_data_type(self, template):
        doc, _ = _expand(template, AccessMode.READ, AccessList.of_users(["alice"]))
        rule = find_rule(doc, READ_RULE_ID)
        values = list(rule.iterfind("xacml:Condition//xacml:AttributeValue", NAMESPACES))

        assert values[0].get("DataType") == "http://www.w3.org/2001/XMLSchema#string"

    def test_template_unchanged(self, template):
        before = template.to_string()
        _expand(template, AccessMode.WRITE, AccessList.of_users(["alice", "bob"]))
        assert template.to_string() == before

    def test_expansion_is_repeatable(self, template):
        acl = AccessList.of_users(["alice@mpi.nl", "bob"])
        first, _ = _expand(template, AccessMode.READ, acl, username_format=UsernameFormat.BOTH)
        second, _ = _expand(template, AccessMode.READ, acl, username_format=UsernameFormat.BOTH)

        assert ET.tostring(first.getroot()) == ET.tostring(second.getroot())


class TestPolicyGenerator:
    """Tests for PolicyGenerator.build."""

    def test_build(self, template, subjects):
        generator = PolicyGenerator(template, max_users_per_group=2)
        doc, count = generator.build(AccessMode.WRITE, AccessList.of_users(["a", "b"]))

        assert count == 1
        assert subjects(doc, MANAGEMENT_RULE_ID) == [AUTHENTICATED_SUBJECT]

    def test_generate_needs_resolver(self, template):
        with pytest.raises(RuntimeError):
            PolicyGenerator(template).generate("MPI1#", NodeType.OBJECT)
