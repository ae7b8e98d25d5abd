"""
Unit tests for policy file naming and output.
"""

import xml.etree.ElementTree as ET

import pytest

from ams2xacml.exceptions import OutputDirectoryError
from ams2xacml.policy.acl import AccessList, AccessMode
from ams2xacml.policy.generator import PolicyGenerator
from ams2xacml.policy.locator import READ_RULE_ID
from ams2xacml.policy.serializer import (
    derive_policy_filename,
    policy_path,
    policy_to_string,
    write_policy,
)


class TestDerivePolicyFilename:
    """Tests for handle -> file name."""

    def test_handle_with_part_identifier(self):
        assert derive_policy_filename("hdl:1234/ab@format=cmdi") == "lat_1234_ab"

    def test_plain_identifier(self):
        assert derive_policy_filename("1839/00-0000-0000-0001-2345-6") == "1839_00_0000_0000_0001_2345_6"

    def test_prefix_only_replaced_at_start(self):
        assert derive_policy_filename("xhdl:12") == "xhdl_12"
        assert derive_policy_filename("hdl:hdl:12") == "lat_hdl_12"

    def test_only_first_at_matters(self):
        assert derive_policy_filename("hdl:1/a@b@c") == "lat_1_a"

    def test_policy_path(self, tmp_path):
        assert policy_path("hdl:1/a", tmp_path) == tmp_path / "lat_1_a.xml"


@pytest.fixture
def policy_doc(template):
    doc, _ = PolicyGenerator(template).build(AccessMode.READ, AccessList.of_users(["alice"]))
    return doc


class TestWritePolicy:
    """Tests for write_policy."""

    def test_writes_named_file(self, policy_doc, tmp_path, subjects):
        path = write_policy(policy_doc, "hdl:1839/00-1@format=imdi", tmp_path)

        assert path == tmp_path / "lat_1839_00_1.xml"
        assert subjects(ET.parse(path), READ_RULE_ID) == ["alice"]

    def test_creates_output_directory(self, policy_doc, tmp_path):
        output_dir = tmp_path / "a" / "b" / "generatedPolicies"
        path = write_policy(policy_doc, "hdl:1/x", output_dir)

        assert output_dir.is_dir()
        assert path.is_file()

    def test_pretty_printed(self, policy_doc, tmp_path):
        path = write_policy(policy_doc, "hdl:1/x", tmp_path)
        text = path.read_text(encoding="utf-8")

        assert text.startswith("<?xml")
        assert "\n  <Rule " in text
        assert "\n    <Condition " in text

    def test_default_namespace(self, policy_doc, tmp_path):
        text = write_policy(policy_doc, "hdl:1/x", tmp_path).read_text(encoding="utf-8")

        assert 'xmlns="urn:oasis:names:tc:xacml:1.0:policy"' in text
        assert "ns0:" not in text

    def test_directory_creation_failure(self, policy_doc, tmp_path):
        blocker = tmp_path / "not-a-directory"
        blocker.write_text("")

        with pytest.raises(OutputDirectoryError):
            write_policy(policy_doc, "hdl:1/x", blocker / "policies")

    def test_policy_to_string(self, policy_doc):
        text = policy_to_string(policy_doc)
        assert "<AttributeValue" in text
        assert "alice" in text
