"""
Shared fixtures for ams2xacml tests.
"""

import os
import xml.etree.ElementTree as ET

import pytest

from ams2xacml.policy.locator import NAMESPACES
from ams2xacml.policy.template import load_template
from ams2xacml.storage.corpus_store import CorpusNode, InMemoryCorpusStore, NodeType


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep AMS2XACML_* variables of the calling shell out of the tests."""
    for name in list(os.environ):
        if name.startswith("AMS2XACML_"):
            monkeypatch.delenv(name)


@pytest.fixture
def template():
    """The bundled policy template."""
    return load_template()


def rule_subjects(doc, rule_id):
    """Subject values of a rule, or None if the rule is absent."""
    root = doc.getroot() if isinstance(doc, ET.ElementTree) else doc
    rule = root.find(f"xacml:Rule[@RuleId='{rule_id}']", NAMESPACES)
    if rule is None:
        return None
    return [
        value.text
        for value in rule.iterfind("xacml:Condition//xacml:AttributeValue", NAMESPACES)
    ]


@pytest.fixture
def subjects():
    """Helper returning the subject values of a rule in a document."""
    return rule_subjects


@pytest.fixture
def parse_policy():
    """Helper parsing a written policy file."""
    def _parse(path):
        return ET.parse(path)
    return _parse


@pytest.fixture
def corpus_store():
    """
    Small corpus:

    MPI100# corpus
      MPI101# session (write: marker userA userB)
        MPI102# object (read: everybody)
        MPI103# object (read: all-authenticated), off-site
      MPI104# session (write: nobody), no handle
    """
    return InMemoryCorpusStore([
        CorpusNode(
            "MPI100#", NodeType.CORPUS,
            handle="hdl:1839/00-0000-0000-0000-0100-1",
            write_rights="cleared",
            children=["MPI101#", "MPI104#"],
        ),
        CorpusNode(
            "MPI101#", NodeType.SESSION,
            handle="hdl:1839/00-0000-0000-0000-0101-2@format=imdi",
            write_rights="marker userA userB",
            children=["MPI102#", "MPI103#"],
        ),
        CorpusNode(
            "MPI102#", NodeType.OBJECT,
            handle="hdl:1839/00-0000-0000-0000-0102-3",
            read_rights="everybody",
        ),
        CorpusNode(
            "MPI103#", NodeType.OBJECT,
            handle="hdl:1839/00-0000-0000-0000-0103-4",
            read_rights="all-authenticated",
            on_site=False,
        ),
        CorpusNode(
            "MPI104#", NodeType.SESSION,
            write_rights="nobody",
        ),
    ])


