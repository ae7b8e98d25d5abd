"""
Template Store - Load the bundled XACML policy template.

The template is parsed once per process and never mutated. Every
archived object gets its own deep copy to work on.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional
import copy
import logging
import xml.etree.ElementTree as ET

from ams2xacml.exceptions import TemplateError
from ams2xacml.policy.acl import AccessMode
from ams2xacml.policy.locator import XACML_NS, locate

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_PATH = Path(__file__).parent / "templates" / "default_policy.xml"

# Serialize XACML elements in the default namespace instead of ns0:
ET.register_namespace("", XACML_NS)


class PolicyTemplate:
    """
    Read-only parsed policy template.

    Example:
        >>> template = load_template()
        >>> doc = template.fresh_copy()
    """

    def __init__(self, root: ET.Element, source: Optional[Path] = None):
        self._root = root
        self.source = source

    def fresh_copy(self) -> ET.ElementTree:
        """Return a structurally independent working document."""
        return ET.ElementTree(copy.deepcopy(self._root))

    def validate(self) -> None:
        """
        Check that the template has a prototype and a removable branch for
        every access mode.

        Raises:
            TemplateStructureError: If a rule node cannot be located
        """
        for mode in AccessMode:
            locate(self.fresh_copy(), mode)

    def to_string(self) -> str:
        return ET.tostring(self._root, encoding="unicode")


def parse_template(path: Path) -> PolicyTemplate:
    """
    Parse and validate a policy template file.

    Raises:
        TemplateError: If the file is missing or not well-formed XML
        TemplateStructureError: If the expected rules are missing
    """
    try:
        tree = ET.parse(path)
    except FileNotFoundError as e:
        raise TemplateError(f"Policy template not found: {path}") from e
    except OSError as e:
        raise TemplateError(f"Cannot read policy template {path}: {e}") from e
    except ET.ParseError as e:
        raise TemplateError(f"Policy template {path} is malformed: {e}") from e

    template = PolicyTemplate(tree.getroot(), source=path)
    template.validate()
    logger.info(f"Loaded policy template from {path}")
    return template


@lru_cache(maxsize=None)
def _cached_template(path: Path) -> PolicyTemplate:
    return parse_template(path)


def load_template(path: Optional[Path] = None) -> PolicyTemplate:
    """Load a policy template once; later calls return the same instance."""
    return _cached_template(Path(path) if path else DEFAULT_TEMPLATE_PATH)
