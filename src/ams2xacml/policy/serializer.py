"""
Document Serializer - Write generated policies to disk.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union
import logging
import re
import xml.etree.ElementTree as ET

from ams2xacml.exceptions import OutputDirectoryError

logger = logging.getLogger(__name__)

HANDLE_PREFIX = "hdl_"
LOCAL_PREFIX = "lat_"

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def derive_policy_filename(handle: str) -> str:
    """
    Derive a policy file stem from an object handle.

    The part identifier after '@' is dropped, every non-alphanumeric
    character becomes '_' and the 'hdl_' prefix becomes 'lat_'.

    Example:
        >>> derive_policy_filename("hdl:1234/ab@format=cmdi")
        'lat_1234_ab'
    """
    stem = handle.split("@", 1)[0]
    stem = _NON_ALNUM.sub("_", stem)
    if stem.startswith(HANDLE_PREFIX):
        stem = LOCAL_PREFIX + stem[len(HANDLE_PREFIX):]
    return stem


def policy_path(handle: str, output_dir: Union[str, Path]) -> Path:
    return Path(output_dir) / f"{derive_policy_filename(handle)}.xml"


def policy_to_string(doc: Union[ET.ElementTree, ET.Element]) -> str:
    """Render a working document as indented XML text."""
    root = doc.getroot() if isinstance(doc, ET.ElementTree) else doc
    ET.indent(root, space="  ")
    return ET.tostring(root, encoding="unicode")


def write_policy(
    doc: ET.ElementTree,
    handle: str,
    output_dir: Union[str, Path],
) -> Path:
    """
    Write a working document to <output_dir>/<derived name>.xml.

    Args:
        doc: Working document
        handle: Handle of the archived object
        output_dir: Directory for policy files, created if absent

    Returns:
        Path of the written file

    Raises:
        OutputDirectoryError: If output_dir cannot be created
    """
    output_dir = Path(output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputDirectoryError(
            f"Cannot create destination XACML directory {output_dir}: {e}"
        ) from e

    path = policy_path(handle, output_dir)
    ET.indent(doc, space="  ")
    doc.write(path, encoding="UTF-8", xml_declaration=True)
    logger.debug(f"Wrote {path}")
    return path
