"""
Conversion Module - Batch generation of policy files for corpus subtrees.
"""

from ams2xacml.conversion.converter import (
    ConversionReport,
    ConversionResult,
    ConversionStatus,
    PolicyConverter,
)

__all__ = [
    "ConversionReport",
    "ConversionResult",
    "ConversionStatus",
    "PolicyConverter",
]
