"""XML payload sanitization.

Extracts well-formed XML documents out of noisy multi-line log buffers.
"""

from .sanitizer import (
    XML_DECLARATION,
    SanitizationResult,
    XmlSanitizer,
    infer_closing_tag,
    sanitize_xml,
    sanitize_xml_detailed,
)

__all__ = [
    "XML_DECLARATION",
    "SanitizationResult",
    "XmlSanitizer",
    "infer_closing_tag",
    "sanitize_xml",
    "sanitize_xml_detailed",
]
