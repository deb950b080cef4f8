"""XML fragment extraction with never-fail guarantee.

Payload lines collected from the harness logs are noisy: they may carry log-viewer
markup, marker text, correlation tokens, and trailing lines written after the
document ended. This module slices the actual XML document out of such a buffer.
Failure to find a document is a soft negative (an empty string), never an error.
"""

import re
from dataclasses import dataclass
from typing import Optional

from sync_log_parser.shared.config import XmlCaptureConfig

XML_DECLARATION = "<?xml"

# Presentation markup injected by the log viewer
_CLASS_ATTRIBUTE = re.compile(r'class="[^"]*"', re.IGNORECASE)
_LOG_VIEWER_ARTIFACT = re.compile(r'"text-log-\w+">', re.IGNORECASE)
_INTER_TAG_WHITESPACE = re.compile(r">\s+<")

# First element start tag (skips declarations, comments, doctypes, closing tags)
_ROOT_START_TAG = re.compile(r"<(?![?!/])([A-Za-z_][\w.:-]*)")


@dataclass(frozen=True)
class SanitizationResult:
    """Outcome of extracting an XML document from a raw buffer.

    Attributes:
        xml: Extracted document, empty when none was found
        closing_tag: Closing tag that was searched for (None if it could not be inferred)
        declaration_found: Whether the XML declaration was present
        closing_tag_found: Whether the closing tag was present after the declaration
    """

    xml: str
    closing_tag: Optional[str]
    declaration_found: bool
    closing_tag_found: bool

    @property
    def success(self) -> bool:
        return bool(self.xml)


def infer_closing_tag(raw: str, declaration: str = XML_DECLARATION) -> Optional[str]:
    """Infer the closing tag of the document that follows the XML declaration.

    Args:
        raw: Raw text buffer
        declaration: XML declaration token

    Returns:
        Closing tag such as ``</Account>``, or None if no root element follows
    """
    start = raw.find(declaration)
    if start == -1:
        return None
    match = _ROOT_START_TAG.search(raw, start + len(declaration))
    if match is None:
        return None
    return f"</{match.group(1)}>"


def sanitize_xml_detailed(
    raw: Optional[str],
    closing_tag: Optional[str] = None,
    *,
    declaration: str = XML_DECLARATION,
    strip_markup: bool = True,
    collapse_whitespace: bool = True
) -> SanitizationResult:
    """Extract the XML document from a raw buffer and report what was found.

    The document runs from the first XML declaration through the *last*
    occurrence of the closing tag, so noise lines appended after the real end of
    the document are dropped.

    Args:
        raw: Accumulated text buffer
        closing_tag: Expected closing tag literal; inferred from the root element if None
        declaration: XML declaration token
        strip_markup: Remove log-viewer ``class`` attributes and artifacts
        collapse_whitespace: Remove whitespace between adjacent tags

    Returns:
        SanitizationResult with the extracted document (empty on failure)
    """
    text = raw or ""
    start = text.find(declaration)
    if closing_tag is None and start != -1:
        closing_tag = infer_closing_tag(text, declaration)

    end = text.rfind(closing_tag) if closing_tag else -1
    if start == -1 or end == -1 or end < start:
        return SanitizationResult(
            xml="",
            closing_tag=closing_tag,
            declaration_found=start != -1,
            closing_tag_found=end != -1 and end >= start,
        )

    xml = text[start:end + len(closing_tag)]
    if strip_markup:
        xml = _CLASS_ATTRIBUTE.sub("", xml)
        xml = _LOG_VIEWER_ARTIFACT.sub("", xml)
    if collapse_whitespace:
        xml = _INTER_TAG_WHITESPACE.sub("><", xml)

    return SanitizationResult(
        xml=xml.strip(),
        closing_tag=closing_tag,
        declaration_found=True,
        closing_tag_found=True,
    )


def sanitize_xml(raw: Optional[str], closing_tag: Optional[str] = None) -> str:
    """Return the XML document contained in ``raw``, or an empty string.

    Examples:
        >>> sanitize_xml('noise <?xml version="1.0"?>\\n<a> <b/> </a> trailing', '</a>')
        '<?xml version="1.0"?><a><b/></a>'
        >>> sanitize_xml('<a></a>', '</a>')
        ''
    """
    return sanitize_xml_detailed(raw, closing_tag).xml


class XmlSanitizer:
    """Sanitizer bound to an XML capture configuration."""

    def __init__(self, config: Optional[XmlCaptureConfig] = None) -> None:
        self.config = config or XmlCaptureConfig()

    def sanitize(self, raw: Optional[str], closing_tag: Optional[str]) -> SanitizationResult:
        return sanitize_xml_detailed(
            raw,
            closing_tag,
            declaration=self.config.xml_declaration,
            strip_markup=self.config.strip_presentation_markup,
            collapse_whitespace=self.config.collapse_tag_whitespace,
        )

    def sanitize_source(self, raw: Optional[str]) -> SanitizationResult:
        return self.sanitize(raw, self.config.source_closing_tag)

    def sanitize_transformed(self, raw: Optional[str]) -> SanitizationResult:
        return self.sanitize(raw, self.config.transformed_closing_tag)
