"""Testcase context extraction from the harness declaration line."""

from .extractor import ContextExtractor, parse_entity_context

__all__ = ["ContextExtractor", "parse_entity_context"]
