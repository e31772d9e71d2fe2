"""Rule-driven cleanup of downloaded HTML pages."""

from .errors import ConfigurationError, DocumentParseError, HtmlCleanupError, RuleSetError
from .pipeline import clean_html, parse_document, sanitize_document
from .rules import (
    Directive,
    DuplicateVariantPair,
    ElementRemovalSpec,
    LinkPolicy,
    RuleSet,
    SvgPolicy,
    load_ruleset,
    ruleset_from_dict,
)

__all__ = [
    "ConfigurationError",
    "Directive",
    "DocumentParseError",
    "DuplicateVariantPair",
    "ElementRemovalSpec",
    "HtmlCleanupError",
    "LinkPolicy",
    "RuleSet",
    "RuleSetError",
    "SvgPolicy",
    "clean_html",
    "load_ruleset",
    "parse_document",
    "ruleset_from_dict",
    "sanitize_document",
]
