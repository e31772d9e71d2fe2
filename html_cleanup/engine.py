"""
Selector-driven DOM primitives shared by the cleanup phases and the series
downloader.

Every function queries with ``select()`` first and only then mutates, so the
list being walked is a stable snapshot. Elements already destroyed by an
earlier removal in the same pass (e.g. a descendant of a removed match) are
skipped.
"""

import copy
import logging

from bs4 import BeautifulSoup, Tag

from .rules import DuplicateVariantPair, ElementRemovalSpec

logger = logging.getLogger(__name__)

EMPTY_DOCUMENT = "<!DOCTYPE html><html><head><title></title></head><body></body></html>"


def is_detached(element: Tag) -> bool:
    """True once an element has been decomposed, directly or via an ancestor."""
    return element.decomposed


def remove_selectors(soup: BeautifulSoup | Tag, selectors) -> int:
    """
    Remove every element matching each selector, one selector at a time and
    strictly in order. Selectors matching nothing are a no-op.
    """
    removed_total = 0
    for selector in selectors:
        matches = soup.select(selector)
        removed = 0
        for element in matches:
            if is_detached(element):
                continue
            element.decompose()
            removed += 1
        logger.debug(f"Selector '{selector}': {len(matches)} matched, {removed} removed")
        removed_total += removed
    return removed_total


def matches_spec(element: Tag, spec: ElementRemovalSpec) -> bool:
    if not spec.is_conditional:
        return True
    value = element.get(spec.attribute)
    if value is None:
        return False
    if isinstance(value, list):
        value = " ".join(value)
    return spec.content in value


def remove_elements(root: BeautifulSoup | Tag, specs, warn_missing: bool = False) -> int:
    """
    Apply element removal specs under ``root``. A spec whose selector matches
    nothing is logged (as a warning when ``warn_missing``) and skipped.
    """
    removed_total = 0
    for spec in specs:
        matches = root.select(spec.selector)
        if not matches:
            if warn_missing:
                logger.warning(f"Element to remove not found: {spec.selector}")
            else:
                logger.debug(f"Element to remove not found: {spec.selector}")
            continue
        for element in matches:
            if is_detached(element) or not matches_spec(element, spec):
                continue
            element.decompose()
            removed_total += 1
    return removed_total


def prune_duplicate_variant(soup: BeautifulSoup | Tag, pair: DuplicateVariantPair) -> bool:
    """
    Remove the ``remove`` variant only when both variants are present. When
    either side is missing the page rendered a single variant and nothing is
    touched.
    """
    keep = soup.select(pair.keep)
    redundant = soup.select(pair.remove)
    if not keep or not redundant:
        logger.debug(f"Variant pair ({pair.keep} / {pair.remove}) not both present, leaving as is")
        return False

    for element in redundant:
        if not is_detached(element):
            element.decompose()
    logger.debug(f"Pruned {len(redundant)} '{pair.remove}' in favour of '{pair.keep}'")
    return True


def get_document_title(soup: BeautifulSoup) -> str:
    if soup.title is None:
        return ""
    return soup.title.get_text()


def set_document_title(soup: BeautifulSoup, title: str) -> None:
    """Overwrite the <title>, creating <head>/<title> if the page has none."""
    if soup.title is None:
        head = soup.head
        if head is None:
            head = soup.new_tag("head")
            if soup.html is not None:
                soup.html.insert(0, head)
            else:
                soup.insert(0, head)
        head.append(soup.new_tag("title"))
    soup.title.string = title


def new_document(title: str = "") -> BeautifulSoup:
    doc = BeautifulSoup(EMPTY_DOCUMENT, "lxml")
    doc.title.string = title
    return doc


def project_whitelist(soup: BeautifulSoup, selectors) -> BeautifulSoup:
    """
    Rebuild the document from deep copies of the whitelisted subtrees, in
    selector order then match order. Overlapping selectors copy twice.
    Returns ``soup`` itself when the whitelist is empty.
    """
    selectors = list(selectors)
    if not selectors:
        return soup

    projected = new_document(get_document_title(soup))
    for selector in selectors:
        matches = soup.select(selector)
        logger.debug(f"Whitelist '{selector}': {len(matches)} matched")
        for element in matches:
            projected.body.append(copy.copy(element))
    return projected
