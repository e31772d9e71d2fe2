"""
Structural edit directives run between the pre- and post-removal phases.

Each directive takes the document, the active RuleSet and its own keyword
parameters from the rule set file. Directives mutate the document in place.
"""

import logging

from bs4 import BeautifulSoup, NavigableString, Tag

from .engine import (
    get_document_title,
    is_detached,
    prune_duplicate_variant,
    remove_elements,
    set_document_title,
)
from .rules import LinkPolicy, RuleSet, SvgPolicy

logger = logging.getLogger(__name__)

HEADING_TAGS: list[str] = ["h1", "h2", "h3", "h4", "h5", "h6"]


def _selector_tuple(value) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


def extract_title(soup: BeautifulSoup, rules: RuleSet, selector: str | None = None) -> None:
    """
    Use the text of the title source element as the document title. A
    configured selector that matches nothing yields an empty title; with no
    selector configured at all the page's own <title> is kept.
    """
    selector = selector or rules.title_selector
    if not selector:
        return
    source = soup.select_one(selector)
    title = source.get_text() if source is not None else ""
    if source is None:
        logger.warning(f"Title element not found: {selector}")
    set_document_title(soup, title)
    logger.debug(f"Document title set to '{title}'")


def flatten_links(soup: BeautifulSoup, rules: RuleSet, policy: LinkPolicy | None = None) -> None:
    policy = policy or rules.link_policy
    flattened = emptied = removed = 0
    for anchor in soup.select("a"):
        if is_detached(anchor):
            continue
        text = anchor.get_text()
        if text.strip():
            anchor.replace_with(NavigableString(text))
            anchor.decompose()
            flattened += 1
        elif policy is LinkPolicy.REMOVE:
            anchor.decompose()
            removed += 1
        else:
            anchor["href"] = ""
            emptied += 1
    logger.debug(f"Links: {flattened} flattened, {emptied} emptied, {removed} removed")


def strip_inline_styles(
    soup: BeautifulSoup,
    rules: RuleSet,
    attributes=("style",),
    except_within=(),
) -> None:
    """
    Drop presentational attributes everywhere except inside subtrees matched
    by ``except_within`` (the matched element itself included).
    """
    attributes = _selector_tuple(attributes)
    protected: set[int] = set()
    for selector in _selector_tuple(except_within):
        for root in soup.select(selector):
            protected.add(id(root))
            protected.update(id(d) for d in root.descendants if isinstance(d, Tag))

    stripped = 0
    for element in soup.find_all(True):
        if id(element) in protected:
            continue
        for attribute in attributes:
            if attribute in element.attrs:
                del element[attribute]
                stripped += 1
    logger.debug(f"Stripped {stripped} attributes ({', '.join(attributes)})")


def retag(soup: BeautifulSoup, rules: RuleSet, selector: str, tag: str) -> None:
    """
    Swap every match for a ``tag`` element carrying the same class and inner
    markup, e.g. h2 -> h4 so that splitters don't see a chapter boundary.
    """
    count = 0
    for element in soup.select(selector):
        if is_detached(element):
            continue
        replacement = soup.new_tag(tag)
        if element.get("class"):
            replacement["class"] = element["class"]
        for child in list(element.contents):
            replacement.append(child.extract())
        element.replace_with(replacement)
        element.decompose()
        count += 1
    logger.debug(f"Retagged {count} '{selector}' as <{tag}>")


def background_images_to_blockquotes(soup: BeautifulSoup, rules: RuleSet, attribute: str = "data-bg") -> None:
    """
    Lazily loaded background images carry their caption in a nested heading;
    keep the caption as a <blockquote> and drop the image container.
    """
    count = 0
    for element in soup.select(f"[{attribute}]"):
        if is_detached(element):
            continue
        heading = element.find(HEADING_TAGS)
        if heading is None:
            continue
        quote = soup.new_tag("blockquote")
        quote.string = heading.get_text(strip=True)
        element.replace_with(quote)
        element.decompose()
        count += 1
    logger.debug(f"Converted {count} background images to blockquotes")


def insert_separators(soup: BeautifulSoup, rules: RuleSet, selector: str = ".separator") -> None:
    count = 0
    for element in soup.select(selector):
        if is_detached(element):
            continue
        element.insert_after(soup.new_tag("hr"))
        count += 1
    logger.debug(f"Inserted {count} separators after '{selector}'")


def normalize_headings(soup: BeautifulSoup, rules: RuleSet, tag: str = "h1") -> None:
    """
    Leave exactly one top-level heading: the document title, as the first
    child of the body. A body that was empty on input gets no heading; a body
    holding nothing but old headings still gets the title heading.
    """
    body = soup.body
    has_content = body is not None and bool(body.contents)

    for heading in soup.find_all(tag):
        if not is_detached(heading):
            heading.decompose()

    if not has_content:
        logger.debug("Empty body, no title heading inserted")
        return
    heading = soup.new_tag(tag)
    heading.string = get_document_title(soup)
    body.insert(0, heading)


def process_svgs(
    soup: BeautifulSoup,
    rules: RuleSet,
    policy: SvgPolicy | None = None,
    icon_selector: str | None = None,
    icon_height: str | None = None,
) -> None:
    policy = policy or rules.svg_policy
    icon_selector = icon_selector or rules.icon_selector
    icon_height = icon_height or rules.icon_height

    svgs = soup.find_all("svg")
    if policy is SvgPolicy.RETAIN_ALL:
        for svg in svgs:
            if "style" in svg.attrs:
                del svg["style"]
        logger.debug(f"Kept {len(svgs)} svgs, inline style stripped")
        return

    icons = {id(svg) for svg in soup.select(icon_selector)}
    removed = 0
    for svg in svgs:
        if is_detached(svg):
            continue
        if id(svg) in icons:
            svg["height"] = icon_height
        else:
            svg.decompose()
            removed += 1
    logger.debug(f"Removed {removed} non-icon svgs, resized {len(svgs) - removed}")


def prune_duplicate_variants(soup: BeautifulSoup, rules: RuleSet, pairs=()) -> None:
    for pair in pairs:
        prune_duplicate_variant(soup, pair)


def remove_matching(soup: BeautifulSoup, rules: RuleSet, specs=()) -> None:
    remove_elements(soup, specs)


DIRECTIVES = {
    "extract_title": extract_title,
    "flatten_links": flatten_links,
    "strip_inline_styles": strip_inline_styles,
    "retag": retag,
    "background_images_to_blockquotes": background_images_to_blockquotes,
    "insert_separators": insert_separators,
    "normalize_headings": normalize_headings,
    "process_svgs": process_svgs,
    "prune_duplicate_variants": prune_duplicate_variants,
    "remove_elements": remove_matching,
}
