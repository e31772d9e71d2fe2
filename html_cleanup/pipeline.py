import logging

from bs4 import BeautifulSoup, ParserRejectedMarkup

from .directives import DIRECTIVES
from .engine import project_whitelist, remove_selectors
from .errors import DocumentParseError
from .rules import RuleSet

logger = logging.getLogger(__name__)


def parse_document(markup: str | bytes) -> BeautifulSoup:
    try:
        soup = BeautifulSoup(markup, "lxml")
    except ParserRejectedMarkup as e:
        raise DocumentParseError(f"Input could not be parsed as HTML: {e}") from e
    if soup.html is None:
        raise DocumentParseError("Input yields no HTML document")
    if soup.body is None:
        logger.debug("Document has no <body>, adding an empty one")
        soup.html.append(soup.new_tag("body"))
    return soup


def sanitize_document(soup: BeautifulSoup, rules: RuleSet) -> BeautifulSoup:
    """
    Run the four cleanup phases over ``soup``. Returns the cleaned document,
    which is a new object when a whitelist is configured.
    """
    # 1. Removal before any structural edit
    removed = remove_selectors(soup, rules.pre_remove)
    logger.info(f"Pre-removal: {removed} elements removed by {len(rules.pre_remove)} selectors")

    # 2. Structural edits, in step order
    for directive in rules.directives:
        logger.debug(f"Step {directive.step}: {directive.name}")
        DIRECTIVES[directive.name](soup, rules, **directive.params)

    # 3. Removal of elements only identifiable after the edits
    removed = remove_selectors(soup, rules.post_remove)
    logger.info(f"Post-removal: {removed} elements removed by {len(rules.post_remove)} selectors")

    # 4. Optional projection
    if rules.whitelist:
        logger.info(f"Projecting {len(rules.whitelist)} whitelist selectors")
    return project_whitelist(soup, rules.whitelist)


def clean_html(markup: str | bytes, rules: RuleSet) -> str:
    logger.info(f"Cleaning document with rule set '{rules.name}'")
    soup = parse_document(markup)
    cleaned = sanitize_document(soup, rules)
    return str(cleaned)
