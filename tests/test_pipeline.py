# tests/test_pipeline.py - end to end cleanup phases
import pytest
from bs4 import BeautifulSoup

from html_cleanup.errors import DocumentParseError
from html_cleanup.pipeline import clean_html, parse_document, sanitize_document
from html_cleanup.rules import Directive, RuleSet, load_ruleset

SCENARIO_INPUT = (
    "<html><head><title>Old</title></head><body><script>x</script>"
    '<h1 class="page-heading__title">New</h1><p>Body</p></body></html>'
)

SCENARIO_RULES = RuleSet(
    name="scenario",
    title_selector="h1.page-heading__title",
    pre_remove=("script",),
    directives=(Directive(10, "extract_title"), Directive(20, "normalize_headings")),
)

DEFAULT_SITE_PAGE = """<!DOCTYPE html>
<html><head><title>Site</title><style>p {}</style></head><body>
<header>navigation</header>
<div class="page-heading"><h1 class="page-heading__title">Chapter One</h1></div>
<h2 class="for-larger">Wide</h2><h2 class="for-smaller">Narrow</h2>
<p style="color:red">Read <a href="/x">more</a><a href="/y"></a></p>
<h2 class="section-heading">Part</h2>
<div data-bg="q.jpg"><h3>Be kind</h3></div>
<div class="separator"></div>
<svg class="icon"></svg><svg class="chart"></svg>
<script>alert(1)</script>
</body></html>
"""

EXPANSION_PAGE = """<html><head><title>Raw</title></head><body>
<header>top</header>
<div class="mainContent">
  <h1 class="pageTitle">Guide</h1>
  <p class="pageSubtitle">Sub <a href="/more">more</a></p>
  <div class="text"><h3 class="title">Heading</h3><p class="copy">Copy</p></div>
  <div class="graph">chart</div>
  <p>stray</p>
</div>
<footer>bottom</footer>
</body></html>
"""


class TestScenario:
    """The heading/title scenario end to end."""

    def test_cleaned_body(self):
        output = clean_html(SCENARIO_INPUT, SCENARIO_RULES)
        soup = BeautifulSoup(output, "lxml")
        assert soup.find("script") is None
        headings = soup.find_all("h1")
        assert len(headings) == 1
        assert headings[0].get_text() == "New"
        assert soup.body.contents[0] is headings[0]
        assert str(soup.body.contents[1]) == "<p>Body</p>"
        assert soup.title.get_text() == "New"

    def test_accepts_bytes(self):
        output = clean_html(SCENARIO_INPUT.encode("utf-8"), SCENARIO_RULES)
        assert "<title>New</title>" in output


class TestPhases:

    def test_post_removal_sees_directive_output(self):
        rules = RuleSet(
            directives=(Directive(1, "retag", {"selector": "h2", "tag": "h4"}),),
            post_remove=("h4",),
        )
        soup = sanitize_document(parse_document("<h2>a</h2><p>b</p>"), rules)
        assert soup.find("h2") is None
        assert soup.find("h4") is None
        assert soup.find("p") is not None

    def test_pre_removal_runs_before_directives(self):
        rules = RuleSet(
            title_selector="h1.t",
            pre_remove=("h1.t",),
            directives=(Directive(1, "extract_title"),),
        )
        soup = sanitize_document(parse_document("<h1 class='t'>gone</h1>"), rules)
        assert soup.title.get_text() == ""

    def test_whitelist_runs_last(self):
        rules = RuleSet(
            title_selector="h1",
            directives=(Directive(1, "extract_title"),),
            whitelist=("p",),
        )
        soup = sanitize_document(parse_document("<h1>T</h1><p>x</p><div>y</div>"), rules)
        assert [c.name for c in soup.body.find_all(recursive=False)] == ["p"]
        assert soup.title.get_text() == "T"

    def test_no_whitelist_keeps_document(self):
        soup = parse_document("<p>x</p>")
        assert sanitize_document(soup, RuleSet()) is soup


class TestParseDocument:

    def test_empty_input_rejected(self):
        with pytest.raises(DocumentParseError):
            parse_document("")

    def test_fragment_gets_body(self):
        soup = parse_document("<p>x</p>")
        assert soup.body.find("p").get_text() == "x"

    def test_document_without_body_gets_empty_body(self):
        output = clean_html("<html><head><title>T</title></head></html>", RuleSet())
        soup = BeautifulSoup(output, "lxml")
        assert soup.title.get_text() == "T"
        assert soup.body is not None
        assert soup.body.contents == []

    def test_body_without_headings_left_gets_one(self):
        output = clean_html(
            "<html><head><title>Old</title></head><body><h1 class='t'>New</h1></body></html>",
            RuleSet(
                title_selector="h1.t",
                directives=(Directive(10, "extract_title"), Directive(20, "normalize_headings")),
            ),
        )
        soup = BeautifulSoup(output, "lxml")
        headings = soup.find_all("h1")
        assert len(headings) == 1
        assert headings[0].get_text() == "New"
        assert soup.body.contents[0] is headings[0]


class TestBundledRulesets:

    def test_default_site(self):
        soup = BeautifulSoup(clean_html(DEFAULT_SITE_PAGE, load_ruleset("default")), "lxml")

        assert soup.title.get_text() == "Chapter One"
        for tag in ("header", "script", "style"):
            assert soup.find(tag) is None
        headings = soup.find_all("h1")
        assert len(headings) == 1
        assert soup.body.contents[0] is headings[0]
        assert headings[0].get_text() == "Chapter One"

        assert soup.select(".for-smaller") == []
        assert [h.get_text() for h in soup.find_all("h2")] == ["Wide"]
        paragraph = soup.find("p")
        assert paragraph.get_text() == "Read more"
        assert "style" not in paragraph.attrs
        assert soup.find("a") is None

        assert soup.select_one("h4.section-heading").get_text() == "Part"
        assert soup.find("blockquote").get_text() == "Be kind"
        assert soup.select(".separator") == []
        assert len(soup.find_all("hr")) == 1
        assert soup.select("div.page-heading") == []

        svgs = soup.find_all("svg")
        assert len(svgs) == 1
        assert svgs[0]["height"] == "1em"

    def test_expansion_blocks_site(self):
        soup = BeautifulSoup(clean_html(EXPANSION_PAGE, load_ruleset("expansion_blocks")), "lxml")

        assert soup.title.get_text() == "Guide"
        children = soup.body.find_all(recursive=False)
        assert [c.name for c in children] == ["h1", "p", "h3", "p"]
        assert children[1].get_text() == "Sub more"
        assert children[3].get_text() == "Copy"
        assert soup.find("header") is None
        assert soup.find("footer") is None
        assert "stray" not in soup.get_text()
