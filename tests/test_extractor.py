# File: tests/test_extractor.py
import pytest
from bs4 import BeautifulSoup

from page_scout.errors import ExtractionFailure
from page_scout.extractor import extract, tree_depth

RICH_HTML = """
<html>
<head>
  <title>Shop</title>
  <meta name="description" content="Things">
  <meta property="og:title" content="Shop OG">
  <link rel="stylesheet" href="/s.css">
  <link rel="icon shortcut" href="/f.ico">
  <script src="/app.js"></script>
  <script>  var answer = 42; console.log("a very long inline script body here");  </script>
</head>
<body>
  <h2>Sub</h2><h2> Sub 2 </h2><h6>Tiny</h6>
  <form action="/search" method="post">
    <input name="q" placeholder="Search">
    <input type="hidden" name="t" value="1">
    <select name="cat"></select>
    <textarea name="note"></textarea>
    <button>Go</button>
  </form>
  <form></form>
  <img src="/a.png" alt="A"><img src="/b.png">
  <video src="/v.mp4" controls></video>
  <audio src="/s.mp3"></audio>
  <iframe src="https://frame.example" title="F"></iframe>
  <ul><li>one</li><li>two</li></ul>
  <ol><li>first</li></ol>
  <table><tr><th>h</th></tr><tr><td>1</td><td>2</td></tr></table>
</body>
</html>
"""

def test_example_fixture(example_html):
    summary = extract(example_html)
    assert summary["head"]["title"] == "T"
    assert summary["body"]["headings"]["h1"] == ["A"]
    assert summary["body"]["links"] == [{"href": "/x", "text": "L"}]
    assert summary["stats"]["total_elements"] == 6
    assert summary["stats"]["tag_count"] == {
        "html": 1, "head": 1, "title": 1, "body": 1, "h1": 1, "a": 1,
    }

def test_head_section():
    head = extract(RICH_HTML)["head"]
    assert head["title"] == "Shop"
    assert head["meta"] == [
        {"name": "description", "content": "Things"},
        {"name": "og:title", "content": "Shop OG"},
    ]
    assert head["links"] == [
        {"rel": "stylesheet", "href": "/s.css"},
        {"rel": "icon shortcut", "href": "/f.ico"},
    ]
    assert head["scripts"][0] == {"src": "/app.js", "inline": None}
    inline = head["scripts"][1]["inline"]
    assert inline.startswith("var answer = 42;")
    assert len(inline) == 50

def test_script_preview_length_configurable():
    scripts = extract(RICH_HTML, script_preview=5)["head"]["scripts"]
    assert scripts[1]["inline"] == "var a"

def test_body_section():
    body = extract(RICH_HTML)["body"]
    assert body["headings"]["h2"] == ["Sub", "Sub 2"]
    assert body["headings"]["h6"] == ["Tiny"]
    assert body["headings"]["h1"] == []

    search, empty = body["forms"]
    assert search["action"] == "/search"
    assert search["method"] == "post"
    assert [i["tag"] for i in search["inputs"]] == ["input", "input", "select", "textarea", "button"]
    assert search["inputs"][0] == {
        "tag": "input", "name": "q", "type": "input", "value": None, "placeholder": "Search",
    }
    assert search["inputs"][1]["type"] == "hidden"
    assert search["inputs"][1]["value"] == "1"
    assert empty == {"action": None, "method": "GET", "inputs": []}

    assert body["images"] == [{"src": "/a.png", "alt": "A"}, {"src": "/b.png", "alt": ""}]
    assert body["videos"] == [{"src": "/v.mp4", "controls": True}]
    assert body["audios"] == [{"src": "/s.mp3", "controls": False}]
    assert body["iframes"] == [{"src": "https://frame.example", "title": "F"}]
    assert body["lists"] == [
        {"type": "ul", "items": ["one", "two"]},
        {"type": "ol", "items": ["first"]},
    ]
    assert body["tables"] == [{"rows": [["h"], ["1", "2"]]}]

def test_empty_document():
    summary = extract("")
    assert summary["stats"] == {"total_elements": 0, "depth": 0, "tag_count": {}}
    assert summary["head"] == {"title": "", "meta": [], "links": [], "scripts": []}
    assert all(v == [] for v in summary["body"]["headings"].values())
    assert summary["body"]["links"] == []

@pytest.mark.parametrize("levels", [1, 2, 5, 12])
def test_depth_counts_nesting_levels(levels):
    markup = "<div>" * levels + "</div>" * levels
    assert extract(markup)["stats"]["depth"] == levels

def test_depth_takes_deepest_branch():
    markup = "<div><p></p></div><section><div><ul><li><b>x</b></li></ul></div></section>"
    assert extract(markup)["stats"]["depth"] == 5

def test_depth_survives_pathological_nesting():
    markup = "<span>" * 1500 + "</span>" * 1500
    stats = extract(markup)["stats"]
    assert stats["depth"] == 1500
    assert stats["tag_count"] == {"span": 1500}

def test_tree_depth_of_leaf_root():
    soup = BeautifulSoup("<p>text only</p>", "html.parser")
    assert tree_depth(soup.p) == 0

@pytest.mark.parametrize(
    "markup",
    [
        "<div><p>unclosed <b>bold</div></span>",
        "<html><body><table><tr><td>1<td>2</table>",
        "just text, no tags at all",
        "<<<>>> </// <!-- dangling comment",
        "<DIV CLASS=x><Span>Mixed</SPAN></div>",
    ],
)
def test_malformed_markup_never_raises(markup):
    summary = extract(markup)
    stats = summary["stats"]
    assert sum(stats["tag_count"].values()) == stats["total_elements"]
    assert all(tag == tag.lower() for tag in stats["tag_count"])
    assert all(count > 0 for count in stats["tag_count"].values())

def test_tag_names_case_normalized():
    stats = extract("<DIV><Span></span><span></span></DIV>")["stats"]
    assert stats["tag_count"] == {"div": 1, "span": 2}

def test_deterministic():
    assert extract(RICH_HTML) == extract(RICH_HTML)

def test_non_string_input_is_extraction_failure():
    with pytest.raises(ExtractionFailure):
        extract(b"<html></html>")  # type: ignore[arg-type]

def test_title_joins_every_title_element():
    markup = (
        "<html><head><title>Page</title></head>"
        "<body><svg><title>Icon</title></svg></body></html>"
    )
    assert extract(markup)["head"]["title"] == "PageIcon"
