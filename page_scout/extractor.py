# === FILE: page_scout/extractor.py ===
"""Structural extraction for PageScout.

:func:`extract` turns raw markup into a :class:`StructuralSummary` with three
sections:

* ``head``:  title (text of every ``<title>`` joined), meta pairs, ``<link>`` relations, script references.
* ``body``:  headings h1…h6, anchors, forms with their inputs, media,
  iframes, lists and tables.
* ``stats``: element count, maximum tree depth, per-tag frequency.

Queries run against the whole document (an ``<a>`` inside ``<head>`` still
counts as a body link), so the summary is a flat inventory rather than a
layout model. Malformed markup never raises: whatever the parser recovers is
summarised and missing parts come back as empty collections.
"""
from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from typing import Dict, List, Optional, TypedDict

from bs4 import BeautifulSoup, ParserRejectedMarkup
from bs4.element import Tag

from page_scout.errors import ExtractionFailure
from page_scout.logger import logger

__all__: Sequence[str] = ("StructuralSummary", "extract", "tree_depth")

HEADING_LEVELS = ("h1", "h2", "h3", "h4", "h5", "h6")
FORM_CONTROLS = ["input", "select", "textarea", "button"]
DEFAULT_SCRIPT_PREVIEW = 50


class MetaPair(TypedDict):
    name: Optional[str]
    content: Optional[str]


class LinkRelation(TypedDict):
    rel: Optional[str]
    href: Optional[str]


class ScriptRef(TypedDict):
    src: Optional[str]
    inline: Optional[str]


class HeadSection(TypedDict):
    title: str
    meta: List[MetaPair]
    links: List[LinkRelation]
    scripts: List[ScriptRef]


class Anchor(TypedDict):
    href: Optional[str]
    text: str


class InputDescriptor(TypedDict):
    tag: str
    name: Optional[str]
    type: str
    value: Optional[str]
    placeholder: Optional[str]


class FormInfo(TypedDict):
    action: Optional[str]
    method: str
    inputs: List[InputDescriptor]


class ImageRef(TypedDict):
    src: Optional[str]
    alt: str


class MediaRef(TypedDict):
    src: Optional[str]
    controls: bool


class FrameRef(TypedDict):
    src: Optional[str]
    title: Optional[str]


class ListInfo(TypedDict):
    type: str
    items: List[str]


class TableInfo(TypedDict):
    rows: List[List[str]]


class BodySection(TypedDict):
    headings: Dict[str, List[str]]
    links: List[Anchor]
    forms: List[FormInfo]
    images: List[ImageRef]
    videos: List[MediaRef]
    audios: List[MediaRef]
    iframes: List[FrameRef]
    lists: List[ListInfo]
    tables: List[TableInfo]


class Stats(TypedDict):
    total_elements: int
    depth: int
    tag_count: Dict[str, int]


class StructuralSummary(TypedDict):
    head: HeadSection
    body: BodySection
    stats: Stats


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _attr(tag: Tag, name: str) -> Optional[str]:
    """Attribute as a plain string; multi-valued attributes (rel, class) are space-joined."""
    value = tag.get(name)
    if value is None:
        return None
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def _text(tag: Tag) -> str:
    return tag.get_text().strip()


def tree_depth(root: Tag) -> int:
    """Maximum nesting depth of elements below *root*; *root* itself is level 0.

    Each branch is walked from its own entry level, so the result is the
    deepest element's level. The walk is iterative: pathological nesting
    must not hit the interpreter's recursion limit.
    """
    deepest = 0
    stack = [(root, 0)]
    while stack:
        node, level = stack.pop()
        children = [c for c in node.children if isinstance(c, Tag)]
        if not children:
            deepest = max(deepest, level)
            continue
        stack.extend((child, level + 1) for child in children)
    return deepest


def _head(soup: BeautifulSoup, preview: int) -> HeadSection:
    head = soup.find("head")
    scripts: List[ScriptRef] = []
    links: List[LinkRelation] = []
    if isinstance(head, Tag):
        links = [{"rel": _attr(el, "rel"), "href": _attr(el, "href")} for el in head.find_all("link")]
        for el in head.find_all("script"):
            code = (el.string or "").strip()
            scripts.append({"src": _attr(el, "src"), "inline": code[:preview] or None})
    return {
        # every <title> counts, an <svg><title> included
        "title": "".join(el.get_text() for el in soup.find_all("title")),
        "meta": [
            {"name": _attr(el, "name") or _attr(el, "property"), "content": _attr(el, "content")}
            for el in soup.find_all("meta")
        ],
        "links": links,
        "scripts": scripts,
    }


def _form(form: Tag) -> FormInfo:
    inputs: List[InputDescriptor] = []
    for el in form.find_all(FORM_CONTROLS):
        inputs.append(
            {
                "tag": el.name,
                "name": _attr(el, "name"),
                "type": _attr(el, "type") or el.name.lower(),
                "value": _attr(el, "value"),
                "placeholder": _attr(el, "placeholder"),
            }
        )
    return {
        "action": _attr(form, "action"),
        "method": _attr(form, "method") or "GET",
        "inputs": inputs,
    }


def _body(soup: BeautifulSoup) -> BodySection:
    return {
        "headings": {h: [_text(el) for el in soup.find_all(h)] for h in HEADING_LEVELS},
        "links": [{"href": _attr(el, "href"), "text": _text(el)} for el in soup.find_all("a")],
        "forms": [_form(el) for el in soup.find_all("form")],
        "images": [{"src": _attr(el, "src"), "alt": _attr(el, "alt") or ""} for el in soup.find_all("img")],
        "videos": [{"src": _attr(el, "src"), "controls": el.has_attr("controls")} for el in soup.find_all("video")],
        "audios": [{"src": _attr(el, "src"), "controls": el.has_attr("controls")} for el in soup.find_all("audio")],
        "iframes": [{"src": _attr(el, "src"), "title": _attr(el, "title")} for el in soup.find_all("iframe")],
        "lists": [
            {"type": el.name, "items": [_text(li) for li in el.find_all("li")]}
            for el in soup.find_all(["ul", "ol"])
        ],
        "tables": [
            {"rows": [[_text(cell) for cell in row.find_all(["th", "td"])] for row in el.find_all("tr")]}
            for el in soup.find_all("table")
        ],
    }


def _stats(soup: BeautifulSoup) -> Stats:
    elements = soup.find_all(True)
    tag_count = Counter(el.name.lower() for el in elements)
    return {
        "total_elements": len(elements),
        "depth": tree_depth(soup),
        "tag_count": dict(tag_count),
    }


# ---------------------------------------------------------------------------
# Public function
# ---------------------------------------------------------------------------


def extract(markup: str, *, script_preview: int = DEFAULT_SCRIPT_PREVIEW) -> StructuralSummary:
    """Parse *markup* and return its structural summary.

    Parameters
    ----------
    markup
        Raw HTML as posted by the extraction routine.
    script_preview
        How many characters of inline ``<head>`` scripts to keep.

    Raises
    ------
    ExtractionFailure
        Only when *markup* is not a string at all; broken HTML is tolerated.
    """
    if not isinstance(markup, str):
        raise ExtractionFailure(f"Expected markup string, got {type(markup).__name__}.")

    try:
        soup = BeautifulSoup(markup, "html.parser")
    except ParserRejectedMarkup as exc:
        logger.warning("Parser rejected markup, summarising an empty document: %s", exc)
        soup = BeautifulSoup("", "html.parser")
    return {
        "head": _head(soup, script_preview),
        "body": _body(soup),
        "stats": _stats(soup),
    }
