"""Parse user supplied SVG markup into an lxml tree and strip executable content."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator, Optional

from lxml import etree


log = logging.getLogger(__name__)


SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"
DEFAULT_PRESERVE_ASPECT_RATIO = "xMidYMid meet"

# Subtrees under these containers are templates, not rendered content.
NON_RENDERED_CONTAINERS = frozenset({"defs"})

_XML_DECLARATION_RE = re.compile(r"^\s*<\?xml\s[^>]*\?>")


class MalformedMarkupError(ValueError):
    """Raised when the source is not well-formed markup with an ``<svg>`` root."""


@dataclass
class ParsedDocument:
    root: etree._Element
    adopted_namespace: bool = False
    removed_scripts: int = 0
    removed_handlers: int = 0
    removed_links: int = 0

    def to_string(self) -> str:
        return etree.tostring(self.root, encoding="unicode")


def local_name(node: etree._Element) -> str:
    tag = node.tag
    if not isinstance(tag, str):
        return ""
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def detach(node: etree._Element) -> bool:
    """Remove *node* from its parent, keeping its tail text in the document."""

    parent = node.getparent()
    if parent is None:
        return False
    tail = node.tail
    if tail:
        previous = node.getprevious()
        if previous is not None:
            previous.tail = (previous.tail or "") + tail
        else:
            parent.text = (parent.text or "") + tail
    parent.remove(node)
    return True


def iter_rendered(root: etree._Element) -> Iterator[etree._Element]:
    """Yield elements in document order, skipping comments and ``<defs>`` subtrees."""

    stack = [root]
    while stack:
        node = stack.pop()
        name = local_name(node)
        if not name:
            continue
        if name in NON_RENDERED_CONTAINERS:
            continue
        yield node
        stack.extend(reversed(list(node)))


def _make_parser() -> etree.XMLParser:
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        load_dtd=False,
        huge_tree=False,
        recover=False,
        remove_blank_text=False,
        encoding="utf-8",
    )


def _adopt_svg_namespace(root: etree._Element) -> etree._Element:
    nsmap = {prefix: uri for prefix, uri in root.nsmap.items() if prefix is not None}
    nsmap.setdefault("xlink", XLINK_NS)
    new_root = etree.Element(f"{{{SVG_NS}}}svg", nsmap={None: SVG_NS, **nsmap})
    for key, value in root.attrib.items():
        new_root.set(key, value)
    new_root.text = root.text
    for child in list(root):
        new_root.append(child)
    # Retag after the move so the default namespace declared on new_root is reused.
    for node in new_root.iter():
        if isinstance(node.tag, str) and not node.tag.startswith("{"):
            node.tag = f"{{{SVG_NS}}}{node.tag}"
    return new_root


def _strip_scripts(root: etree._Element) -> int:
    scripts = [node for node in root.iter() if local_name(node) == "script"]
    removed = 0
    for node in scripts:
        if detach(node):
            removed += 1
    return removed


def _strip_event_handlers(root: etree._Element) -> int:
    removed = 0
    for node in root.iter():
        if not isinstance(node.tag, str):
            continue
        for name in list(node.attrib):
            if etree.QName(name).localname.lower().startswith("on"):
                del node.attrib[name]
                removed += 1
    return removed


def _strip_script_links(root: etree._Element) -> int:
    removed = 0
    for node in root.iter():
        if not isinstance(node.tag, str):
            continue
        for name in list(node.attrib):
            if etree.QName(name).localname != "href":
                continue
            target = "".join(node.attrib[name].split()).lower()
            if target.startswith("javascript:"):
                del node.attrib[name]
                removed += 1
    return removed


def ingest(source: Optional[str]) -> ParsedDocument:
    """Parse and sanitize *source*.

    The returned tree is freshly built from the string, so the sanitizing
    steps never touch anything the caller still holds. Raises
    :class:`MalformedMarkupError` for empty input, XML syntax errors and
    documents whose root is not an ``<svg>`` element.
    """

    if source is None or not source.strip():
        raise MalformedMarkupError("SVG source is empty")

    # The source is already text; a declared encoding no longer applies to it.
    text = _XML_DECLARATION_RE.sub("", source.lstrip("\ufeff"), count=1).strip()
    if not text:
        raise MalformedMarkupError("SVG source has no root element")

    try:
        root = etree.fromstring(text.encode("utf-8"), parser=_make_parser())
    except etree.XMLSyntaxError as exc:
        message = str(exc) or exc.__class__.__name__
        raise MalformedMarkupError(f"SVG could not be parsed: {message}") from exc

    qname = etree.QName(root)
    if qname.localname != "svg" or qname.namespace not in (None, SVG_NS):
        raise MalformedMarkupError(f"Root element is <{qname.localname}>, expected <svg>")

    document = ParsedDocument(root=root)
    if qname.namespace is None:
        document.root = _adopt_svg_namespace(root)
        document.adopted_namespace = True

    document.removed_scripts = _strip_scripts(document.root)
    document.removed_handlers = _strip_event_handlers(document.root)
    document.removed_links = _strip_script_links(document.root)
    if not document.root.get("preserveAspectRatio"):
        document.root.set("preserveAspectRatio", DEFAULT_PRESERVE_ASPECT_RATIO)

    if document.removed_scripts or document.removed_handlers or document.removed_links:
        log.info(
            "Sanitized SVG: %d script element(s), %d event handler(s), %d script link(s) removed",
            document.removed_scripts,
            document.removed_handlers,
            document.removed_links,
        )
    return document


__all__ = [
    "DEFAULT_PRESERVE_ASPECT_RATIO",
    "MalformedMarkupError",
    "ParsedDocument",
    "SVG_NS",
    "XLINK_NS",
    "detach",
    "ingest",
    "iter_rendered",
    "local_name",
]
