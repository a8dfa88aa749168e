"""Fetch the ImageNet structure XML and adapt it into ConceptNode trees.

The XML is downloaded once into the data dir and reused afterwards:

    <ImageNetStructure>
        <releaseData>fall2011</releaseData>
        <synset wnid="fall11" words="ImageNet 2011 Fall Release" gloss="...">
            <synset wnid="n00017222" words="plant, flora, plant life" gloss="...">
                ...

Only the ``words`` attribute and the ``synset`` nesting matter here; the
rest of the document is ignored. This module is the only place that knows
about the XML shape.
"""

from __future__ import annotations

import logging
import urllib.error
import urllib.request
from typing import TYPE_CHECKING

from lxml import etree

from synsets.models import UNKNOWN_LABEL, ConceptNode

if TYPE_CHECKING:
    from pathlib import Path

    from synsets.config import SynsetsConfig

logger = logging.getLogger("synsets.source")

_TIMEOUT = 60  # seconds
_ROOT_TAG = "ImageNetStructure"
_NODE_TAG = "synset"
_LABEL_ATTR = "words"


class SourceFetchError(RuntimeError):
    """The source tree could not be fetched or is malformed."""


def download_xml(cfg: SynsetsConfig, *, force: bool = False) -> Path:
    """Return the cached XML path, downloading it first if needed."""
    xml_path = cfg.xml_path
    if xml_path.exists() and not force:
        logger.info("XML file already exists: %s", xml_path)
        return xml_path

    url = cfg.source.xml_url
    if not url:
        msg = "XML_URL is not set (configure [source] xml_url in synsets.toml or XML_URL in .env)"
        raise SourceFetchError(msg)

    logger.info("Downloading XML from %s", url)
    req = urllib.request.Request(url, method="GET")  # noqa: S310
    try:
        with urllib.request.urlopen(req, timeout=_TIMEOUT) as resp:  # noqa: S310
            status = getattr(resp, "status", None) or 200  # file:// responses carry no status
            if not 200 <= status < 300:
                msg = f"HTTP error! status: {status}"
                raise SourceFetchError(msg)
            body = resp.read()
    except urllib.error.HTTPError as exc:
        raise SourceFetchError(f"HTTP error! status: {exc.code}") from exc
    except (urllib.error.URLError, TimeoutError, OSError) as exc:
        raise SourceFetchError(f"Failed to download {url}: {exc}") from exc

    xml_path.parent.mkdir(parents=True, exist_ok=True)
    xml_path.write_bytes(body)
    logger.info("Downloaded XML to %s (%.2f KB)", xml_path, len(body) / 1024)
    return xml_path


def parse_xml(data: bytes | str) -> list[ConceptNode]:
    """Adapt an ImageNetStructure document into its root ConceptNodes."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    parser = etree.XMLParser(resolve_entities=False, huge_tree=True, remove_comments=True)
    try:
        root = etree.fromstring(data, parser)
    except etree.XMLSyntaxError as exc:
        raise SourceFetchError(f"Malformed XML: {exc}") from exc

    top = list(root.iterchildren(_NODE_TAG)) if root.tag == _ROOT_TAG else []
    if not top:
        msg = f"Invalid XML structure: missing {_ROOT_TAG} or {_NODE_TAG}"
        raise SourceFetchError(msg)

    roots: list[ConceptNode] = []
    # (element, list the adapted node is appended to); reversed pushes keep
    # document order when popping.
    stack: list[tuple[etree._Element, list[ConceptNode]]] = [(el, roots) for el in reversed(top)]
    while stack:
        el, siblings = stack.pop()
        node = ConceptNode(label=el.get(_LABEL_ATTR) or UNKNOWN_LABEL)
        siblings.append(node)
        for child in reversed(list(el.iterchildren(_NODE_TAG))):
            stack.append((child, node.children))
    return roots


def load_source_tree(cfg: SynsetsConfig, *, force_download: bool = False) -> list[ConceptNode]:
    """Download (if needed) and parse the configured source XML."""
    xml_path = download_xml(cfg, force=force_download)
    logger.info("Parsing ImageNet XML: %s", xml_path)
    try:
        data = xml_path.read_bytes()
    except OSError as exc:
        raise SourceFetchError(f"Cannot read {xml_path}: {exc}") from exc
    return parse_xml(data)
