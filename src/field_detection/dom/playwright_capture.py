"""Serialize a live Playwright page into a DOM snapshot."""

import logging
from typing import Any, Dict, Union

from playwright.async_api import Frame, Page

from .snapshot import DOCUMENT_TAG, DomNode

logger = logging.getLogger(__name__)

MAX_CAPTURE_NODES = 20000

# Walks document.documentElement and emits the nested dict shape
# understood by DomNode.from_dict. Rects are absolute page coordinates.
_CAPTURE_SCRIPT = """
(maxNodes) => {
  const SKIP = new Set(['SCRIPT', 'STYLE', 'NOSCRIPT', 'TEMPLATE']);
  let count = 0;
  const sx = window.scrollX || 0;
  const sy = window.scrollY || 0;

  const walk = (node) => {
    if (count >= maxNodes) return null;
    if (node.nodeType === Node.TEXT_NODE) {
      const text = node.textContent || '';
      if (!text.trim()) return null;
      count++;
      const range = document.createRange();
      range.selectNodeContents(node);
      const r = range.getBoundingClientRect();
      const parentStyle = node.parentElement ? getComputedStyle(node.parentElement) : null;
      return {
        tag: '#text',
        text,
        rect: {x: r.left + sx, y: r.top + sy, width: r.width, height: r.height},
        style: parentStyle ? {visibility: parentStyle.visibility} : {},
      };
    }
    if (node.nodeType !== Node.ELEMENT_NODE || SKIP.has(node.tagName)) return null;
    count++;
    const r = node.getBoundingClientRect();
    const cs = getComputedStyle(node);
    const attrs = {};
    for (const a of node.attributes) attrs[a.name] = a.value;
    const out = {
      tag: node.tagName.toLowerCase(),
      attrs,
      rect: {x: r.left + sx, y: r.top + sy, width: r.width, height: r.height},
      style: {display: cs.display, visibility: cs.visibility, opacity: cs.opacity},
      children: [],
    };
    if ('value' in node && typeof node.value === 'string') out.value = node.value;
    if ('checked' in node) out.checked = !!node.checked;
    if (node.tagName === 'OPTION') out.selected = !!node.selected;
    if (node.tagName === 'SELECT') out.multiple = !!node.multiple;
    for (const child of node.childNodes) {
      const c = walk(child);
      if (c) out.children.push(c);
    }
    return out;
  };

  const root = walk(document.documentElement);
  return {tag: '#document', children: root ? [root] : [], truncated: count >= maxNodes};
}
"""


async def capture_dom_snapshot(
    page_or_frame: Union[Page, Frame], max_nodes: int = MAX_CAPTURE_NODES
) -> DomNode:
    """Capture the current DOM of a page or frame as a snapshot tree.

    Args:
        page_or_frame: Playwright Page or Frame to read from
        max_nodes: upper bound on serialized nodes

    Returns:
        the ``#document`` node of the snapshot
    """
    data: Dict[str, Any] = await page_or_frame.evaluate(_CAPTURE_SCRIPT, max_nodes)
    if not isinstance(data, dict):
        raise RuntimeError(f"Unexpected capture payload type: {type(data).__name__}")
    if data.get("truncated"):
        logger.warning(f"DOM capture hit the {max_nodes} node limit; snapshot is truncated")
    data = dict(data)
    data["tag"] = DOCUMENT_TAG
    root = DomNode.from_dict(data)
    logger.debug(f"Captured DOM snapshot with {sum(1 for _ in root.iter())} nodes")
    return root
