"""Product references embedded in reply text.

Product cards reach the text stream as JSON fragments such as
``["turn0product3","Wireless Mouse"]`` or, for the link of the same card,
``["turn0product3","https://example.com/item"]``. Each fragment contributes
one field to the product with that index.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from replycapture.config import DEFAULT_CONFIG, StreamConfig
from replycapture.types import Product

PRODUCT_REF_RE = re.compile(r'product(\d{1,9})","([^"]*)"\]', re.IGNORECASE)
SELECTIONS_BLOCK_RE = re.compile(
    r'"selections"\s*:\s*\[((?:[^\[\]]|\[[^\[\]]*\])*)\]',
    re.IGNORECASE,
)
TURN_REF_RE = re.compile(r'"(turn\d+[A-Za-z]*\d*)"', re.IGNORECASE)


@dataclass(slots=True)
class _ProductAccumulator:
    index: int
    name: str | None = None
    url: str | None = None
    turn_ref: str | None = None

    def freeze(self) -> Product:
        return Product(index=self.index, name=self.name, url=self.url, turn_ref=self.turn_ref)


def _selection_turn_refs(text: str) -> list[str]:
    refs: list[str] = []
    for block in SELECTIONS_BLOCK_RE.finditer(text):
        refs.extend(match.group(1) for match in TURN_REF_RE.finditer(block.group(1)))
    return refs


def extract_products(
    text: str,
    config: StreamConfig = DEFAULT_CONFIG,
) -> tuple[Product, ...] | None:
    """Collect products by index, in order of first appearance.

    Returns ``None`` when the text carries no product references.
    """
    if not text:
        return None

    by_index: dict[int, _ProductAccumulator] = {}
    for match in PRODUCT_REF_RE.finditer(text):
        index = int(match.group(1))
        value = match.group(2)
        acc = by_index.get(index)
        if acc is None:
            acc = _ProductAccumulator(index=index)
            by_index[index] = acc
        if value.lower().startswith(config.url_prefixes):
            if acc.url is None:
                acc.url = value
        elif value and acc.name is None:
            acc.name = value

    if not by_index:
        return None

    ordered = list(by_index.values())
    for acc, ref in zip(ordered, _selection_turn_refs(text)):
        if acc.turn_ref is None:
            acc.turn_ref = ref
    return tuple(acc.freeze() for acc in ordered)
