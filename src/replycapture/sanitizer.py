"""Remove protocol residue from reply text.

Each cleanup rule is a named ``SanitizePass``. Order matters: structural
fragments (metadata objects, reference arrays) must go before the generic
bracket/quote collapse, otherwise half-stripped fragments get mangled
instead of removed.

Every pass either leaves the text unchanged or makes it shorter, so
``sanitize`` can run the pass list to a fixed point. That makes it
idempotent: ``sanitize(sanitize(t)) == sanitize(t)``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

# Private-use characters that bracket inline entity/citation markup.
_PUA = "\ue200-\ue206"


@dataclass(frozen=True, slots=True)
class SanitizePass:
    """One regex substitution with a stable name for tests and logs."""

    name: str
    pattern: re.Pattern[str]
    replacement: str = ""

    def __post_init__(self) -> None:
        if self.pattern.match("") is not None:
            raise ValueError(f"pass {self.name!r} must not match the empty string")


SANITIZE_PASSES: tuple[SanitizePass, ...] = (
    SanitizePass(
        "entity_metadata_objects",
        re.compile(
            rf"[{_PUA}]*(?:products?|entity|entities)?[{_PUA}]*"
            r'\{\s*"(?:selections|products?|entity|entities)"\s*:\s*'
            r"\[(?:[^\[\]]|\[[^\[\]]*\])*\]\s*\}"
            rf"[{_PUA}]*",
            re.IGNORECASE,
        ),
    ),
    SanitizePass(
        "turn_reference_arrays",
        re.compile(r'\["turn\d+[^"\]]*"?(?:,"[^"\]]*")*\]?,?\s*', re.IGNORECASE),
    ),
    SanitizePass(
        "indexed_reference_remnants",
        re.compile(r'product\d+","[^"]*"\],?\s*', re.IGNORECASE),
    ),
    SanitizePass(
        "pair_arrays",
        re.compile(r'\["[^"]*","[^"]*"\],?\s*'),
    ),
    SanitizePass(
        "citation_markers",
        re.compile(rf"\ue200cite\ue202[^\ue201]*\ue201|【[^】]*】|[{_PUA}]+"),
    ),
    SanitizePass(
        "bracket_quote_runs",
        re.compile(r'[\[\]"]{2,}'),
    ),
    SanitizePass(
        "dangling_conjunction",
        re.compile(r"(?:[ \t]*\bFor\b)+(?=[ \t]*(?:\n|$))"),
    ),
    SanitizePass(
        "excess_newlines",
        re.compile(r"\n{3,}"),
        "\n\n",
    ),
    SanitizePass(
        "repeated_spaces",
        re.compile(r" {2,}"),
        " ",
    ),
)


def apply_pass(text: str, sanitize_pass: SanitizePass) -> str:
    return sanitize_pass.pattern.sub(sanitize_pass.replacement, text)


def _single_round(text: str, passes: tuple[SanitizePass, ...]) -> str:
    for sanitize_pass in passes:
        text = apply_pass(text, sanitize_pass)
    return text.strip()


def sanitize(text: str | None, passes: tuple[SanitizePass, ...] = SANITIZE_PASSES) -> str:
    """Strip metadata fragments and citation markup, then tidy whitespace."""
    if not text:
        return ""
    current = text
    while True:
        cleaned = _single_round(current, passes)
        if cleaned == current:
            return cleaned
        current = cleaned
