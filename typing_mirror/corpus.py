"""Passages to type, loaded from a two-column CSV with a built-in fallback."""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Passage:
    text: str
    author: str = ""


BUILTIN_PASSAGES: tuple[Passage, ...] = (
    Passage(
        "The quick brown fox jumps over the lazy dog. Pack my box with five dozen liquor jugs. "
        "How vexingly quick daft zebras jump!",
    ),
    Passage(
        "In the beginning the Universe was created. This has made a lot of people very angry "
        "and been widely regarded as a bad move.",
        "Douglas Adams",
    ),
    Passage(
        "It was the best of times, it was the worst of times, it was the age of wisdom, "
        "it was the age of foolishness.",
        "Charles Dickens",
    ),
    Passage(
        "All that is gold does not glitter, not all those who wander are lost; the old that is "
        "strong does not wither, deep roots are not reached by the frost.",
        "J.R.R. Tolkien",
    ),
    Passage(
        "To be, or not to be, that is the question: Whether 'tis nobler in the mind to suffer "
        "the slings and arrows of outrageous fortune.",
        "William Shakespeare",
    ),
    Passage(
        "The greatest trick the devil ever pulled was convincing the world he did not exist. "
        "And like that, he is gone.",
        "Charles Baudelaire",
    ),
)


def _clean(value: str) -> str:
    return value.strip().strip('"').strip()


def parse_passages_csv(text: str) -> list[Passage]:
    """Parse ``quote``/``author`` rows. Rows with an empty quote are skipped."""

    reader = csv.reader(io.StringIO(text.strip()), skipinitialspace=True)
    header = next(reader, None)
    if header is None:
        return []

    columns = [_clean(name).lower() for name in header]
    if "quote" not in columns:
        return []
    quote_idx = columns.index("quote")
    author_idx = columns.index("author") if "author" in columns else None

    passages: list[Passage] = []
    for row in reader:
        quote = _clean(row[quote_idx]) if quote_idx < len(row) else ""
        if not quote:
            continue
        author = ""
        if author_idx is not None and author_idx < len(row):
            author = _clean(row[author_idx])
        passages.append(Passage(quote, author))
    return passages


def load_corpus(path: Path | None) -> list[Passage]:
    """Load passages from ``path``, falling back to the built-in list.

    An unreadable or malformed source is never an error for the caller.
    """

    if path is None:
        return list(BUILTIN_PASSAGES)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Corpus %s unavailable (%s); using built-in passages", path, exc)
        return list(BUILTIN_PASSAGES)

    try:
        passages = parse_passages_csv(text)
    except csv.Error as exc:
        logger.debug("Corpus %s is malformed (%s); using built-in passages", path, exc)
        return list(BUILTIN_PASSAGES)

    if not passages:
        logger.debug("Corpus %s has no usable rows; using built-in passages", path)
        return list(BUILTIN_PASSAGES)
    logger.info("Loaded %d passages from %s", len(passages), path)
    return passages


def passage_at(corpus: Sequence[Passage], index: int) -> Passage:
    if not corpus:
        raise ValueError("corpus must not be empty")
    return corpus[index % len(corpus)]
