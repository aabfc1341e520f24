"""Deterministic summary, sentiment and keyword extraction.

Used whenever the AI summarizer is not configured or fails.  Every function
here is pure and depends only on the fragment body:

- :func:`extractive_summary` scores sentences on length, position, signal
  vocabulary, digits, quotes and URL-likeness, keeps the best four and emits
  them in their original order.
- :func:`classify_sentiment` compares case-insensitive occurrence counts of
  two fixed word lists with a +/-2 dead zone that defaults to neutral.
- :func:`extract_keywords` returns up to five repeated alphabetic tokens by
  descending frequency.
"""

from __future__ import annotations

import re
from collections import Counter

from news_scanner.core.types import Sentiment

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_ALPHA_RE = re.compile(r"^[a-zA-Z]+$")
_DIGIT_RE = re.compile(r"\d")

MIN_SENTENCE_LENGTH: int = 10
SUMMARY_SENTENCES: int = 4
FULL_BODY_MAX_SENTENCES: int = 3

SIGNAL_WORDS: tuple[str, ...] = ("announces", "new", "first", "major", "breaking", "official")

POSITIVE_WORDS: tuple[str, ...] = (
    "good",
    "great",
    "success",
    "growth",
    "win",
    "positive",
    "amazing",
)
NEGATIVE_WORDS: tuple[str, ...] = (
    "bad",
    "terrible",
    "crisis",
    "problem",
    "decline",
    "loss",
    "negative",
)
SENTIMENT_MARGIN: int = 2

STOP_WORDS: frozenset[str] = frozenset(
    {"the", "and", "for", "are", "but", "not", "you", "all", "can", "had", "was", "one"}
)
MIN_KEYWORD_LENGTH: int = 4
MAX_KEYWORDS: int = 5


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def split_sentences(text: str) -> list[str]:
    """Split on runs of ``.``, ``!`` and ``?``; drop pieces of 10 characters or fewer."""
    return [
        part.strip()
        for part in _SENTENCE_SPLIT_RE.split(text)
        if len(part.strip()) > MIN_SENTENCE_LENGTH
    ]


def score_sentence(sentence: str, position: int) -> int:
    """Score one sentence for inclusion in an extractive summary.

    Args:
        sentence: The sentence text.
        position: Zero-based index of the sentence in the body.

    Returns:
        The integer score; may be negative.
    """
    score = 0
    word_count = len(sentence.split())
    if 8 <= word_count <= 30:
        score += 2
    if position == 0:
        score += 3
    elif position < 3:
        score += 1
    lowered = sentence.lower()
    score += sum(1 for word in SIGNAL_WORDS if word in lowered)
    if _DIGIT_RE.search(sentence):
        score += 1
    if '"' in sentence:
        score += 1
    if "http" in sentence:
        score -= 2
    return score


def extractive_summary(body: str) -> str:
    """Return the four best-scoring sentences of ``body`` in body order.

    Bodies with three sentences or fewer are returned unchanged.
    """
    sentences = split_sentences(body)
    if len(sentences) <= FULL_BODY_MAX_SENTENCES:
        return body

    scored = [(score_sentence(s, i), i) for i, s in enumerate(sentences)]
    # sorted() is stable, so equal scores keep body order.
    best = sorted(scored, key=lambda item: -item[0])[:SUMMARY_SENTENCES]
    chosen = sorted(index for _, index in best)
    return " ".join(sentences[i] for i in chosen).strip()


# ---------------------------------------------------------------------------
# Sentiment
# ---------------------------------------------------------------------------


def classify_sentiment(body: str) -> Sentiment:
    """Label ``body`` positive, negative or neutral by word-list counts."""
    lowered = body.lower()
    positive = sum(lowered.count(word) for word in POSITIVE_WORDS)
    negative = sum(lowered.count(word) for word in NEGATIVE_WORDS)
    diff = positive - negative
    if diff > SENTIMENT_MARGIN:
        return "positive"
    if diff < -SENTIMENT_MARGIN:
        return "negative"
    return "neutral"


# ---------------------------------------------------------------------------
# Keywords
# ---------------------------------------------------------------------------


def extract_keywords(body: str) -> list[str]:
    """Return up to five repeated, alphabetic, non-stop-word tokens.

    Ordered by descending frequency; ties keep first-seen order.
    """
    counts = Counter(
        token
        for token in body.lower().split()
        if len(token) >= MIN_KEYWORD_LENGTH and _ALPHA_RE.match(token) and token not in STOP_WORDS
    )
    repeated = [(word, count) for word, count in counts.items() if count > 1]
    repeated.sort(key=lambda item: -item[1])
    return [word for word, _ in repeated[:MAX_KEYWORDS]]
