"""
Text helpers used to build central index entries.

Titles, summaries and keywords are cheap extractive projections of the
memory content; the index never stores the content itself.
"""

import re

TITLE_MAX_CHARS = 50
SUMMARY_MAX_CHARS = 100
MAX_KEYWORDS = 10
MIN_KEYWORD_CHARS = 3

STOP_WORDS = frozenset(
    {
        "a", "about", "after", "all", "also", "an", "and", "any", "are", "as", "at",
        "be", "been", "but", "by", "can", "could", "did", "do", "does", "for", "from",
        "had", "has", "have", "he", "her", "his", "how", "i", "if", "in", "into", "is",
        "it", "its", "just", "me", "my", "not", "of", "on", "or", "our", "she", "should",
        "so", "some", "than", "that", "the", "their", "them", "then", "there", "these",
        "they", "this", "to", "too", "us", "was", "we", "were", "what", "when", "where",
        "which", "who", "why", "will", "with", "would", "you", "your",
    }
)

_WORD_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9_\-\.]*[A-Za-z0-9]|[A-Za-z0-9]")


def tokenize(text: str) -> list[str]:
    """Split text into lowercase word tokens."""
    return [match.group(0).lower() for match in _WORD_RE.finditer(text or "")]


def content_words(text: str) -> list[str]:
    """Lowercase tokens with stop words and very short words removed."""
    return [w for w in tokenize(text) if len(w) >= MIN_KEYWORD_CHARS and w not in STOP_WORDS]


def extract_title(content: str) -> str:
    """First non-empty line, cut to 50 characters."""
    first_line = next((line.strip() for line in content.splitlines() if line.strip()), "")
    if len(first_line) > TITLE_MAX_CHARS:
        return first_line[:TITLE_MAX_CHARS] + "..."
    return first_line


def extract_summary(content: str) -> str:
    """Leading 100 characters of the whitespace-normalised content."""
    flat = " ".join(content.split())
    if len(flat) > SUMMARY_MAX_CHARS:
        return flat[:SUMMARY_MAX_CHARS] + "..."
    return flat


def extract_keywords(content: str, limit: int = MAX_KEYWORDS) -> list[str]:
    """
    Distinct content words in order of first appearance.

    Casing of the first occurrence is kept ("TLS" stays "TLS"); duplicates
    are detected case-insensitively.
    """
    seen: set[str] = set()
    keywords: list[str] = []

    for match in _WORD_RE.finditer(content or ""):
        word = match.group(0)
        lowered = word.lower()
        if len(lowered) < MIN_KEYWORD_CHARS or lowered in STOP_WORDS or lowered in seen:
            continue
        seen.add(lowered)
        keywords.append(word)
        if len(keywords) >= limit:
            break

    return keywords


def keyword_overlap(query: str, keywords: list[str]) -> list[str]:
    """Keywords (original casing) that occur as tokens of the query."""
    query_tokens = set(tokenize(query))
    return [kw for kw in keywords if kw.lower() in query_tokens]
