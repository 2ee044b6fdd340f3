import re
from collections import Counter

_TOKEN_RE = re.compile(r"[a-z0-9]+")
MIN_KEYWORD_LENGTH = 3

STOPWORDS = frozenset(
    {
        "about", "above", "after", "again", "against", "all", "also", "and", "any",
        "are", "because", "been", "before", "being", "below", "between", "both",
        "but", "can", "could", "did", "does", "doing", "down", "during", "each",
        "few", "for", "from", "further", "had", "has", "have", "having", "her",
        "here", "hers", "him", "his", "how", "into", "its", "itself", "just",
        "more", "most", "not", "now", "off", "once", "only", "other", "our",
        "ours", "out", "over", "own", "same", "she", "should", "some", "such",
        "than", "that", "the", "their", "theirs", "them", "then", "there",
        "these", "they", "this", "those", "through", "too", "under", "until",
        "very", "was", "were", "what", "when", "where", "which", "while", "who",
        "whom", "why", "will", "with", "would", "you", "your", "yours",
    }
)


def tokenize(text: str) -> list[str]:
    """Lowercase alphanumeric tokens of at least three characters, minus stopwords."""
    return [
        token
        for token in _TOKEN_RE.findall(text.lower())
        if len(token) >= MIN_KEYWORD_LENGTH and token not in STOPWORDS
    ]


def keyword_counts(text: str) -> dict[str, int]:
    """Term frequencies, sorted by keyword so equal texts give equal mappings."""
    return dict(sorted(Counter(tokenize(text)).items()))


def query_keywords(query: str) -> list[str]:
    """Distinct query keywords in first-seen order."""
    return list(dict.fromkeys(tokenize(query)))
