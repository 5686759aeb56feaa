"""
Tagged line extraction for agent responses.

Agents are prompted to emit structured findings as tagged lines, e.g.

    HYPOTHESIS: self-attention scales better than RNNs
    MARKET: Will the result replicate on ImageNet? | PROBABILITY: 65

Extraction is best-effort pattern scanning: a tag matches anywhere in a
line, case-insensitively, and captures the rest of that line.
"""
import re
from typing import List, Tuple

DEFAULT_PROBABILITY = 50

_PROBABILITY_SPLIT = re.compile(r'\s*\|?\s*PROBABILITY\s*:.*$', re.IGNORECASE)
_LEADING_NUMBER = re.compile(r'^\s*(-?\d+(?:\.\d+)?)')


def extract_tagged(text: str, tag: str) -> List[str]:
    """Return the trimmed remainder of every line carrying ``TAG:``."""
    if not text:
        return []
    pattern = re.compile(rf'{re.escape(tag)}:[ \t]*(.+)', re.IGNORECASE)
    results = []
    for match in pattern.finditer(text):
        value = match.group(1).strip()
        if value:
            results.append(value)
    return results


def parse_probability(raw: str, default: int = DEFAULT_PROBABILITY) -> int:
    """Parse a leading percentage, clamped to 0..100.

    Decimals up to 1 are read as fractions ("0.65" is 65). Unparsable values
    fall back to ``default`` rather than being dropped.
    """
    if raw is None:
        return default
    match = _LEADING_NUMBER.match(raw)
    if not match:
        return default
    number = match.group(1)
    value = float(number)
    if '.' in number and 0 <= value <= 1:
        value *= 100
    return max(0, min(100, int(round(value))))


def extract_market_proposals(text: str) -> List[Tuple[str, int]]:
    """
    Pair MARKET lines with PROBABILITY lines by position.

    A market line usually carries its probability inline
    ("MARKET: <question> | PROBABILITY: 70"); the question is cut before the
    probability tag. Markets without a matching probability get the default.
    """
    questions = extract_tagged(text, 'MARKET')
    probabilities = extract_tagged(text, 'PROBABILITY')

    proposals = []
    for i, raw_question in enumerate(questions):
        question = _PROBABILITY_SPLIT.sub('', raw_question).strip()
        if not question:
            continue
        raw_prob = probabilities[i] if i < len(probabilities) else None
        proposals.append((question, parse_probability(raw_prob)))
    return proposals


def title_keywords(title: str, min_length: int = 5, limit: int = 3) -> List[str]:
    """Fallback discovery keywords: first few long words of a title"""
    words = [w for w in (title or '').split() if len(w) >= min_length]
    return words[:limit]
