"""
Fuzzy comparison of patient and clinic names.

Names arrive as free text from clinic reports and from agents, so every
comparison works on a normalized form: lower case, "ё" folded to "е",
whitespace collapsed. Scores are integers in 0..100.
"""
import math
import re
from typing import List

# Minimal per-token similarity for two name tokens to count as the same word
TOKEN_MATCH_THRESHOLD = 60

# Substring containment between clinic names after stripping
CLINIC_SUBSTRING_SCORE = 90

_WHITESPACE = re.compile(r"\s+")
_QUOTES = re.compile(r"[«»\"“”„]")
_ORG_FORMS = re.compile(r"\b(?:клиника|ооо|оао)\b")


def round_half_up(value: float) -> int:
    """Round non-negative value half up (0.5 -> 1), unlike built-in round()."""
    return int(math.floor(value + 0.5))


def normalize_name(name: str) -> str:
    """Lower-case, fold "ё" into "е", collapse whitespace and trim."""
    if not name:
        return ""
    text = name.lower().replace("ё", "е")
    return _WHITESPACE.sub(" ", text).strip()


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance with unit insert/delete/substitute costs."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current[j] = previous[j - 1]
            else:
                current[j] = 1 + min(previous[j], current[j - 1], previous[j - 1])
        previous = current
    return previous[-1]


def char_similarity(a: str, b: str) -> int:
    """
    Similarity of two strings based on edit distance.

    Two empty strings carry no signal and score 0.
    """
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 0
    return round_half_up((1 - levenshtein(a, b) / max_len) * 100)


def _tokens(normalized: str) -> List[str]:
    return [t for t in normalized.split(" ") if t]


def name_similarity(name1: str, name2: str) -> int:
    """
    Compare two person names (ФИО) regardless of word order.

    Each token of the first name is greedily paired with the best unused
    token of the second one; pairs below TOKEN_MATCH_THRESHOLD are dropped.
    The average pair score is weighted by the share of the longer name that
    got matched, so "Иванов Иван" vs "Иванов Иван Иванович" is penalized for
    the missing patronymic.
    """
    n1 = normalize_name(name1)
    n2 = normalize_name(name2)

    if n1 and n1 == n2:
        return 100

    tokens1 = _tokens(n1)
    tokens2 = _tokens(n2)
    if not tokens1 or not tokens2:
        return 0

    used = set()
    matched = 0
    total_score = 0

    for t1 in tokens1:
        best_score = 0
        best_idx = -1
        for idx, t2 in enumerate(tokens2):
            if idx in used:
                continue
            score = char_similarity(t1, t2)
            if score > best_score:
                best_score = score
                best_idx = idx

        if best_idx >= 0 and best_score >= TOKEN_MATCH_THRESHOLD:
            used.add(best_idx)
            matched += 1
            total_score += best_score

    if matched == 0:
        return 0

    coverage = matched / max(len(tokens1), len(tokens2))
    return round_half_up((total_score / matched) * coverage)


def strip_clinic_name(name: str) -> str:
    """Normalize clinic name and drop quotes and organizational forms."""
    text = _QUOTES.sub("", normalize_name(name))
    text = _ORG_FORMS.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def clinic_similarity(name1: str, name2: str) -> int:
    """
    Compare two clinic names.

    Clinic names are short phrases, so after stripping they are compared
    as whole strings: exact match scores 100, containment either way
    scores CLINIC_SUBSTRING_SCORE, otherwise edit-distance similarity.
    """
    n1 = strip_clinic_name(name1)
    n2 = strip_clinic_name(name2)

    # Names that strip to nothing carry no signal; never bind on them
    if not n1 or not n2:
        return 0
    if n1 == n2:
        return 100
    if n1 in n2 or n2 in n1:
        return CLINIC_SUBSTRING_SCORE
    return char_similarity(n1, n2)
