"""
Question deduplication by normalized question text
"""
from typing import Any, Dict, List


def normalize_question_text(text: str) -> str:
    """Lowercase, collapse internal whitespace and trim"""
    return " ".join(str(text).lower().split())


def dedupe_questions(questions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Drop questions whose normalized text was already seen

    Keeps the first occurrence of each key, in original order. Only exact
    normalized equality counts as a duplicate.
    """
    seen = set()
    unique = []
    for question in questions:
        key = normalize_question_text(question.get("question", ""))
        if key in seen:
            continue
        seen.add(key)
        unique.append(question)
    return unique
