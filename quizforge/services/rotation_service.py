"""
Question rotation across repeated quiz attempts

Prefers template indices the user has not been served yet; history lives in
a RotationStore keyed by document id.
"""
import copy
import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, List

from quizforge.config import settings
from quizforge.utils.cache import RotationStore, rotation_store

logger = logging.getLogger(__name__)


@dataclass
class Selection:
    """
    One quiz worth of questions

    selected_indices are template indices; display_indices is the 0..k-1
    numbering shown to the user. Each question copy carries
    metadata["template_index"].
    """
    selected_indices: List[int]
    questions: List[Dict[str, Any]]
    display_indices: List[int]


class RotationService:

    def __init__(self, store: RotationStore = None, rng: random.Random = None, reset_ratio: float = None):
        self.store = store or rotation_store
        self.rng = rng or random.Random()
        self.reset_ratio = settings.ROTATION_RESET_RATIO if reset_ratio is None else reset_ratio

    @staticmethod
    def storage_key(document_id) -> str:
        return f"quiz_used_indices:{document_id}"

    def load_used(self, document_id, pool_size: int) -> List[int]:
        """Previously served indices, restricted to the current template range"""
        stored = self.store.get(self.storage_key(document_id))
        if not isinstance(stored, list):
            return []
        used = []
        for value in stored:
            if isinstance(value, int) and not isinstance(value, bool) and 0 <= value < pool_size and value not in used:
                used.append(value)
        return used

    def reset(self, document_id) -> bool:
        """Forget the rotation history of a document"""
        logger.info(f"Resetting question history for document {document_id}")
        return self.store.delete(self.storage_key(document_id))

    def _build(self, questions: List[Dict[str, Any]], indices: List[int]) -> Selection:
        selected = []
        for index in indices:
            question = copy.deepcopy(questions[index])
            question.setdefault("metadata", {})["template_index"] = index
            selected.append(question)
        return Selection(
            selected_indices=list(indices),
            questions=selected,
            display_indices=list(range(len(indices))),
        )

    def select(self, document_id, questions: List[Dict[str, Any]], count: int) -> Selection:
        """
        Pick ``count`` template indices for one attempt

        All indices are returned in order when the pool is not larger than
        ``count``. Otherwise unused indices are preferred; when fewer than
        ``count`` remain the history is reset if under ``reset_ratio * count``
        are left, or topped up with a random sample of used indices.
        """
        if count <= 0:
            raise ValueError("count must be positive")

        pool_size = len(questions)
        if pool_size <= count:
            logger.info(f"Using all {pool_size} questions (requested {count})")
            return self._build(questions, list(range(pool_size)))

        used = self.load_used(document_id, pool_size)
        used_set = set(used)
        available = [i for i in range(pool_size) if i not in used_set]

        if len(available) < count:
            if len(available) < count * self.reset_ratio:
                logger.info(f"Resetting question tracking (only {len(available)} unused questions left)")
                used = []
                available = list(range(pool_size))
            else:
                needed = count - len(available)
                logger.info(f"Recycling {needed} previously used questions")
                available.extend(self.rng.sample(used, needed))

        self.rng.shuffle(available)
        selected = available[:count]

        history = list(dict.fromkeys(used + selected))
        if not self.store.set(self.storage_key(document_id), history):
            logger.warning(f"Could not store rotation history for document {document_id}")

        logger.info(f"Selected template indices {selected} for document {document_id}")
        return self._build(questions, selected)


# Global instance
rotation_service = RotationService()
