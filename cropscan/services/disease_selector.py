"""
Disease Selector Service.

Draws one disease record uniformly at random from the crop's candidate list
(or the knowledge base's default list).
"""
import random
from functools import lru_cache
from typing import Optional
import logging

from cropscan.api.schemas import CropRecord, DiseaseRecord
from cropscan.core.config import get_settings
from cropscan.services.knowledge_base import KnowledgeBase, get_knowledge_base

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_rng() -> random.Random:
    """Process-wide random source, seeded once from ``RANDOM_SEED``."""
    seed = get_settings().RANDOM_SEED
    if seed is not None:
        logger.info(f"Disease selection seeded with {seed}")
    return random.Random(seed)


class DiseaseSelector:
    """
    Uniform random disease picker.

    The random source is injectable so callers can seed or stub it; by
    default every selector shares ``get_rng()``, so scans keep advancing one
    sequence instead of replaying it.

    Usage:
        selector = DiseaseSelector(rng=random.Random(42))
        disease = selector.select(crop)
    """

    def __init__(
        self,
        knowledge_base: Optional[KnowledgeBase] = None,
        rng: Optional[random.Random] = None
    ):
        self.knowledge_base = knowledge_base or get_knowledge_base()
        self.rng = rng if rng is not None else get_rng()


    def select(self, crop: CropRecord) -> DiseaseRecord:
        diseases = self.knowledge_base.diseases_for(crop.id)
        disease = diseases[self.rng.randrange(len(diseases))]

        logger.debug(f"Selected {disease.name!r} for {crop.id} out of {len(diseases)} candidates")
        return disease
