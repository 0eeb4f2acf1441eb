"""
Knowledge Base Service.

Immutable catalog of Indian crop records, the candidate disease records for
each crop, and the ordered file-name keyword table used for identification.

The data lives in YAML files under ``cropscan/data/kb``:
- crops.yaml     crop catalog (order is preserved)
- diseases.yaml  per-crop disease lists plus a ``default`` list
- keywords.yaml  ordered (keyword, crop) pairs and the prioritized major crops
"""
import os
from functools import lru_cache
from typing import Dict, List, Optional, Tuple
import logging

import yaml
from pydantic import ValidationError

from cropscan.api.schemas import CropRecord, DiseaseRecord
from cropscan.core.config import get_settings
from cropscan.services.errors import KnowledgeBaseError

logger = logging.getLogger(__name__)

CROPS_FILE = "crops.yaml"
DISEASES_FILE = "diseases.yaml"
KEYWORDS_FILE = "keywords.yaml"


class KnowledgeBase:
    """
    Read-only lookup over crop and disease records.

    Lookups never fail: an unknown or undedicated crop id resolves to the
    default disease list, so the disease selector can always draw a record.

    Usage:
        kb = KnowledgeBase.from_directory("cropscan/data/kb")
        crops = kb.list_crops()
        diseases = kb.diseases_for("rice")
    """

    def __init__(
        self,
        crops: List[CropRecord],
        diseases: Dict[str, List[DiseaseRecord]],
        default_diseases: List[DiseaseRecord],
        keywords: List[Tuple[str, str]],
        major_crops: List[str],
    ):
        self._crops: Tuple[CropRecord, ...] = tuple(crops)
        self._by_id: Dict[str, CropRecord] = {}
        for crop in self._crops:
            if crop.id in self._by_id:
                raise KnowledgeBaseError(f"Duplicate crop id in catalog: {crop.id}")
            self._by_id[crop.id] = crop

        if not self._crops:
            raise KnowledgeBaseError("Crop catalog is empty")

        if not default_diseases:
            raise KnowledgeBaseError("Default disease list is empty")
        self._default_diseases: Tuple[DiseaseRecord, ...] = tuple(default_diseases)

        self._diseases: Dict[str, Tuple[DiseaseRecord, ...]] = {}
        for crop_id, records in diseases.items():
            self._require_known(crop_id, "disease list")
            if not records:
                raise KnowledgeBaseError(f"Disease list for crop {crop_id} is empty")
            self._diseases[crop_id] = tuple(records)

        for keyword, crop_id in keywords:
            if not keyword:
                raise KnowledgeBaseError(f"Empty keyword for crop {crop_id}")
            self._require_known(crop_id, f"keyword '{keyword}'")
        self._keywords: Tuple[Tuple[str, str], ...] = tuple((k.lower(), c) for k, c in keywords)

        if not major_crops:
            raise KnowledgeBaseError("Major crops list is empty")
        for crop_id in major_crops:
            self._require_known(crop_id, "major crops list")
        self._major_crops: Tuple[str, ...] = tuple(major_crops)

        logger.info(
            f"KnowledgeBase loaded: {len(self._crops)} crops, "
            f"{len(self._diseases)} dedicated disease lists, {len(self._keywords)} keywords"
        )


    @classmethod
    def from_directory(cls, kb_root: str) -> "KnowledgeBase":
        """
        Load and validate the knowledge base from a directory of YAML files.

        Raises:
            KnowledgeBaseError: If a file is missing, unreadable, or fails validation
        """
        crops_doc = _load_yaml(os.path.join(kb_root, CROPS_FILE))
        diseases_doc = _load_yaml(os.path.join(kb_root, DISEASES_FILE))
        keywords_doc = _load_yaml(os.path.join(kb_root, KEYWORDS_FILE))

        try:
            crops = [CropRecord(**raw) for raw in crops_doc.get("crops") or []]
            diseases = {
                crop_id: [DiseaseRecord(**raw) for raw in records or []]
                for crop_id, records in (diseases_doc.get("crops") or {}).items()
            }
            default_diseases = [DiseaseRecord(**raw) for raw in diseases_doc.get("default") or []]
        except (ValidationError, TypeError) as e:
            raise KnowledgeBaseError(f"Invalid knowledge base record: {e}") from e

        try:
            keywords = [(str(entry["keyword"]), str(entry["crop"])) for entry in keywords_doc.get("keywords") or []]
        except (KeyError, TypeError) as e:
            raise KnowledgeBaseError(f"Invalid keyword entry in {KEYWORDS_FILE}: {e}") from e

        major_crops = [str(c) for c in keywords_doc.get("major_crops") or []]

        return cls(crops, diseases, default_diseases, keywords, major_crops)


    def list_crops(self) -> Tuple[CropRecord, ...]:
        """Return every crop record in catalog order."""
        return self._crops


    def get_crop(self, crop_id: str) -> Optional[CropRecord]:
        return self._by_id.get(crop_id)


    def has_dedicated_diseases(self, crop_id: str) -> bool:
        return crop_id in self._diseases


    def diseases_for(self, crop_id: str) -> Tuple[DiseaseRecord, ...]:
        """
        Return the candidate disease records for a crop.

        Falls back to the default list for crop ids without a dedicated
        entry, including ids that are not in the catalog at all.
        """
        return self._diseases.get(crop_id, self._default_diseases)


    @property
    def default_diseases(self) -> Tuple[DiseaseRecord, ...]:
        return self._default_diseases


    @property
    def keyword_table(self) -> Tuple[Tuple[str, str], ...]:
        """Ordered (keyword, crop_id) pairs; earlier entries win ties."""
        return self._keywords


    @property
    def major_crops(self) -> Tuple[CropRecord, ...]:
        return tuple(self._by_id[c] for c in self._major_crops)


    @property
    def default_crop(self) -> CropRecord:
        """Crop returned when no keyword matches: the first major crop."""
        return self._by_id[self._major_crops[0]]


    def _require_known(self, crop_id: str, where: str) -> None:
        if crop_id not in self._by_id:
            raise KnowledgeBaseError(f"Unknown crop id '{crop_id}' referenced by {where}")


def _load_yaml(path: str) -> Dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise KnowledgeBaseError(f"Failed to load knowledge base file {path}: {e}") from e

    if not isinstance(data, dict):
        raise KnowledgeBaseError(f"Knowledge base file {path} must contain a mapping")

    logger.debug(f"Loaded knowledge base file {path}")
    return data


@lru_cache(maxsize=1)
def get_knowledge_base() -> KnowledgeBase:
    return KnowledgeBase.from_directory(get_settings().KB_ROOT)
