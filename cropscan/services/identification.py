"""
Crop Identification Service.

Resolves an uploaded image to a crop record from its file name alone: the
lowercased name is scanned against the knowledge base's ordered keyword
table and the first keyword found anywhere in the name wins. When nothing
matches, the knowledge base's default crop is returned.
"""
from typing import Optional
import logging

from cropscan.api.schemas import CropRecord, Identification
from cropscan.services.knowledge_base import KnowledgeBase, get_knowledge_base

logger = logging.getLogger(__name__)


class CropIdentifier:
    """
    File-name keyword resolver.

    Ties are broken by keyword table order, not by position in the file
    name and not by keyword length: "wheat_rice.jpg" resolves to rice because
    rice is declared before wheat.

    Usage:
        identifier = CropIdentifier()
        crop = identifier.identify("rice-leaf.jpg")
    """

    def __init__(self, knowledge_base: Optional[KnowledgeBase] = None):
        self.knowledge_base = knowledge_base or get_knowledge_base()


    def match(self, file_name: str) -> Identification:
        """
        Resolve a file name and report which keyword (if any) matched.

        Returns:
            Identification with ``matched_keyword=None`` for the default guess
        """
        normalized = (file_name or "").lower()

        for keyword, crop_id in self.knowledge_base.keyword_table:
            if keyword in normalized:
                crop = self.knowledge_base.get_crop(crop_id)
                logger.debug(f"File name {file_name!r} matched keyword {keyword!r} -> {crop_id}")
                return Identification(crop=crop, matched_keyword=keyword)

        default = self.knowledge_base.default_crop
        logger.debug(f"No keyword in file name {file_name!r}, defaulting to {default.id}")
        return Identification(crop=default)


    def identify(self, file_name: str) -> CropRecord:
        """Resolve a file name to a crop record. Always returns a record."""
        return self.match(file_name).crop
