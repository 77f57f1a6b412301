"""
User label corrections
Remembers which category a user assigned to a model label so later
classifications of the same label follow the user's choice
"""

import json
import logging
from typing import Dict

from ..exceptions import LedgerWriteError
from ..taxonomy import WasteCategory, normalize_label
from .storage import KeyValueStore

CORRECTIONS_KEY = "ecosort-label-corrections-v1"


class LabelCorrections:
    """Label -> WasteCategory overrides persisted in a key-value store"""

    def __init__(self, store: KeyValueStore, key: str = CORRECTIONS_KEY):
        self.store = store
        self.key = key
        self.logger = logging.getLogger(__name__)

    def as_mapping(self) -> Dict[str, WasteCategory]:
        raw = self.store.get(self.key)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
            return {label: WasteCategory(value) for label, value in data.items()}
        except (ValueError, AttributeError) as e:
            self.logger.warning(f"Ignoring unreadable label corrections: {e}")
            return {}

    def save(self, label: str, category: WasteCategory) -> bool:
        """
        Record a correction

        Returns:
            False if the label is empty or the store could not be written
        """
        key = normalize_label(label)
        if not key:
            return False

        mapping = self.as_mapping()
        mapping[key] = WasteCategory(category)
        try:
            self.store.set(self.key, json.dumps({k: v.value for k, v in mapping.items()}))
        except LedgerWriteError as e:
            self.logger.error(f"Failed to save label correction for '{key}': {e}")
            return False

        self.logger.info(f"Saved label correction: {key} -> {WasteCategory(category).value}")
        return True

    def remove(self, label: str) -> bool:
        key = normalize_label(label)
        mapping = self.as_mapping()
        if key not in mapping:
            return False
        del mapping[key]
        try:
            self.store.set(self.key, json.dumps({k: v.value for k, v in mapping.items()}))
        except LedgerWriteError as e:
            self.logger.error(f"Failed to remove label correction for '{key}': {e}")
            return False
        return True
