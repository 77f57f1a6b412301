"""
Utilities package initialization
"""

from .history_ledger import HistoryLedger
from .label_corrections import LabelCorrections
from .records import ClassificationRecord
from .statistics import ClassificationStats, compute_statistics
from .storage import JsonFileStore, KeyValueStore, MemoryStore

__all__ = ['HistoryLedger', 'LabelCorrections', 'ClassificationRecord', 'ClassificationStats',
           'compute_statistics', 'JsonFileStore', 'KeyValueStore', 'MemoryStore']
