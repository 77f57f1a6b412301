"""
Models package initialization
"""

from .classifier import SingleLabelClassifier
from .detection import ClassificationVerdict, Detection
from .detector import DetectorAdapter
from .fallback import HeuristicClassifier
from .provider import ModelProvider, StaticProvider
from .rewards import Reward, reward

__all__ = ['SingleLabelClassifier', 'ClassificationVerdict', 'Detection', 'DetectorAdapter',
           'HeuristicClassifier', 'ModelProvider', 'StaticProvider', 'Reward', 'reward']
