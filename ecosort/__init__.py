"""
EcoSort Waste Classification

Classifies photos of waste items into disposal categories using an object
detector and an image classifier, with a filename-based fallback, and keeps a
history of classifications with reward points and statistics.
"""

__version__ = "1.0.0"
__author__ = "EcoSort Project"
