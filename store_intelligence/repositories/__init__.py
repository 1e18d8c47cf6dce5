"""Persistence collaborators"""

from store_intelligence.repositories.classification_repository import ClassificationRepository

__all__ = ["ClassificationRepository"]
