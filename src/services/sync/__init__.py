"""
Sync module - Talking to the ingestion server and reconciling the offline queue.
"""

from .client import IngestionClient
from .reconciler import UploadReconciler
from .sentences import SentenceProvider

__all__ = ["IngestionClient", "SentenceProvider", "UploadReconciler"]
