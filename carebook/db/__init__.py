# Models package (re-export for stable imports)
from .models import StoredDocument

__all__ = ["StoredDocument"]
