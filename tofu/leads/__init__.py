"""Lead, search-history and app-config persistence."""

from .store import ConfigStore, LeadStore

__all__ = ["ConfigStore", "LeadStore"]
