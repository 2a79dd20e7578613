"""
Enrichment

Looks up car details for registration numbers in the external car info API.
"""

from carstore.enrichment.fanout import resolve_all
from carstore.enrichment.resolver import CarInfoClient

__all__ = ["CarInfoClient", "resolve_all"]
