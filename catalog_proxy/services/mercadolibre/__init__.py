"""
MercadoLibre integration: OAuth token handling, the REST client and the
pieces of the catalog sync pipeline (enumeration, enrichment, normalization).
"""
from .auth import MercadoLibreAuthManager
from .client import MercadoLibreClient
from .enricher import BatchEnricher
from .enumerator import PageEnumerator
from .normalizer import normalize_item
from .token_manager import AccessCredential, TokenCache
