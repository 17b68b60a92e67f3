"""
Ranked substring search over the cached snapshot.

Scores per matching field add up:
    ISBN exact 100, ISBN substring 80, title prefix 60, title substring 50,
    author 30, publisher 20.
"""

import unicodedata
from typing import Iterable, List, Tuple

from catalog_proxy.core.enums import ListingStatus
from catalog_proxy.schemas.catalog import ListingDetail

ISBN_ATTRIBUTES = ("ISBN", "GTIN", "Código universal de producto")
AUTHOR_ATTRIBUTES = ("Autor", "Author", "Autores")
PUBLISHER_ATTRIBUTES = ("Editorial", "Publisher", "Editorial del libro")


def fold(value: str) -> str:
    """Lower-case and strip accents so "Garcia" finds "García"."""
    decomposed = unicodedata.normalize("NFKD", value or "")
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower().strip()


def _alnum(value: str) -> str:
    return "".join(ch for ch in value if ch.isalnum())


def score_item(item: ListingDetail, query: str) -> int:
    """Relevance of ``item`` for an already folded query, 0 when nothing matches."""
    score = 0

    isbn = fold(item.attribute(*ISBN_ATTRIBUTES))
    query_isbn = _alnum(query)
    if isbn and query_isbn:
        isbn_digits = _alnum(isbn)
        if isbn_digits == query_isbn:
            score += 100
        elif query_isbn in isbn_digits:
            score += 80

    title = fold(item.title)
    if title.startswith(query):
        score += 60
    elif query in title:
        score += 50

    if query in fold(item.attribute(*AUTHOR_ATTRIBUTES)):
        score += 30
    if query in fold(item.attribute(*PUBLISHER_ATTRIBUTES)):
        score += 20

    return score


def search_items(items: Iterable[ListingDetail], query: str, limit: int = 50) -> List[ListingDetail]:
    """Best ``limit`` matches, closed listings excluded. An empty query matches nothing."""
    folded = fold(query)
    if not folded:
        return []

    ranked: List[Tuple[int, str, ListingDetail]] = []
    for item in items:
        if item.status == ListingStatus.CLOSED:
            continue
        score = score_item(item, folded)
        if score > 0:
            ranked.append((score, fold(item.title), item))

    ranked.sort(key=lambda entry: (-entry[0], entry[1]))
    return [item for _, _, item in ranked[:limit]]
