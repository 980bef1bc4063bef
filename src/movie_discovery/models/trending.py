"""Trending search data models."""

from attrs import define


@define
class TrendingRecord:
    """Represents one trending-store document counting searches for a movie."""

    movie_id: int
    search_term: str
    count: int
    poster_url: str = ""
    document_id: str = ""
    title: str = ""

    @classmethod
    def from_document(cls, doc: dict) -> "TrendingRecord":
        return cls(
            movie_id=int(doc["movie_id"]),
            search_term=doc.get("searchTerm", ""),
            count=int(doc.get("count") or 0),
            poster_url=doc.get("poster_url", ""),
            document_id=doc.get("$id", ""),
            title=doc.get("title", ""),
        )
