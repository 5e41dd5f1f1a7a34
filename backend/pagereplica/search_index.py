"""
Static full-text index for the replica.

Built with lunr (the Python port of lunr.js), so the serialized index can
be loaded unchanged by lunr.js in the browser through
static/search-handler.js. The sidecar also stores each document's fields,
since a lunr index only holds references.
"""

import re
from importlib import resources

from bs4 import BeautifulSoup
from lunr.builder import Builder
from lunr.index import Index
from lunr.stemmer import stemmer
from lunr.trimmer import trimmer

from pagereplica.models import Block

INDEX_VERSION = 1
FIELDS = ("title", "description")
TITLE_BOOST = 10
TOKEN_RE = re.compile(r"\w+", re.UNICODE)
HANDLER_FILENAME = "search-handler.js"


def collect_documents(blocks: list[Block], page_title: str, page_url: str,
                      page_description: str = "") -> list[dict]:
    """One document per distinct product card, plus one for the page itself."""
    documents = []
    seen = set()
    for block in blocks:
        if block.type != "ProductGrid":
            continue
        for card in block.products:
            key = (card.title or "", card.url or "")
            if key in seen or not (card.title or card.url):
                continue
            seen.add(key)
            documents.append({
                "id": f"product-{len(documents)}",
                "title": card.title or "",
                "url": card.url or page_url,
                "description": " ".join(p for p in (card.description, card.price) if p),
            })

    documents.append({
        "id": "page",
        "title": page_title or page_url,
        "url": page_url,
        "description": page_description or "",
    })
    return documents


def _builder() -> Builder:
    """
    lunr's default indexing pipeline minus the stop-word filter, so titles
    made only of common words ("About Us") stay searchable. Queries only run
    the stemmer, in Python and in lunr.js alike.
    """
    builder = Builder()
    builder.pipeline.add(trimmer, stemmer)
    builder.search_pipeline.add(stemmer)
    builder.ref("id")
    builder.field("title", boost=TITLE_BOOST)
    builder.field("description")
    return builder


class SearchIndex:
    def __init__(self, index: Index, documents: dict[str, dict]):
        self.index = index
        self.documents = documents

    @classmethod
    def build(cls, documents: list[dict]) -> "SearchIndex":
        prepared = [
            {"id": str(doc["id"]), **{name: str(doc.get(name) or "") for name in FIELDS}}
            for doc in documents
        ]
        builder = _builder()
        for doc in prepared:
            builder.add(doc)
        index = builder.build()
        stored = {
            str(doc["id"]): {
                "title": doc.get("title") or "",
                "url": doc.get("url") or "",
                "description": doc.get("description") or "",
            }
            for doc in documents
        }
        return cls(index, stored)

    def serialize(self) -> dict:
        return {
            "version": INDEX_VERSION,
            "fields": list(FIELDS),
            "documents": self.documents,
            "index": self.index.serialize(),
        }

    @classmethod
    def load(cls, payload: dict) -> "SearchIndex":
        return cls(Index.load(payload["index"]), payload.get("documents") or {})

    def query(self, text: str, limit: int = 10) -> list[dict]:
        """Exact, prefix and fuzzy lookup. Returns stored fields plus score."""
        terms = [t.lower() for t in TOKEN_RE.findall(text or "") if t.strip("_")]
        if not terms:
            return []
        clauses = []
        for term in terms:
            clauses.append(term)
            clauses.append(f"{term}*")
            if len(term) > 4:
                clauses.append(f"{term}~1")

        hits = []
        for match in self.index.search(" ".join(clauses))[:limit]:
            doc = dict(self.documents.get(match["ref"], {}))
            doc["id"] = match["ref"]
            doc["score"] = match["score"]
            hits.append(doc)
        return hits


def build_index(blocks: list[Block], page_title: str, page_url: str, page_description: str = "") -> SearchIndex:
    documents = collect_documents(blocks, page_title, page_url, page_description)
    print(f"  [index] Indexing {len(documents)} document(s)")
    return SearchIndex.build(documents)


def handler_script() -> str:
    """Source of the static query handler shipped next to the artifacts."""
    return resources.files("pagereplica").joinpath("static").joinpath(HANDLER_FILENAME).read_text(encoding="utf-8")


def inject_search_assets(html: str, slug: str, lunr_url: str, handler_url: str = HANDLER_FILENAME,
                         limit: int = 10) -> str:
    """Add the lunr.js and handler <script> tags before </body>, once."""
    soup = BeautifulSoup(html, "lxml")
    for old in soup.select("script[data-replica-index], script[data-replica-lunr]"):
        old.decompose()

    body = soup.body
    if body is None:
        body = soup.new_tag("body")
        (soup.html or soup).append(body)

    body.append(soup.new_tag("script", attrs={"src": lunr_url, "data-replica-lunr": ""}))
    body.append(soup.new_tag("script", attrs={
        "src": handler_url,
        "data-replica-index": "",
        "data-index": f"{slug}-search-index.json",
        "data-limit": str(limit),
        "defer": "",
    }))
    return str(soup)
