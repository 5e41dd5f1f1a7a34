import json

import pytest
from bs4 import BeautifulSoup

from pagereplica.models import Block, ProductCard
from pagereplica.search_index import (
    SearchIndex,
    build_index,
    collect_documents,
    handler_script,
    inject_search_assets,
)

PAGE = "https://shop.example.com/collections/mugs"


def grid_block():
    return Block(type="ProductGrid", products=[
        ProductCard(title="Blue Stoneware Mug", url="https://shop.example.com/products/blue", price="$12.00"),
        ProductCard(title="Espresso Cup Set", url="https://shop.example.com/products/espresso",
                    description="Four small cups"),
        # duplicate card rendered twice in a carousel
        ProductCard(title="Blue Stoneware Mug", url="https://shop.example.com/products/blue"),
    ])


class TestDocuments:

    def test_products_and_page(self):
        docs = collect_documents([grid_block(), Block(type="Hero")], "Mugs", PAGE, "All our mugs")
        assert [d["id"] for d in docs] == ["product-0", "product-1", "page"]
        assert docs[0]["description"] == "$12.00"
        assert docs[-1] == {"id": "page", "title": "Mugs", "url": PAGE, "description": "All our mugs"}

    def test_page_only(self):
        docs = collect_documents([], "", PAGE)
        assert docs == [{"id": "page", "title": PAGE, "url": PAGE, "description": ""}]


class TestIndex:

    def test_query_survives_serialization(self):
        payload = json.loads(json.dumps(build_index([grid_block()], "Mugs", PAGE).serialize()))
        assert payload["version"] == 1
        assert payload["fields"] == ["title", "description"]

        index = SearchIndex.load(payload)
        hits = index.query("espresso")
        assert hits[0]["id"] == "product-1"
        assert hits[0]["url"] == "https://shop.example.com/products/espresso"
        assert hits[0]["score"] > 0

    def test_exact_title_finds_document(self):
        index = build_index([grid_block()], "Mugs", PAGE)
        assert index.query("Espresso Cup Set")[0]["id"] == "product-1"

    @pytest.mark.parametrize("title", ["About Us", "What We Do", "The One"])
    def test_title_of_common_words_finds_document(self, title):
        payload = json.loads(json.dumps(SearchIndex.build(collect_documents([], title, PAGE)).serialize()))
        hits = SearchIndex.load(payload).query(title)
        assert hits and hits[0]["id"] == "page"

    def test_prefix_match(self):
        index = build_index([grid_block()], "Mugs", PAGE)
        assert index.query("stonew")[0]["title"] == "Blue Stoneware Mug"

    def test_title_outranks_description(self):
        block = Block(type="ProductGrid", products=[
            ProductCard(title="Tea Kettle", url="https://shop.example.com/products/kettle",
                        description="Pairs well with any mug"),
            ProductCard(title="Travel Mug", url="https://shop.example.com/products/travel"),
        ])
        hits = build_index([block], "Shop", PAGE).query("mug")
        assert hits[0]["title"] == "Travel Mug"

    def test_blank_query(self):
        index = build_index([], "Mugs", PAGE)
        assert index.query("") == []
        assert index.query("  ?! ") == []

    def test_limit(self):
        index = build_index([grid_block()], "Mug shop", PAGE)
        assert len(index.query("mug", limit=1)) == 1


class TestAssets:

    def test_handler_ships_with_package(self):
        source = handler_script()
        assert "lunr.Index.load" in source

    def test_scripts_injected_once(self):
        html = "<html><body><p>x</p></body></html>"
        once = inject_search_assets(html, "mugs", "https://cdn.example.com/lunr.js", limit=5)
        twice = inject_search_assets(once, "mugs", "https://cdn.example.com/lunr.js", limit=5)
        soup = BeautifulSoup(twice, "lxml")

        scripts = soup.body.find_all("script")
        assert [s["src"] for s in scripts] == ["https://cdn.example.com/lunr.js", "search-handler.js"]
        assert scripts[1]["data-index"] == "mugs-search-index.json"
        assert scripts[1]["data-limit"] == "5"
