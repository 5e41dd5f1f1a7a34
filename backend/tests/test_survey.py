from pagereplica.survey import SURVEY_JS, parse_survey, survey_page

RAW = {
    "assets": [
        {"type": "heading", "tag": "h1", "text": "Summer sale", "parent_key": "section:hero",
         "markup": "<h1>" + "x" * 500 + "</h1>"},
        {"type": "input", "tag": "input", "input_type": "search", "placeholder": "Search",
         "parent_key": "header:site-header", "markup": "<input type=search>"},
        {"type": "banana", "tag": "blink"},
    ],
    "collections": {
        "carousels": [{"selector": ".keen-slider", "slides": 4, "sample": "<div class=keen-slider>"}],
        "forms": [{"action": "https://example.com/contact", "method": "post", "fields": ["name", "email"]}],
        "buttons": [{"text": "Shop now", "href": "https://example.com/shop"}],
        "videos": [{"src": "https://cdn.example.com/a.mp4"}],
    },
}


class TestParseSurvey:

    def test_markup_capped(self):
        result = parse_survey(RAW, markup_cap=50)
        assert all(len(a.markup) <= 50 for a in result.assets)

    def test_malformed_asset_skipped(self):
        result = parse_survey(RAW)
        assert [a.type for a in result.assets] == ["heading", "input"]
        assert result.assets[0].parent_key == "section:hero"

    def test_collections(self):
        collections = parse_survey(RAW).collections
        assert collections.carousels[0].slides == 4
        assert collections.forms[0].fields == ["name", "email"]
        assert collections.buttons[0].text == "Shop now"
        assert collections.videos[0].poster is None

    def test_empty_payload(self):
        result = parse_survey(None)
        assert result.assets == []
        assert result.count("image") == 0


async def test_survey_page_passes_selectors(fake_page):
    seen = {}

    def answer(opts):
        seen.update(opts)
        return RAW

    fake_page.responses[SURVEY_JS] = answer
    result = await survey_page(fake_page, markup_cap=120)
    assert result.count("heading") == 1
    assert seen["markupCap"] == 120
    assert seen["selectors"][0][0] == "button"
