"""In-page scripts run against real DOMs in headless Chromium.

Needs `playwright install chromium`; skipped when no browser can be launched.
Run only these with `pytest -m browser`.
"""

import pytest

from pagereplica.products import ProductCardResolver
from pagereplica.search import SearchRoute, SearchSynthesizer, extract_search_descriptor
from pagereplica.survey import survey_page
from pagereplica.videos import PLACEHOLDER_ATTR, resolve_videos

pytestmark = pytest.mark.browser

PIXEL = "data:image/gif;base64,R0lGODlhAQABAAAAACH5BAEKAAEALAAAAAABAAEAAAICTAEAOw=="


@pytest.fixture
async def page():
    async_api = pytest.importorskip("playwright.async_api")
    playwright = await async_api.async_playwright().start()
    try:
        browser = await playwright.chromium.launch()
    except Exception as e:
        await playwright.stop()
        pytest.skip(f"chromium unavailable: {e}")
    page = await browser.new_page()
    # Nothing leaves the machine; the DOMs only reference fake hosts
    await page.route("**/*", lambda route: route.abort())
    yield page
    await browser.close()
    await playwright.stop()


async def load(page, body):
    await page.set_content(f"<html><head></head><body>{body}</body></html>", wait_until="domcontentloaded")


class TestVideoTagging:

    async def test_blob_slide_left_to_its_widget(self, page):
        await load(page, """
            <div class="reeview-app-widget">
              <div class="keen-slider__slide">
                <video src="blob:https://shop.example.com/9f1c"></video>
              </div>
              <script type="application/json">{"video": "https://cdn.example.com/clip.mp4"}</script>
            </div>""")
        records = await resolve_videos(page)

        assert len(records) == 1
        assert records[0].type == "widget"
        assert "https://cdn.example.com/clip.mp4" in records[0].source_urls
        assert await page.locator(f".keen-slider__slide[{PLACEHOLDER_ATTR}]").count() == 0
        assert await page.get_attribute(".reeview-app-widget", PLACEHOLDER_ATTR) == "0"

    async def test_real_slide_claims_its_widget(self, page):
        await load(page, """
            <div class="reeview-app-widget">
              <div class="keen-slider__slide">
                <video src="https://cdn.example.com/real.mp4"></video>
                <span class="vw-cmp__in-video-card--title">Unboxing</span>
              </div>
            </div>""")
        records = await resolve_videos(page)

        assert [r.type for r in records] == ["keen-slide"]
        assert records[0].source_urls == ["https://cdn.example.com/real.mp4"]
        assert records[0].title == "Unboxing"
        assert await page.get_attribute(".reeview-app-widget", PLACEHOLDER_ATTR) is None

    async def test_each_placeholder_appears_once(self, page):
        await load(page, """
            <div class="keen-slider__slide"><video src="https://cdn.example.com/a.mp4"></video></div>
            <div class="reeview-app-widget"><div data-video-url="https://cdn.example.com/b.mp4"></div></div>
            <section><video src="https://cdn.example.com/c.mp4" controls></video></section>
            <iframe src="https://www.youtube.com/embed/dQw4w9WgXcQ"></iframe>""")
        records = await resolve_videos(page)
        html = await page.content()

        assert [r.index for r in records] == [0, 1, 2, 3]
        assert [r.type for r in records] == ["keen-slide", "widget", "html5", "youtube"]
        for record in records:
            assert html.count(f'{PLACEHOLDER_ATTR}="{record.index}"') == 1


class TestSurvey:

    async def test_each_element_visited_once(self, page):
        await load(page, f"""
            <section id="hero">
              <div class="wrap">
                <h2>Stoneware</h2>
                <a href="/collections/mugs"><img src="{PIXEL}" alt="Mugs"></a>
                <a class="btn" href="/cart">Checkout</a>
                <input type="submit" value="Go">
              </div>
              <div id="host"></div>
            </section>""")
        await page.evaluate("""() => {
            const root = document.querySelector('#host').attachShadow({ mode: 'open' });
            root.innerHTML = '<button>Shadow buy</button>';
        }""")
        result = await survey_page(page)

        assert sorted(a.type for a in result.assets) == ["button", "button", "button", "heading", "image", "link"]
        # a.btn is a button, not a link
        links = [a for a in result.assets if a.type == "link"]
        assert len(links) == 1
        assert links[0].markup.startswith('<a href="/collections/mugs">')
        shadow = [a for a in result.assets if a.text == "Shadow buy"]
        assert len(shadow) == 1
        assert shadow[0].parent_key == "div:#host"


class TestProductCards:

    async def test_five_tiles_two_cards(self, page):
        plain = f'<div class="tile"><img src="{PIXEL}"><h3>Mug {{i}}</h3><span class="price">$12.00</span></div>'
        buyable = (f'<div class="tile"><img src="{PIXEL}"><h3>Mug {{i}}</h3><span class="price">$12.00</span>'
                   '<button>Add to cart</button></div>')
        tiles = "".join(plain.format(i=i) for i in range(3)) + "".join(buyable.format(i=i) for i in range(3, 5))
        await load(page, f'<section class="collection">{tiles}</section>')

        result = await ProductCardResolver().resolve(page, "custom")

        assert result.selector_used == ".tile"
        assert [c.title for c in result.cards] == ["Mug 3", "Mug 4"]
        assert [c.score for c in result.cards] == [4, 4]


class TestSearchScripts:

    async def test_search_input_chosen_over_email(self, page):
        await load(page, """
            <footer><input type="email" placeholder="Email to subscribe"></footer>
            <header><div class="search-container"><input type="text" placeholder="Search products"></div></header>""")
        descriptor = await extract_search_descriptor(page, SearchRoute("https://shop.example.com/search"))

        assert 'placeholder="Search products"' in descriptor.input_markup
        assert 'class="search-container"' in descriptor.container_markup

    async def test_fallback_wires_visible_inputs_only(self, page):
        html = ('<html><head></head><body>'
                '<input id="shown" type="search">'
                '<div style="display:none"><input id="hidden" type="search"></div>'
                '</body></html>')
        await page.set_content(SearchSynthesizer().inject_fallback(html, "https://shop.example.com/"),
                               wait_until="domcontentloaded")
        await page.wait_for_function("() => document.querySelector('#shown').__replicaSearch === true")

        assert await page.evaluate("() => !!document.querySelector('#hidden').__replicaSearch") is False
