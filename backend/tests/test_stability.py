import itertools

from pagereplica.stability import (
    DOM_SIGNATURE_JS,
    FREEZE_JS,
    freeze_page,
    reveal_hidden_widgets,
    wait_for_dom_stable,
    wait_for_widgets,
)


class TestWaitForWidgets:

    async def test_first_present_selector_wins(self, fake_page):
        fake_page.present = {".keen-slider"}
        assert await wait_for_widgets(fake_page, timeout=200) == ".keen-slider"

    async def test_nothing_appears(self, fake_page):
        assert await wait_for_widgets(fake_page, timeout=50) is None


class TestDomStable:

    async def test_quiet_dom(self, fake_page):
        fake_page.responses[DOM_SIGNATURE_JS] = [120, 4000]
        assert await wait_for_dom_stable(fake_page, quiet_window=0.0, timeout=1.0, poll_interval=0.01)

    async def test_never_settles(self, fake_page):
        counter = itertools.count()
        fake_page.responses[DOM_SIGNATURE_JS] = lambda _: [next(counter), 0]
        assert not await wait_for_dom_stable(fake_page, quiet_window=0.05, timeout=0.1, poll_interval=0.01)

    async def test_signature_error(self, fake_page):
        def boom(_):
            raise RuntimeError("Execution context was destroyed")

        fake_page.responses[DOM_SIGNATURE_JS] = boom
        assert not await wait_for_dom_stable(fake_page, timeout=0.1)


async def test_reveal_scrolls_each_widget(fake_page):
    async def evaluate(script, arg=None):
        fake_page.calls.append(script)
        return 2 if isinstance(arg, list) else None

    fake_page.evaluate = evaluate
    assert await reveal_hidden_widgets(fake_page, pause=0) == 2
    assert fake_page.styles


async def test_freeze(fake_page):
    await freeze_page(fake_page)
    assert fake_page.calls == [FREEZE_JS]
