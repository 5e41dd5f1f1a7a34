"""
Getting the page into a stable, fully-rendered state before extraction.

Every wait here is bounded: widgets that never mount, pages that never stop
mutating and infinite scrollers all end at a deadline and the job carries
on with whatever DOM exists.
"""

import asyncio

WAIT_SELECTORS = (
    ".reeview-app-widget",
    "[data-videowise]",
    "video",
    ".keen-slider",
    ".vw-cmp__carousel",
)

REVEAL_STYLE = (
    ".lbx-iframe-hide{display:block!important;opacity:1!important}"
    ".lbx-iframe-show{opacity:1!important}"
)


async def prepare_page(page):
    """Dismiss cookie banners and unlock scroll locks."""

    # Dismiss cookie banners
    await page.evaluate('''() => {
        const btns = document.querySelectorAll(
            '[class*="cookie"] button, [id*="cookie"] button, ' +
            '[class*="consent"] button, [aria-label*="accept" i], [class*="gdpr"] button'
        );
        for (const btn of btns) {
            if ((btn.innerText || '').match(/accept|agree|got it|ok|close|dismiss/i)) {
                btn.click();
                break;
            }
        }
    }''')
    await page.wait_for_timeout(500)

    # Unlock scroll
    await page.evaluate('''() => {
        const unlock = (el) => {
            if (!el) return;
            el.style.overflow = 'visible';
            el.style.overflowY = 'auto';
            el.style.height = 'auto';
            el.style.maxHeight = 'none';
        };
        unlock(document.documentElement);
        unlock(document.body);
        document.querySelectorAll('#__next, #app, #root, main').forEach(el => {
            const s = getComputedStyle(el);
            if (s.overflow === 'hidden' || s.overflowY === 'hidden') unlock(el);
        });
        if (document.body) {
            document.body.classList.remove('no-scroll', 'overflow-hidden', 'modal-open');
        }
    }''')


async def wait_for_widgets(page, selectors=WAIT_SELECTORS, timeout: int = 15000) -> str | None:
    """Race wait_for_selector over the widget selectors; first one to appear wins."""
    async def watch(selector):
        await page.wait_for_selector(selector, state="attached", timeout=timeout)
        return selector

    tasks = [asyncio.ensure_future(watch(sel)) for sel in selectors]
    winner = None
    try:
        pending = set(tasks)
        deadline = asyncio.get_running_loop().time() + timeout / 1000
        while pending and winner is None:
            remaining = deadline - asyncio.get_running_loop().time()
            if remaining <= 0:
                break
            done, pending = await asyncio.wait(pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if not task.cancelled() and task.exception() is None:
                    winner = task.result()
                    break
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    if winner:
        print(f"  [stability] Widget selector appeared: {winner}")
    else:
        print(f"  [stability] No widget selector appeared within {timeout}ms")
    return winner


async def auto_scroll(page, step: int = 400, max_scroll: int = 15000, settle: int = 1500):
    """Scroll to trigger lazy loading (capped for infinite-scroll pages), then force lazy images."""
    await page.evaluate('''async (opts) => {
        await new Promise(resolve => {
            let total = 0;
            let iterations = 0;
            const maxIterations = Math.ceil(opts.maxScroll / opts.step) + 1;
            const timer = setInterval(() => {
                window.scrollBy(0, opts.step);
                total += opts.step;
                iterations++;
                const height = document.body ? document.body.scrollHeight : 0;
                if (total >= height || total >= opts.maxScroll || iterations >= maxIterations) {
                    clearInterval(timer);
                    window.scrollTo(0, 0);
                    resolve();
                }
            }, 100);
        });
    }''', {"step": step, "maxScroll": max_scroll})
    await page.wait_for_timeout(settle)

    # Force images
    await page.evaluate('''() => {
        document.querySelectorAll('img[loading="lazy"], img[data-src], img[data-srcset]').forEach(img => {
            img.loading = 'eager';
            if (img.dataset.src && !img.getAttribute('src')) img.src = img.dataset.src;
            if (img.dataset.srcset && !img.getAttribute('srcset')) img.srcset = img.dataset.srcset;
        });
    }''')


async def reveal_hidden_widgets(page, selectors=WAIT_SELECTORS, pause: int = 300):
    """Un-hide lazily mounted video iframes and scroll each widget into view so it hydrates."""
    await page.add_style_tag(content=REVEAL_STYLE)
    count = await page.evaluate('''(selectors) => {
        let n = 0;
        selectors.filter(s => s !== 'video').forEach(sel => {
            document.querySelectorAll(sel).forEach(el => {
                el.setAttribute('data-replica-reveal', String(n++));
            });
        });
        return n;
    }''', list(selectors))
    for i in range(count or 0):
        try:
            await page.locator(f'[data-replica-reveal="{i}"]').scroll_into_view_if_needed(timeout=2000)
            await page.wait_for_timeout(pause)
        except Exception as e:
            print(f"  [stability] Widget {i} would not scroll into view: {e}")
    await page.evaluate('''() => {
        document.querySelectorAll('[data-replica-reveal]').forEach(el => el.removeAttribute('data-replica-reveal'));
        window.scrollTo(0, 0);
    }''')
    return count or 0


DOM_SIGNATURE_JS = '''() => [
    document.getElementsByTagName('*').length,
    document.body ? document.body.innerHTML.length : 0,
]'''


async def wait_for_dom_stable(page, quiet_window: float = 1.0, timeout: float = 10.0,
                              poll_interval: float = 0.3) -> bool:
    """
    Poll a cheap DOM signature until it stays unchanged for quiet_window
    seconds. Returns False if the deadline passes first.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    last = None
    quiet_since = loop.time()

    while True:
        now = loop.time()
        try:
            signature = tuple(await page.evaluate(DOM_SIGNATURE_JS))
        except Exception as e:
            print(f"  [stability] DOM signature failed: {e}")
            return False
        if signature != last:
            last = signature
            quiet_since = now
        elif now - quiet_since >= quiet_window:
            print(f"  [stability] DOM quiet for {quiet_window}s")
            return True
        if now >= deadline:
            print(f"  [stability] DOM still changing after {timeout}s (continuing)")
            return False
        await asyncio.sleep(min(poll_interval, max(deadline - now, 0)))


FREEZE_JS = '''() => {
    document.querySelectorAll('video, audio').forEach(m => {
        try { m.pause(); } catch (e) {}
    });
    const noop = () => 0;
    window.setInterval = noop;
    window.setTimeout = noop;
    window.requestAnimationFrame = noop;
    return true;
}'''


async def freeze_page(page):
    """Pause media and stop timers so the DOM stops moving under extraction."""
    await page.evaluate(FREEZE_JS)
    print("  [stability] Page frozen")
