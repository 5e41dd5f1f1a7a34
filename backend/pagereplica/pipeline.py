"""
Extraction job orchestration.

    created -> loading -> stabilizing -> surveying -> sanitizing
            -> reconstructing -> indexing -> writing -> done | failed

Navigation and stabilization problems only degrade the result. Each
sub-extractor after that runs isolated: if it throws, the failure is
logged and recorded on the job and an empty result takes its place.
Only a write failure, a dead browser or the job-level timeout fail the job.
"""

import asyncio
from pathlib import Path

from pagereplica import stability
from pagereplica.blocks import classify_blocks
from pagereplica.browser import BrowserSession
from pagereplica.config import Settings, get_settings
from pagereplica.errors import (
    ExtractionFailure,
    JobTimeout,
    NavigationError,
    SelectorNotFound,
    SessionCrash,
)
from pagereplica.models import ExtractionJob, ExtractionResult, JobState, Metadata
from pagereplica.platform import PlatformClassifier, PlatformProfile
from pagereplica.products import CardResolution, ProductCardResolver
from pagereplica.reconstruct import reconstruct_videos
from pagereplica.sanitize import DomSanitizer
from pagereplica.search import SearchSynthesizer, extract_search_descriptor
from pagereplica.search_index import SearchIndex, build_index, collect_documents, inject_search_assets
from pagereplica.survey import SurveyResult, survey_page
from pagereplica.videos import WIDGET_SELECTORS, resolve_videos
from pagereplica.writer import OutputWriter

META_DESCRIPTION_JS = '''() => {
    const m = document.querySelector('meta[name="description"], meta[property="og:description"]');
    return m ? (m.getAttribute('content') || '') : '';
}'''


class ExtractionPipeline:
    def __init__(self, settings: Settings | None = None, session_factory=None,
                 classifier: PlatformClassifier | None = None,
                 product_resolver: ProductCardResolver | None = None,
                 sanitizer: DomSanitizer | None = None,
                 synthesizer: SearchSynthesizer | None = None,
                 writer: OutputWriter | None = None):
        self.settings = settings or get_settings()
        s = self.settings
        self.session_factory = session_factory or BrowserSession
        self.classifier = classifier or PlatformClassifier()
        self.product_resolver = product_resolver or ProductCardResolver(
            threshold=s.product_card_threshold,
            max_cards=s.max_product_cards,
            markup_cap=s.markup_cap,
        )
        self.sanitizer = sanitizer or DomSanitizer()
        self.synthesizer = synthesizer or SearchSynthesizer.from_settings(s)
        self.writer = writer or OutputWriter(s.output_dir, s.max_screenshot_height)

    async def run(self, job: ExtractionJob) -> ExtractionResult:
        print(f"[extract] {job.slug}: {job.url}")
        try:
            result = await asyncio.wait_for(self._run(job), timeout=self.settings.job_timeout)
        except asyncio.TimeoutError as e:
            job.state = JobState.FAILED
            print(f"[extract] {job.slug}: timed out after {self.settings.job_timeout}s, nothing written")
            raise JobTimeout(f"{job.url} exceeded {self.settings.job_timeout}s") from e
        except Exception as e:
            job.state = JobState.FAILED
            print(f"[extract] {job.slug}: failed in {type(e).__name__}: {e}")
            raise
        print(f"[extract] {job.slug}: done ({len(job.failures)} stage failure(s))")
        return result

    # -------------------------------------------------------------------------
    # Stage isolation
    # -------------------------------------------------------------------------

    async def _stage(self, job: ExtractionJob, session, name: str, coro, fallback=None):
        try:
            return await coro
        except SelectorNotFound as e:
            print(f"  [{name}] nothing found (continuing): {e}")
            job.warnings.append(f"{name}: {e}")
            return fallback
        except Exception as e:
            if not session.is_alive():
                raise SessionCrash(f"browser session died during {name}: {e}") from e
            failure = ExtractionFailure(name, e)
            print(f"  [{name}] failed (continuing): {e}")
            job.failures.append(str(failure))
            return fallback

    def _transform(self, job: ExtractionJob, name: str, func, html: str, *args) -> str:
        try:
            return func(html, *args)
        except Exception as e:
            failure = ExtractionFailure(name, e)
            print(f"  [{name}] failed (continuing): {e}")
            job.failures.append(str(failure))
            return html

    def _rebuild(self, job: ExtractionJob, captured: str, videos, blocks, title: str,
                 description: str) -> tuple[str, SearchIndex]:
        """Sanitize, reconstruct, wire search and index the captured HTML."""
        s = self.settings

        job.state = JobState.SANITIZING
        html = self._transform(job, "sanitize", self.sanitizer.sanitize, captured, job.url)

        job.state = JobState.RECONSTRUCTING
        html = self._transform(job, "reconstruct", reconstruct_videos, html, videos)
        html = self._transform(job, "search-forms", self.synthesizer.synthesize, html, job.url)

        job.state = JobState.INDEXING
        try:
            index = build_index(blocks, title, job.url, description)
        except Exception as e:
            print(f"  [index] failed (continuing with page-only index): {e}")
            job.failures.append(str(ExtractionFailure("index", e)))
            index = SearchIndex.build(collect_documents([], title, job.url))
        html = self._transform(job, "search-assets", inject_search_assets, html, job.slug,
                               s.lunr_cdn_url, s.handler_url, s.search_result_limit)
        return html, index

    # -------------------------------------------------------------------------
    # Job body
    # -------------------------------------------------------------------------

    async def _run(self, job: ExtractionJob) -> ExtractionResult:
        s = self.settings

        async with self.session_factory(s) as session:
            page = session.page

            job.state = JobState.LOADING
            try:
                await session.navigate(job.url)
            except NavigationError as e:
                print(f"  [load] Navigation warning (continuing): {e}")
                job.warnings.append(f"load: {e}")
            await self._stage(job, session, "prepare", stability.prepare_page(page))

            job.state = JobState.STABILIZING
            await self._stage(job, session, "widgets", stability.wait_for_widgets(
                page, timeout=s.widget_wait_timeout))
            await self._stage(job, session, "scroll", stability.auto_scroll(
                page, s.scroll_step, s.scroll_max, s.settle_delay))
            await self._stage(job, session, "reveal", stability.reveal_hidden_widgets(
                page, WIDGET_SELECTORS))
            await self._stage(job, session, "dom-stable", stability.wait_for_dom_stable(
                page, s.dom_quiet_window, s.dom_stability_timeout, s.stability_poll_interval))
            await self._stage(job, session, "freeze", stability.freeze_page(page))

            job.state = JobState.SURVEYING
            rendered = await self._stage(job, session, "content", page.content(), "")
            profile = self.classifier.classify(rendered or "", job.url) if rendered else PlatformProfile()
            print(f"  [platform] {profile.platform} / {profile.framework}")
            title = await self._stage(job, session, "title", page.title(), "") or ""
            description = await self._stage(job, session, "description", page.evaluate(META_DESCRIPTION_JS), "") or ""

            survey = await self._stage(job, session, "survey", survey_page(page, s.markup_cap), SurveyResult())
            videos = await self._stage(job, session, "videos", resolve_videos(page, s.widget_sample_cap), [])
            descriptor = await self._stage(job, session, "search", extract_search_descriptor(
                page, self.synthesizer.route_for(job.url), s.container_markup_cap))

            blocks = classify_blocks(survey.assets)
            if any(b.type == "ProductGrid" for b in blocks):
                cards = await self._stage(job, session, "products", self.product_resolver.resolve(
                    page, profile.platform), CardResolution())
                for block in blocks:
                    if block.type == "ProductGrid":
                        block.products = cards.cards
                        block.selector_used = cards.selector_used
                        block.debug = list(cards.debug)

            screenshot = await session.screenshot()
            captured = await self._stage(job, session, "capture", page.content(), rendered) or ""

        # Parsing, rewriting and writing are blocking; keep them off the event loop
        html, index = await asyncio.to_thread(self._rebuild, job, captured, videos, blocks, title, description)

        metadata = Metadata(
            url=job.url,
            title=title,
            platform=profile.platform,
            framework=profile.framework,
            videos=videos,
            blocks=blocks,
            assets=survey.assets,
            search=descriptor,
            collections=survey.collections,
            warnings=job.warnings + job.failures,
        )

        job.state = JobState.WRITING
        paths = await asyncio.to_thread(self.writer.write, job.slug, html, metadata, index, screenshot)

        job.state = JobState.DONE
        return ExtractionResult(
            slug=job.slug,
            state=job.state,
            html_path=str(paths["html"]),
            metadata_path=str(paths["metadata"]),
            search_index_path=str(paths["index"]),
            handler_path=str(paths["handler"]),
            screenshot_path=str(paths["screenshot"]) if paths["screenshot"] else None,
        )


async def extract(url: str, slug: str, settings: Settings | None = None) -> Path:
    """Run one extraction job and return the path of the reconstructed HTML."""
    job = ExtractionJob(url=url, slug=slug)
    result = await ExtractionPipeline(settings).run(job)
    return Path(result.html_path)
