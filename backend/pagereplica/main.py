from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ValidationError

from pagereplica.config import get_settings
from pagereplica.errors import JobTimeout, SessionCrash, WriteFailure
from pagereplica.models import ExtractionJob
from pagereplica.pipeline import ExtractionPipeline
from pagereplica.writer import OutputWriter


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: make sure the output dir and the shared query handler exist
    settings = get_settings()
    try:
        OutputWriter(settings.output_dir).install_static_assets()
    except Exception as e:
        print(f"[startup] Failed to install static assets: {e}")
    yield


settings = get_settings()

app = FastAPI(title="Page Replica API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/pages", StaticFiles(directory=settings.output_dir, check_dir=False), name="pages")


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class ExtractRequest(BaseModel):
    url: str
    slug: str


class ExtractResponse(BaseModel):
    slug: str
    status: str
    html_path: str | None = None
    metadata_path: str | None = None
    screenshot_path: str | None = None
    search_index_path: str | None = None
    preview_url: str | None = None
    warnings: list[str] = []


def get_pipeline() -> ExtractionPipeline:
    return ExtractionPipeline(get_settings())


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/")
def root():
    return {"message": "Page replica backend is running"}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/extract", response_model=ExtractResponse)
async def extract_endpoint(request: ExtractRequest):
    """Render the URL, rebuild it as a portable replica and write the artifacts."""

    # Validate URL
    url = request.url.strip()
    if not url.startswith(("http://", "https://")):
        url = "https://" + url

    try:
        job = ExtractionJob(url=url, slug=request.slug.strip())
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors()[0].get("msg", "invalid slug"))

    pipeline = get_pipeline()
    try:
        result = await pipeline.run(job)
    except JobTimeout as e:
        raise HTTPException(status_code=504, detail=str(e))
    except SessionCrash as e:
        raise HTTPException(status_code=502, detail=f"Browser session crashed: {e}")
    except WriteFailure as e:
        raise HTTPException(status_code=500, detail=f"Could not write output: {e}")

    return ExtractResponse(
        slug=result.slug,
        status=result.state.value,
        html_path=result.html_path,
        metadata_path=result.metadata_path,
        screenshot_path=result.screenshot_path,
        search_index_path=result.search_index_path,
        preview_url=f"/pages/{result.slug}.html",
        warnings=job.warnings + job.failures,
    )
