#  app.py
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI, Depends, Path, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Optional
import uvicorn

import config
from fetcher import Fetcher, FetchError, build_fetcher
from models import (
    AnimesResponse,
    ConnectivityResponse,
    ErrorResponse,
    HealthResponse,
    HomeResponse,
    MoviesResponse,
    RootResponse,
    SearchResponse,
    SeriesResponse,
    VideoResponse,
)
from scraper import (
    check_upstream,
    scrape_home,
    scrape_listing,
    scrape_player_link,
    scrape_search,
)

# Configure logging
logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
logger = logging.getLogger(__name__)

API_NAME = "VisionCine API"
API_VERSION = "3.0.0"

@asynccontextmanager
async def lifespan(app: FastAPI):
    fetcher = build_fetcher(config.FETCH_METHOD)
    app.state.fetcher = fetcher
    logger.info("=" * 60)
    logger.info(f"{API_NAME} v{API_VERSION}")
    logger.info(f"Method: {fetcher.method} ({'bypass active' if bypass_active(fetcher) else 'no bypass'})")
    logger.info(f"Port: {config.PORT}")
    if not bypass_active(fetcher):
        logger.warning("Cloudflare is present on the target site and the plain HTTP client is active")
        logger.warning(f"Set VISIONCINE_FETCH_METHOD={config.FETCH_METHOD_CLOUDSCRAPER} to enable the bypass")
    logger.info("=" * 60)
    try:
        yield
    finally:
        await fetcher.aclose()

# Initialize FastAPI app
app = FastAPI(
    title=API_NAME,
    description="Scrapes movies, series, animes, search results and player links from visioncine and serves them as JSON.",
    version=API_VERSION,
    lifespan=lifespan
)

# Must stay inside CORSMiddleware: registered before it
@app.middleware("http")
async def unexpected_error_middleware(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as exc:
        logger.exception(f"Unexpected error while handling {request.url.path}: {exc}")
        return error_response(500, str(exc) or exc.__class__.__name__)

# All origins are allowed
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Dependency to provide the process-wide fetcher
def get_fetcher(request: Request) -> Fetcher:
    return request.app.state.fetcher

def bypass_active(fetcher: Fetcher) -> bool:
    return fetcher.method == config.FETCH_METHOD_CLOUDSCRAPER

def error_response(status_code: int, error: str, **extra) -> JSONResponse:
    body = ErrorResponse(error=error, **extra)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))

@app.exception_handler(FetchError)
async def fetch_error_handler(request: Request, exc: FetchError):
    logger.error(f"{request.url.path} failed: {exc.kind.value}: {exc.message}")
    return error_response(500, exc.message)

ERROR_RESPONSES = {
    500: {"model": ErrorResponse, "description": "Upstream could not be fetched or parsed"},
}

# Root endpoint
@app.get("/", response_model=RootResponse, tags=["Root"])
async def root(fetcher: Fetcher = Depends(get_fetcher)):
    active = bypass_active(fetcher)
    return RootResponse(
        message=f"{API_NAME} v{API_VERSION}",
        cloudflare="Detected on the target site",
        method="cloudscraper (bypass active)" if active else f"{fetcher.method} (bypass inactive)",
        warning=None if active else f"Set VISIONCINE_FETCH_METHOD={config.FETCH_METHOD_CLOUDSCRAPER}",
        routes={
            "health": "/health",
            "test": "/api/test",
            "home": "/api/home",
            "search": "/api/search?q=query",
            "video": "/api/video/{slug}",
            "movies": "/api/movies",
            "series": "/api/series",
            "animes": "/api/animes",
        }
    )

@app.get("/health", response_model=HealthResponse, tags=["Root"])
async def health(fetcher: Fetcher = Depends(get_fetcher)):
    timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return HealthResponse(status="OK", method=fetcher.method, timestamp=timestamp)

@app.get(
    "/api/test",
    response_model=ConnectivityResponse,
    responses=ERROR_RESPONSES,
    summary="Check upstream reachability",
    description="Fetch the upstream home page once and report whether the active method got through."
)
async def api_test(fetcher: Fetcher = Depends(get_fetcher)):
    try:
        await check_upstream(fetcher)
    except FetchError as e:
        logger.error(f"Upstream check failed: {e.message}")
        return error_response(
            500,
            e.message,
            statusCode=e.status_code,
            headers=e.headers,
            recommendation=(
                "cloudscraper failed - try a headless browser" if bypass_active(fetcher)
                else f"Set VISIONCINE_FETCH_METHOD={config.FETCH_METHOD_CLOUDSCRAPER}"
            )
        )
    return ConnectivityResponse(message="Cloudflare bypass succeeded!", method=fetcher.method)

@app.get(
    "/api/home",
    response_model=HomeResponse,
    responses=ERROR_RESPONSES,
    summary="Get home page categories",
    description="Sections of the upstream home page, each with its listed titles. Empty sections are left out."
)
async def get_home(fetcher: Fetcher = Depends(get_fetcher)):
    try:
        categories = await scrape_home(fetcher)
    except FetchError as e:
        logger.error(f"Home page fetch failed: {e.message}")
        return error_response(
            500,
            e.message,
            statusCode=e.status_code,
            cloudflare=e.cloudflare,
            solution=f"Set VISIONCINE_FETCH_METHOD={config.FETCH_METHOD_CLOUDSCRAPER}"
        )
    return HomeResponse(categories=categories, method=fetcher.method)

@app.get(
    "/api/search",
    response_model=SearchResponse,
    responses={400: {"model": ErrorResponse, "description": "Missing search query"}, **ERROR_RESPONSES},
    summary="Search titles",
    description="Search the upstream catalogue. Example: `?q=matrix`"
)
async def search(
    q: Optional[str] = Query(None, description="Search term"),
    fetcher: Fetcher = Depends(get_fetcher)
):
    if not q:
        return error_response(400, "Query required")
    results = await scrape_search(q, fetcher)
    return SearchResponse(query=q, results=results, count=len(results))

@app.get(
    "/api/video/{slug}",
    response_model=VideoResponse,
    responses={404: {"model": ErrorResponse, "description": "Watch page has no player link"}, **ERROR_RESPONSES},
    summary="Get player link",
    description="Player link found on the upstream watch page for a slug returned by the listing endpoints."
)
async def get_video(
    slug: str = Path(..., description="Slug from a listing item"),
    fetcher: Fetcher = Depends(get_fetcher)
):
    player_link = await scrape_player_link(slug, fetcher)
    if not player_link:
        return error_response(404, "Player not found")
    return VideoResponse(playerLink=player_link, slug=slug)

@app.get("/api/movies", response_model=MoviesResponse, responses=ERROR_RESPONSES, summary="List movies")
async def get_movies(fetcher: Fetcher = Depends(get_fetcher)):
    movies = await scrape_listing("movies", fetcher)
    return MoviesResponse(movies=movies, count=len(movies))

@app.get("/api/series", response_model=SeriesResponse, responses=ERROR_RESPONSES, summary="List TV series")
async def get_series(fetcher: Fetcher = Depends(get_fetcher)):
    series = await scrape_listing("series", fetcher)
    return SeriesResponse(series=series, count=len(series))

@app.get("/api/animes", response_model=AnimesResponse, responses=ERROR_RESPONSES, summary="List animes")
async def get_animes(fetcher: Fetcher = Depends(get_fetcher)):
    animes = await scrape_listing("animes", fetcher)
    return AnimesResponse(animes=animes, count=len(animes))

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
