"""Runtime configuration for the VisionCine scraper API."""
import os

# Upstream site being scraped
BASE_URL = os.environ.get("VISIONCINE_BASE_URL", "https://www.visioncine-1.com.br").rstrip("/")

PORT = int(os.environ.get("PORT", 10000))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Retrieval strategy, fixed for the lifetime of the process
FETCH_METHOD_CLOUDSCRAPER = "cloudscraper"
FETCH_METHOD_HTTPX = "httpx"
FETCH_METHODS = (FETCH_METHOD_CLOUDSCRAPER, FETCH_METHOD_HTTPX)
FETCH_METHOD = os.environ.get("VISIONCINE_FETCH_METHOD", FETCH_METHOD_CLOUDSCRAPER).strip().lower()

FETCH_RETRIES = 2
RETRY_BACKOFF = 3.0  # seconds, multiplied by the attempt index
HTTP_TIMEOUT = 30.0  # seconds, plain client only

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
}
