import pytest
from fastapi.testclient import TestClient

from app import app, get_fetcher
from fetcher import Fetcher, FetchStrategy


class FakeStrategy(FetchStrategy):
    """Serves queued HTML strings or raises queued exceptions, recording requested URLs."""

    def __init__(self, *responses, name="httpx"):
        self.name = name
        self.responses = list(responses)
        self.urls = []

    async def get(self, url):
        self.urls.append(url)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def card(title="Matrix", href="/watch/matrix-1999", image="https://img.example/matrix.jpg",
         tags=("2h 16m", "1999", "IMDb 8.7"), extra_class="item poster"):
    style = f'style="background-image: url(\'{image}\');"' if image else ""
    tag_html = "".join(f"<span>{t}</span>" for t in tags)
    link_html = f'<a href="{href}">Assistir</a>' if href else ""
    return (
        f'<div class="{extra_class}">'
        f'<div class="content" {style}></div>'
        f'<div class="info"><h6>{title}</h6><p class="tags">{tag_html}</p>{link_html}</div>'
        f'</div>'
    )


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_fetcher(sleep):
    def _make(*responses, name="httpx"):
        return Fetcher(FakeStrategy(*responses, name=name), sleep=sleep)
    return _make


@pytest.fixture
def client_for():
    def _client(fetcher):
        app.dependency_overrides[get_fetcher] = lambda: fetcher
        return TestClient(app)
    yield _client
    app.dependency_overrides.clear()
