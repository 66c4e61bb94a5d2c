# models.py
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

class ListingItem(BaseModel):
    title: str = Field("", description="Title shown on the card")
    image: str = Field("", description="Poster URL taken from the card background, empty if absent")
    duration: str = Field("", description="Duration tag (first tag on the card)")
    year: str = Field("", description="Release year tag (second tag on the card)")
    imdb: str = Field("", description="IMDb rating with the 'IMDb' prefix removed (third tag on the card)")
    link: str = Field("", description="Absolute watch page URL, empty if the card has no watch link")
    slug: str = Field("", description="Path segment after /watch/, used by /api/video/{slug}")

    class Config:
        from_attributes = True

class Category(BaseModel):
    name: str = Field(..., min_length=1, description="Section heading on the home page")
    items: List[ListingItem] = Field(..., min_length=1, description="Cards listed in the section")

    class Config:
        from_attributes = True

class HomeResponse(BaseModel):
    success: bool = True
    categories: List[Category] = Field(default_factory=list, description="Non-empty home page sections")
    method: str = Field(..., description="Fetch strategy active for this process")

class SearchResponse(BaseModel):
    success: bool = True
    query: str = Field(..., description="Search term as received")
    results: List[ListingItem] = Field(default_factory=list)
    count: int = Field(0, description="Number of results")

class MoviesResponse(BaseModel):
    success: bool = True
    movies: List[ListingItem] = Field(default_factory=list)
    count: int = 0

class SeriesResponse(BaseModel):
    success: bool = True
    series: List[ListingItem] = Field(default_factory=list)
    count: int = 0

class AnimesResponse(BaseModel):
    success: bool = True
    animes: List[ListingItem] = Field(default_factory=list)
    count: int = 0

class VideoResponse(BaseModel):
    success: bool = True
    playerLink: str = Field(..., description="Player URL found on the watch page")
    slug: str = Field(..., description="Slug the watch page was requested with")

class HealthResponse(BaseModel):
    status: str = "OK"
    method: str = Field(..., description="Fetch strategy active for this process")
    timestamp: str = Field(..., description="ISO-8601 UTC timestamp")

class ConnectivityResponse(BaseModel):
    success: bool = True
    message: str
    method: str

class RootResponse(BaseModel):
    message: str
    cloudflare: str
    method: str
    warning: Optional[str] = None
    routes: Dict[str, str]

class ErrorResponse(BaseModel):
    success: bool = False
    error: str = Field(..., description="Error message")
    statusCode: Optional[int] = Field(None, description="Upstream HTTP status code, when there was one")
    cloudflare: Optional[bool] = Field(None, description="Whether the failed upstream response came from Cloudflare")
    headers: Optional[Dict[str, Any]] = Field(None, description="Upstream response headers of the failed attempt")
    solution: Optional[str] = Field(None, description="Operator hint")
    recommendation: Optional[str] = Field(None, description="Operator hint")

    class Config:
        from_attributes = True
