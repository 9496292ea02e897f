from typing import List
from .common import CamelModel


class SerializableGoodCause(CamelModel):
    id: str
    name: str
    description: str
    start_date: str | None = None
    end_date: str | None = None
    logo_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class SerializableBlogPost(CamelModel):
    id: str
    title: str
    slug: str
    excerpt: str
    content: str
    cover_image_url: str | None = None
    tags: List[str] = []
    status: str
    seo_title: str | None = None
    seo_description: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    published_at: str | None = None


class SerializableReview(CamelModel):
    id: str
    title: str
    slug: str
    excerpt: str
    content: str
    rating: int
    author: str
    status: str
    seo_title: str | None = None
    seo_description: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    published_at: str | None = None
