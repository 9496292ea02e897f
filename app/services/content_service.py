"""Marketing content: good causes, blog posts and reviews.

None of it belongs to a family. Admin screens see every item, the public
readers only see published posts and reviews.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import utcnow
from ..models.content import BlogPost, GoodCause, PublishStatus, Review
from ..schemas.content import SerializableBlogPost, SerializableGoodCause, SerializableReview
from ..utils.timestamps import as_utc, to_iso
from .errors import ConflictError, NotFoundError, CONTENT_NOT_FOUND, SLUG_IN_USE

logger = logging.getLogger(__name__)


def serialize_good_cause(cause: GoodCause) -> SerializableGoodCause:
    return SerializableGoodCause(
        id=cause.id,
        name=cause.name,
        description=cause.description,
        start_date=to_iso(cause.start_date),
        end_date=to_iso(cause.end_date),
        logo_url=cause.logo_url,
        created_at=to_iso(cause.created_at),
        updated_at=to_iso(cause.updated_at),
    )


def serialize_blog_post(post: BlogPost) -> SerializableBlogPost:
    return SerializableBlogPost(
        id=post.id,
        title=post.title,
        slug=post.slug,
        excerpt=post.excerpt,
        content=post.content,
        cover_image_url=post.cover_image_url,
        tags=list(post.tags or []),
        status=post.status.value,
        seo_title=post.seo_title,
        seo_description=post.seo_description,
        created_at=to_iso(post.created_at),
        updated_at=to_iso(post.updated_at),
        published_at=to_iso(post.published_at),
    )


def serialize_review(review: Review) -> SerializableReview:
    return SerializableReview(
        id=review.id,
        title=review.title,
        slug=review.slug,
        excerpt=review.excerpt,
        content=review.content,
        rating=review.rating,
        author=review.author,
        status=review.status.value,
        seo_title=review.seo_title,
        seo_description=review.seo_description,
        created_at=to_iso(review.created_at),
        updated_at=to_iso(review.updated_at),
        published_at=to_iso(review.published_at),
    )


def _load_for_update(db: Session, model, item_id: str | None):
    if not item_id:
        item = model()
        db.add(item)
        return item
    item = db.get(model, item_id)
    if not item:
        raise NotFoundError(CONTENT_NOT_FOUND, "Content item not found.")
    # set explicitly, onupdate only fires when a column actually changed
    item.updated_at = utcnow()
    return item


def _ensure_slug_free(db: Session, model, slug: str, item_id: str | None) -> None:
    q = select(model.id).where(model.slug == slug)
    if item_id:
        q = q.where(model.id != item_id)
    if db.execute(q).first():
        raise ConflictError(SLUG_IN_USE, f"The slug '{slug}' is already in use.")


def _commit_content(db: Session, item) -> str:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(SLUG_IN_USE, "The slug is already in use.")
    return item.id


# -- good causes -------------------------------------------------------------

def list_good_causes(db: Session) -> list[SerializableGoodCause]:
    causes = db.execute(select(GoodCause).order_by(GoodCause.start_date)).scalars().all()
    return [serialize_good_cause(c) for c in causes]


def list_active_good_causes(db: Session, at: datetime | None = None) -> list[SerializableGoodCause]:
    at = as_utc(at) or datetime.now(timezone.utc)
    causes = db.execute(select(GoodCause).order_by(GoodCause.start_date)).scalars().all()
    return [serialize_good_cause(c) for c in causes if as_utc(c.start_date) <= at <= as_utc(c.end_date)]


def upsert_good_cause(
    db: Session, *,
    name: str,
    description: str,
    start_date: datetime,
    end_date: datetime,
    logo_url: str | None = None,
    cause_id: str | None = None,
) -> str:
    cause = _load_for_update(db, GoodCause, cause_id)
    cause.name = name
    cause.description = description
    cause.start_date = start_date
    cause.end_date = end_date
    cause.logo_url = logo_url
    db.commit()
    logger.info(f"Good cause saved: id={cause.id}")
    return cause.id


def remove_good_cause(db: Session, cause_id: str) -> None:
    db.execute(delete(GoodCause).where(GoodCause.id == cause_id))
    db.commit()


# -- blog posts --------------------------------------------------------------

def list_blog_posts(db: Session) -> list[SerializableBlogPost]:
    posts = db.execute(select(BlogPost).order_by(BlogPost.created_at)).scalars().all()
    return [serialize_blog_post(p) for p in posts]


def upsert_blog_post(
    db: Session, *,
    title: str,
    slug: str,
    excerpt: str,
    content: str,
    status: PublishStatus | str,
    tags: list[str] | None = None,
    cover_image_url: str | None = None,
    seo_title: str | None = None,
    seo_description: str | None = None,
    published_at: datetime | None = None,
    post_id: str | None = None,
) -> str:
    _ensure_slug_free(db, BlogPost, slug, post_id)
    post = _load_for_update(db, BlogPost, post_id)
    post.title = title
    post.slug = slug
    post.excerpt = excerpt
    post.content = content
    post.cover_image_url = cover_image_url
    post.tags = list(tags or [])
    post.status = PublishStatus(status)
    post.seo_title = seo_title
    post.seo_description = seo_description
    post.published_at = published_at
    post_id = _commit_content(db, post)
    logger.info(f"Blog post saved: id={post_id}, slug={slug}")
    return post_id


def remove_blog_post(db: Session, post_id: str) -> None:
    db.execute(delete(BlogPost).where(BlogPost.id == post_id))
    db.commit()


def list_published_blog_posts(db: Session) -> list[SerializableBlogPost]:
    posts = db.execute(
        select(BlogPost)
        .where(BlogPost.status == PublishStatus.PUBLISHED)
        .order_by(func.coalesce(BlogPost.published_at, BlogPost.created_at).desc())
    ).scalars().all()
    return [serialize_blog_post(p) for p in posts]


def get_published_blog_post(db: Session, slug: str) -> SerializableBlogPost | None:
    post = db.execute(
        select(BlogPost).where(BlogPost.slug == slug, BlogPost.status == PublishStatus.PUBLISHED)
    ).scalar_one_or_none()
    return serialize_blog_post(post) if post else None


# -- reviews -----------------------------------------------------------------

def list_reviews(db: Session) -> list[SerializableReview]:
    items = db.execute(select(Review).order_by(Review.created_at)).scalars().all()
    return [serialize_review(r) for r in items]


def upsert_review(
    db: Session, *,
    title: str,
    slug: str,
    excerpt: str,
    content: str,
    rating: int,
    author: str,
    status: PublishStatus | str,
    seo_title: str | None = None,
    seo_description: str | None = None,
    published_at: datetime | None = None,
    review_id: str | None = None,
) -> str:
    _ensure_slug_free(db, Review, slug, review_id)
    review = _load_for_update(db, Review, review_id)
    review.title = title
    review.slug = slug
    review.excerpt = excerpt
    review.content = content
    review.rating = rating
    review.author = author
    review.status = PublishStatus(status)
    review.seo_title = seo_title
    review.seo_description = seo_description
    review.published_at = published_at
    review_id = _commit_content(db, review)
    logger.info(f"Review saved: id={review_id}, slug={slug}")
    return review_id


def remove_review(db: Session, review_id: str) -> None:
    db.execute(delete(Review).where(Review.id == review_id))
    db.commit()


def list_published_reviews(db: Session) -> list[SerializableReview]:
    items = db.execute(
        select(Review)
        .where(Review.status == PublishStatus.PUBLISHED)
        .order_by(func.coalesce(Review.published_at, Review.created_at).desc())
    ).scalars().all()
    return [serialize_review(r) for r in items]


def get_published_review(db: Session, slug: str) -> SerializableReview | None:
    review = db.execute(
        select(Review).where(Review.slug == slug, Review.status == PublishStatus.PUBLISHED)
    ).scalar_one_or_none()
    return serialize_review(review) if review else None
