from datetime import datetime, timedelta, timezone

import pytest

from app.models.content import BlogPost
from app.services import content_service
from app.services.errors import ConflictError, NotFoundError


def _post(db, slug, status="published", published_at=None, post_id=None, title="Post"):
    return content_service.upsert_blog_post(
        db,
        post_id=post_id,
        title=title,
        slug=slug,
        excerpt="Short",
        content="Long text",
        status=status,
        tags=["chores", "kids"],
        published_at=published_at,
    )


def test_blog_post_insert_then_update(db):
    post_id = _post(db, "first-post", status="draft")
    created = db.get(BlogPost, post_id)
    first_update = created.updated_at

    _post(db, "first-post", status="published", post_id=post_id, title="Renamed")

    posts = content_service.list_blog_posts(db)
    assert len(posts) == 1
    data = posts[0].dump()
    assert data["title"] == "Renamed"
    assert data["status"] == "published"
    assert data["tags"] == ["chores", "kids"]
    assert db.get(BlogPost, post_id).updated_at >= first_update


def test_update_unknown_item_fails(db):
    with pytest.raises(NotFoundError) as exc:
        _post(db, "ghost", post_id="missing")
    assert exc.value.code == "CONTENT_NOT_FOUND"


def test_slug_must_be_unique(db):
    _post(db, "taken")
    with pytest.raises(ConflictError) as exc:
        _post(db, "taken")
    assert exc.value.code == "SLUG_IN_USE"

    other_id = _post(db, "free")
    with pytest.raises(ConflictError):
        _post(db, "taken", post_id=other_id)


def test_public_blog_readers_only_see_published_newest_first(db):
    now = datetime.now(timezone.utc)
    _post(db, "older", published_at=now - timedelta(days=3))
    _post(db, "newer", published_at=now - timedelta(days=1))
    _post(db, "draft", status="draft")

    assert [p.slug for p in content_service.list_published_blog_posts(db)] == ["newer", "older"]
    assert content_service.get_published_blog_post(db, "newer").slug == "newer"
    assert content_service.get_published_blog_post(db, "draft") is None


def test_reviews(db):
    review_id = content_service.upsert_review(
        db, title="Great app", slug="great-app", excerpt="Loved it", content="...", rating=5,
        author="Marieke", status="published",
    )
    content_service.upsert_review(
        db, title="Draft", slug="draft-review", excerpt="-", content="-", rating=3,
        author="Piet", status="draft",
    )

    assert [r.slug for r in content_service.list_reviews(db)] == ["great-app", "draft-review"]
    assert [r.slug for r in content_service.list_published_reviews(db)] == ["great-app"]
    assert content_service.get_published_review(db, "great-app").rating == 5

    content_service.remove_review(db, review_id)
    assert content_service.get_published_review(db, "great-app") is None


def test_good_causes_and_active_window(db):
    now = datetime.now(timezone.utc)
    running = content_service.upsert_good_cause(
        db, name="Food bank", description="Meals", start_date=now - timedelta(days=1), end_date=now + timedelta(days=10),
    )
    content_service.upsert_good_cause(
        db, name="Next month", description="Later", start_date=now + timedelta(days=20), end_date=now + timedelta(days=40),
    )

    assert len(content_service.list_good_causes(db)) == 2
    assert [c.name for c in content_service.list_active_good_causes(db, now)] == ["Food bank"]
    assert [c.name for c in content_service.list_active_good_causes(db, now + timedelta(days=25))] == ["Next month"]

    content_service.upsert_good_cause(
        db, cause_id=running, name="Food bank NL", description="Meals", start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=10), logo_url="https://img.example/logo.png",
    )
    cause = content_service.list_active_good_causes(db, now)[0].dump()
    assert cause["name"] == "Food bank NL"
    assert cause["logoUrl"] == "https://img.example/logo.png"

    content_service.remove_good_cause(db, running)
    assert content_service.list_active_good_causes(db, now) == []
