from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...schemas.content import SerializableBlogPost, SerializableGoodCause, SerializableReview
from ...services import content_service
from ..deps import get_db

router = APIRouter()


@router.get("/blog", response_model=List[SerializableBlogPost])
def blog_posts(db: Session = Depends(get_db)):
    return content_service.list_published_blog_posts(db)


@router.get("/blog/{slug}", response_model=SerializableBlogPost)
def blog_post(slug: str, db: Session = Depends(get_db)):
    post = content_service.get_published_blog_post(db, slug)
    if not post:
        raise HTTPException(404, "Blog post not found")
    return post


@router.get("/reviews", response_model=List[SerializableReview])
def reviews(db: Session = Depends(get_db)):
    return content_service.list_published_reviews(db)


@router.get("/reviews/{slug}", response_model=SerializableReview)
def review(slug: str, db: Session = Depends(get_db)):
    item = content_service.get_published_review(db, slug)
    if not item:
        raise HTTPException(404, "Review not found")
    return item


@router.get("/good-causes", response_model=List[SerializableGoodCause])
def good_causes(at: Optional[datetime] = None, db: Session = Depends(get_db)):
    # causes running right now unless another moment is asked for
    return content_service.list_active_good_causes(db, at)
