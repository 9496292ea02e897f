from fastapi import APIRouter
from . import app_actions, content

router = APIRouter()

router.include_router(app_actions.router, tags=["App"])
router.include_router(content.router, prefix="/content", tags=["Content"])
