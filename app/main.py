import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api.routes import router
from app.core.logging import configure_logging
from app.db.base import Base
from app.db.session import engine

logger = logging.getLogger(__name__)

app = FastAPI(title="ChoreKings API", version="1.0.0")


@app.on_event("startup")
def on_startup():
    configure_logging()
    Base.metadata.create_all(bind=engine)
    logger.info("ChoreKings API started")


@app.exception_handler(RequestValidationError)
def invalid_request(request: Request, exc: RequestValidationError):
    # unreadable JSON bodies and bad query parameters
    return JSONResponse({"error": "Invalid request."}, status_code=400)


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}


app.include_router(router)
