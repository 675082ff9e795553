"""
Hospital Blood Bank API
FastAPI application: router wiring, CORS, logging and error handling.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, APIRouter, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import CORS_ORIGINS, LOG_LEVEL, using_dev_secrets
from database import db, create_indexes, close_client
from routers import auth, inventory, requests, hospitals, staff, donors, audit

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if using_dev_secrets():
        logger.warning("JWT secrets are not configured; using development defaults")
    await create_indexes(db)
    yield
    close_client()


app = FastAPI(title="Hospital Blood Bank API", lifespan=lifespan)

api_router = APIRouter(prefix="/api")


@api_router.get("/")
async def root():
    return {"status": "healthy", "service": "Hospital Blood Bank API"}


api_router.include_router(auth.router)
api_router.include_router(inventory.router)
api_router.include_router(requests.router)
api_router.include_router(hospitals.router)
api_router.include_router(staff.router)
api_router.include_router(donors.router)
api_router.include_router(audit.router)

app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host="0.0.0.0", port=8001)
