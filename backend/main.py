# backend/main.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.cors import CORSMiddleware

import config
from database import create_db_and_tables
from errors import BlogError, InternalError
from routers import auth_router, posts_router

logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up and creating database tables...")
    await create_db_and_tables()
    logger.info("Startup complete.")
    yield
    logger.info("Shutting down.")

app = FastAPI(title="Blog API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware, allow_origins=[config.CLIENT_URL], allow_credentials=True,
    allow_methods=["*"], allow_headers=["*"],
)
# Authlib keeps the OAuth state between /google and the callback in this session.
app.add_middleware(SessionMiddleware, secret_key=config.safe_jwt_secret, same_site="lax", https_only=config.COOKIE_SECURE)

# --- Error responses: always {"error": "..."} ---
@app.exception_handler(BlogError)
async def blog_error_handler(request: Request, exc: BlogError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return JSONResponse(status_code=400, content={"error": message})

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=getattr(exc, "headers", None))

@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content={"error": error.message})

app.include_router(auth_router.router)
app.include_router(posts_router.router)

@app.get("/")
async def read_root():
    return {"message": "Blog backend is running!"}

@app.get("/api/health")
async def health():
    return {"ok": True}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=config.PORT)
