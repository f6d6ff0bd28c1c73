from fastapi import FastAPI
from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.core.logging_config import setup_logging

setup_logging()

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

register_exception_handlers(app)

@app.get("/")
def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}", "docs": "/docs"}

from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from app.modules.auth.router import router as auth_router
from app.modules.blogs.router import router as blogs_router
from app.modules.blogs.admin_router import router as admin_blogs_router
from app.modules.resources.router import router as resources_router
from app.modules.resources.admin_router import router as admin_resources_router
from app.modules.catalog.router import router as catalog_router
from app.modules.catalog.admin_router import router as admin_catalog_router
from app.modules.engagement.router import router as engagement_router
from app.modules.payments.router import router as payments_router
from app.modules.subscriptions.router import router as subscriptions_router
from app.modules.subscriptions.admin_router import router as admin_subscriptions_router
from app.modules.media.router import router as media_router
from app.modules.admin.router import router as admin_router

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from app.core.middleware import RateLimitMiddleware
app.add_middleware(
    RateLimitMiddleware,
    limit_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    login_limit_per_minute=settings.LOGIN_RATE_LIMIT_PER_MINUTE,
)

# Mock storage uploads are served from here
app.mount("/static", StaticFiles(directory="static", check_dir=False), name="static")

api = settings.API_V1_STR
app.include_router(auth_router, prefix=f"{api}/auth", tags=["auth"])
app.include_router(blogs_router, prefix=f"{api}/blogs", tags=["blogs"])
app.include_router(resources_router, prefix=f"{api}/resources", tags=["resources"])
app.include_router(catalog_router, prefix=api, tags=["catalog"])
app.include_router(engagement_router, prefix=api, tags=["engagement"])
app.include_router(payments_router, prefix=f"{api}/payments", tags=["payments"])
app.include_router(subscriptions_router, prefix=api, tags=["subscriptions"])
app.include_router(media_router, prefix=f"{api}/upload", tags=["media"])

app.include_router(admin_router, prefix=f"{api}/admin", tags=["admin"])
app.include_router(admin_blogs_router, prefix=f"{api}/admin/blogs", tags=["admin"])
app.include_router(admin_resources_router, prefix=f"{api}/admin/resources", tags=["admin"])
app.include_router(admin_catalog_router, prefix=f"{api}/admin", tags=["admin"])
app.include_router(admin_subscriptions_router, prefix=f"{api}/admin", tags=["admin"])
