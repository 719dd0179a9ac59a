"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from gomeal.config import get_settings
from gomeal.database import Base, SessionLocal, engine
from gomeal.services.membership_service import ensure_default_community, ensure_seed_admin

# Import routers
from gomeal.routers import (
    admin,
    auth,
    availability,
    community,
    dev,
    group_meals,
    likes,
    line,
    matches,
    members,
    profile,
)

# Import all models so Base.metadata knows about them
from gomeal.models.user import User, Profile                                   # noqa: F401
from gomeal.models.community import Community, CommunityMembership             # noqa: F401
from gomeal.models.like import Like, Match, SuperLike                          # noqa: F401
from gomeal.models.availability import AvailabilitySlot                        # noqa: F401
from gomeal.models.group_meal import (                                         # noqa: F401
    GroupMeal, GroupMealParticipant, GroupMealInvitation, GroupMealChatMessage,
)
from gomeal.models.pair_meal import PairMeal                                   # noqa: F401

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="GO飯",
    description="Community lunch matchmaking: likes, matches, group meals and LINE notifications",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid input", "issues": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Register routers
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(community.router, prefix="/api/community", tags=["Community"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
app.include_router(profile.router, prefix="/api/profile", tags=["Profile"])
app.include_router(profile.users_router, prefix="/api/users", tags=["Profile"])
app.include_router(members.router, prefix="/api/members", tags=["Members"])
app.include_router(likes.router, prefix="/api/likes", tags=["Likes"])
app.include_router(likes.super_likes_router, prefix="/api/super-likes", tags=["Likes"])
app.include_router(matches.router, prefix="/api/matches", tags=["Matches"])
app.include_router(availability.router, prefix="/api/availability", tags=["Availability"])
app.include_router(group_meals.router, prefix="/api/group-meals", tags=["GroupMeals"])
app.include_router(line.router, prefix="/api/line", tags=["LINE"])
app.include_router(dev.router, prefix="/api/dev", tags=["Dev"])

app.mount(
    settings.PROFILE_IMAGE_URL_PREFIX,
    StaticFiles(directory=settings.PROFILE_IMAGE_DIR, check_dir=False),
    name="profile-images",
)


@app.on_event("startup")
def on_startup():
    """Create tables for SQLite dev mode, then make sure the default community exists."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        ensure_default_community(db, settings)
        ensure_seed_admin(db, settings)
    finally:
        db.close()


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
