import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from betguard.core.config import settings
from betguard.core.database import init_database
from betguard.core.errors import BetGuardError
from betguard.core.logging import setup_logging
from betguard.routes import admin, auth, blackjack, games, sports, wallet

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_database()
    logger.info("BetGuard API started (%s)", settings.ENVIRONMENT)
    yield


app = FastAPI(title="BetGuard API", debug=settings.DEBUG, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =========================
#  ERRORS
# =========================
@app.exception_handler(BetGuardError)
async def betguard_error_handler(request: Request, exc: BetGuardError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

# =========================
#  ROUTES
# =========================
app.include_router(auth.router)
app.include_router(wallet.router)
app.include_router(games.router)
app.include_router(blackjack.router)
app.include_router(sports.router)
app.include_router(admin.router)

@app.get("/")
def read_root():
    return {"message": "BetGuard API running"}

@app.get("/healthz")
def healthz():
    return {"status": "ok"}
