# practice dashboard web app
# fastapi app serving per-practice prescriber summaries from the reporting workflow

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from practice_dashboard.config import require_identity_key, settings
from practice_dashboard.dependencies import SignInRequired
from practice_dashboard.services.gateway import gateway
from practice_dashboard.routers import auth, customers, dashboard

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """startup: check identity config, open the gateway client. shutdown: close it."""
    logger.info("Starting practice dashboard...")
    require_identity_key()
    await gateway.connect()
    logger.info("Practice dashboard ready")
    yield
    logger.info("Shutting down practice dashboard...")
    await gateway.close()


app = FastAPI(
    title="Practice Dashboard",
    description="Weekly prescriber performance summaries for account managers",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SignInRequired)
async def sign_in_required_handler(request: Request, exc: SignInRequired):
    """pages bounce to sign-in, api calls get a plain 401"""
    if exc.path.startswith("/api/") or request.method != "GET":
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": "Sign-in required"},
        )
    return RedirectResponse("/sign-in", status_code=status.HTTP_303_SEE_OTHER)


# register routers
app.include_router(auth.router)
app.include_router(customers.router)
app.include_router(dashboard.router)


@app.get("/health")
async def health_check():
    """basic health check endpoint"""
    return {"status": "ok", "service": "practice-dashboard"}
