import logging

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from scrapyard import config
from scrapyard.db import init_db
from scrapyard.middleware.rbac import RBACMiddleware
from scrapyard.routers import admin_users, auth, inventory, lifecycle

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("scrapyard")


# ==== FastAPI app ====
app = FastAPI(title=config.APP_NAME)

# RBAC first, sessions outermost: the session must be decoded before RBAC reads it
app.add_middleware(RBACMiddleware)
app.add_middleware(SessionMiddleware, secret_key=config.SECRET_KEY)


# ==== Routers ====
app.include_router(auth.router)
app.include_router(inventory.router)
app.include_router(lifecycle.router)
app.include_router(admin_users.router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.on_event("startup")
def startup_event():
    init_db()
    logger.info("%s started (env=%s)", config.APP_NAME, config.ENV)
