from contextlib import asynccontextmanager

from fastapi import FastAPI

from marketplace.api.errors import install_error_handlers
from marketplace.api.v1.router import router as v1_router
from marketplace.core.logging import setup_logging
from marketplace.core.security import close_token_verifier
from marketplace.core.telemetry import setup_telemetry
from marketplace.services.identity_admin import close_identity_admin
from marketplace.services.moderation_gateway import close_moderation_gateway


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_moderation_gateway()
    await close_identity_admin()
    await close_token_verifier()


setup_logging()

app = FastAPI(title="Marketplace API", version="0.1.0", lifespan=lifespan)

install_error_handlers(app)
setup_telemetry(app)
app.include_router(v1_router)
