from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from gridquery.core.config import settings
from gridquery.core.http_logging import install_request_logging
from gridquery.core.logging_setup import configure_logging
from gridquery.api.router import router as api_router
from gridquery.services.field_types import default_registry
from gridquery.services.source_registry import registry_from_settings

configure_logging()

app = FastAPI(title=settings.APP_NAME, version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
install_request_logging(app)

app.state.grid_sources = registry_from_settings(settings)
app.state.field_types = default_registry(settings)

app.include_router(api_router, prefix="/api")

@app.get("/", include_in_schema=False)
def landing():
    return JSONResponse({"service": settings.APP_NAME, "status": "ok"})

@app.get("/health")
def health():
    return {"status": "ok"}
