import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from archflow.config import settings
from archflow.routers import flows, nodes, analysis, exports, health
from archflow.domain.errors import NotFoundError, ValidationError, ConflictError, PersistenceError
from archflow.application.event_handlers import register_event_handlers
from archflow.dependencies import get_session_registry

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="archflow API",
    description="AI architecture diagrams with live connection validation and pattern detection",
    version="1.0.0",
)

# Register domain event handlers on startup
@app.on_event("startup")
async def startup_event():
    register_event_handlers()

# Write pending edits and stop every debounce timer
@app.on_event("shutdown")
async def shutdown_event():
    get_session_registry().close_all()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allows all origins
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods
    allow_headers=["*"],  # Allows all headers
)


# Domain error handlers
@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def conflict_error_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    return JSONResponse(status_code=502, content={"detail": str(exc)})

# Include routers
app.include_router(health.router, tags=["Health"])  # Health check endpoints first
app.include_router(flows.router, tags=["Flows"])
app.include_router(nodes.router, tags=["Nodes"])
app.include_router(analysis.router, tags=["Analysis"])
app.include_router(exports.router, tags=["Export"])

@app.get("/")
async def root():
    return {"message": "Welcome to archflow API. See /docs for API documentation"}
