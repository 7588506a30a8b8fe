import logging

from fastapi import FastAPI

from .db import Base, engine
from .deps import shutdown_runtime
from .settings import settings
from .routers import conversation
from .routers import profile
from .routers import tutor
from .routers import vocabulary

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Language Buddy API")
app.include_router(conversation.router)
app.include_router(profile.router)
app.include_router(vocabulary.router)
app.include_router(tutor.router)


@app.get("/info")
def root():
	return {"status": "ok", "gemini_configured": bool(settings.gemini_api_key), "transcriber": settings.transcriber}


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema; the runtime itself is built on first use
	Base.metadata.create_all(bind=engine)


@app.on_event("shutdown")
async def shutdown_event():
	shutdown_runtime()
