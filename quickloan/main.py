import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quickloan import __version__
from quickloan.config.settings import settings
from quickloan.routers import applications
from quickloan.services.loan_session import SessionManager

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def create_app(session_manager: SessionManager = None) -> FastAPI:
    sessions = session_manager if session_manager is not None else SessionManager()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # Abandon whatever is still open on shutdown
        sessions.close_all()

    app = FastAPI(title="QuickLoan Origination API", version=__version__, lifespan=lifespan)

    # One manager per app; each session owns its own store
    app.state.sessions = sessions

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(applications.router)

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "active_sessions": len(app.state.sessions),
            "timestamp": datetime.utcnow().isoformat(),
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
