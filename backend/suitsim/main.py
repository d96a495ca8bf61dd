import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from suitsim import config
from suitsim.api.routes import router as api_router


def create_app() -> FastAPI:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="Flush Rush Simulator", version="0.1.0")

    # Allow local dev frontends to call the API.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["system"])
    async def health() -> dict:
        return {"status": "ok"}

    app.include_router(api_router, prefix="/api")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("suitsim.main:app", host="0.0.0.0", port=8000, reload=True)
