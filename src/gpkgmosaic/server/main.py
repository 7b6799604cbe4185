from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware

from .config import ServerConfig, load_config
from .routes.packages import build_package_index, create_packages_router

logger = logging.getLogger(__name__)


def create_app(config: ServerConfig | None = None) -> FastAPI:
    config = config or load_config()
    packages = build_package_index(config.data_dirs)
    if not packages:
        logger.warning(
            "No GeoPackages with tile pyramids found under %s",
            ", ".join(str(path) for path in config.data_dirs),
        )
    else:
        logger.info("Serving %d GeoPackage(s)", len(packages))

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        for record in packages.values():
            record.reader.close()

    app = FastAPI(lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Envelope", "X-Zoom-Level"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.state.config = config
    app.state.packages = packages

    app.include_router(create_packages_router(packages))

    return app


def main(host: str | None = None, port: int | None = None) -> None:
    import uvicorn

    config = load_config()
    uvicorn.run(
        "gpkgmosaic.server.main:create_app",
        factory=True,
        host=host or config.host,
        port=port or config.port,
    )


if __name__ == "__main__":
    main()
