"""
Validator HTTP API

GET  /health   - Service health
GET  /spec     - JSON Schemas by spec version
POST /validate - Validate a manifest by URL or inline document
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from agentmanifest import __version__
from agentmanifest.config import get_config
from agentmanifest.schema import load_schema
from agentmanifest.validator import DEFAULT_LOCAL_SOURCE, ManifestValidator
from agentmanifest.versions import SpecVersion

logger = logging.getLogger(__name__)


class ValidateRequest(BaseModel):
    """Either url, or manifest (+ optional source label)"""
    url: Optional[str] = None
    manifest: Optional[Dict[str, Any]] = None
    source: Optional[str] = None


def create_app(validator: Optional[ManifestValidator] = None) -> FastAPI:
    app = FastAPI(title="AgentManifest Validator", version=__version__)
    app.state.validator = validator or ManifestValidator()

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {
            "status": "healthy",
            "service": "agentmanifest-validator",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/spec")
    async def spec() -> Dict[str, Any]:
        return {version.value: load_schema(version) for version in SpecVersion}

    @app.post("/validate")
    async def validate(request: ValidateRequest) -> Dict[str, Any]:
        if request.url and request.manifest is not None:
            raise HTTPException(status_code=400, detail="Provide either url or manifest, not both")
        if request.url:
            result = await app.state.validator.validate_url(request.url)
        elif request.manifest is not None:
            result = await app.state.validator.validate_document(
                request.manifest, request.source or DEFAULT_LOCAL_SOURCE
            )
        else:
            raise HTTPException(status_code=400, detail='Request body must include "url" or "manifest"')
        return result.to_dict()

    return app


def main():
    import uvicorn

    config = get_config()
    logging.basicConfig(level=config.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(create_app(), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
