import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .config import load_config
from .exceptions import NoBackendAvailable
from .form_fill_service import AutoFillRequest, FormFillService
from .llm_client import AIServiceType, build_orchestrator
from .lookup import LookupRegistry
from .metadata import load_metadata_file, parse_entity_models

app = FastAPI(title="Autofill Backend API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],  # Frontend origin
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------


class ServicesResponse(BaseModel):
    services: List[AIServiceType]


class EntitiesResponse(BaseModel):
    entities: List[str]


class AutoFillRequestSchema(BaseModel):
    entity: str
    input: str
    type: AIServiceType
    additional_instructions: Optional[str] = None

    def to_dataclass(self) -> AutoFillRequest:
        return AutoFillRequest(
            input=self.input,
            type=self.type,
            additional_instructions=self.additional_instructions,
        )


class AutoFillResponse(BaseModel):
    values: Dict[str, Any]


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_form_fill_service() -> FormFillService:
    """Build the service from the configuration once per process."""
    config = load_config()
    metadata: Dict[str, Any] = {}
    if config.entities_path:
        metadata = load_metadata_file(config.entities_path)
    return FormFillService(
        build_orchestrator(config),
        LookupRegistry.from_data(metadata),
        parse_entity_models(metadata),
    )


# ---------------------------------------------------------------------------
# API Endpoints
# ---------------------------------------------------------------------------


@app.get("/services", response_model=ServicesResponse)
def api_services(service: FormFillService = Depends(get_form_fill_service)):
    return ServicesResponse(services=service.find_supported_services())


@app.get("/entities", response_model=EntitiesResponse)
def api_entities(service: FormFillService = Depends(get_form_fill_service)):
    return EntitiesResponse(entities=sorted(service.entity_models))


@app.post("/autofill", response_model=AutoFillResponse)
def api_autofill(req: AutoFillRequestSchema, service: FormFillService = Depends(get_form_fill_service)):
    entity_model = service.get_entity_model(req.entity)
    if entity_model is None:
        raise HTTPException(status_code=404, detail=f"Unknown entity: {req.entity}")
    if not req.input.strip():
        raise HTTPException(status_code=422, detail="Input must not be empty")

    try:
        values = service.auto_fill_form(entity_model, req.to_dataclass())
    except NoBackendAvailable as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logging.error(f"Autofill of {req.entity} failed: {e}")
        raise HTTPException(status_code=502, detail=f"AI service call failed: {e}")
    return AutoFillResponse(values=values)


@app.get("/health")
def health_check():
    return {"status": "ok"}
