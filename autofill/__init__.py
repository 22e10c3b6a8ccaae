"""autofill package."""

# Import and expose the main functionality
from .form_filler import FormFiller, FormFillerResult
from .form_fill_service import AutoFillRequest, FormFillService
from .llm_client import AIServiceOrchestrator, AIServiceType, LLMService, build_orchestrator
from .exceptions import AutofillError, BackendCallError, NoBackendAvailable
from .config import AutofillConfig, load_config
from .metadata import AttributeModel, AttributeType, EditableType, EntityModel, load_entity_models
from .lookup import EntityLookup, InMemoryLookupService, LookupRegistry
from .field_extraction import FieldDescriptor, extract_fields
from .schema_builder import ComponentsMapping, create_mapping
from .response_parser import parse_response

__all__ = [
    'FormFiller',
    'FormFillerResult',
    'AutoFillRequest',
    'FormFillService',
    'AIServiceOrchestrator',
    'AIServiceType',
    'LLMService',
    'build_orchestrator',
    'AutofillError',
    'BackendCallError',
    'NoBackendAvailable',
    'AutofillConfig',
    'load_config',
    'AttributeModel',
    'AttributeType',
    'EditableType',
    'EntityModel',
    'load_entity_models',
    'EntityLookup',
    'InMemoryLookupService',
    'LookupRegistry',
    'FieldDescriptor',
    'extract_fields',
    'ComponentsMapping',
    'create_mapping',
    'parse_response',
]
