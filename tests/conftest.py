import pytest
import yaml

from autofill.llm_client import AIServiceOrchestrator, AIServiceType
from autofill.lookup import LookupRegistry
from autofill.metadata import parse_entity_models

from stubs import StubService


METADATA_YAML = """
entities:
  Customer:
    display_property: name
    autofill_instructions: Names are written in title case
    attributes:
      - {name: name, autofill_instructions: First and last name}
      - {name: age, type: integer}
      - {name: level, type: enum, enum_constants: [BRONZE, SILVER, GOLD]}
      - {name: birthday, type: date}
      - {name: active, type: boolean}
      - {name: country, type: entity, nested_entity: Country}
      - {name: languages, type: entity, attribute_type: detail, nested_entity: Language}
      - {name: orders, type: entity, attribute_type: detail, nested_entity: Order, nested_details: true}
      - {name: secret, visible_in_form: false}
      - {name: code, editable_type: read_only}
  Country:
    display_property: name
    attributes:
      - {name: name}
  Language:
    display_property: name
    attributes:
      - {name: name}
  Order:
    attributes:
      - {name: product}
      - {name: quantity, type: integer}
      - {name: size, type: enum, enum_constants: [SMALL, LARGE]}
data:
  Country:
    - {name: Netherlands}
    - {name: Germany}
  Language:
    - {name: Dutch}
    - {name: German}
    - {name: English}
"""


@pytest.fixture
def metadata():
    return yaml.safe_load(METADATA_YAML)


@pytest.fixture
def entity_models(metadata):
    return parse_entity_models(metadata)


@pytest.fixture
def customer(entity_models):
    return entity_models["Customer"]


@pytest.fixture
def lookups(metadata):
    return LookupRegistry.from_data(metadata)


@pytest.fixture
def make_orchestrator():
    def _make(response="{}", service_type=AIServiceType.OPENAI):
        service = StubService(response, service_type)
        return AIServiceOrchestrator([service]), service
    return _make


@pytest.fixture
def entities_file(tmp_path):
    path = tmp_path / "entities.yaml"
    path.write_text(METADATA_YAML, encoding="utf-8")
    return str(path)
