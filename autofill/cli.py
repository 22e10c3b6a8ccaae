#!/usr/bin/env python3
import argparse
import json
import logging

from .config import load_config
from .exceptions import NoBackendAvailable
from .form_fill_service import AutoFillRequest, FormFillService
from .llm_client import AIServiceType, build_orchestrator
from .lookup import LookupRegistry
from .metadata import load_metadata_file, parse_entity_models
from .prompts import CONNECTIVITY_TEST_PROMPT


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='autofill',
        description='Fill entity forms from natural language input using an LLM.'
    )
    parser.add_argument('--config', type=str, default=None, help='Path to the YAML configuration file.')
    parser.add_argument('--verbose', action='store_true', help='Enable verbose logging.')
    parser.add_argument('--provider', choices=[t.value for t in AIServiceType], default=None,
                        help='AI service to use (defaults to the first available one).')
    parser.add_argument('--test-api', action='store_true', help='Test connectivity of the selected AI service.')
    parser.add_argument('--list-services', action='store_true', help='List the available AI services.')
    parser.add_argument('--entities', type=str, default=None, help='Path to the YAML entity metadata file.')
    parser.add_argument('--entity', type=str, default=None, help='Name of the entity to fill.')
    parser.add_argument('--input', type=str, default=None, help='Natural language text describing the entity.')
    parser.add_argument('--instructions', type=str, default=None, help='Additional context instructions.')
    parser.add_argument('--printPrompt', action='store_true', help='Print the prompt sent to the AI service.')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    config = load_config(args.config)
    orchestrator = build_orchestrator(config)
    available = orchestrator.find_supported_services()

    if args.list_services:
        for service_type in available:
            print(service_type.value)
        return 0

    if args.provider:
        service_type = AIServiceType(args.provider)
        if service_type not in available:
            logging.error(f"{NoBackendAvailable(service_type)}, check the configuration.")
            return 1
    elif available:
        service_type = available[0]
    else:
        logging.error('No AI service is enabled, check the configuration.')
        return 1
    logging.info(f"AI service set to: {service_type.value}")

    if args.test_api:
        response = orchestrator.execute(service_type, CONNECTIVITY_TEST_PROMPT)
        print(f"{service_type.value} API test successful: {response}")
        return 0

    if not (args.entity and args.input):
        logging.error('You must specify --entity and --input to fill a form.')
        return 1

    entities_path = args.entities or config.entities_path
    metadata = load_metadata_file(entities_path) if entities_path else {}
    entity_models = parse_entity_models(metadata)
    entity_model = entity_models.get(args.entity)
    if entity_model is None:
        logging.error(f"Unknown entity '{args.entity}'. Known entities: {', '.join(entity_models) or 'none'}")
        return 1

    service = FormFillService(orchestrator, LookupRegistry.from_data(metadata), entity_models)
    request = AutoFillRequest(input=args.input, type=service_type, additional_instructions=args.instructions)

    if args.printPrompt:
        print("\n===== Prompt =====\n")
        print(service.build_prompt(entity_model, request))
        print("\n===== End of Prompt =====\n")

    values = service.auto_fill_form(entity_model, request)
    print(json.dumps(values, ensure_ascii=False, indent=4, default=str))
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
