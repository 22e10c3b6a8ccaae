import pytest

from autofill.components import ComboBox, IntegerField, Layout, TextField
from autofill.exceptions import NoBackendAvailable
from autofill.form_filler import FormFiller, FormFillerResult
from autofill.llm_client import AIServiceOrchestrator, AIServiceType

from stubs import StubService


JOHN_RESPONSE = '{"name":"John","age":"30","color":"blue"}'


def person_form():
    name = TextField("name")
    age = IntegerField("age")
    color = ComboBox("color", items=["red", "blue", "green"])
    return Layout(children=[name, age, color]), name, age, color


def test_fill_from_natural_language(make_orchestrator):
    form, name, age, color = person_form()
    orchestrator, service = make_orchestrator(JOHN_RESPONSE)

    result = FormFiller(form, orchestrator).fill("John is 30, likes blue", AIServiceType.OPENAI)

    assert (name.get_value(), age.get_value(), color.get_value()) == ("John", 30, "blue")
    assert isinstance(result, FormFillerResult)
    assert result.response == JOHN_RESPONSE
    assert result.prompt == service.prompts[0]
    assert '{"name": "", "age": "", "color": []}' in result.prompt


def test_invalid_option_leaves_the_choice_unset(make_orchestrator):
    form, _, _, color = person_form()
    orchestrator, _ = make_orchestrator('{"color": "purple"}')

    FormFiller(form, orchestrator).fill("likes purple", AIServiceType.OPENAI)

    assert color.get_value() is None


def test_fill_is_idempotent(make_orchestrator):
    form, name, age, color = person_form()
    orchestrator, _ = make_orchestrator(JOHN_RESPONSE)
    filler = FormFiller(form, orchestrator)

    filler.fill("John is 30, likes blue", AIServiceType.OPENAI)
    first = (name.get_value(), age.get_value(), color.get_value())
    filler.fill("John is 30, likes blue", AIServiceType.OPENAI)

    assert (name.get_value(), age.get_value(), color.get_value()) == first


def test_missing_backend_raises_before_any_change():
    form, name, age, color = person_form()
    name.set_value("unchanged")
    orchestrator = AIServiceOrchestrator([StubService(JOHN_RESPONSE, AIServiceType.GROQ)])

    with pytest.raises(NoBackendAvailable):
        FormFiller(form, orchestrator).fill("John is 30", AIServiceType.OPENAI)

    assert (name.get_value(), age.get_value(), color.get_value()) == ("unchanged", None, None)


def test_backend_failure_is_raised_without_changes(make_orchestrator):
    form, name, _, _ = person_form()
    orchestrator, _ = make_orchestrator(TimeoutError("no answer"))

    with pytest.raises(TimeoutError):
        FormFiller(form, orchestrator).fill("John", AIServiceType.OPENAI)

    assert name.get_value() is None


def test_unparseable_response_changes_nothing(make_orchestrator):
    form, name, _, _ = person_form()
    orchestrator, _ = make_orchestrator("Sorry, I cannot help with that.")

    result = FormFiller(form, orchestrator).fill("John", AIServiceType.OPENAI)

    assert name.get_value() is None
    assert result.response == "Sorry, I cannot help with that."


@pytest.mark.parametrize("user_input", ["", "   "])
def test_empty_input_is_rejected(make_orchestrator, user_input):
    form, _, _, _ = person_form()
    orchestrator, service = make_orchestrator()

    with pytest.raises(ValueError):
        FormFiller(form, orchestrator).fill(user_input, AIServiceType.OPENAI)

    assert service.prompts == []


def test_instructions_are_added_to_the_prompt(make_orchestrator, customer):
    name, level = TextField("name"), ComboBox("level", items=["BRONZE", "SILVER", "GOLD"])
    orchestrator, service = make_orchestrator('{"name": "Jane", "level": "silver"}')
    filler = FormFiller(
        Layout(children=[name, level]),
        orchestrator,
        field_instructions={level: "Pick GOLD for customers older than 60"},
        context_instructions=["The input is Dutch"],
    )

    filler.fill("Jane, zilver", AIServiceType.OPENAI, customer)

    prompt = service.prompts[0]
    assert "- name: First and last name.\n" in prompt
    assert "- level: Pick GOLD for customers older than 60.\n" in prompt
    assert "Additional context instructions:\nNames are written in title case\nThe input is Dutch\n" in prompt
    assert level.get_value() == "SILVER"


def test_explicit_instructions_win_over_metadata(make_orchestrator, customer):
    orchestrator, service = make_orchestrator()
    filler = FormFiller(Layout(children=[TextField("name")]), orchestrator, {"name": "Only the first name"})

    filler.fill("Jane Doe", AIServiceType.OPENAI, customer)

    assert "Only the first name." in service.prompts[0]
    assert "First and last name" not in service.prompts[0]


def test_descriptors_are_rebuilt_on_every_fill(make_orchestrator):
    form, name, _, _ = person_form()
    orchestrator, service = make_orchestrator('{"name": "John"}')
    filler = FormFiller(form, orchestrator)

    filler.fill("John", AIServiceType.OPENAI)
    name.visible = False
    name.set_value("hidden")
    filler.fill("John", AIServiceType.OPENAI)

    assert name.get_value() == "hidden"
    assert '"name"' not in service.prompts[1].split("\n")[1]
