import pytest

from voice_agent.graphs.state import ToolExecutionResult
from voice_agent.tools.builtin import available_tools, default_tools
from voice_agent.tools.registry import (
    ToolDefinition,
    ToolRegistry,
    create_tool_registry,
    merge_tools,
    render_confirmation,
    spoken_date,
    tool_requires_confirmation,
    validate_params,
)


async def _noop(params, ctx):
    return ToolExecutionResult(success=True)


def _tool(name, **kwargs):
    return ToolDefinition(name=name, description=f"{name} tool", execute=_noop, **kwargs)


def test_registry_lookup():
    registry = ToolRegistry([_tool("ping")])

    tool, found = registry.lookup("ping")
    assert found is True
    assert tool.name == "ping"
    assert registry.lookup("pong") == (None, False)
    assert registry.has("ping")
    assert registry.get("pong") is None
    assert registry.list() == ["ping"]
    assert len(registry) == 1


def test_registry_rejects_duplicates():
    registry = ToolRegistry([_tool("ping")])
    with pytest.raises(ValueError):
        registry.register(_tool("ping"))


def test_create_and_merge_tools():
    base = {"ping": _tool("ping"), "book": _tool("book")}
    custom = {"book": _tool("book", requires_confirmation=True)}

    merged = merge_tools(base, custom)
    registry = create_tool_registry(merged)

    assert sorted(registry.list()) == ["book", "ping"]
    assert tool_requires_confirmation("book", registry) is True
    assert tool_requires_confirmation("ping", registry) is False
    assert tool_requires_confirmation("missing", registry) is False


def test_builtin_tool_set():
    tools = default_tools()
    assert len(available_tools()) == 11
    gated = {name for name, tool in tools.items() if tool.requires_confirmation}
    assert gated == {
        "create_reservation",
        "cancel_reservation",
        "modify_reservation",
        "transfer_to_human",
        "create_appointment",
        "cancel_appointment",
    }


def test_render_confirmation_params_override_entities():
    tool = _tool("book", confirmation_template="¿Reservo para {guests} el {date}?")
    message = render_confirmation(tool, {"guests": 6}, {"guests": 2, "date": "viernes"}, "es")
    assert message == "¿Reservo para 6 el viernes?"


def test_render_confirmation_default_prompts():
    tools = default_tools()
    full = render_confirmation(
        tools["create_appointment"], {"date": "12/05", "time": "10:00"}, {}, "en"
    )
    assert full == "Do you confirm the appointment for 12/05 at 10:00?"
    short = render_confirmation(tools["create_appointment"], {}, {}, "es")
    assert short == "¿Confirma la cita?"
    generic = render_confirmation(_tool("custom"), {}, {}, "es")
    assert generic == "¿Desea que proceda con esta acción?"


@pytest.mark.parametrize(
    "params, expected",
    [
        ({"date": "12/05", "guests": 4}, None),
        ({"date": "12/05", "guests": None}, None),
        ({"guests": 4}, "missing_required:date"),
        ({"date": "", "guests": 4}, "missing_required:date"),
        ({"date": "12/05", "guests": "4"}, "invalid_type:guests"),
        ({"date": "12/05", "guests": True}, "invalid_type:guests"),
        ({"date": 12, "guests": 4}, "invalid_type:date"),
    ],
)
def test_validate_params(params, expected):
    schema = {
        "type": "object",
        "properties": {"date": {"type": "date"}, "guests": {"type": "integer"}},
        "required": ["date"],
    }
    assert validate_params(schema, params) == expected


def test_validate_params_edge_cases():
    assert validate_params({}, {"anything": 1}) is None
    assert validate_params({"type": "array"}, {}) == "schema_type_not_object"
    assert validate_params({"type": "object"}, ["x"]) == "params_not_object"


@pytest.mark.parametrize(
    "date, locale, expected",
    [
        ("12/05", "es", "el 12/05"),
        ("viernes", "es", "el viernes"),
        ("mañana", "es", "mañana"),
        ("pasado mañana", "es", "pasado mañana"),
        ("friday", "en", "on friday"),
        ("tomorrow", "en", "tomorrow"),
    ],
)
def test_spoken_date(date, locale, expected):
    assert spoken_date(date, locale) == expected


def test_render_confirmation_relative_date_reads_naturally():
    tools = default_tools()
    params = {"guests": 2, "date": "mañana", "time": "21:00"}

    es = render_confirmation(tools["create_reservation"], params, {}, "es")
    en = render_confirmation(tools["create_reservation"], {**params, "date": "tomorrow"}, {}, "en")

    assert es == "¿Confirma la reservación para 2 personas mañana a las 21:00?"
    assert en == "Do you confirm the reservation for 2 guests tomorrow at 21:00?"
