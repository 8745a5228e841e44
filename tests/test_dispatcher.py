"""Tests for tool dispatch, context resolution and memory effects."""

import random

import pytest

from conftest import FakeBackend, FakeCompletion
from parcel_mcp.core.context import ContextMemory
from parcel_mcp.errors import (
    InvalidArgumentError,
    InvalidPayloadError,
    NotConfiguredError,
    NotFoundError,
    UnknownToolError,
    UpstreamHTTPError,
)
from parcel_mcp.mcp.definitions import TOOL_NAMES
from parcel_mcp.mcp.dispatcher import RESOLUTION_HINT, ToolDispatcher

OAK = {"id": "p1", "projectName": "Oak Plaza", "address": "1 Oak St", "zoningCode": "R-1", "zoneType": "Residential"}
ELM = {"id": "p2", "projectName": "Elm Yard", "address": "2 Elm St", "zoningCode": "C-2", "zoneType": "Commercial"}

CREATE_ARGS = {
    "projectName": "Oak Plaza",
    "address": "1 Oak St",
    "zoningCode": "R-1",
    "zoneType": "Residential",
}


def _dispatcher(backend, completion=None, memory=None, seed=7):
    return ToolDispatcher(
        backend,
        completion or FakeCompletion(configured=False),
        memory=memory or ContextMemory(),
        rng=random.Random(seed),
    )


class TestRegistry:
    def test_list_tools_matches_catalog(self, dispatcher):
        names = [tool["name"] for tool in dispatcher.list_tools()]
        assert names == list(TOOL_NAMES)
        assert len(names) == 7

    def test_unknown_tool(self, dispatcher, backend):
        with pytest.raises(UnknownToolError, match="Unknown tool: projects.frobnicate"):
            dispatcher.invoke("projects.frobnicate", {})
        assert backend.calls == []

    def test_non_dict_arguments_treated_as_empty(self, dispatcher):
        with pytest.raises(InvalidArgumentError, match='Missing or invalid "text"'):
            dispatcher.invoke("ai.summarize", ["not", "a", "dict"])


class TestCreate:
    def test_create_sets_last_entity(self, dispatcher, backend, memory):
        content = dispatcher.invoke("projects.create", dict(CREATE_ARGS, notes="corner lot"))

        assert content[0]["type"] == "json"
        assert content[0]["json"]["id"] == "p1"
        assert backend.calls_of("create")[0][1]["notes"] == "corner lot"
        assert memory.get_last_entity()["id"] == "p1"

    @pytest.mark.parametrize("missing", ["projectName", "address", "zoningCode", "zoneType"])
    def test_create_requires_each_field(self, dispatcher, backend, missing):
        args = dict(CREATE_ARGS)
        args[missing] = "   "
        with pytest.raises(InvalidArgumentError, match=f'Missing or invalid "{missing}"'):
            dispatcher.invoke("projects.create", args)
        assert backend.calls == []

    def test_create_omits_empty_notes(self, dispatcher, backend):
        dispatcher.invoke("projects.create", dict(CREATE_ARGS, notes=""))
        assert "notes" not in backend.calls_of("create")[0][1]


class TestResolution:
    def test_explicit_id_wins(self, backend, memory):
        backend.projects = {"p1": dict(OAK), "p2": dict(ELM)}
        memory.set_last_entity(dict(ELM))
        dispatcher = _dispatcher(backend, memory=memory)

        content = dispatcher.invoke("projects.get", {"id": " p1 ", "projectName": "Elm Yard"})

        assert content[0]["json"]["id"] == "p1"
        assert backend.calls_of("list") == []

    def test_project_name_lookup(self, backend, memory):
        backend.projects = {"p1": dict(OAK), "p2": dict(ELM)}
        dispatcher = _dispatcher(backend, memory=memory)

        dispatcher.invoke("projects.get", {"projectName": "Elm"})

        assert backend.calls_of("list")[0] == ("list", {"q": "Elm", "limit": "1"})
        assert backend.calls_of("get")[0] == ("get", "p2")
        assert memory.get_last_entity()["id"] == "p2"

    def test_project_name_not_found(self, backend):
        backend.projects = {"p1": dict(OAK)}
        dispatcher = _dispatcher(backend)
        with pytest.raises(NotFoundError, match="Project not found by name: Maple"):
            dispatcher.invoke("projects.get", {"projectName": "Maple"})

    def test_falls_back_to_last_entity(self, backend, memory):
        backend.projects = {"p1": dict(OAK), "p2": dict(ELM)}
        memory.set_last_entity({"projectId": "p2"})
        memory.set_last_search_results([dict(OAK)])
        dispatcher = _dispatcher(backend, memory=memory)

        dispatcher.invoke("projects.get", {})

        assert backend.calls_of("get")[0] == ("get", "p2")

    def test_falls_back_to_first_search_result(self, backend, memory):
        backend.projects = {"p1": dict(OAK), "p2": dict(ELM)}
        memory.set_last_search_results([dict(ELM), dict(OAK)])
        dispatcher = _dispatcher(backend, memory=memory)

        dispatcher.invoke("projects.get", {})

        assert backend.calls_of("get")[0] == ("get", "p2")

    def test_nothing_to_resolve(self, backend):
        dispatcher = _dispatcher(backend)
        with pytest.raises(InvalidArgumentError) as excinfo:
            dispatcher.invoke("projects.delete", {})
        assert str(excinfo.value) == RESOLUTION_HINT
        assert backend.calls == []

    def test_last_entity_without_id_is_skipped(self, backend, memory):
        backend.projects = {"p1": dict(OAK)}
        memory.set_last_entity({"projectName": "no id here"})
        memory.set_last_search_results([dict(OAK)])
        dispatcher = _dispatcher(backend, memory=memory)

        dispatcher.invoke("projects.get", {})

        assert backend.calls_of("get")[0] == ("get", "p1")


class TestGet:
    def test_get_without_llm_has_no_summary(self, backend):
        backend.projects = {"p1": dict(OAK, notes="long notes")}
        content = _dispatcher(backend).invoke("projects.get", {"id": "p1"})
        assert "notes_summary" not in content[0]["json"]

    def test_get_attaches_notes_summary(self, backend):
        backend.projects = {"p1": dict(OAK, notes="long notes")}
        completion = FakeCompletion(replies=["Short summary."])

        content = _dispatcher(backend, completion).invoke("projects.get", {"id": "p1"})

        assert content[0]["json"]["notes_summary"] == "Short summary."
        assert completion.calls[0]["max_tokens"] == 120
        assert completion.calls[0]["messages"][1]["content"] == "long notes"

    def test_summary_failure_is_recorded_not_raised(self, backend, memory):
        backend.projects = {"p1": dict(OAK, notes="long notes")}
        completion = FakeCompletion(error=UpstreamHTTPError("OpenAI API error 500: boom", status_code=500))

        content = _dispatcher(backend, completion, memory).invoke("projects.get", {"id": "p1"})

        project = content[0]["json"]
        assert project["notes_summary_error"] == "OpenAI API error 500: boom"
        assert "notes_summary" not in project
        assert memory.get_last_entity()["notes_summary_error"] == "OpenAI API error 500: boom"

    def test_backend_error_propagates_and_memory_unchanged(self, backend, memory):
        memory.set_last_entity(dict(ELM))
        with pytest.raises(UpstreamHTTPError, match="HTTP 404"):
            _dispatcher(backend, memory=memory).invoke("projects.get", {"id": "gone"})
        assert memory.get_last_entity() == ELM


class TestUpdate:
    def test_update_sends_only_provided_fields(self, backend, memory):
        backend.projects = {"p1": dict(OAK)}
        content = _dispatcher(backend, memory=memory).invoke(
            "projects.update",
            {"id": "p1", "zoneType": "Mixed", "address": "", "notes": None},
        )

        assert backend.calls_of("update")[0] == ("update", "p1", {"zoneType": "Mixed"})
        assert content[0]["json"]["zoneType"] == "Mixed"
        assert memory.get_last_entity()["zoneType"] == "Mixed"

    def test_update_requires_id(self, backend):
        with pytest.raises(InvalidArgumentError, match='Missing or invalid "id"'):
            _dispatcher(backend).invoke("projects.update", {"projectName": "Oak"})
        assert backend.calls == []


class TestDelete:
    def test_delete_by_id_message(self, backend, memory):
        backend.projects = {"p1": dict(OAK)}
        memory.set_last_entity(dict(OAK))

        content = _dispatcher(backend, memory=memory).invoke("projects.delete", {"id": "p1"})

        assert content == [{"type": "text", "text": "Deleted project p1."}]
        assert memory.get_last_entity() is None

    def test_delete_by_name_message(self, backend):
        backend.projects = {"p1": dict(OAK)}
        content = _dispatcher(backend).invoke("projects.delete", {"projectName": "Oak"})
        assert content[0]["text"] == 'Deleted project "Oak" (id: p1).'

    def test_delete_from_memory_uses_remembered_name(self, backend, memory):
        backend.projects = {"p1": dict(OAK)}
        memory.set_last_entity(dict(OAK))
        content = _dispatcher(backend, memory=memory).invoke("projects.delete", {})
        assert content[0]["text"] == 'Deleted project "Oak Plaza" (id: p1).'

    def test_delete_keeps_search_results(self, backend, memory):
        backend.projects = {"p1": dict(OAK), "p2": dict(ELM)}
        memory.set_last_search_results([dict(OAK), dict(ELM)])

        _dispatcher(backend, memory=memory).invoke("projects.delete", {})

        assert backend.calls_of("delete")[0] == ("delete", "p1")
        assert [row["id"] for row in memory.get_last_search_results()] == ["p1", "p2"]


class TestDeleteRandom:
    def test_default_batch_size(self, backend):
        backend.projects = {"p1": dict(OAK)}
        _dispatcher(backend).invoke("projects.deleteRandom", {})
        assert backend.calls_of("list")[0] == ("list", {"limit": "25"})

    @pytest.mark.parametrize("limit,expected", [(0, "1"), (-4, "1"), (3.9, "3"), (10, "10")])
    def test_limit_is_clamped(self, backend, limit, expected):
        backend.projects = {"p1": dict(OAK)}
        _dispatcher(backend).invoke("projects.deleteRandom", {"limit": limit})
        assert backend.calls_of("list")[0][1]["limit"] == expected

    def test_non_numeric_limit_uses_default(self, backend):
        backend.projects = {"p1": dict(OAK)}
        _dispatcher(backend).invoke("projects.deleteRandom", {"limit": "5"})
        assert backend.calls_of("list")[0][1]["limit"] == "25"

    def test_picks_with_injected_rng(self, backend, memory):
        backend.projects = {"p1": dict(OAK), "p2": dict(ELM)}
        memory.set_last_entity(dict(OAK))
        expected = random.Random(3).choice([OAK, ELM])

        content = _dispatcher(backend, memory=memory, seed=3).invoke("projects.deleteRandom", {})

        assert backend.calls_of("delete")[0] == ("delete", expected["id"])
        assert content[0]["text"] == (
            f'Deleted random project "{expected["projectName"]}" (id: {expected["id"]}).'
        )
        assert memory.get_last_entity() is None

    def test_unnamed_pick(self, backend):
        backend.list_response = [{"id": "x1"}]
        content = _dispatcher(backend).invoke("projects.deleteRandom", {})
        assert content[0]["text"] == 'Deleted random project "(unnamed)" (id: x1).'

    def test_empty_batch(self, backend):
        with pytest.raises(NotFoundError, match="No projects available to delete."):
            _dispatcher(backend).invoke("projects.deleteRandom", {})
        assert backend.calls_of("delete") == []

    def test_pick_without_id(self, backend):
        backend.list_response = {"rows": [{"projectName": "ghost"}]}
        with pytest.raises(InvalidPayloadError):
            _dispatcher(backend).invoke("projects.deleteRandom", {})
        assert backend.calls_of("delete") == []


class TestSearch:
    def test_search_filters_and_paging(self, backend):
        backend.list_response = {"data": {"items": [dict(OAK)], "total": 12}}
        content = _dispatcher(backend).invoke(
            "projects.search",
            {"q": "Oak", "zone_type": "Residential", "city": "", "page": 2, "limit": 5.0, "state": None},
        )

        assert backend.calls_of("list")[0][1] == {"q": "Oak", "zone_type": "Residential", "page": "2", "limit": "5"}
        assert content == [{"type": "json", "json": {"items": [OAK], "total": 12}}]

    def test_non_numeric_paging_is_dropped(self, backend):
        backend.list_response = []
        _dispatcher(backend).invoke("projects.search", {"page": "2", "limit": True})
        assert backend.calls_of("list")[0][1] == {}

    def test_search_overwrites_results_even_when_empty(self, backend, memory):
        memory.set_last_search_results([dict(OAK)])
        backend.list_response = {"items": [], "total": 0}

        _dispatcher(backend, memory=memory).invoke("projects.search", {"q": "nothing"})

        assert memory.get_last_search_results() == []

    def test_search_does_not_touch_last_entity(self, backend, memory):
        memory.set_last_entity(dict(ELM))
        backend.list_response = [dict(OAK)]
        _dispatcher(backend, memory=memory).invoke("projects.search", {})
        assert memory.get_last_entity() == ELM

    def test_invalid_payload(self, backend):
        backend.list_response = "oops"
        with pytest.raises(InvalidPayloadError):
            _dispatcher(backend).invoke("projects.search", {})


class TestSummarize:
    def test_requires_text_before_configuration(self, backend):
        with pytest.raises(InvalidArgumentError):
            _dispatcher(backend).invoke("ai.summarize", {"text": ""})

    def test_not_configured(self, backend):
        with pytest.raises(NotConfiguredError, match="OPENAI_API_KEY"):
            _dispatcher(backend).invoke("ai.summarize", {"text": "hello"})

    def test_summarize_returns_text_block(self, backend):
        completion = FakeCompletion(replies=["- a\n- b"])
        content = _dispatcher(backend, completion).invoke("ai.summarize", {"text": "hello world"})

        assert content == [{"type": "text", "text": "- a\n- b"}]
        assert completion.calls[0]["max_tokens"] == 180
        assert backend.calls == []

    def test_empty_reply_is_not_an_error(self, backend):
        content = _dispatcher(backend, FakeCompletion(replies=[""])).invoke("ai.summarize", {"text": "x"})
        assert content == [{"type": "text", "text": ""}]


def test_create_then_delete_without_arguments(backend, memory):
    dispatcher = _dispatcher(backend, memory=memory)
    dispatcher.invoke("projects.create", CREATE_ARGS)

    content = dispatcher.invoke("projects.delete", {})

    assert backend.calls_of("delete") == [("delete", "p1")]
    assert content[0]["text"] == 'Deleted project "Oak Plaza" (id: p1).'
    assert backend.projects == {}
