"""Tests for the screen router: navigation, editing, dispatch and events."""

from __future__ import annotations

import pytest

from apiconsole.core.catalog import HTTPMethod
from apiconsole.core.events import (
    ReferenceListsUpdated,
    RequestCompleted,
    RequestFailed,
    ShellCompleted,
    StatsFetched,
)
from apiconsole.core.reference import CachedChain, CachedTemplate
from apiconsole.core.request import RequestResult
from apiconsole.core.router import ScreenRouter
from apiconsole.core.state import ApplicationState, Screen
from apiconsole.core.tasks import (
    ExecuteRequest,
    FetchChains,
    FetchStats,
    FetchTemplates,
    RunMakeCommand,
)

BASE_URL = "http://api.test"

GET_CHAINS = 6
CREATE_CHAIN = 7
GET_CHAIN = 8
DELETE_CHAIN = 9


def press(router: ScreenRouter, *keys: str) -> list:
    """Feed keys; single printable characters are sent as typed text."""
    tasks = []
    for key in keys:
        if len(key) == 1:
            tasks.extend(router.handle_key(key, key))
        else:
            tasks.extend(router.handle_key(key))
    return tasks


def type_text(router: ScreenRouter, text: str) -> None:
    for char in text:
        router.handle_key(char, char)


def result_for(name: str, status: int = 200, error: str | None = None) -> RequestResult:
    return RequestResult(
        method=HTTPMethod.GET,
        endpoint_name=name,
        request_url=f"{BASE_URL}/x",
        status_code=status,
        error=error,
    )


def chains_loaded(router: ScreenRouter) -> None:
    router.apply_event(
        ReferenceListsUpdated(
            chains=(CachedChain(id="c1", name="First"), CachedChain(id="c2", name="Second"))
        )
    )


# ========== Startup ==========


class TestStartup:
    def test_initial_state(self, router):
        state = router.app_state
        assert router.screen is Screen.ENDPOINT_LIST
        assert state.current_screen is Screen.ENDPOINT_LIST
        assert state.selected_index == 0
        assert state.selected_name == "Health Check"
        assert state.ordered_input_list == []
        assert state.focused_input_index == 0
        assert state.last_response is None
        assert not state.in_flight

    def test_initialize_issues_no_tasks(self):
        router = ScreenRouter(state=ApplicationState())
        router.initialize()
        assert router.app_state.pending_requests == 0

    def test_tick_fetches_both_lists(self, router):
        tasks = router.handle_tick()
        assert tasks == [FetchChains(BASE_URL, "user-1"), FetchTemplates(BASE_URL)]


# ========== Selection ==========


class TestSelection:
    def test_move_does_not_wrap(self, router):
        press(router, "up")
        assert router.app_state.selected_index == 0
        for _ in range(len(router.catalog) + 3):
            press(router, "down")
        assert router.app_state.selected_index == len(router.catalog) - 1

    def test_vim_keys(self, router):
        press(router, "j", "j", "k")
        assert router.app_state.selected_index == 1

    def test_out_of_range_select_is_rejected(self, router):
        assert router.select_endpoint(99) is False
        assert router.app_state.selected_index == 0

    def test_fresh_fields_use_first_cached_chain(self, router):
        chains_loaded(router)
        router.select_endpoint(GET_CHAIN)
        assert [field.value for field in router.app_state.ordered_input_list] == ["c1"]

    def test_edits_survive_round_trip(self, router):
        chains_loaded(router)
        router.select_endpoint(GET_CHAIN)
        press(router, "tab", "ctrl+u")
        type_text(router, "c2")

        tasks = press(router, "enter")
        assert tasks[0].prepared.url.endswith("/api/v1/chains/c2")

        press(router, "ctrl+n")
        assert router.app_state.selected_name == "Delete Chain"
        assert router.app_state.ordered_input_list[0].value == "c1"
        press(router, "ctrl+p")
        assert router.app_state.selected_name == "Get Chain"
        assert router.app_state.ordered_input_list[0].value == "c2"

    def test_selection_resets_focus(self, router):
        router.select_endpoint(GET_CHAINS)
        press(router, "tab", "tab", "tab")
        assert router.app_state.focused_input_index == 2
        press(router, "ctrl+n")
        assert router.app_state.focused_input_index == 0


# ========== Focus cycling ==========


class TestFocus:
    def test_tab_enters_builder_on_first_field(self, router):
        router.select_endpoint(GET_CHAINS)
        press(router, "tab")
        assert router.screen is Screen.REQUEST_BUILDER
        assert router.app_state.focused_input_index == 0
        assert router.app_state.focused_field.key.name == "page"

    def test_tab_cycles_fields_then_send_then_list(self, router):
        router.select_endpoint(GET_CHAINS)
        press(router, "tab")
        seen = []
        for _ in range(3):
            press(router, "tab")
            seen.append(router.app_state.focused_input_index)
        assert seen == [1, 2, 3]
        assert router.app_state.send_focused
        press(router, "tab")
        assert router.screen is Screen.ENDPOINT_LIST

    def test_shift_tab_from_list_focuses_send(self, router):
        router.select_endpoint(GET_CHAIN)
        press(router, "shift+tab")
        assert router.screen is Screen.REQUEST_BUILDER
        assert router.app_state.send_focused
        press(router, "shift+tab")
        assert router.app_state.focused_input_index == 0
        press(router, "shift+tab")
        assert router.screen is Screen.ENDPOINT_LIST

    def test_tab_without_inputs(self, router):
        press(router, "tab")
        assert router.screen is Screen.REQUEST_BUILDER
        assert router.app_state.send_focused
        assert router.app_state.focused_field is None
        press(router, "tab")
        assert router.screen is Screen.ENDPOINT_LIST

    def test_up_down_clamp_in_builder(self, router):
        router.select_endpoint(GET_CHAIN)
        press(router, "tab", "down", "down", "down")
        assert router.app_state.focused_input_index == 1
        press(router, "up", "up", "up")
        assert router.app_state.focused_input_index == 0
        assert router.screen is Screen.REQUEST_BUILDER


# ========== Editing ==========


class TestEditing:
    def test_typing_and_backspace(self, router):
        router.select_endpoint(GET_CHAINS)
        press(router, "tab")
        type_text(router, "12")
        press(router, "backspace")
        assert router.app_state.ordered_input_list[0].value == "1"

    def test_letter_shortcuts_are_text_while_editing(self, router):
        router.select_endpoint(GET_CHAINS)
        press(router, "tab")
        type_text(router, "dhsqjk")
        assert router.screen is Screen.REQUEST_BUILDER
        assert router.app_state.ordered_input_list[0].value == "dhsqjk"

    def test_q_on_send_control_goes_back(self, router):
        press(router, "tab")
        assert router.app_state.send_focused
        press(router, "q")
        assert router.screen is Screen.ENDPOINT_LIST
        assert not router.app_state.quit_requested

    def test_shortcuts_active_on_send_control(self, router):
        press(router, "tab", "h")
        assert router.screen is Screen.HISTORY


# ========== Back and quit ==========


class TestBackAndQuit:
    def test_escape_from_builder_returns_to_list(self, router):
        press(router, "tab", "escape")
        assert router.screen is Screen.ENDPOINT_LIST
        assert not router.app_state.quit_requested

    def test_escape_on_list_quits(self, router):
        press(router, "escape")
        assert router.app_state.quit_requested

    def test_q_on_list_quits(self, router):
        press(router, "q")
        assert router.app_state.quit_requested

    def test_ctrl_c_quits_anywhere(self, router):
        press(router, "f5", "ctrl+c")
        assert router.app_state.quit_requested

    def test_back_from_make_commands_quits(self, router):
        press(router, "f2", "escape")
        assert router.app_state.quit_requested


# ========== Stats overlay ==========


class TestStatsModal:
    def test_open_returns_fetch_and_sets_loading(self, router):
        tasks = press(router, "f3")
        assert tasks == [FetchStats(BASE_URL, "user-1")]
        assert router.screen is Screen.STATS_MODAL
        assert router.app_state.previous_screen is Screen.ENDPOINT_LIST
        assert router.app_state.stats.loading

    @pytest.mark.parametrize("opener", ["f1", "f4", "f5", "f2"])
    def test_dismiss_restores_previous_screen(self, router, opener):
        press(router, opener)
        before = router.screen
        press(router, "f3")
        press(router, "x")
        assert router.screen is before
        assert router.app_state.previous_screen is None

    def test_dismiss_from_builder(self, router):
        router.select_endpoint(GET_CHAIN)
        press(router, "tab", "f3")
        press(router, "enter")
        assert router.screen is Screen.REQUEST_BUILDER

    def test_any_key_is_consumed(self, router):
        press(router, "f3")
        tasks = press(router, "enter")
        assert tasks == []
        assert router.app_state.pending_requests == 0
        assert not router.app_state.quit_requested

    def test_ctrl_c_only_dismisses(self, router):
        press(router, "f3", "ctrl+c")
        assert router.screen is Screen.ENDPOINT_LIST
        assert not router.app_state.quit_requested

    def test_d_shortcut_opens_overlay(self, router):
        press(router, "d")
        assert router.screen is Screen.STATS_MODAL

    def test_f3_inside_overlay_does_not_reopen(self, router):
        press(router, "f3")
        tasks = press(router, "f3")
        assert tasks == []
        assert router.screen is Screen.ENDPOINT_LIST

    def test_stats_event(self, router):
        press(router, "f3")
        router.apply_event(StatsFetched(template_count=4, chain_count=2))
        stats = router.app_state.stats
        assert not stats.loading
        assert (stats.template_count, stats.chain_count, stats.error) == (4, 2, None)
        assert stats.fetched_at is not None

    def test_stats_error(self, router):
        press(router, "f3")
        router.apply_event(StatsFetched(error="GET failed"))
        assert router.app_state.stats.error == "GET failed"
        assert router.app_state.stats.fetched_at is None
        assert router.app_state.last_error == "GET failed"


# ========== Search ==========


class TestSearch:
    def test_jump_to_first_match(self, router):
        press(router, "/")
        type_text(router, "chain")
        state = router.app_state
        assert state.search_mode
        assert state.selected_name == "Get Chains"
        press(router, "enter")
        assert not state.search_mode
        assert state.search_buffer == ""
        assert state.selected_name == "Get Chains"

    def test_no_match_leaves_selection(self, router):
        router.select_endpoint(CREATE_CHAIN)
        press(router, "/")
        type_text(router, "zzz")
        assert router.app_state.selected_index == CREATE_CHAIN
        press(router, "escape")
        assert not router.app_state.search_mode
        assert not router.app_state.quit_requested

    def test_letters_are_search_text(self, router):
        press(router, "/")
        type_text(router, "delete")
        assert router.screen is Screen.ENDPOINT_LIST
        assert router.app_state.selected_name == "Delete Chain"

    def test_backspace_edits_buffer(self, router):
        press(router, "/")
        type_text(router, "xy")
        press(router, "backspace")
        assert router.app_state.search_buffer == "x"

    def test_global_key_leaves_search(self, router):
        press(router, "/", "f4")
        assert not router.app_state.search_mode
        assert router.screen is Screen.HISTORY

    def test_disabled(self, app_state):
        router = ScreenRouter(state=app_state, search_enabled=False)
        router.initialize()
        press(router, "/")
        assert not router.app_state.search_mode


# ========== Requests and history ==========


class TestRequests:
    def test_send_builds_prepared_request(self, router):
        chains_loaded(router)
        router.select_endpoint(GET_CHAIN)
        tasks = press(router, "enter")
        assert len(tasks) == 1
        task = tasks[0]
        assert isinstance(task, ExecuteRequest)
        assert task.prepared.url == BASE_URL + "/api/v1/chains/c1"
        assert task.prepared.user_id == "user-1"
        assert router.app_state.in_flight

    def test_concurrent_sends_are_counted(self, router):
        tasks = press(router, "enter", "enter", "enter")
        assert len(tasks) == 3
        assert router.app_state.pending_requests == 3
        for task in tasks:
            router.apply_event(RequestCompleted(result_for(task.prepared.endpoint_name)))
        assert not router.app_state.in_flight
        assert len(router.app_state.history) == 3

    def test_completed_result_is_displayed(self, router):
        press(router, "enter")
        result = result_for("Health Check")
        router.apply_event(RequestCompleted(result))
        assert router.app_state.last_response is result
        assert router.app_state.history.latest is result

    def test_failure_sets_last_error(self, router):
        press(router, "enter")
        router.apply_event(RequestFailed(result_for("Health Check", 0, "refused")))
        assert router.app_state.last_error == "refused"
        assert router.app_state.last_response.failed

    def test_stale_result_goes_to_its_endpoint(self, router):
        press(router, "enter")
        press(router, "down")
        stale = result_for("Health Check")
        router.apply_event(RequestCompleted(stale))
        state = router.app_state
        assert state.selected_name == "List Routes"
        assert state.last_response is None
        assert state.history.latest is stale
        press(router, "up")
        assert state.last_response is stale

    def test_result_for_unvisited_endpoint_only_in_history(self, router):
        router.apply_event(RequestCompleted(result_for("Get Transactions")))
        assert router.app_state.last_response is None
        assert len(router.app_state.history) == 1
        assert "Get Transactions" not in router.app_state.endpoint_states

    def test_history_is_append_only(self, router):
        results = [result_for("Health Check", status) for status in (200, 404, 500)]
        for result in results:
            router.apply_event(RequestCompleted(result))
        assert list(router.app_state.history) == results
        assert router.app_state.history.recent(2) == [results[2], results[1]]


# ========== Reference data ==========


class TestReferenceEvents:
    def test_update_does_not_touch_edited_fields(self, router):
        router.select_endpoint(GET_CHAIN)
        press(router, "tab")
        type_text(router, "mine")
        chains_loaded(router)
        assert router.app_state.ordered_input_list[0].value == "mine"
        assert router.app_state.reference.first_chain_id() == "c1"

    def test_failed_fetch_keeps_previous_lists(self, router):
        chains_loaded(router)
        router.apply_event(ReferenceListsUpdated(templates=(CachedTemplate(id="t1"),)))
        router.apply_event(ReferenceListsUpdated(errors=("chains: GET failed",)))
        reference = router.app_state.reference
        assert [chain.id for chain in reference.chains] == ["c1", "c2"]
        assert [template.id for template in reference.templates] == ["t1"]

    def test_replacement_is_wholesale(self, router):
        chains_loaded(router)
        router.apply_event(ReferenceListsUpdated(chains=(CachedChain(id="c9"),)))
        assert [chain.id for chain in router.app_state.reference.chains] == ["c9"]


# ========== History screen ==========


class TestHistoryScreen:
    def test_cursor_bounded_by_window(self, app_state, makefile):
        router = ScreenRouter(state=app_state, makefile=makefile, history_window=2)
        router.initialize()
        for _ in range(5):
            router.apply_event(RequestCompleted(result_for("Health Check")))
        press(router, "h")
        assert router.screen is Screen.HISTORY
        press(router, "j", "j", "j")
        assert router.app_state.history_cursor == 1
        press(router, "k", "k")
        assert router.app_state.history_cursor == 0

    def test_reopening_resets_cursor(self, router):
        for _ in range(3):
            router.apply_event(RequestCompleted(result_for("Health Check")))
        press(router, "f4", "down")
        assert router.app_state.history_cursor == 1
        press(router, "q", "f4")
        assert router.app_state.history_cursor == 0

    def test_q_returns_to_list(self, router):
        press(router, "f4", "q")
        assert router.screen is Screen.ENDPOINT_LIST
        assert not router.app_state.quit_requested


# ========== Settings screen ==========


class TestSettingsScreen:
    def test_form_prefilled_from_session(self, router):
        press(router, "s")
        form = router.app_state.settings
        assert router.screen is Screen.SETTINGS
        assert form.values == {"base_url": BASE_URL, "user_id": "user-1"}
        assert form.focused_name == "base_url"

    def test_invalid_base_url_rejected(self, router):
        press(router, "f5", "ctrl+u")
        type_text(router, "ftp://x")
        press(router, "enter")
        form = router.app_state.settings
        assert form.error
        assert router.app_state.base_url == BASE_URL

    def test_valid_settings_applied(self, router):
        press(router, "f5", "ctrl+u")
        type_text(router, "https://other.test/")
        press(router, "tab", "ctrl+u")
        type_text(router, "qa")
        press(router, "enter")
        state = router.app_state
        assert not state.settings.error
        assert state.settings.message == "Settings applied"
        assert state.base_url == "https://other.test"
        assert state.user_id == "qa"
        assert router.handle_tick()[0] == FetchChains("https://other.test", "qa")

    def test_letters_are_text(self, router):
        press(router, "f5", "tab", "ctrl+u")
        type_text(router, "dhsq")
        assert router.screen is Screen.SETTINGS
        assert router.app_state.settings.values["user_id"] == "dhsq"

    def test_escape_discards(self, router):
        press(router, "f5", "ctrl+u", "escape")
        assert router.screen is Screen.ENDPOINT_LIST
        assert router.app_state.base_url == BASE_URL


# ========== Build commands ==========


class TestMakeCommands:
    def test_screen_lists_targets(self, router):
        press(router, "f2")
        make = router.app_state.make
        assert router.screen is Screen.MAKE_COMMANDS
        assert [command.name for command in make.commands] == ["help", "build", "test"]
        assert make.load_error is None

    def test_run_selected(self, router, makefile):
        press(router, "f2", "down")
        tasks = press(router, "enter")
        assert tasks == [RunMakeCommand("build", cwd=makefile.parent, executable="echo")]
        assert router.app_state.make.running == "build"
        router.apply_event(ShellCompleted("build", "build\n", 0))
        make = router.app_state.make
        assert make.running is None
        assert make.output == "build\n"
        assert make.last_exit_code == 0

    def test_cursor_clamped(self, router):
        press(router, "f2", "up", "j", "j", "j", "j")
        assert router.app_state.make.cursor == 2

    def test_missing_makefile(self, app_state, tmp_path):
        router = ScreenRouter(state=app_state, makefile=tmp_path / "nope")
        router.initialize()
        press(router, "f2")
        make = router.app_state.make
        assert make.commands == []
        assert "Could not read" in make.load_error
        assert press(router, "enter") == []

    def test_no_makefile_configured(self, app_state):
        router = ScreenRouter(state=app_state)
        router.initialize()
        press(router, "f2")
        assert router.app_state.make.load_error == "No Makefile configured"
