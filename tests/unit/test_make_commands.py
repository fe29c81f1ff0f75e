"""Tests for Makefile target discovery and the make runner."""

from __future__ import annotations

import threading
import time

import pytest

from apiconsole.core.errors import MakefileError
from apiconsole.core.make_commands import (
    MakeCommand,
    ProcessRegistry,
    error_banner,
    load_make_commands,
    parse_make_line,
    parse_makefile_text,
    run_make_command,
)


class TestParseMakeLine:
    @pytest.mark.parametrize(
        "line, expected",
        [
            ("build: deps ## Build the server", MakeCommand("build", "Build the server")),
            ("test:## Run tests", MakeCommand("test", "Run tests")),
            ("  fmt : ## Format code", MakeCommand("fmt", "Format code")),
            ("\tindented: ## Still a target", MakeCommand("indented", "Still a target")),
            ("db-reset: ##   Reset the database  ", MakeCommand("db-reset", "Reset the database")),
        ],
    )
    def test_documented_targets(self, line, expected):
        assert parse_make_line(line) == expected

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "clean:",
            "just a comment ## no colon",
            ".PHONY: build ## phony",
            "\t@grep -E '^[a-z]+:.*?## .*$$' | awk 'BEGIN {FS = \":.*?## \"}'",
            "help: ## Show ## twice",
            ": ## empty target",
        ],
    )
    def test_ignored_lines(self, line):
        assert parse_make_line(line) is None

    def test_target_is_text_before_first_colon(self):
        assert parse_make_line("run: build test ## Run it").name == "run"


class TestLoadMakeCommands:
    def test_sample_makefile(self, makefile):
        commands = load_make_commands(makefile)
        assert [command.name for command in commands] == ["help", "build", "test"]
        assert commands[1].description == "Build the server binary"

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(MakefileError) as info:
            load_make_commands(tmp_path / "missing")
        assert info.value.path.endswith("missing")
        assert "Could not read" in str(info.value)

    def test_parse_text_keeps_file_order(self):
        text = "b: ## second\na: ## first\n"
        assert [command.name for command in parse_makefile_text(text)] == ["b", "a"]


class TestRunMakeCommand:
    def test_success_captures_output(self, tmp_path):
        result = run_make_command("build", cwd=tmp_path, executable="echo")
        assert result.succeeded
        assert result.output == "build\n"

    def test_non_zero_exit_gets_banner(self, tmp_path):
        result = run_make_command("build", cwd=tmp_path, executable="false")
        assert not result.succeeded
        assert result.output.startswith("Error executing 'make build': exit status 1")
        assert "\n\nOutput:\n" in result.output

    def test_missing_executable(self, tmp_path):
        result = run_make_command("build", cwd=tmp_path, executable="no-such-make-binary")
        assert result.exit_code == 127
        assert result.output.startswith("Error executing 'make build':")

    def test_error_banner_format(self):
        assert error_banner("x", "boom", "out") == "Error executing 'make x': boom\n\nOutput:\nout"


class TestProcessRegistry:
    def test_kill_all_stops_running_target(self, tmp_path):
        processes = ProcessRegistry()
        outcome = []
        worker = threading.Thread(
            target=lambda: outcome.append(
                run_make_command("30", cwd=tmp_path, executable="sleep", processes=processes)
            ),
            daemon=True,
        )
        worker.start()
        deadline = time.monotonic() + 5
        while not len(processes) and time.monotonic() < deadline:
            time.sleep(0.01)
        assert len(processes) == 1

        assert processes.kill_all() == 1
        worker.join(timeout=5)
        assert not worker.is_alive()
        assert not outcome[0].succeeded
        assert outcome[0].output.startswith("Error executing 'make 30': exit status")
        assert len(processes) == 0

    def test_closed_registry_kills_late_arrivals(self, tmp_path):
        processes = ProcessRegistry()
        processes.kill_all()
        result = run_make_command("30", cwd=tmp_path, executable="sleep", processes=processes)
        assert not result.succeeded
        assert len(processes) == 0
