"""Tests for spec sourcing and CLI error reporting.

The full-screen run is covered in the integration tests; here the app
is either never reached or has its run loop stubbed out.
"""

import io

import pytest
from typer.testing import CliRunner

import panemux.app
from panemux.cli import app, join_spec_args, quote_spec_arg, read_spec
from panemux.errors import SpecSourceError
from panemux.grammar import leaves, parse_spec

runner = CliRunner()


class TestSpecArguments:
    def test_plain_arguments_are_joined_with_spaces(self):
        assert join_spec_args(["[", "vim", "..", "top", "]"]) == "[ vim .. top ]"

    def test_arguments_with_spaces_are_requoted(self):
        assert quote_spec_arg("npm start") == '"npm start"'
        assert quote_spec_arg('say "hi"') == '"say \\"hi\\""'

    def test_requoted_arguments_parse_back(self):
        text = join_spec_args(["[", "-t", "My Build", "make all", "..", "it's", "]"])
        tree = parse_spec(text)
        assert [leaf.command for leaf in leaves(tree)] == ["make all", "it's"]
        assert next(leaves(tree)).title == "My Build"


class TestReadSpec:
    def test_arguments_take_precedence_over_file(self, tmp_path):
        path = tmp_path / "layout.spec"
        path.write_text("[ a .. b ]")
        assert read_spec(["top"], str(path)) == "top"

    def test_reads_file(self, tmp_path):
        path = tmp_path / "layout.spec"
        path.write_text("[ a : b ]\n")
        assert read_spec(None, str(path)) == "[ a : b ]\n"

    def test_dash_reads_stdin(self):
        assert read_spec(None, "-", stdin=io.StringIO("[ x .. y ]")) == "[ x .. y ]"

    def test_missing_file(self, tmp_path):
        missing = tmp_path / "nope.spec"
        with pytest.raises(SpecSourceError) as info:
            read_spec([], str(missing))
        assert "cannot find specification file" in str(info.value)


class TestCommandErrors:
    def test_parse_failure_exits_nonzero_with_position(self):
        result = runner.invoke(app, ["--", "[", "A"])
        assert result.exit_code == 1
        assert "Parsing Failure" in result.output
        assert "line 1" in result.output

    def test_multiple_focus_is_rejected(self):
        result = runner.invoke(app, ["--", "[", "-f", "a", "..", "-f", "b", "]"])
        assert result.exit_code == 1
        assert "single command" in result.output

    def test_invalid_activator(self):
        result = runner.invoke(app, ["-a", "XY", "--", "top"])
        assert result.exit_code == 1
        assert "activator" in result.output

    def test_missing_spec_file(self, tmp_path):
        result = runner.invoke(app, ["-f", str(tmp_path / "missing.spec")])
        assert result.exit_code == 1
        assert "cannot find specification file" in result.output

    def test_spec_from_stdin(self):
        result = runner.invoke(app, [], input="[ a .. ")
        assert result.exit_code == 1
        assert "end of input" in result.output

    def test_activator_with_renamed_chord(self):
        result = runner.invoke(app, ["-a", "i", "--", "top"])
        assert result.exit_code == 1
        assert "tab" in result.output

    def test_version(self):
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert "panemux" in result.output


class TestRun:
    def test_runs_app_with_parsed_layout_and_options(self, monkeypatch):
        started = []
        monkeypatch.setattr(panemux.app.PanemuxApp, "run", lambda self, *args, **kwargs: started.append(self))

        result = runner.invoke(app, ["-w", "-t", "dev", "--", "[", "a", "..", "b", "]"])

        assert result.exit_code == 0
        assert len(started) == 1
        mux = started[0]
        assert mux.spec_tree == parse_spec("[ a .. b ]")
        assert mux.config.wait is True
        assert mux.config.title == "dev"
