"""Tests for the command line entry point and configuration loading."""

import logging
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from tests.create_sample_workbook import create_sample_workbook
from xls2cql.config import DEFAULTS, load_config
from xls2cql.errors import ConfigError, UnknownGeneratorError
from xls2cql.main import build_parser, main
from xls2cql.registry import GENERATORS, get_generator

SKELETON = "using FHIR version '4.0.1'\n"


@pytest.fixture
def workspace(tmp_path):
    xlsx = create_sample_workbook(str(tmp_path / "dak.xlsx"))
    skel = tmp_path / "skel.cql"
    skel.write_text(SKELETON, encoding="utf-8")
    return {
        "input": xlsx,
        "skel": str(skel),
        "output": str(tmp_path / "out"),
        "config": str(tmp_path / "missing.yaml"),
    }


def _argv(ws, *generators, extra=()):
    argv = [f"--generate={g}" for g in generators]
    argv += [f"--input={ws['input']}", f"--output={ws['output']}",
             f"--skel={ws['skel']}", f"--config={ws['config']}"]
    return argv + list(extra)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestRegistry:
    def test_registered_names(self):
        assert list(GENERATORS) == [
            "who.dak.l2.dt.cql",
            "who.dak.l2.dt.pd",
            "who.dak.l2.ind.cql",
            "who.dak.l2.ind.measure",
        ]

    def test_get_generator(self):
        assert get_generator("who.dak.l2.dt.cql").name == "who.dak.l2.dt.cql"

    def test_unknown(self):
        with pytest.raises(UnknownGeneratorError, match="who.dak.l2.dt.cql"):
            get_generator("nope")


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

class TestConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(str(tmp_path / "none.yaml")) == DEFAULTS
        assert load_config(None) == DEFAULTS

    def test_yaml_overrides(self, tmp_path, caplog):
        path = tmp_path / "config.yaml"
        path.write_text(
            "ignore_sheets: [Intro]\ncanonical_base: http://x\nbogus: 1\n",
            encoding="utf-8",
        )
        with caplog.at_level(logging.WARNING):
            config = load_config(str(path))
        assert config["ignore_sheets"] == ["Intro"]
        assert config["canonical_base"] == "http://x"
        assert config["skeleton"] == DEFAULTS["skeleton"]
        assert "bogus" not in config
        assert "bogus" in caplog.text

    def test_defaults_not_mutated(self, tmp_path):
        config = load_config(None)
        config["ignore_sheets"].append("x")
        assert "x" not in DEFAULTS["ignore_sheets"]

    @pytest.mark.parametrize("text", ["ignore_sheets: [unclosed\n", "- a\n- b\n"])
    def test_malformed_file(self, tmp_path, text):
        path = tmp_path / "config.yaml"
        path.write_text(text, encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(str(path)) == DEFAULTS


# ---------------------------------------------------------------------------
# main
# ---------------------------------------------------------------------------

class TestMain:
    def test_no_generator_prints_help(self, capsys, tmp_path):
        assert main([f"--config={tmp_path / 'none.yaml'}"]) == 0
        out = capsys.readouterr().out
        assert "usage: xls2cql" in out
        for name in GENERATORS:
            assert name in out

    def test_parser_defaults(self):
        args = build_parser().parse_args([])
        assert args.output == "."
        assert args.generate == []
        assert not (args.replace or args.refresh or args.rules_only)

    def test_missing_input(self, workspace):
        argv = ["--generate=who.dak.l2.dt.cql", f"--config={workspace['config']}"]
        assert main(argv) == 1

    def test_input_file_not_found(self, workspace, caplog):
        workspace["input"] = workspace["input"] + ".missing"
        assert main(_argv(workspace, "who.dak.l2.dt.cql")) == 1
        assert "not found" in caplog.text

    def test_unknown_generator(self, workspace):
        assert main(_argv(workspace, "who.dak.l2.nothing")) == 1

    def test_malformed_config_is_fatal(self, workspace, tmp_path, caplog):
        config = tmp_path / "bad.yaml"
        config.write_text("- not\n- a mapping\n", encoding="utf-8")
        workspace["config"] = str(config)
        assert main(_argv(workspace, "who.dak.l2.dt.cql")) == 1
        assert "Fatal error" in caplog.text
        assert not os.path.exists(workspace["output"])

    def test_missing_skeleton(self, workspace):
        workspace["skel"] = workspace["skel"] + ".missing"
        assert main(_argv(workspace, "who.dak.l2.dt.cql")) == 1

    def test_all_generators(self, workspace):
        assert main(_argv(workspace, *GENERATORS)) == 0
        out = workspace["output"]
        assert sorted(os.listdir(os.path.join(out, "input", "cql"))) == [
            "IMMZDT01.cql", "IMMZIND01.cql", "IMMZIND12.cql"]
        assert os.listdir(os.path.join(out, "input", "resources", "plandefinition")) == [
            "IMMZDT01.json"]
        assert sorted(os.listdir(os.path.join(out, "input", "resources", "measure"))) == [
            "measure-IMMZIND01.json", "measure-IMMZIND12.json"]

        with open(os.path.join(out, "input", "cql", "IMMZDT01.cql"), encoding="utf-8") as f:
            text = f.read()
        assert "library IMMZDT01\n\nusing FHIR version '4.0.1'\n\n" in text

    def test_second_run_is_stable(self, workspace):
        path = os.path.join(workspace["output"], "input", "cql", "IMMZDT01.cql")
        assert main(_argv(workspace, "who.dak.l2.dt.cql")) == 0
        with open(path, encoding="utf-8") as f:
            first = f.read()
        assert main(_argv(workspace, "who.dak.l2.dt.cql", extra=["--replace"])) == 0
        with open(path, encoding="utf-8") as f:
            assert f.read() == first

    def test_rules_only_flag(self, workspace):
        assert main(_argv(workspace, "who.dak.l2.dt.cql", extra=["--rules-only"])) == 0
        path = os.path.join(workspace["output"], "input", "cql", "IMMZDT01.cql")
        with open(path, encoding="utf-8") as f:
            assert "@dataElement" not in f.read()
