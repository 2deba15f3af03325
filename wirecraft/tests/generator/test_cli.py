"""Tests for CLI interface."""

import json
import os

from click.testing import CliRunner

from wirecraft.config import Settings
from wirecraft.generator.cli import cli

FILE_DIR = os.path.dirname(os.path.realpath(__file__))


def describe_gen_command():
    def generates_python_package(expect, tmp_path):
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["gen", "-l", "python", "-i", f"{FILE_DIR}/gopher.json", "-o", str(tmp_path)],
        )
        expect(result.exit_code) == 0
        content = (tmp_path / "python" / "gopher_parser.py").read_text()
        expect("class GopherRequest:" in content) == True
        expect("@dataclass(kw_only=True)" in content) == True
        expect("python: 5 files" in result.output) == True

    def generates_all_languages_by_default(expect, tmp_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["gen", "-i", f"{FILE_DIR}/finger.json", "-o", str(tmp_path), "--serial"])
        expect(result.exit_code) == 0
        expect(sorted(p.name for p in tmp_path.iterdir())) == ["go", "python", "rust", "typescript"]
        expect((tmp_path / "go" / "finger_test.go").exists()) == True
        expect((tmp_path / "rust" / "mod.rs").exists()) == True
        expect((tmp_path / "typescript" / "index.ts").exists()) == True

    def uses_runtime_import_option(expect, tmp_path):
        runner = CliRunner()
        result = runner.invoke(
            cli,
            [
                "gen",
                "-l",
                "py",
                "-i",
                f"{FILE_DIR}/gopher.json",
                "-o",
                str(tmp_path),
                "--runtime-import",
                "wirecraft_runtime",
            ],
        )
        expect(result.exit_code) == 0
        content = (tmp_path / "python" / "gopher_client.py").read_text()
        expect("from wirecraft_runtime import (" in content) == True

    def fails_with_unknown_language(expect, tmp_path):
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["gen", "-l", "unknown", "-i", f"{FILE_DIR}/gopher.json", "-o", str(tmp_path)],
        )
        expect(result.exit_code) == 1
        expect("Unknown language" in result.output) == True

    def fails_with_invalid_spec(expect, tmp_path):
        spec = tmp_path / "broken.json"
        spec.write_text('{"protocol": {"name": "Broken", "port": 1}, "messageTypes": []}')
        runner = CliRunner()
        result = runner.invoke(cli, ["gen", "-l", "python", "-i", str(spec), "-o", str(tmp_path)])
        expect(result.exit_code) == 1
        expect("no_message_types" in result.output or "declares no message types" in result.output) == True

    def fails_with_malformed_json(expect, tmp_path):
        spec = tmp_path / "broken.json"
        spec.write_text("{not json")
        runner = CliRunner()
        result = runner.invoke(cli, ["gen", "-i", str(spec), "-o", str(tmp_path)])
        expect(result.exit_code) == 1
        expect("not valid JSON" in result.output) == True

    def prints_warnings(expect, tmp_path):
        spec = tmp_path / "pair.json"
        spec.write_text(
            json.dumps(
                {
                    "protocol": {"name": "Pair", "port": 7002},
                    "messageTypes": [
                        {
                            "name": "Pair",
                            "direction": "bidirectional",
                            "format": "{left}{right}\n",
                            "terminator": "\n",
                            "fields": [
                                {"name": "left", "type": {"kind": "string"}},
                                {"name": "right", "type": {"kind": "string"}},
                            ],
                        }
                    ],
                }
            )
        )
        runner = CliRunner()
        result = runner.invoke(cli, ["gen", "-l", "go", "-i", str(spec), "-o", str(tmp_path)])
        expect(result.exit_code) == 0
        expect("warning:" in result.output) == True
        expect("[Pair.left]" in result.output) == True


def describe_runtime_command():
    def generates_python_runtime(expect, tmp_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["runtime", "-l", "python", "-o", str(tmp_path)])
        expect(result.exit_code) == 0
        runtime_dir = tmp_path / "wirecraft_runtime"
        expect(sorted(p.name for p in runtime_dir.iterdir())) == [
            "__init__.py",
            "checks.py",
            "client.py",
            "errors.py",
            "pool.py",
            "results.py",
        ]

    def uses_custom_name(expect, tmp_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["runtime", "-o", str(tmp_path), "--name", "gopher_rt"])
        expect(result.exit_code) == 0
        expect((tmp_path / "gopher_rt" / "pool.py").exists()) == True

    def fails_for_other_languages(expect, tmp_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["runtime", "-l", "go", "-o", str(tmp_path)])
        expect(result.exit_code) == 1
        expect("No runtime package for language: go" in result.output) == True


def describe_info_command():
    def prints_json(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-i", f"{FILE_DIR}/gopher.json", "--json"])
        expect(result.exit_code) == 0
        data = json.loads(result.output)
        expect(data["protocol"]) == {"name": "Gopher", "port": 70, "transport": "TCP"}
        request = data["messages"]["GopherRequest"]
        expect(request["direction"]) == "request"
        expect(request["fields"]) == ["selector"]
        expect([s["state"] for s in request["states"]]) == ["EXTRACT_FIELD:selector", "TERMINAL"]
        expect(request["roundTrip"]) == True
        expect(data["diagnostics"]) == []

    def prints_tables(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-i", f"{FILE_DIR}/finger.json"])
        expect(result.exit_code) == 0
        expect("Finger" in result.output) == True
        expect("FingerForward" in result.output) == True
        expect("EXPECT_DELIMITER" in result.output) == True
        expect("OPTIONAL_FIELD:port" in result.output) == True

    def fails_with_missing_file(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-i", f"{FILE_DIR}/missing.json"])
        expect(result.exit_code) != 0


def describe_settings():
    def reads_prefixed_environment(expect, monkeypatch):
        monkeypatch.setenv("WIRECRAFT_RUNTIME_IMPORT", "vendored.proto")
        monkeypatch.setenv("WIRECRAFT_PARALLEL", "false")
        settings = Settings()
        expect(settings.runtime_import) == "vendored.proto"
        expect(settings.parallel) == False

    def declares_model_config(expect):
        expect(Settings.model_config["env_prefix"]) == "WIRECRAFT_"
        expect(Settings.model_config["env_file"]) == ".env"
