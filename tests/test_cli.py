"""
Tests for source loading and the command-line entry point.

Only paths that never reach a provider are exercised here.
"""

import json

import pytest

from uilingo.cli import main
from uilingo.i18n import load_source_dictionary


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "en.yaml"
    path.write_text('greeting: "Hello"\nnext: "Next →"\n', encoding="utf-8")
    return path


@pytest.fixture
def cache_file(tmp_path):
    return tmp_path / "cache.json"


class TestLoadSourceDictionary:
    def test_yaml(self, source_file):
        assert load_source_dictionary(source_file) == {"greeting": "Hello", "next": "Next →"}

    def test_json(self, tmp_path):
        path = tmp_path / "en.json"
        path.write_text(json.dumps({"save": "Save"}), encoding="utf-8")
        assert load_source_dictionary(path) == {"save": "Save"}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "en.yaml"
        path.write_text("", encoding="utf-8")
        assert load_source_dictionary(path) == {}

    def test_nested_values_rejected(self, tmp_path):
        path = tmp_path / "en.yaml"
        path.write_text("menu:\n  save: Save\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_source_dictionary(path)


class TestCLI:
    def test_translate_builtin(self, source_file, cache_file, capsys):
        code = main(["--cache", str(cache_file), "translate", "sk", "--source", str(source_file), "-q"])

        assert code == 0
        assert "built into the host" in capsys.readouterr().out
        assert not cache_file.exists()

    def test_translate_unknown(self, source_file, cache_file, capsys):
        code = main(["--cache", str(cache_file), "translate", "xx", "--source", str(source_file), "-q"])

        assert code == 2
        assert "Unknown language: xx" in capsys.readouterr().err

    def test_translate_without_source(self, cache_file, monkeypatch):
        monkeypatch.setattr("uilingo.cli.get_settings", _settings_without_source)
        assert main(["--cache", str(cache_file), "translate", "de", "-q"]) == 2

    def test_cached_translation_written_to_file(self, source_file, cache_file, tmp_path, capsys):
        cache_file.write_text(
            json.dumps({"de": {"greeting": "Hallo", "next": "Weiter →"}}, ensure_ascii=False),
            encoding="utf-8",
        )
        output = tmp_path / "out" / "de.json"

        code = main([
            "--cache", str(cache_file),
            "translate", "de",
            "--source", str(source_file),
            "--output", str(output),
            "-q",
        ])

        assert code == 0
        assert json.loads(output.read_text(encoding="utf-8")) == {
            "greeting": "Hallo",
            "next": "Weiter →",
        }
        assert "via cache" in capsys.readouterr().out

    def test_status_and_clear_cache(self, cache_file, capsys):
        cache_file.write_text(json.dumps({"fr": {"a": "Bonjour"}}), encoding="utf-8")

        assert main(["--cache", str(cache_file), "status"]) == 0
        assert "Cached: fr" in capsys.readouterr().out

        assert main(["--cache", str(cache_file), "clear-cache"]) == 0
        assert not cache_file.exists()

        main(["--cache", str(cache_file), "status"])
        assert "Cached: (none)" in capsys.readouterr().out

    def test_languages(self, cache_file, capsys):
        assert main(["--cache", str(cache_file), "languages"]) == 0
        out = capsys.readouterr().out
        assert "Deutsch" in out
        assert "builtin" in out


def _settings_without_source():
    from uilingo.config import Settings

    return Settings(source_path="")
