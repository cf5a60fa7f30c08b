"""
Unit tests for translator/translator_config.py — TranslatorConfig
"""

import pytest

from sqlite_translator import SQLiteTranslator
from translation_errors import UnsupportedConstruct
from translator_config import DEFAULT_CONFIG, TranslatorConfig, load_config


@pytest.mark.unit
class TestDefaults:

    def test_load_config_returns_shared_defaults(self):
        assert load_config() is DEFAULT_CONFIG
        assert load_config(None) is DEFAULT_CONFIG

    def test_default_values(self, config):
        assert config.noop_sql == "SELECT 1=1"
        assert config.placeholder_prefix == "param"
        assert config.max_retries == 3
        assert config.retry_delay_seconds == 0.1

    def test_type_map_is_inverted(self, config):
        assert config.type_map["bigint"] == "integer"
        assert config.type_map["varchar"] == "text"
        assert config.type_map["double"] == "real"
        assert config.type_map["mediumblob"] == "blob"

    def test_function_map(self, config):
        assert config.function_map["YEAR"] == {"strftime": "%Y"}
        assert config.function_map["NOW"] == {"replace": "CURRENT_TIMESTAMP"}
        assert config.function_map["RAND"] == {"rename": "RANDOM"}

    def test_maps_are_read_only(self, config):
        with pytest.raises(TypeError):
            config.type_map["geometry"] = "blob"
        with pytest.raises(TypeError):
            config.function_map["YEAR"]["strftime"] = "%y"

    def test_get_dot_notation(self, config):
        assert config.get("execution.max_retries") == 3
        assert config.get("execution.missing", "fallback") == "fallback"
        assert config.get("translation.noop_sql.deeper", "x") == "x"

    def test_get_returns_copies(self, config):
        config.get("types")["integer"].append("geometry")
        assert "geometry" not in config.type_map


@pytest.mark.unit
class TestOverrides:

    def test_file_overrides_sections(self, config_file):
        path = config_file({
            "functions": {"MONTH": {"strftime": "%m"}},
            "types": {"blob": ["geometry", "blob"]},
            "execution": {"max_retries": 5},
        })
        config = load_config(path)
        assert config is not DEFAULT_CONFIG
        assert config.function_map["MONTH"] == {"strftime": "%m"}
        assert config.function_map["YEAR"] == {"strftime": "%Y"}
        assert config.type_map["geometry"] == "blob"
        assert config.type_map["varchar"] == "text"
        assert config.max_retries == 5
        assert config.retry_delay_seconds == 0.1

    def test_overrides_reach_translation(self, config_file):
        config = TranslatorConfig(config_file({
            "functions": {"MONTH": {"strftime": "%m"}},
            "translation": {"noop_sql": "SELECT 1", "placeholder_prefix": "p"},
        }))
        translator = SQLiteTranslator(config)
        result = translator.translate("SELECT MONTH(d) FROM t WHERE a = 'x'")
        assert result[0].sql == "SELECT STRFTIME('%m',d) FROM t WHERE a = :p0"
        assert result[0].params == {"p0": "x"}
        assert translator.translate("SET autocommit = 0")[0].sql == "SELECT 1"

    def test_removing_a_type_makes_it_unsupported(self, config_file):
        config = TranslatorConfig(config_file({"types": {"integer": ["int"]}}))
        with pytest.raises(UnsupportedConstruct):
            SQLiteTranslator(config).translate("CREATE TABLE t (a bigint)")

    def test_invalid_function_rule(self, config_file):
        with pytest.raises(ValueError):
            TranslatorConfig(config_file({"functions": {"YEAR": {"strftime": "%Y", "rename": "Y"}}}))
        with pytest.raises(ValueError):
            TranslatorConfig(config_file({"functions": {"YEAR": {"format": "%Y"}}}))

    def test_unreadable_file_falls_back_to_defaults(self, tmp_path, caplog):
        bad = tmp_path / "broken.json"
        bad.write_text("{not json", encoding="utf-8")
        config = TranslatorConfig(str(bad))
        assert config.noop_sql == "SELECT 1=1"
        assert "Using defaults" in caplog.text

    def test_missing_file_falls_back_to_defaults(self, tmp_path):
        config = TranslatorConfig(str(tmp_path / "missing.json"))
        assert config.type_map["int"] == "integer"
