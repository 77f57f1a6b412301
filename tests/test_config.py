import json

from ecosort.config import DEFAULT_CONFIG, load_config, merge_dicts


def test_defaults_without_path():
    config = load_config()
    assert config == DEFAULT_CONFIG
    config["detector"]["confidence_threshold"] = 0.9
    assert DEFAULT_CONFIG["detector"]["confidence_threshold"] == 0.35


def test_user_values_merge_over_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"pipeline": {"override_threshold": 75}, "log_level": "DEBUG"}))

    config = load_config(str(path))
    assert config["pipeline"]["override_threshold"] == 75
    assert config["pipeline"]["adapter_timeout_seconds"] == 10.0
    assert config["log_level"] == "DEBUG"
    assert config["history"]["max_records"] == 1000


def test_invalid_files_fall_back_to_defaults(tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    not_object = tmp_path / "list.json"
    not_object.write_text("[1, 2]")

    assert load_config(str(broken)) == DEFAULT_CONFIG
    assert load_config(str(not_object)) == DEFAULT_CONFIG
    assert load_config(str(tmp_path / "missing.json")) == DEFAULT_CONFIG


def test_merge_dicts_does_not_mutate_inputs():
    default = {"a": {"b": 1, "c": 2}}
    merged = merge_dicts(default, {"a": {"b": 5}})
    assert merged == {"a": {"b": 5, "c": 2}}
    assert default == {"a": {"b": 1, "c": 2}}
