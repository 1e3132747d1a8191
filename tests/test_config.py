import pytest

from ratchet.config import (
    Config,
    ConfigError,
    load_default,
    load_from_config_string,
    load_from_file,
    load_from_json_string,
    load_from_string,
)


def test_yaml_string_loads_all_fields():
    cfg = load_from_string("metric: wc -l\npre: make\npost: make clean\nlt: main\nverbose: true\n")
    assert cfg == Config(metric="wc -l", pre="make", post="make clean", lt="main", verbose=True)


def test_yaml_unknown_keys_ignored_and_empty_document():
    assert load_from_string("other: 1\nmetric: x\n") == Config(metric="x")
    assert load_from_string("") == Config()


def test_yaml_numeric_scalar_kept_as_text():
    assert load_from_string("metric: 007\n").metric == "007"


@pytest.mark.parametrize(
    "text",
    ["- a\n- b\n", "metric: [1, 2]\n", "verbose: maybe\n", "metric: a\nmetric: b\n", "key: [unclosed\n"],
)
def test_yaml_invalid_raises(text):
    with pytest.raises(ConfigError, match="invalid config was supplied"):
        load_from_string(text)


def test_json_string_loads():
    cfg = load_from_json_string('{"metric": "count", "ge": "develop", "verbose": true}')
    assert cfg == Config(metric="count", ge="develop", verbose=True)


def test_json_keys_match_case_insensitively():
    assert load_from_json_string('{"Metric": "m", "GT": "main"}') == Config(metric="m", gt="main")


@pytest.mark.parametrize(
    "text", ['{"metric": 5}', '{"verbose": "yes"}', "[1]", "{bad json", '"text"']
)
def test_json_invalid_raises(text):
    with pytest.raises(ConfigError, match="invalid JSON config was supplied"):
        load_from_json_string(text)


def test_json_null_is_empty_config():
    assert load_from_json_string("null") == Config()


def test_config_string_detects_json():
    assert load_from_config_string(' {"metric": "m", "eq": "main"} ') == Config(metric="m", eq="main")


def test_config_string_braced_invalid_json_is_json_error():
    with pytest.raises(ConfigError, match="invalid JSON config was supplied"):
        load_from_config_string("{metric: m, bad")


def test_config_string_yaml():
    assert load_from_config_string("metric: m\nle: main") == Config(metric="m", le="main")


def test_config_string_invalid_reports_both_formats():
    with pytest.raises(ConfigError, match="tried both YAML and JSON"):
        load_from_config_string("- just\n- a list\n")


def test_load_from_file_by_extension(tmp_path):
    json_file = tmp_path / "cfg.JSON"
    json_file.write_text('{"metric": "j"}')
    yaml_file = tmp_path / "cfg.yml"
    yaml_file.write_text("metric: y\n")
    assert load_from_file(json_file).metric == "j"
    assert load_from_file(str(yaml_file)).metric == "y"


def test_load_from_file_parse_error(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text("metric: not json")
    with pytest.raises(ConfigError) as info:
        load_from_file(path)
    assert str(info.value) == f"failed to parse config file {path}"


def test_load_from_file_unknown_extension_both_fail(tmp_path):
    path = tmp_path / ".ratchet"
    path.write_text("plain words")
    with pytest.raises(ConfigError, match="as either YAML or JSON"):
        load_from_file(path)


def test_load_from_file_missing(tmp_path):
    path = tmp_path / "missing.yaml"
    with pytest.raises(ConfigError) as info:
        load_from_file(path)
    assert str(info.value) == f"failed to read config file {path}"


def test_load_default_without_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert load_default() == Config()


def test_load_default_reads_dot_ratchet(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".ratchet").write_text("metric: from-default\n")
    assert load_default().metric == "from-default"


def test_validate_requires_metric():
    with pytest.raises(ConfigError, match="a metric command is required"):
        Config(lt="main").validate()


def test_validate_single_comparison():
    Config(metric="m", lt="main").validate()
    with pytest.raises(ConfigError, match="only one comparison operator can be specified"):
        Config(metric="m", lt="main", gt="main").validate()


def test_merge_flags_override_comparison():
    cfg = Config(metric="old", pre="p", lt="main", ge="dev")
    cfg.merge_with_flags("new", "", "after", "", "", "release", "", "", True)
    assert cfg == Config(metric="new", pre="p", post="after", eq="release", verbose=True)


def test_merge_without_flags_keeps_config():
    original = Config(metric="m", gt="main", verbose=True)
    cfg = Config(metric="m", gt="main", verbose=True)
    cfg.merge_with_flags("", "", "", "", "", "", "", "", False)
    assert cfg == original


def test_comparison_info_order_and_default():
    assert Config(le="a", gt="b").comparison_info() == ("le", "a")
    assert Config(gt="b").comparison_info() == ("gt", "b")
    assert Config().comparison_info() == ("", "")