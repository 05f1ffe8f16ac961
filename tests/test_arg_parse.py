import logging

import pytest
from jointseg.arg_parse import get_default_config, parse_value, read_configuration_file, write_config_file


def test_default_config():
    config = get_default_config()
    assert config["max_num_smoothing_iterations"] == 25
    assert config["num_smoothing_iterations_per_fit"] == 0
    assert config["smoothing_credible_interval_threshold_copy_ratio"] == 2.0
    assert config["output_dir"] is None


@pytest.mark.parametrize(
    "value,value_type,expected",
    [("3", "int", 3), ("0.5", "float", 0.5), ("chr1:1-100", "str", "chr1:1-100"), ("None", "int", None), ("none", "str", None)],
)
def test_parse_value(value, value_type, expected):
    assert parse_value(value, value_type) == expected


def test_parse_value_unknown_type():
    with pytest.raises(ValueError):
        parse_value("1", "complex")


def test_read_configuration_file(tmp_path, caplog):
    configfile = tmp_path / "run.configfile"
    configfile.write_text(
        "# example configuration\n"
        "output_dir : /data/run:1\n"
        "output_prefix : tumor\n"
        "max_num_smoothing_iterations : 5\n"
        "smoothing_credible_interval_threshold_allele_fraction : 1.5\n"
        "segments_file :\n"
        "not_a_parameter : 1\n"
        "\n"
    )
    with caplog.at_level(logging.WARNING):
        config = read_configuration_file(configfile)

    assert config["output_dir"] == "/data/run:1"
    assert config["output_prefix"] == "tumor"
    assert config["max_num_smoothing_iterations"] == 5
    assert config["smoothing_credible_interval_threshold_allele_fraction"] == 1.5
    assert config["segments_file"] is None
    # untouched keys keep their defaults
    assert config["num_samples_copy_ratio"] == 100
    assert "not_a_parameter" not in config
    assert "not_a_parameter" in caplog.text


def test_read_configuration_file_missing_required(tmp_path):
    configfile = tmp_path / "run.configfile"
    configfile.write_text("output_dir : out\n")
    with pytest.raises(AssertionError):
        read_configuration_file(configfile)


def test_write_then_read_config_file(tmp_path):
    config = get_default_config()
    config["output_dir"] = str(tmp_path)
    config["output_prefix"] = "sample"
    config["calling_z_threshold"] = 3.0
    write_config_file(tmp_path / "sample.configfile", config)

    text = (tmp_path / "sample.configfile").read_text()
    assert "# segmentation smoothing\n" in text
    assert "calling_z_threshold : 3.0\n" in text
    assert read_configuration_file(tmp_path / "sample.configfile") == config
