import logging

logger = logging.getLogger(__name__)


def load_default_config():
    config = {
        "segments_file": None,
        "copy_ratio_file": None,
        "allelic_counts_file": None,
        "output_dir": None,
        "output_prefix": None,
        # MCMC configurations
        "num_samples_copy_ratio": 100,
        "num_burn_in_copy_ratio": 50,
        "num_samples_allele_fraction": 100,
        "num_burn_in_allele_fraction": 50,
        "random_state": 0,
        # allele-fraction prior
        "minor_allele_fraction_prior_alpha": 25.0,
        "outlier_probability_prior_alpha": 5.0,
        "outlier_probability_prior_beta": 95.0,
        "mean_bias_prior_mean": 1.0,
        "mean_bias_prior_std": 0.1,
        # segmentation smoothing
        "max_num_smoothing_iterations": 25,
        "num_smoothing_iterations_per_fit": 0,
        "smoothing_credible_interval_threshold_copy_ratio": 2.0,
        "smoothing_credible_interval_threshold_allele_fraction": 2.0,
        # calling
        "neutral_segment_copy_ratio_threshold": 0.1,
        "calling_z_threshold": 2.0,
    }

    argtype = {
        "segments_file": "str",
        "copy_ratio_file": "str",
        "allelic_counts_file": "str",
        "output_dir": "str",
        "output_prefix": "str",
        # MCMC configurations
        "num_samples_copy_ratio": "int",
        "num_burn_in_copy_ratio": "int",
        "num_samples_allele_fraction": "int",
        "num_burn_in_allele_fraction": "int",
        "random_state": "int",
        # allele-fraction prior
        "minor_allele_fraction_prior_alpha": "float",
        "outlier_probability_prior_alpha": "float",
        "outlier_probability_prior_beta": "float",
        "mean_bias_prior_mean": "float",
        "mean_bias_prior_std": "float",
        # segmentation smoothing
        "max_num_smoothing_iterations": "int",
        "num_smoothing_iterations_per_fit": "int",
        "smoothing_credible_interval_threshold_copy_ratio": "float",
        "smoothing_credible_interval_threshold_allele_fraction": "float",
        # calling
        "neutral_segment_copy_ratio_threshold": "float",
        "calling_z_threshold": "float",
    }

    category_names = [
        "",
        "# MCMC configurations",
        "# allele-fraction prior",
        "# segmentation smoothing",
        "# calling",
    ]
    category_elements = [
        ["segments_file", "copy_ratio_file", "allelic_counts_file", "output_dir", "output_prefix"],
        [
            "num_samples_copy_ratio",
            "num_burn_in_copy_ratio",
            "num_samples_allele_fraction",
            "num_burn_in_allele_fraction",
            "random_state",
        ],
        [
            "minor_allele_fraction_prior_alpha",
            "outlier_probability_prior_alpha",
            "outlier_probability_prior_beta",
            "mean_bias_prior_mean",
            "mean_bias_prior_std",
        ],
        [
            "max_num_smoothing_iterations",
            "num_smoothing_iterations_per_fit",
            "smoothing_credible_interval_threshold_copy_ratio",
            "smoothing_credible_interval_threshold_allele_fraction",
        ],
        ["neutral_segment_copy_ratio_threshold", "calling_z_threshold"],
    ]
    return config, argtype, category_names, category_elements


def get_default_config():
    config, _, _, _ = load_default_config()
    return config


def parse_value(value, value_type):
    if value.upper() == "NONE":
        return None
    if value_type == "str":
        return value
    if value_type == "int":
        return int(value)
    if value_type == "float":
        return float(value)
    raise ValueError(f"Unknown configuration value type {value_type}.")


def read_configuration_file(filename, required=("output_dir", "output_prefix")):
    ##### [Default settings] #####
    config, argument_type, _, _ = load_default_config()

    ##### [ read configuration file to update settings ] #####
    with open(filename, "r") as fp:
        for line in fp:
            if line.strip() == "" or line[0] == "#":
                continue
            # split on the first colon only so values may contain colons
            strs = [x.strip() for x in line.strip().split(":", 1)]
            if not strs[0] in config.keys():
                logger.warning(
                    f"{strs[0]} is not a valid configuration parameter! Configuration parameters are: {list(config.keys())}"
                )
                continue
            if len(strs) == 1 or strs[1] == "":
                config[strs[0]] = None
            else:
                config[strs[0]] = parse_value(strs[1], argument_type[strs[0]])
    # assertions
    for k in required:
        assert not config[k] is None, f"No {k} in configuration file {filename}!"

    return config


def write_config_file(outputfilename, config):
    _, _, category_names, category_elements = load_default_config()
    with open(outputfilename, "w") as fp:
        for i in range(len(category_names)):
            if category_names[i] != "":
                fp.write(f"{category_names[i]}\n")
            for k in category_elements[i]:
                if k in config:
                    fp.write(f"{k} : {config[k]}\n")
            fp.write("\n")

