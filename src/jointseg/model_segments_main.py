import argparse
import datetime
import logging
import sys

from jointseg.arg_parse import read_configuration_file, write_config_file
from jointseg.modeller import JointSegmentModeller
from jointseg.models import AlleleFractionPrior
from jointseg.utils_IO import (
    ensure_outdir,
    read_allelic_counts,
    read_copy_ratios,
    read_segments,
    write_modeled_segments,
)

logger = logging.getLogger("jointseg")


def setup_logging(log_file):
    logger.setLevel(logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    fhandler = logging.FileHandler(log_file, mode="w")

    formatter = logging.Formatter("%(asctime)s - %(process)d - %(levelname)s - %(name)s:%(lineno)d - %(message)s")

    handler.setFormatter(formatter)
    fhandler.setFormatter(formatter)

    logger.addHandler(handler)
    logger.addHandler(fhandler)


def run_model_segments(config):
    """
    Fit the joint model over the input segmentation, smooth it and write the final segments and global parameters.

    Returns
    -------
    modeller : JointSegmentModeller
    """
    for k in ["segments_file", "copy_ratio_file", "allelic_counts_file"]:
        assert not config[k] is None, f"No {k} in configuration!"
    outdir = ensure_outdir(config["output_dir"])
    prefix = config["output_prefix"]

    segments = read_segments(config["segments_file"])
    copy_ratios = read_copy_ratios(config["copy_ratio_file"])
    allelic_counts = read_allelic_counts(config["allelic_counts_file"])

    modeller = JointSegmentModeller(
        segments,
        copy_ratios,
        allelic_counts,
        AlleleFractionPrior.from_config(config),
        num_samples_copy_ratio=config["num_samples_copy_ratio"],
        num_burn_in_copy_ratio=config["num_burn_in_copy_ratio"],
        num_samples_allele_fraction=config["num_samples_allele_fraction"],
        num_burn_in_allele_fraction=config["num_burn_in_allele_fraction"],
        random_state=config["random_state"],
    )
    write_modeled_segments(modeller.modeled_segments, f"{outdir}/{prefix}.modelBegin.seg")

    modeller.smooth_segments(
        config["max_num_smoothing_iterations"],
        config["num_smoothing_iterations_per_fit"],
        config["smoothing_credible_interval_threshold_copy_ratio"],
        config["smoothing_credible_interval_threshold_allele_fraction"],
    )
    write_modeled_segments(modeller.modeled_segments, f"{outdir}/{prefix}.modelFinal.seg")
    modeller.write_model_parameter_files(
        f"{outdir}/{prefix}.modelFinal.cr.param",
        f"{outdir}/{prefix}.modelFinal.af.param",
    )
    return modeller


def main(configuration_file):
    start = datetime.datetime.now()

    config = read_configuration_file(configuration_file)
    outdir = ensure_outdir(config["output_dir"])
    setup_logging(f"{outdir}/{config['output_prefix']}.jointseg.log")

    logger.info("Configuration settings:")
    for k in sorted(list(config.keys())):
        logger.info(f"\t{k} : {config[k]}")
    write_config_file(f"{outdir}/{config['output_prefix']}.configfile", config)

    run_model_segments(config)

    logger.info(f"Finished in {datetime.datetime.now() - start}.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "-c",
        "--configfile",
        help="configuration file of jointseg",
        required=True,
        type=str,
    )
    args = parser.parse_args()

    main(args.configfile)
