import argparse
import logging

from jointseg.arg_parse import read_configuration_file
from jointseg.caller import call_copy_ratio_segments
from jointseg.model_segments_main import setup_logging
from jointseg.utils_IO import ensure_outdir, read_modeled_segments, write_called_segments

logger = logging.getLogger("jointseg")


def run_call_segments(config):
    """
    Call the final modeled segments written by model_segments_main.
    """
    outdir = ensure_outdir(config["output_dir"])
    prefix = config["output_prefix"]
    modeled_segments = read_modeled_segments(f"{outdir}/{prefix}.modelFinal.seg")
    df_called = call_copy_ratio_segments(
        modeled_segments,
        neutral_segment_copy_ratio_threshold=config["neutral_segment_copy_ratio_threshold"],
        calling_z_threshold=config["calling_z_threshold"],
    )
    write_called_segments(df_called, f"{outdir}/{prefix}.called.seg", sample_name=modeled_segments.sample_name)
    return df_called


def main(configuration_file):
    config = read_configuration_file(configuration_file)
    outdir = ensure_outdir(config["output_dir"])
    setup_logging(f"{outdir}/{config['output_prefix']}.jointseg_call.log")
    run_call_segments(config)


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
