import logging
from pathlib import Path

import pandas as pd

from jointseg.observations import AllelicCountCollection, CopyRatioCollection
from jointseg.segments import (
    MODELED_SEGMENT_COLUMNS,
    Interval,
    ModeledSegment,
    ModeledSegmentCollection,
    PosteriorSummary,
    SegmentCollection,
)

logger = logging.getLogger(__name__)

SAMPLE_NAME_HEADER = "#SAMPLE_NAME="
DOUBLE_FORMAT = "%6.6f"
PARAMETER_COLUMNS = ["PARAMETER_NAME", "POSTERIOR_MODE", "POSTERIOR_MEDIAN", "POSTERIOR_10", "POSTERIOR_90"]


class CouldNotCreateOutputFileError(OSError):
    """
    Raised when an output table cannot be written.
    """
    def __init__(self, output_file, cause=None):
        self.output_file = str(output_file)
        message = f"Couldn't write file {output_file}"
        if cause is not None:
            message += f" because {cause}"
        super().__init__(message)


def read_header(filename):
    """
    Parse the leading `#` header lines of a table.

    Returns
    -------
    sample_name : str
    n_header_lines : int
        Number of header lines preceding the column names.
    """
    sample_name = None
    n_header_lines = 0
    with open(filename, "r") as fp:
        for line in fp:
            if not line.startswith("#"):
                break
            n_header_lines += 1
            if sample_name is None and line.startswith(SAMPLE_NAME_HEADER):
                sample_name = line.strip()[len(SAMPLE_NAME_HEADER):]
    if sample_name is None:
        raise ValueError(f"{filename} has no {SAMPLE_NAME_HEADER} header line.")
    return sample_name, n_header_lines


def read_sample_name(filename):
    sample_name, _ = read_header(filename)
    return sample_name


def read_table(filename, required_columns):
    """
    Read a tab-separated table with a sample-name header.

    Returns
    -------
    sample_name : str
    df : pd.DataFrame
    """
    sample_name, n_header_lines = read_header(filename)
    df = pd.read_csv(filename, sep="\t", skiprows=n_header_lines, header=0, dtype={"CONTIG": str})
    missing = [c for c in required_columns if c not in df.columns]
    if len(missing) > 0:
        raise ValueError(f"{filename} is missing columns {missing}.")
    return sample_name, df


def read_segments(filename):
    sample_name, df = read_table(filename, ["CONTIG", "START", "END"])
    logger.info(f"Read {df.shape[0]} segments for sample {sample_name} from {filename}.")
    return SegmentCollection(sample_name, zip(df.CONTIG.values, df.START.values, df.END.values))


def read_copy_ratios(filename):
    sample_name, df = read_table(filename, CopyRatioCollection.COLUMNS)
    logger.info(f"Read {df.shape[0]} copy ratios for sample {sample_name} from {filename}.")
    return CopyRatioCollection(sample_name, df)


def read_allelic_counts(filename):
    sample_name, df = read_table(filename, AllelicCountCollection.COLUMNS)
    logger.info(f"Read {df.shape[0]} allelic counts for sample {sample_name} from {filename}.")
    return AllelicCountCollection(sample_name, df)


def read_modeled_segments(filename):
    sample_name, df = read_table(filename, MODELED_SEGMENT_COLUMNS)
    segments = []
    for row in df.itertuples(index=False):
        segments.append(ModeledSegment(
            Interval.create(row.CONTIG, row.START, row.END),
            int(row.NUM_POINTS_COPY_RATIO),
            int(row.NUM_POINTS_ALLELE_FRACTION),
            PosteriorSummary(
                row.LOG2_COPY_RATIO_POSTERIOR_MODE,
                row.LOG2_COPY_RATIO_POSTERIOR_50,
                row.LOG2_COPY_RATIO_POSTERIOR_10,
                row.LOG2_COPY_RATIO_POSTERIOR_90,
            ),
            PosteriorSummary(
                row.MINOR_ALLELE_FRACTION_POSTERIOR_MODE,
                row.MINOR_ALLELE_FRACTION_POSTERIOR_50,
                row.MINOR_ALLELE_FRACTION_POSTERIOR_10,
                row.MINOR_ALLELE_FRACTION_POSTERIOR_90,
            ),
        ))
    return ModeledSegmentCollection(sample_name, segments)


def write_table(df, filename, sample_name=None, float_format=DOUBLE_FORMAT):
    try:
        with open(filename, "w") as fp:
            if sample_name is not None:
                fp.write(f"{SAMPLE_NAME_HEADER}{sample_name}\n")
            df.to_csv(fp, sep="\t", index=False, float_format=float_format, na_rep="NaN")
    except OSError as e:
        raise CouldNotCreateOutputFileError(filename, e) from e


def write_modeled_segments(modeled_segments, filename):
    logger.info(f"Writing {len(modeled_segments)} modeled segments to {filename}")
    write_table(modeled_segments.to_dataframe(), filename, sample_name=modeled_segments.sample_name)


def write_parameter_file(parameter_summaries, filename, sample_name=None):
    """
    Write one row per global parameter with its posterior summary.

    Attributes
    ----------
    parameter_summaries : dict
        Mapping of parameter name to PosteriorSummary.
    """
    df = pd.DataFrame(
        [[name, x.mode, x.median, x.decile10, x.decile90] for name, x in parameter_summaries.items()],
        columns=PARAMETER_COLUMNS,
    )
    write_table(df, filename, sample_name=sample_name)


def write_called_segments(df_called, filename, sample_name=None):
    logger.info(f"Writing {df_called.shape[0]} called segments to {filename}")
    write_table(df_called, filename, sample_name=sample_name)


def ensure_outdir(path):
    p = Path(path)
    try:
        p.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CouldNotCreateOutputFileError(path, e) from e
    return p
