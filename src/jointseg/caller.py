import logging

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

AMPLIFICATION_CALL = "+"
DELETION_CALL = "-"
NEUTRAL_CALL = "0"


def call_copy_ratio_segments(modeled_segments, neutral_segment_copy_ratio_threshold=0.1, calling_z_threshold=2.0):
    """
    Call modeled segments as amplified, deleted or copy-number neutral.

    Segments whose linear copy ratio 2^median lies within neutral_segment_copy_ratio_threshold of 1 define the neutral
    baseline. The point-weighted mean of their log2 medians is subtracted from every segment, and non-neutral segments
    are called by comparing the shifted median with calling_z_threshold times the point-weighted standard deviation of
    the neutral medians.

    Attributes
    ----------
    modeled_segments : ModeledSegmentCollection
        Fully fit modeled segments.
    neutral_segment_copy_ratio_threshold : float
        Maximum |2^median - 1| of a segment used to estimate the neutral baseline.
    calling_z_threshold : float
        Number of baseline standard deviations required for an amplification or deletion call.

    Returns
    -------
    df_called : pd.DataFrame
        CONTIG, START, END, NUM_POINTS_COPY_RATIO, MEAN_LOG2_COPY_RATIO and CALL per segment.
    """
    if neutral_segment_copy_ratio_threshold < 0 or calling_z_threshold < 0:
        raise ValueError("Calling thresholds must be non-negative.")
    df = modeled_segments.to_dataframe()
    medians = df.LOG2_COPY_RATIO_POSTERIOR_50.values.astype(float)
    weights = df.NUM_POINTS_COPY_RATIO.values.astype(float)
    has_data = ~np.isnan(medians) & (weights > 0)

    is_neutral = has_data & (np.abs(np.power(2.0, np.where(has_data, medians, 0.0)) - 1.0) < neutral_segment_copy_ratio_threshold)
    if np.sum(weights[is_neutral]) > 0:
        shift = np.average(medians[is_neutral], weights=weights[is_neutral])
        sigma = np.sqrt(np.average((medians[is_neutral] - shift) ** 2, weights=weights[is_neutral]))
    else:
        logger.warning("No copy-neutral segments found; calling without a baseline shift.")
        shift = 0.0
        sigma = 0.0
    logger.info(f"Neutral baseline log2 copy ratio = {shift:.4f}, standard deviation = {sigma:.4f}.")

    calls = np.full(len(medians), NEUTRAL_CALL, dtype=object)
    shifted = medians - shift
    candidates = has_data & ~is_neutral
    calls[candidates & (shifted > calling_z_threshold * sigma)] = AMPLIFICATION_CALL
    calls[candidates & (shifted < -calling_z_threshold * sigma)] = DELETION_CALL
    logger.info(f"Called {np.sum(calls == AMPLIFICATION_CALL)} amplified, {np.sum(calls == DELETION_CALL)} deleted and "
                f"{np.sum(calls == NEUTRAL_CALL)} neutral segments.")

    return pd.DataFrame({
        "CONTIG": df.CONTIG.values,
        "START": df.START.values,
        "END": df.END.values,
        "NUM_POINTS_COPY_RATIO": df.NUM_POINTS_COPY_RATIO.values,
        "MEAN_LOG2_COPY_RATIO": medians,
        "CALL": calls,
    })
