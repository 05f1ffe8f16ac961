import logging

import numpy as np
import scipy.stats

from jointseg.segments import PosteriorSummary

logger = logging.getLogger(__name__)

# number of grid points used to locate the maximum of the kernel density estimate
NUM_KDE_GRID_POINTS = 512


def kde_mode(samples):
    """
    Posterior mode approximated by the maximum of a Gaussian kernel density estimate.

    Attributes
    ----------
    samples : np.array, size (n_samples)
        Posterior samples without NaNs.
    """
    if len(samples) == 1 or np.ptp(samples) == 0:
        return float(samples[0])
    try:
        kde = scipy.stats.gaussian_kde(samples)
    except np.linalg.LinAlgError:
        return float(np.median(samples))
    grid = np.linspace(np.min(samples), np.max(samples), NUM_KDE_GRID_POINTS)
    return float(grid[np.argmax(kde(grid))])


def summarize_samples(samples):
    samples = np.asarray(samples, dtype=float)
    samples = samples[~np.isnan(samples)]
    if len(samples) == 0:
        return PosteriorSummary.missing()
    decile10, median, decile90 = np.percentile(samples, [10, 50, 90])
    return PosteriorSummary(kde_mode(samples), float(median), float(decile10), float(decile90))


def summarize_sample_matrix(samples):
    """
    One posterior summary per column.

    Attributes
    ----------
    samples : np.array, size (n_samples, n_segments)
        Posterior samples after burn-in; a column of NaNs yields a missing summary.
    """
    return [summarize_samples(samples[:, s]) for s in range(samples.shape[1])]
