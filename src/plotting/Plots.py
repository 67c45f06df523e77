"""
Plots the results of a CoV sweep.

The sweep file written by `modules.Cov_sweep.write_sweep` holds one row per
coefficient of variation. This module draws the total index of the index
set of interest and the lower index of its complement against the CoV and
saves the figure as an image next to the sweep file.

:Authors:
 - QSobol developers
"""
import logging
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from modules.Cov_sweep import read_sweep

logger = logging.getLogger("qsobol.plots")


def plot_sweep(results, image_path, title=None, dpi=150, normalized=False):
    """
    Draws the index curves of a sweep and saves the figure.

    Parameters
    ----------
    results : pandas.DataFrame or str
        Sweep results, or the path of a sweep file.
    image_path : str
        Target path of the image.
    title : str, optional
        Figure title.
    dpi : int, optional
        Resolution of the image, by default 150.
    normalized : bool, optional
        Whether the indices were divided by the model variance, by default
        False. Only changes the axis label.

    Returns
    -------
    str
        The image path.
    """
    if isinstance(results, str):
        results = read_sweep(results)

    fig, ax = plt.subplots(figsize=(7, 4.5))
    ax.plot(results["CoV"], results["total_index"], marker="o",
            label="Total index (index set)")
    ax.plot(results["CoV"], results["lower_index_complement"], marker="s",
            label="Lower index (complement)")
    ax.set_xlabel("Coefficient of variation")
    ax.set_ylabel("Sobol' index (normalised)" if normalized else "Sobol' index (raw)")
    if title:
        ax.set_title(title)
    ax.grid(True, alpha=0.3)
    ax.legend()
    fig.tight_layout()
    fig.savefig(image_path, dpi=dpi)
    plt.close(fig)
    logger.info(f"Sweep plot saved to {image_path}")
    return image_path
