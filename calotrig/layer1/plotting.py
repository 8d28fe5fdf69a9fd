import numpy as np
import matplotlib.pyplot as plt
import hist
import mplhep as hep
from matplotlib.colors import LogNorm

from calotrig.geometry.uct_geometry import HF_LAST_ETA, MAX_CALO_PHI, N_HBHE_REGIONS, N_REGIONS_IN_SIDE


def _draw_map(histogram, ax, label, log_scale):
    values = histogram.values()
    x_edges = histogram.axes[0].edges
    y_edges = histogram.axes[1].edges
    norm = None
    if log_scale and np.any(values > 0):
        norm = LogNorm(vmin=max(values[values > 0].min(), 1), vmax=values.max())
    mesh = ax.pcolormesh(x_edges, y_edges, np.ma.masked_equal(values.T, 0), cmap='plasma', norm=norm)
    cbar = ax.figure.colorbar(mesh, ax=ax, pad=0.01)
    cbar.set_label(label, fontsize=18, labelpad=12)
    return mesh


def plot_tower_et_map(layer, output_file=None, log_scale=False, show=False):
    """
    Draw the tower ET of the last processed event in the (caloEta, caloPhi) plane.

    Parameters:
    -----------
    layer : UCTLayer1
        Processed layer
    output_file : str, optional
        If provided, save plot to this file
    log_scale : bool
        Logarithmic colour scale
    show : bool
        Call plt.show() after drawing

    Returns:
    --------
    (fig, ax, histogram)
    """
    towers = layer.tower_arrays()

    tower_histogram = (
        hist.Hist.new.Reg(2 * HF_LAST_ETA + 1, -HF_LAST_ETA - 0.5, HF_LAST_ETA + 0.5, name="eta", label="caloEta")
        .Reg(MAX_CALO_PHI, 0.5, MAX_CALO_PHI + 0.5, name="phi", label="caloPhi")
        .Double()
    )
    tower_histogram.fill(eta=towers['calo_eta'], phi=towers['calo_phi'], weight=towers['et'])

    hep.style.use("CMS")
    fig, ax = plt.subplots(figsize=(14, 8))
    _draw_map(tower_histogram, ax, 'Tower ET [counts]', log_scale)
    ax.set_xlabel('caloEta', fontsize=20)
    ax.set_ylabel('caloPhi', fontsize=20)
    ax.set_title(f"Layer-1 towers, summary ET = {layer.get_summary()}", fontsize=18)

    plt.tight_layout()
    if output_file:
        fig.savefig(output_file)
    if show:
        plt.show()
    return fig, ax, tower_histogram


def plot_region_et_map(layer, output_file=None, log_scale=False, show=False):
    """Draw the region ET of the last processed event in the (regionEta, regionPhi) plane."""
    regions = layer.region_arrays()
    n_phi = int(regions['region_phi'].max()) + 1

    region_histogram = (
        hist.Hist.new.Reg(2 * N_REGIONS_IN_SIDE + 1, -N_REGIONS_IN_SIDE - 0.5, N_REGIONS_IN_SIDE + 0.5,
                          name="eta", label="regionEta")
        .Reg(n_phi, -0.5, n_phi - 0.5, name="phi", label="regionPhi")
        .Double()
    )
    region_histogram.fill(eta=regions['region_eta'], phi=regions['region_phi'], weight=regions['et'])

    hep.style.use("CMS")
    fig, ax = plt.subplots(figsize=(12, 8))
    _draw_map(region_histogram, ax, 'Region ET [counts]', log_scale)
    # HB/HE | HF boundary on both sides
    for boundary in (-N_HBHE_REGIONS - 0.5, N_HBHE_REGIONS + 0.5):
        ax.axvline(boundary, color='k', linestyle='--', linewidth=1.0, alpha=0.6)
    ax.set_xlabel('regionEta', fontsize=20)
    ax.set_ylabel('regionPhi', fontsize=20)

    plt.tight_layout()
    if output_file:
        fig.savefig(output_file)
    if show:
        plt.show()
    return fig, ax, region_histogram
