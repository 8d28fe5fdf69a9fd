import numpy as np
import matplotlib.pyplot as plt
import hist
import mplhep as hep


_WIDTH_LABELS = {
    'sigma_eta_eta': r'$\sigma_{\eta\eta}$',
    'sigma_phi_phi': r'$\sigma_{\phi\phi}$',
    'sigma_eta_eta_log': r'$\sigma_{\eta\eta}$ (log weights)',
    'sigma_phi_phi_log': r'$\sigma_{\phi\phi}$ (log weights)',
}


def plot_cluster_widths(widths, output_file=None, bins=50, width_max=0.1, show=False):
    """
    Histogram the four shower widths of a set of clusters.

    Parameters:
    -----------
    widths : list of ClusterWidths
        Results of ClusterTools.get_widths (None entries are skipped)
    output_file : str, optional
        If provided, save plot to this file
    bins : int
        Number of bins per histogram
    width_max : float
        Upper edge of the width axis

    Returns:
    --------
    (fig, histograms) where histograms maps width name -> hist.Hist
    """
    widths = [w for w in widths if w is not None]

    histograms = {}
    for name in _WIDTH_LABELS:
        values = np.array([getattr(w, name) for w in widths], dtype=float)
        h = hist.Hist.new.Reg(bins, 0.0, width_max, name=name, label=_WIDTH_LABELS[name]).Double()
        h.fill(values)
        histograms[name] = h

    hep.style.use("CMS")
    fig, axes = plt.subplots(2, 2, figsize=(14, 10))
    for ax, (name, h) in zip(axes.flat, histograms.items()):
        hep.histplot(h, ax=ax, histtype='step', linewidth=1.5)
        ax.set_xlabel(_WIDTH_LABELS[name], fontsize=18)
        ax.set_ylabel('Clusters', fontsize=18)

    plt.tight_layout()
    if output_file:
        fig.savefig(output_file)
    if show:
        plt.show()
    return fig, histograms
