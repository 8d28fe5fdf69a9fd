import matplotlib.pyplot as plt

from calotrig.clustering.cluster_tools import ClusterWidths
from calotrig.clustering.plotting import plot_cluster_widths
from calotrig.layer1.plotting import plot_region_et_map, plot_tower_et_map


def test_tower_and_region_maps(layer, tmp_path):
    layer.set_ecal_data((1, 1), False, 30)
    layer.set_hcal_data((-35, 20), 0, 80)
    layer.process()

    fig, _, tower_hist = plot_tower_et_map(layer, output_file=str(tmp_path / "towers.png"), log_scale=True)
    assert (tmp_path / "towers.png").exists()
    assert tower_hist.sum() == 70
    plt.close(fig)

    fig, _, region_hist = plot_region_et_map(layer, output_file=str(tmp_path / "regions.png"))
    assert (tmp_path / "regions.png").exists()
    assert region_hist.sum() == 70
    assert region_hist.axes[1].size == 18
    plt.close(fig)


def test_cluster_width_histograms(tmp_path):
    widths = [ClusterWidths(0.01, 0.02, 0.015, 0.025), None, ClusterWidths(0.03, 0.04, 0.0, 0.0)]
    fig, histograms = plot_cluster_widths(widths, output_file=str(tmp_path / "widths.png"))
    assert set(histograms) == {'sigma_eta_eta', 'sigma_phi_phi', 'sigma_eta_eta_log', 'sigma_phi_phi_log'}
    assert histograms['sigma_eta_eta'].sum() == 2
    assert (tmp_path / "widths.png").exists()
    plt.close(fig)
