import matplotlib

matplotlib.use("Agg")

import pytest

from calotrig.layer1.layer1 import UCTLayer1


@pytest.fixture
def layer():
    return UCTLayer1(fw_version=0)


@pytest.fixture
def make_layer():
    def _make(fw_version=0, **kwargs):
        return UCTLayer1(fw_version=fw_version, **kwargs)
    return _make
