from calotrig.geometry.uct_geometry import MAX_HBHE_ETA
from calotrig.layer1.firmware import firmware_version_for_run, to_firmware_version
from calotrig.layer1.layer1 import UCTLayer1
from calotrig.layer1.lut import N_HF_ETA, hf_lut, scaled_lut
from calotrig.layer1.region import DEFAULT_ACTIVITY_FRACTION, DEFAULT_MAX_ACTIVE_TOWERS


class Layer1Config:
    """Configuration of one Layer-1 emulation setup"""

    # Flat calibration, i.e. identity LUTs
    DEFAULT_SCALES = {
        'ecal': [1.0] * MAX_HBHE_ETA,
        'hcal': [1.0] * MAX_HBHE_ETA,
        'hf': [1.0] * N_HF_ETA,
    }

    def __init__(self, name, fw_version, activity_fraction=DEFAULT_ACTIVITY_FRACTION,
                 max_active_towers=DEFAULT_MAX_ACTIVE_TOWERS, scales=None):
        """
        Parameters:
        -----------
        name : str
            Configuration name (e.g., '2016', '2017_hf')
        fw_version : int
            Layer-1 firmware version (0-3)
        activity_fraction : float
            Fraction of region ET above which a tower counts as active
        max_active_towers : int
            Active tower count above which the tau veto is set
        scales : dict, optional
            Override calibration factors per |eta| for 'ecal', 'hcal' or 'hf'
        """
        self.name = name
        self.fw_version = to_firmware_version(fw_version)
        self.activity_fraction = float(activity_fraction)
        self.max_active_towers = int(max_active_towers)

        self.scales = {key: list(values) for key, values in self.DEFAULT_SCALES.items()}
        if scales:
            for key, values in scales.items():
                if key not in self.scales:
                    raise ValueError(f"Unknown calibration table: {key}")
                if len(values) != len(self.scales[key]):
                    raise ValueError(f"Calibration table '{key}' needs {len(self.scales[key])} entries, "
                                     f"got {len(values)}")
                self.scales[key] = list(values)

    def get_scales(self, table):
        return self.scales[table]

    def is_flat(self, table):
        return all(s == 1.0 for s in self.scales[table])

    def __repr__(self):
        return f"Layer1Config(name={self.name!r}, fw_version={int(self.fw_version)})"


def get_layer1_configs():

    LAYER1_CONFIGS = {
    '2016': Layer1Config(
        name='2016',
        fw_version=0
    ),
    '2016_sat': Layer1Config(
        name='2016_sat',
        fw_version=1
    ),
    '2017_lut': Layer1Config(
        name='2017_lut',
        fw_version=2
    ),
    '2017_hf': Layer1Config(
        name='2017_hf',
        fw_version=3
    )
    }

    return LAYER1_CONFIGS


def get_config_for_run(run):
    """Preset matching the firmware that was online for a run."""
    version = firmware_version_for_run(run)
    for config in get_layer1_configs().values():
        if config.fw_version == version:
            return config
    raise ValueError(f"No Layer-1 configuration for firmware version {int(version)}")


def build_layer1(config, geometry=None):
    """
    Create a UCTLayer1 from a Layer1Config or a preset name.

    Non-flat calibration factors are turned into LUTs; for firmware 3 the HF
    table also carries the duplicate-tower division.
    """
    if isinstance(config, str):
        configs = get_layer1_configs()
        if config not in configs:
            raise ValueError(f"Unknown Layer-1 configuration: {config}")
        config = configs[config]

    ecal_lut = None if config.is_flat('ecal') else scaled_lut(config.get_scales('ecal'))
    hcal_lut = None if config.is_flat('hcal') else scaled_lut(config.get_scales('hcal'))
    hf_table = None
    if not config.is_flat('hf'):
        hf_table = hf_lut(config.get_scales('hf'), divide=config.fw_version >= 3)

    return UCTLayer1(
        fw_version=config.fw_version,
        geometry=geometry,
        ecal_lut=ecal_lut,
        hcal_lut=hcal_lut,
        hf_lut=hf_table,
        activity_fraction=config.activity_fraction,
        max_active_towers=config.max_active_towers,
    )
