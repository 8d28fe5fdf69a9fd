"""Bit layouts of the Layer-1 tower and region words."""

# Raw trigger primitive ET
ET_INPUT_MAX = 0xFF
# Storage range of raw inputs
RAW_ET_MAX = 0xFFFFFFFF

# Tower word
ET_MASK = 0x000001FF
ER_MASK = 0x00000E00
ER_SHIFT = 9
ER_MAX_V = 7
ZERO_FLAG_MASK = 0x00001000
EOH_FLAG_MASK = 0x00002000
HCAL_FLAG_MASK = 0x00004000
ECAL_FLAG_MASK = 0x00008000

# Packed LUT word (firmware >= 2): calibrated ET plus log2 code
LUT_ET_MASK = 0x000001FF
LUT_LOG_SHIFT = 12
LUT_LOG_MASK = 0x00007000

# Region word
REGION_ET_MASK = 0x000003FF
REGION_EG_VETO = 0x00000400
REGION_TAU_VETO = 0x00000800
HIT_TOWER_BITS = 0x0000F000
HIT_TOWER_SHIFT = 12
REGION_NO_BITS = 0x000F0000
REGION_NO_SHIFT = 16
PHI_IN_CRATE_BITS = 0x00700000
PHI_IN_CRATE_SHIFT = 20
CRATE_NO_BITS = 0x01800000
CRATE_NO_SHIFT = 23
NEG_ETA_BIT = 0x80000000
