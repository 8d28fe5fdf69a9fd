from enum import IntEnum


class BitFieldElement:
    """
    One named slice of a 32-bit detector identifier.

    A negative width in the descriptor marks a two's-complement field.
    """

    def __init__(self, name, offset, width):
        self.name = name
        self.offset = offset
        self.is_signed = width < 0
        self.width = -width if self.is_signed else width
        self.mask = ((1 << self.width) - 1) << offset
        if self.is_signed:
            self.max_val = (1 << (self.width - 1)) - 1
            self.min_val = -self.max_val - 1
        else:
            self.min_val, self.max_val = 0, (1 << self.width) - 1

    def value(self, raw_id):
        field = (int(raw_id) & self.mask) >> self.offset
        if self.is_signed and field > self.max_val:
            return field - (1 << self.width)
        return field

    def encode(self, value):
        value = int(value)
        if not self.min_val <= value <= self.max_val:
            raise ValueError(f"Value {value} out of range for field {self.name} "
                             f"[{self.min_val}, {self.max_val}]")
        return (value << self.offset) & self.mask


def _parse_descriptor(descriptor):
    """Yield (name, offset, width) for "name:width" or "name:offset:width" entries."""
    next_offset = 0
    for entry in descriptor.split(','):
        parts = entry.strip().split(':')
        if len(parts) == 2:
            name, offset, width = parts[0], next_offset, int(parts[1])
        elif len(parts) == 3:
            name, offset, width = parts[0], int(parts[1]), int(parts[2])
        else:
            raise ValueError(f"Invalid field descriptor: {entry}")
        next_offset = offset + abs(width)
        yield name, offset, width


class BitFieldCoder:
    """
    Packs and unpacks identifier fields described by a string such as
    "cellU:5,cellV:5,layer:20:5,det:28:4". Fields without an explicit
    offset start where the previous one ended.
    """

    def __init__(self, descriptor):
        self.fields = [BitFieldElement(*layout) for layout in _parse_descriptor(descriptor)]
        self._by_name = {field.name: field for field in self.fields}

    def get_field(self, name):
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"Unknown field: {name}") from None

    def decode(self, raw_id):
        return {field.name: field.value(raw_id) for field in self.fields}

    def encode(self, **values):
        """Pack named field values; fields not given are zero"""
        raw_id = 0
        for name, value in values.items():
            raw_id |= self.get_field(name).encode(value)
        return raw_id


class Det(IntEnum):
    Tracker = 1
    Muon = 2
    Ecal = 3
    Hcal = 4
    Calo = 5
    Forward = 6
    VeryForward = 7
    HGCalEE = 8
    HGCalHSi = 9
    HGCalHSc = 10
    HGCalTrigger = 11


class ForwardSubdetector(IntEnum):
    ForwardEmpty = 0
    FastTime = 1
    BHM = 2
    HGCEE = 3
    HGCHEF = 4
    HGCHEB = 5
    HGCTrigger = 6


class HcalSubdetector(IntEnum):
    HcalEmpty = 0
    HcalBarrel = 1
    HcalEndcap = 2
    HcalOuter = 3
    HcalForward = 4
    HcalTriggerTower = 5
    HcalOther = 7


# Common header shared by every identifier scheme
DETID_CODER = BitFieldCoder("subdet:25:3,det:28:4")

# Per-scheme layouts, all ending in the common det field
HGCAL_SILICON_CODER = BitFieldCoder(
    "cellU:5,cellV:5,waferU:4,waferV:4,waferUsign:1,waferVsign:1,layer:5,zside:1,type:2,det:4")
HGCAL_SCINTILLATOR_CODER = BitFieldCoder(
    "iphi:9,ieta:8,layer:5,reserved:3,zside:1,type:2,det:4")
HGCAL_LEGACY_CODER = BitFieldCoder(
    "cell:8,wafer:10,waferType:1,layer:5,zside:1,subdet:3,det:4")
HCAL_CODER = BitFieldCoder("iphi:10,ieta:9,zside:1,depth:5,subdet:3,det:4")


class DetId:
    """32-bit raw detector identifier with det/subdet accessors."""

    __slots__ = ('_raw',)

    def __init__(self, raw_id=0):
        self._raw = int(raw_id) & 0xFFFFFFFF

    def raw_id(self):
        return self._raw

    def det(self):
        return DETID_CODER.get_field('det').value(self._raw)

    def subdet_id(self):
        return DETID_CODER.get_field('subdet').value(self._raw)

    def null(self):
        return self._raw == 0

    def __int__(self):
        return self._raw

    def __index__(self):
        return self._raw

    def __eq__(self, other):
        if isinstance(other, DetId):
            return self._raw == other._raw
        if isinstance(other, int):
            return self._raw == other
        return NotImplemented

    def __hash__(self):
        return hash(self._raw)

    def __repr__(self):
        return f"DetId(0x{self._raw:08x}, det={self.det()}, subdet={self.subdet_id()})"


def make_silicon_id(det, layer, zside=1, wafer_u=0, wafer_v=0, cell_u=0, cell_v=0, wafer_type=0):
    """Build an HGCalEE / HGCalHSi identifier."""
    if det not in (Det.HGCalEE, Det.HGCalHSi):
        raise ValueError(f"Not a silicon detector: {det}")
    return DetId(HGCAL_SILICON_CODER.encode(
        det=int(det), layer=layer, zside=1 if zside > 0 else 0, type=wafer_type,
        waferU=abs(wafer_u), waferUsign=1 if wafer_u < 0 else 0,
        waferV=abs(wafer_v), waferVsign=1 if wafer_v < 0 else 0,
        cellU=cell_u, cellV=cell_v))


def make_scintillator_id(layer, ieta, iphi, zside=1, tile_type=0):
    return DetId(HGCAL_SCINTILLATOR_CODER.encode(
        det=int(Det.HGCalHSc), layer=layer, ieta=ieta, iphi=iphi,
        zside=1 if zside > 0 else 0, type=tile_type))


def make_forward_id(subdet, layer, wafer=0, cell=0, zside=1):
    """Build a legacy Forward (HGCEE/HGCHEF/HGCHEB) identifier."""
    return DetId(HGCAL_LEGACY_CODER.encode(
        det=int(Det.Forward), subdet=int(subdet), layer=layer, wafer=wafer, cell=cell,
        zside=1 if zside > 0 else 0))


def make_hcal_id(subdet, ieta, iphi, depth):
    return DetId(HCAL_CODER.encode(
        det=int(Det.Hcal), subdet=int(subdet), ieta=abs(ieta), iphi=iphi,
        zside=1 if ieta > 0 else 0, depth=depth))


def decode_layer(detid):
    """
    Detector layer stored in an identifier, without any section offset.

    Args:
        detid: DetId or raw integer identifier

    Returns:
        Layer number, or None for identifier schemes without a layer field
    """
    detid = detid if isinstance(detid, DetId) else DetId(detid)
    det = detid.det()
    if det in (Det.HGCalEE, Det.HGCalHSi):
        return HGCAL_SILICON_CODER.get_field('layer').value(detid.raw_id())
    if det == Det.HGCalHSc:
        return HGCAL_SCINTILLATOR_CODER.get_field('layer').value(detid.raw_id())
    if det == Det.Forward:
        return HGCAL_LEGACY_CODER.get_field('layer').value(detid.raw_id())
    if det == Det.Hcal:
        return HCAL_CODER.get_field('depth').value(detid.raw_id())
    return None
