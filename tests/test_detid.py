import pytest

from calotrig.geometry.detid import (
    BitFieldCoder,
    Det,
    DetId,
    ForwardSubdetector,
    HcalSubdetector,
    decode_layer,
    make_forward_id,
    make_hcal_id,
    make_scintillator_id,
    make_silicon_id,
)


def test_bitfield_coder_roundtrip_with_signed_field():
    coder = BitFieldCoder("system:8,x:16:-8,layer:4")
    raw = coder.encode(system=5, x=-3, layer=9)
    assert coder.decode(raw) == {'system': 5, 'x': -3, 'layer': 9}
    assert coder.get_field('layer').offset == 24


def test_bitfield_encode_range_check():
    coder = BitFieldCoder("a:4,b:4")
    with pytest.raises(ValueError):
        coder.encode(a=16)
    with pytest.raises(KeyError):
        coder.encode(c=1)


def test_invalid_descriptor():
    with pytest.raises(ValueError):
        BitFieldCoder("a:1:2:3")


def test_header_fields():
    detid = make_forward_id(ForwardSubdetector.HGCHEB, layer=7)
    assert detid.det() == Det.Forward
    assert detid.subdet_id() == ForwardSubdetector.HGCHEB

    hcal = make_hcal_id(HcalSubdetector.HcalEndcap, ieta=-20, iphi=3, depth=2)
    assert hcal.det() == Det.Hcal
    assert hcal.subdet_id() == HcalSubdetector.HcalEndcap


@pytest.mark.parametrize("detid,layer", [
    (make_silicon_id(Det.HGCalEE, layer=5, wafer_u=-3, cell_u=7), 5),
    (make_silicon_id(Det.HGCalHSi, layer=21, zside=-1), 21),
    (make_scintillator_id(layer=14, ieta=30, iphi=200), 14),
    (make_forward_id(ForwardSubdetector.HGCEE, layer=27, wafer=300, cell=10), 27),
    (make_hcal_id(HcalSubdetector.HcalEndcap, ieta=18, iphi=71, depth=6), 6),
])
def test_decode_layer(detid, layer):
    assert decode_layer(detid) == layer
    assert decode_layer(detid.raw_id()) == layer


def test_decode_layer_without_layer_field():
    assert decode_layer(DetId((int(Det.Ecal) << 28) | 1234)) is None


def test_silicon_id_rejects_other_detectors():
    with pytest.raises(ValueError):
        make_silicon_id(Det.HGCalHSc, layer=1)


def test_detid_equality_and_hashing():
    a = make_silicon_id(Det.HGCalEE, layer=3, cell_u=1)
    b = DetId(a.raw_id())
    assert a == b
    assert a == a.raw_id()
    assert {a: 1}[b] == 1
    assert {a.raw_id(): 2}[a] == 2
    assert int(a) == a.raw_id()
    assert not a.null()
    assert DetId().null()
