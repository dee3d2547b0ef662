import pytest
from web3 import Web3

from conftest import CHAIN_ID, PROTOCOL, USDC, WETH
from index_orders.services.extension import Extension, extension_predicate
from index_orders.services.limit_order import ZERO_ADDRESS, LimitOrder, build_salt
from index_orders.services.maker_traits import (
    ALLOW_MULTIPLE_FILLS_FLAG,
    HAS_EXTENSION_FLAG,
    NO_PARTIAL_FILLS_FLAG,
    MakerTraits,
)


# ---------- extension ----------

def test_empty_extension_encodes_to_0x():
    ext = Extension()
    assert ext.is_empty()
    assert ext.encode() == b""
    assert ext.to_hex() == "0x"
    assert Extension.decode("0x") == ext


def test_extension_offsets_are_cumulative_ends():
    ext = Extension(making_amount_data=b"\xaa" * 3, predicate=b"\xbb" * 5, custom_data=b"\xcc")
    raw = ext.encode()
    offsets = int.from_bytes(raw[:32], "big")
    ends = [(offsets >> (32 * i)) & 0xFFFFFFFF for i in range(8)]
    assert ends == [0, 0, 3, 3, 8, 8, 8, 8]
    assert raw[32:] == b"\xaa" * 3 + b"\xbb" * 5 + b"\xcc"

    back = Extension.decode(ext.to_hex())
    assert back == ext
    assert extension_predicate(ext.to_hex()) == b"\xbb" * 5


def test_extension_decode_rejects_truncated_data():
    with pytest.raises(ValueError):
        Extension.decode(b"\x00" * 10)
    assert extension_predicate("0x1234") is None


# ---------- maker traits ----------

def test_maker_traits_fields():
    t = (
        MakerTraits.default()
        .allow_partial_fills(False)
        .allow_multiple_fills()
        .with_extension()
        .with_nonce(42)
        .with_expiration(1_700_000_000)
    )
    v = t.as_int()
    assert (v >> NO_PARTIAL_FILLS_FLAG) & 1 == 1
    assert (v >> ALLOW_MULTIPLE_FILLS_FLAG) & 1 == 1
    assert (v >> HAS_EXTENSION_FLAG) & 1 == 1
    assert t.nonce_or_epoch == 42
    assert t.expiration == 1_700_000_000
    assert not t.is_partial_fill_allowed()
    assert (v >> 80) & ((1 << 40) - 1) == 1_700_000_000


def test_maker_traits_bounds():
    with pytest.raises(ValueError):
        MakerTraits().with_nonce(1 << 40)
    with pytest.raises(ValueError):
        MakerTraits().with_expiration(1 << 40)
    assert MakerTraits().expiration is None


def test_allowed_sender_keeps_low_80_bits():
    addr = "0x" + "ab" * 20
    t = MakerTraits().with_allowed_sender(addr)
    assert t.allowed_sender == int(addr, 16) & ((1 << 80) - 1)


# ---------- salt ----------

def test_salt_binds_extension_hash():
    ext = Extension(predicate=b"\x01\x02\x03")
    salt = build_salt(ext, base_salt=7)
    assert salt >> 160 == 7
    assert salt & ((1 << 160) - 1) == ext.hash_low_160()
    assert build_salt(None, base_salt=7) == 7


# ---------- order ----------

def _order(maker_address, extension=None):
    return LimitOrder.create(
        maker=maker_address,
        maker_asset=USDC,
        taker_asset=WETH,
        making_amount=100_000_000,
        taking_amount=30_000_000_000_000_000,
        traits=MakerTraits.default().allow_multiple_fills().with_nonce(1),
        extension=extension,
    )


def test_create_sets_extension_flag_and_checksums(maker):
    order = _order(maker.address.lower(), Extension(predicate=b"\x01"))
    assert order.maker == maker.address
    assert order.receiver == ZERO_ADDRESS
    assert order.traits.has_extension()
    assert order.is_salt_bound_to_extension()
    assert order.get_extension().predicate == b"\x01"


def test_create_rejects_non_positive_amounts(maker):
    with pytest.raises(ValueError):
        LimitOrder.create(maker=maker.address, maker_asset=USDC, taker_asset=WETH,
                          making_amount=0, taking_amount=1, traits=MakerTraits())


def test_typed_data_shape(maker):
    order = _order(maker.address)
    td = order.serializable_typed_data(CHAIN_ID, PROTOCOL)
    assert td["primaryType"] == "Order"
    assert td["domain"] == {
        "name": "1inch Aggregation Router",
        "version": "6",
        "chainId": CHAIN_ID,
        "verifyingContract": PROTOCOL,
    }
    assert td["message"]["makingAmount"] == "100000000"
    assert [f["name"] for f in td["types"]["Order"]][-1] == "makerTraits"


def test_sign_and_verify(maker, other_account):
    order = _order(maker.address, Extension(predicate=b"\x05"))
    sig = order.sign(maker.key, CHAIN_ID, PROTOCOL)

    assert order.verify_signature(sig, CHAIN_ID, PROTOCOL)
    assert order.recover_signer(sig, CHAIN_ID, PROTOCOL) == maker.address

    forged = order.sign(other_account.key, CHAIN_ID, PROTOCOL)
    assert not order.verify_signature(forged, CHAIN_ID, PROTOCOL)
    assert not order.verify_signature("0x1234", CHAIN_ID, PROTOCOL)


def test_order_hash_depends_on_chain_and_contract(maker):
    order = _order(maker.address)
    h = order.order_hash(CHAIN_ID, PROTOCOL)
    assert h.startswith("0x") and len(h) == 66
    assert h == order.order_hash(CHAIN_ID, PROTOCOL)
    assert h != order.order_hash(1, PROTOCOL)


def test_api_dict_round_trip(maker):
    order = _order(maker.address, Extension(predicate=b"\x09"))
    api = order.to_api_dict()
    assert all(isinstance(api[k], str) for k in ("salt", "makingAmount", "takingAmount", "makerTraits"))
    back = LimitOrder.from_api_dict(api, extension=order.extension)
    assert back == order
    assert Web3.is_checksum_address(back.maker)
