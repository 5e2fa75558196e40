from __future__ import annotations

import pytest

from pyrbo._codec import decode_document, encode_document
from pyrbo.exceptions import RboDecodeError, RboEncodeError, RboStoreError
from pyrbo.tracking.nodes import Tracker


def test_encode_is_compact_and_keeps_insertion_order() -> None:
    root = Tracker(lambda kind, path: None).wrap({"b": 1, "a": [1, {"z": None, "y": "é"}]})

    assert encode_document(root) == '{"b":1,"a":[1,{"z":null,"y":"é"}]}'


def test_encode_rejects_unserializable_values() -> None:
    with pytest.raises(RboEncodeError):
        encode_document({"a": {1, 2}})


def test_decode_accepts_str_and_bytes() -> None:
    assert decode_document('{"a":4}', key="k") == {"a": 4}
    assert decode_document(b"[1,2]", key="k") == [1, 2]


def test_decode_malformed_document() -> None:
    with pytest.raises(RboDecodeError) as excinfo:
        decode_document("{not json", key="rbo:test")

    assert isinstance(excinfo.value, RboStoreError)
    assert excinfo.value.key == "rbo:test"
    assert excinfo.value.operation == "get"


def test_decode_invalid_utf8() -> None:
    with pytest.raises(RboDecodeError):
        decode_document(b"\xff\xfe", key="k")
