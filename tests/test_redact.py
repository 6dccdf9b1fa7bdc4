from __future__ import annotations

from regionfeed._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "postcode4": "1011",
        "Authorization": "Bearer abc",
        "api_token": "secret",
        "nested": {"password": "pw", "startIndex": 1000},
    }

    redacted = redact_for_log(payload)
    assert redacted["postcode4"] == "1011"
    assert redacted["Authorization"] == "<redacted>"
    assert redacted["api_token"] == "<redacted>"
    assert redacted["nested"] == {"password": "<redacted>", "startIndex": 1000}


def test_redact_for_log_hides_coordinates_and_trims_lists() -> None:
    features = [{"geometry": {"type": "Point", "coordinates": [4.9, 52.3]}} for _ in range(8)]

    redacted = redact_for_log({"features": features}, max_items=2)

    assert redacted["features"][0]["geometry"]["coordinates"] == "<coordinates>"
    assert redacted["features"][-1] == "<+6 more>"
    assert len(redacted["features"]) == 3


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_summarises_bytes_and_unknown_objects() -> None:
    class _Opaque:
        def __repr__(self) -> str:
            return "<opaque>"

    redacted = redact_for_log({"body": b"\xff\xfe", "flag": True, "obj": _Opaque(), "none": None})

    assert redacted == {"body": "<bytes:2b>", "flag": True, "obj": "<opaque>", "none": None}
