from typing import Any

import msgspec

__all__ = ("encode_json",)


def _type_to_string(value: Any) -> str:
    if isinstance(value, type):
        return value.__qualname__
    return repr(value)


_encoder = msgspec.json.Encoder(enc_hook=_type_to_string)


def encode_json(data: Any) -> str:
    """Encode ``data`` to JSON, falling back to a readable string for types msgspec does not support."""
    return _encoder.encode(data).decode("utf-8")
