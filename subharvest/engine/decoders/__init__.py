"""Link decoders turning raw proxy URIs into canonical summaries."""

from .base import CanonicalSummary, DecodeFailure, FieldSpec, LinkDecodeError, LinkDecoder, UriLinkDecoder
from .protocols import (
    DEFAULT_DECODERS,
    Hysteria2Decoder,
    ShadowsocksDecoder,
    SocksDecoder,
    TrojanDecoder,
    TuicDecoder,
    VlessDecoder,
    VmessDecoder,
    WireguardDecoder,
)
from .registry import DecoderRegistry

__all__ = [
    "CanonicalSummary",
    "DEFAULT_DECODERS",
    "DecodeFailure",
    "DecoderRegistry",
    "FieldSpec",
    "Hysteria2Decoder",
    "LinkDecodeError",
    "LinkDecoder",
    "ShadowsocksDecoder",
    "SocksDecoder",
    "TrojanDecoder",
    "TuicDecoder",
    "UriLinkDecoder",
    "VlessDecoder",
    "VmessDecoder",
    "WireguardDecoder",
]
